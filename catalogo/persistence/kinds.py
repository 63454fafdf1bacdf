"""Énumération des moteurs de stockage pris en charge."""

from __future__ import annotations

import enum


class BackendKind(str, enum.Enum):
    """Moteur SQL derrière un adaptateur de stockage."""

    EMBEDDED = "sqlite"
    SERVER = "postgresql"

    @classmethod
    def from_config(cls, value: str) -> BackendKind:
        """
        Convertit la valeur `database_type` de la configuration.

        Raises:
            ValueError: Si le type de base est inconnu.
        """
        normalized = (value or "").strip().lower()
        if normalized in ("", "sqlite", "sqlite3"):
            return cls.EMBEDDED
        if normalized in ("postgres", "postgresql", "pg"):
            return cls.SERVER
        raise ValueError(f"Type de base de données non supporté : {value!r}")
