"""
Adaptateur de stockage SQLite (moteur embarqué, fichier local).

Toutes les instructions passent par une unique connexion physique
(`StaticPool`) protégée par un `asyncio.Lock` : aucune requête ne peut
s'intercaler dans une séquence BEGIN…COMMIT ouverte par `transaction()`.
Le pilote `aiosqlite` est configuré pour émettre lui-même BEGIN, ce qui
rend les transactions (y compris le DDL) explicites.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from ..services.utils import parse_timestamp
from .base import StorageAdapter
from .kinds import BackendKind
from .migrate import upgrade

MEMORY = ":memory:"


class SqliteStorage(StorageAdapter):
    """Stockage dans un fichier SQLite local."""

    kind = BackendKind.EMBEDDED

    def __init__(self, path: str | Path):
        """
        Initialise l'adaptateur.

        Args:
            path: Chemin du fichier de base de données, ou ":memory:".
        """
        self.path = path if str(path) == MEMORY else Path(path)
        self._lock = asyncio.Lock()
        super().__init__()

    def describe(self) -> str:
        return str(self.path)

    @property
    def url(self) -> str:
        if self.path == MEMORY:
            return "sqlite+aiosqlite://"
        return f"sqlite+aiosqlite:///{self.path.as_posix()}"

    def _create_engine(self) -> AsyncEngine:
        if isinstance(self.path, Path):
            self.path.parent.mkdir(parents=True, exist_ok=True)

        engine = create_async_engine(self.url, echo=False, poolclass=StaticPool)

        @event.listens_for(engine.sync_engine, "connect")
        def _disable_driver_transactions(dbapi_connection, connection_record):
            # Le pilote n'ouvre plus de transaction implicite ; BEGIN est émis ci-dessous.
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

        return engine

    def _serialized(self) -> asyncio.Lock:
        return self._lock

    async def ensure_schema(self) -> list[str]:
        """Crée la table si besoin puis ajoute les colonnes optionnelles manquantes."""
        await super().ensure_schema()
        return await upgrade(self)

    def encode_array(self, values: list[Any]) -> str:
        return json.dumps(values, ensure_ascii=False)

    def encode_timestamp(self, value: datetime) -> str:
        # Texte ISO toujours en UTC : ORDER BY et MAX comparent des chaînes
        return parse_timestamp(value).astimezone(timezone.utc).isoformat()
