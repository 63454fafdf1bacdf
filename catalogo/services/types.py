"""
Définitions des types de données échangés par le catalogue.

`Book` est le seul enregistrement du catalogue. Les attributs Python sont
en snake_case ; le format d'échange (sauvegardes JSON, exports) garde les
clés camelCase historiques (`imageUrls`, `condizioniLibro`, ...).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..persistence.json_arrays import decode_copy_list, decode_string_list
from .utils import parse_timestamp, to_float

# Attributs dont la clé d'échange diffère du nom Python.
WIRE_KEYS = {
    "condizioni_libro": "condizioniLibro",
    "descrizione_ai": "descrizioneAI",
    "image_urls": "imageUrls",
    "categories_ai": "categoriesAI",
    "additional_copies": "additionalCopies",
}

# Champs texte optionnels, dans l'ordre des colonnes de la table.
TEXT_FIELDS = (
    "editore",
    "anno",
    "isbn",
    "lingua",
    "descrizione",
    "categoria",
    "sottocategoria1",
    "sottocategoria2",
    "descrizione_ai",
    "condizioni_libro",
)


def wire_key(attr: str) -> str:
    """Retourne la clé d'échange d'un attribut de `Book`."""
    return WIRE_KEYS.get(attr, attr)


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


@dataclass(slots=True)
class AdditionalCopy:
    """Exemplaire supplémentaire d'un même titre (année, prix, état)."""

    anno: str | None = None
    prezzo: float | None = None
    condizioni_libro: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AdditionalCopy:
        return cls(
            anno=_opt_str(data.get("anno")),
            prezzo=to_float(data.get("prezzo")),
            condizioni_libro=_opt_str(data.get("condizioniLibro")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "anno": self.anno,
            "prezzo": self.prezzo,
            "condizioniLibro": self.condizioni_libro,
        }


@dataclass(slots=True)
class Book:
    """Fiche d'un livre du catalogue."""

    titolo: str
    autore: str
    id: int | None = None
    editore: str | None = None
    anno: str | None = None
    isbn: str | None = None
    prezzo: float | None = None
    lingua: str | None = None
    descrizione: str | None = None
    categoria: str | None = None
    sottocategoria1: str | None = None
    sottocategoria2: str | None = None
    image_urls: list[str] = field(default_factory=list)
    timestamp: datetime | None = None
    confidence: float | None = None
    descrizione_ai: str | None = None
    categories_ai: list[str] = field(default_factory=list)
    condizioni_libro: str | None = None
    additional_copies: list[AdditionalCopy] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Book:
        """
        Construit un livre depuis un dictionnaire au format d'échange.

        Les clés sont comparées sans tenir compte de la casse, ce qui
        accepte aussi bien `imageUrls` que `imageurls`. Les prix et la
        confiance sont convertis en float, les tableaux sont filtrés comme
        à la lecture depuis la base.

        Args:
            data: Le dictionnaire source (corps JSON, ligne de sauvegarde).

        Returns:
            Book: Le livre correspondant.
        """
        lowered = {str(key).lower(): value for key, value in data.items()}

        def get(attr: str) -> Any:
            return lowered.get(wire_key(attr).lower())

        raw_id = get("id")
        try:
            book_id = int(raw_id) if raw_id is not None else None
        except (TypeError, ValueError):
            book_id = None

        texts = {attr: _opt_str(get(attr)) for attr in TEXT_FIELDS}
        return cls(
            id=book_id,
            titolo=_opt_str(get("titolo")) or "",
            autore=_opt_str(get("autore")) or "",
            prezzo=to_float(get("prezzo")),
            confidence=to_float(get("confidence")),
            image_urls=decode_string_list(get("image_urls"), field="imageUrls", book_id=book_id),
            categories_ai=decode_string_list(
                get("categories_ai"), field="categoriesAI", book_id=book_id
            ),
            additional_copies=[
                AdditionalCopy.from_dict(copy)
                for copy in decode_copy_list(get("additional_copies"), book_id=book_id)
            ],
            timestamp=parse_timestamp(get("timestamp")),
            **texts,
        )

    def to_dict(self) -> dict[str, Any]:
        """Sérialise le livre au format d'échange (clés camelCase, horodatage ISO 8601)."""
        return {
            "id": self.id,
            "titolo": self.titolo,
            "autore": self.autore,
            "editore": self.editore,
            "anno": self.anno,
            "isbn": self.isbn,
            "prezzo": self.prezzo,
            "lingua": self.lingua,
            "descrizione": self.descrizione,
            "categoria": self.categoria,
            "sottocategoria1": self.sottocategoria1,
            "sottocategoria2": self.sottocategoria2,
            "imageUrls": list(self.image_urls),
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "confidence": self.confidence,
            "descrizioneAI": self.descrizione_ai,
            "categoriesAI": list(self.categories_ai),
            "condizioniLibro": self.condizioni_libro,
            "additionalCopies": [copy.to_dict() for copy in self.additional_copies],
        }
