"""
Décodage tolérant des colonnes "tableau JSON".

Les colonnes `imageUrls`, `categoriesAI` et `additionalCopies` contiennent
du texte JSON (SQLite) ou du JSONB (PostgreSQL). Les deux adaptateurs
passent par les fonctions de ce module : une valeur absente ou corrompue
devient une liste vide, la lecture d'un livre ne doit jamais échouer à
cause de données héritées mal formées.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from .errors import MalformedArrayDataError

logger = logging.getLogger(__name__)

# Clés reconnues pour un exemplaire supplémentaire (format d'échange).
COPY_KEYS = ("anno", "prezzo", "condizioniLibro")


def load_json_array(raw: Any) -> list[Any]:
    """
    Décode strictement une valeur de colonne en liste Python.

    Args:
        raw: Texte JSON, octets, liste déjà décodée (JSONB) ou None.

    Returns:
        La liste décodée ; None et la chaîne vide donnent une liste vide.

    Raises:
        MalformedArrayDataError: Si la valeur n'est pas du JSON valide
            ou ne représente pas un tableau.
    """
    if raw is None:
        return []
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedArrayDataError(f"octets non UTF-8 : {e}") from e
    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            value = json.loads(raw)
        except ValueError as e:
            raise MalformedArrayDataError(f"JSON invalide : {e}") from e
    else:
        value = raw

    if isinstance(value, tuple):
        value = list(value)
    if not isinstance(value, list):
        raise MalformedArrayDataError(f"tableau attendu, reçu {type(value).__name__}")
    return value


def decode_json_array(raw: Any, *, field: str, book_id: int | None = None) -> list[Any]:
    """Variante tolérante de `load_json_array` : liste vide et warning en cas d'erreur."""
    try:
        return load_json_array(raw)
    except MalformedArrayDataError as e:
        logger.warning(
            "Valeur illisible pour %s (livre id=%s) : %s. Valeur : %r", field, book_id, e, raw
        )
        return []


def decode_string_list(raw: Any, *, field: str, book_id: int | None = None) -> list[str]:
    """Décode une liste de chaînes ; les éléments non textuels ou vides sont ignorés."""
    items = decode_json_array(raw, field=field, book_id=book_id)
    return [item for item in items if isinstance(item, str) and item.strip()]


def decode_copy_list(
    raw: Any, *, field: str = "additionalCopies", book_id: int | None = None
) -> list[dict[str, Any]]:
    """Décode les exemplaires supplémentaires ; seuls les objets portant une clé connue restent."""
    items = decode_json_array(raw, field=field, book_id=book_id)
    return [
        item for item in items if isinstance(item, dict) and any(key in item for key in COPY_KEYS)
    ]
