"""
Boîte à outils de fonctions utilitaires partagées.

Petites fonctions pures de conversion utilisées à la fois par les
adaptateurs de stockage et par la couche de service : nettoyage des prix
saisis à la main ou renvoyés par l'IA, conversion des horodatages.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

_PRICE_CHARS = re.compile(r"[^0-9,.]")
_LEADING_NUMBER = re.compile(r"\d+(?:\.\d+)?|\.\d+")


def clean_price(price_text: str | None) -> float | None:
    """
    Extrait un prix d'une chaîne libre ("€ 12,50", "12.50 EUR", ...).

    La première virgule est traitée comme séparateur décimal ; seul le
    nombre en tête de la chaîne nettoyée est retenu.

    Args:
        price_text: Le texte contenant le prix.

    Returns:
        Le prix en float, ou None si aucun nombre n'est lisible.
    """
    if not price_text:
        return None
    cleaned = _PRICE_CHARS.sub("", price_text).replace(",", ".", 1).strip()
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return None
    return float(match.group())


def to_float(value: Any) -> float | None:
    """Convertit un nombre ou une chaîne numérique en float (None si illisible)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return None if math.isnan(number) else number
    if isinstance(value, str):
        return clean_price(value.strip())
    return None


def parse_timestamp(value: Any) -> datetime | None:
    """
    Convertit une valeur d'horodatage en datetime "aware" (UTC par défaut).

    Accepte un datetime, ou une chaîne ISO 8601 (y compris le suffixe "Z"
    et le format "AAAA-MM-JJ HH:MM:SS" de CURRENT_TIMESTAMP en SQLite).

    Returns:
        Le datetime, ou None si la valeur est vide ou illisible.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utc_now() -> datetime:
    """Retourne l'instant présent en UTC."""
    return datetime.now(timezone.utc)
