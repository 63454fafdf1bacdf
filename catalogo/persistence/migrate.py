"""
Mise à niveau additive du schéma SQLite.

Les bases créées par les premières versions de l'application n'ont pas
toutes les colonnes de `books`. Ce module ajoute les colonnes optionnelles
manquantes sans jamais en supprimer ni en renommer. Chaque ALTER TABLE est
exécuté dans sa propre transaction : un échec est journalisé et les
colonnes suivantes sont tout de même tentées.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .errors import SchemaSetupError
from .models_sa import OPTIONAL_COLUMNS, TABLE_NAME

if TYPE_CHECKING:
    from .sqlite_db import SqliteStorage

logger = logging.getLogger(__name__)


async def existing_columns(storage: SqliteStorage, table: str = TABLE_NAME) -> set[str]:
    """Retourne les noms de colonnes (en minuscules) d'une table SQLite."""
    async with storage.connection() as conn:
        rows = (await conn.execute(text(f"PRAGMA table_info({table})"))).fetchall()
    return {str(r[1]).lower() for r in rows}


async def upgrade(storage: SqliteStorage) -> list[str]:
    """
    Ajoute à `books` les colonnes optionnelles absentes.

    Args:
        storage: L'adaptateur SQLite connecté.

    Returns:
        La liste des colonnes effectivement ajoutées.

    Raises:
        SchemaSetupError: Si la structure actuelle de la table est illisible.
    """
    try:
        columns = await existing_columns(storage)
    except SQLAlchemyError as e:
        logger.error("PRAGMA table_info(%s) en échec : %s", TABLE_NAME, e)
        raise SchemaSetupError(f"Lecture du schéma de {TABLE_NAME} impossible : {e}") from e
    if not columns:
        logger.warning("PRAGMA table_info(books) vide : mise à niveau du schéma ignorée.")
        return []

    missing = [(name, sql_type) for name, sql_type in OPTIONAL_COLUMNS if name.lower() not in columns]
    if not missing:
        logger.info('Schéma "books" déjà à jour, aucune modification.')
        return []

    logger.info("Mise à niveau du schéma (%d colonnes manquantes)...", len(missing))
    added = []
    for name, sql_type in missing:
        statement = f"ALTER TABLE {TABLE_NAME} ADD COLUMN {name} {sql_type}"
        try:
            async with storage.transaction() as conn:
                await conn.execute(text(statement))
        except SQLAlchemyError as e:
            logger.error("Échec ALTER TABLE (%s) : %s", statement, e)
            continue
        logger.info("Schéma mis à jour : %s", statement)
        added.append(name)
    return added
