"""
Sélection et ouverture du stockage au démarrage.

`create_storage()` choisit l'adaptateur d'après `AppConfig.database_type` ;
`open_storage()` le connecte puis s'assure que le schéma est prêt. Toute
erreur à ce stade est fatale : l'application ne doit pas servir de requêtes
sans stockage.
"""

from __future__ import annotations

import logging

from ..services.config_service import AppConfig
from .base import StorageAdapter
from .errors import CatalogError
from .kinds import BackendKind
from .pg_db import PostgresStorage
from .sqlite_db import SqliteStorage

logger = logging.getLogger(__name__)


def create_storage(config: AppConfig) -> StorageAdapter:
    """
    Construit l'adaptateur correspondant à la configuration (sans le connecter).

    Raises:
        ValueError: Si `database_type` est inconnu.
    """
    kind = BackendKind.from_config(config.database_type)
    if kind is BackendKind.SERVER:
        logger.info("Stockage configuré : PostgreSQL.")
        return PostgresStorage(
            host=config.pg_host,
            port=config.pg_port,
            user=config.pg_user,
            password=config.pg_password,
            database=config.pg_database,
            pool_size=config.pg_pool_size,
        )
    logger.info("Stockage configuré : SQLite (par défaut).")
    return SqliteStorage(config.resolved_sqlite_path())


async def open_storage(config: AppConfig) -> StorageAdapter:
    """
    Connecte l'adaptateur configuré et prépare la table `books`.

    Returns:
        StorageAdapter: L'adaptateur prêt à être lié au repository.

    Raises:
        DatabaseConnectionError: Si la connexion échoue.
        SchemaSetupError: Si la création de la table échoue.
    """
    storage = create_storage(config)
    await storage.connect()
    try:
        await storage.ensure_schema()
    except CatalogError:
        await storage.dispose()
        raise
    logger.info('Base (%s) et table "books" prêtes.', storage.kind.value.upper())
    return storage
