"""
Adaptateur de stockage PostgreSQL (moteur client-serveur).

Le moteur utilise un pool de connexions `asyncpg` : des requêtes
indépendantes peuvent s'exécuter en parallèle, chaque `transaction()`
réserve une connexion du pool pour la durée du BEGIN…COMMIT. Les colonnes
tableau sont en JSONB natif et reçoivent directement des listes Python.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from .base import StorageAdapter
from .kinds import BackendKind


class PostgresStorage(StorageAdapter):
    """Stockage dans une base PostgreSQL distante."""

    kind = BackendKind.SERVER

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        user: str = "postgres",
        password: str | None = None,
        database: str = "books_db",
        pool_size: int = 10,
    ):
        self.host = host
        self.port = int(port)
        self.user = user
        self.password = password
        self.database = database
        self.pool_size = int(pool_size)
        super().__init__()

    def describe(self) -> str:
        return f"{self.user}@{self.host}:{self.port}/{self.database}"

    @property
    def url(self) -> URL:
        return URL.create(
            "postgresql+asyncpg",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.database,
        )

    def _create_engine(self) -> AsyncEngine:
        return create_async_engine(
            self.url,
            echo=False,
            pool_size=self.pool_size,
            pool_pre_ping=True,
        )

    def encode_array(self, values: list[Any]) -> list[Any]:
        return list(values)

    def encode_timestamp(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
