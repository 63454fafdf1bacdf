"""
Base commune des adaptateurs de stockage.

Un adaptateur encapsule un moteur SQLAlchemy asynchrone et expose le même
contrat quel que soit le moteur :

- `connect()` / `ensure_schema()` / `get_handle()` / `dispose()` ;
- `connection()` et `transaction()`, deux context managers asynchrones ;
  `transaction()` est la capacité de "transaction délimitée" (BEGIN à
  l'entrée, COMMIT en sortie normale, ROLLBACK sur exception) ;
- la normalisation des lignes en `Book` (`row_to_book`) et l'encodage des
  valeurs propres au moteur (`encode_array`, `encode_timestamp`).

Le repository ne manipule jamais les noms de colonnes SQL : il passe par
les clés Python de `books.c`, la casse effective est l'affaire de
l'adaptateur.
"""

from __future__ import annotations

import abc
import contextlib
import logging
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

from sqlalchemy import MetaData, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from ..services.types import TEXT_FIELDS, AdditionalCopy, Book
from ..services.utils import parse_timestamp
from .errors import DatabaseConnectionError, NotConnectedError, SchemaSetupError
from .json_arrays import decode_copy_list, decode_string_list
from .kinds import BackendKind
from .models_sa import build_books_table

logger = logging.getLogger(__name__)


class StorageAdapter(abc.ABC):
    """Adaptateur de stockage abstrait (un par moteur SQL)."""

    kind: BackendKind

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self.metadata = MetaData()
        self.books = build_books_table(self.kind, self.metadata)

    # --- Cycle de vie ---

    @abc.abstractmethod
    def _create_engine(self) -> AsyncEngine:
        """Crée le moteur SQLAlchemy (sans ouvrir de connexion)."""

    @abc.abstractmethod
    def describe(self) -> str:
        """Description lisible de la cible, sans mot de passe (pour les logs)."""

    async def connect(self) -> AsyncEngine:
        """
        Ouvre le moteur et vérifie qu'il répond.

        Returns:
            AsyncEngine: Le moteur connecté.

        Raises:
            DatabaseConnectionError: En cas d'erreur d'E/S ou d'authentification.
        """
        engine = None
        try:
            engine = self._create_engine()
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            if engine is not None:
                await engine.dispose()
            logger.error("Erreur de connexion à la base (%s) : %s", self.describe(), e)
            raise DatabaseConnectionError(
                f"Connexion impossible à {self.describe()} : {e}"
            ) from e

        self._engine = engine
        logger.info("Connecté à la base %s : %s", self.kind.value, self.describe())
        return engine

    def get_handle(self) -> AsyncEngine:
        """
        Retourne le moteur connecté.

        Raises:
            NotConnectedError: Si `connect()` n'a pas encore été appelé.
        """
        if self._engine is None:
            raise NotConnectedError(
                f"Base non connectée ({self.kind.value}) : appeler connect() d'abord."
            )
        return self._engine

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    async def ensure_schema(self) -> list[str]:
        """
        Crée la table `books` si elle n'existe pas (opération idempotente).

        Returns:
            La liste des colonnes ajoutées à une table existante (vide ici ;
            les adaptateurs qui migrent le schéma la complètent).

        Raises:
            SchemaSetupError: Si la création de la table échoue.
        """
        try:
            async with self.transaction() as conn:
                await conn.run_sync(self.metadata.create_all)
        except SQLAlchemyError as e:
            logger.error("Erreur de création de la table books (%s) : %s", self.kind.value, e)
            raise SchemaSetupError(f"Création de la table books impossible : {e}") from e
        logger.info('Table "books" (%s) prête.', self.kind.value)
        return []

    async def dispose(self) -> None:
        """Ferme le pool de connexions."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info("Connexion %s fermée.", self.kind.value)

    # --- Accès aux connexions ---

    def _serialized(self) -> contextlib.AbstractAsyncContextManager:
        """Verrou tenu pendant chaque bloc d'accès (aucun par défaut)."""
        return contextlib.nullcontext()

    @contextlib.asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        """Connexion pour une suite de lectures ; rien n'est validé à la sortie."""
        engine = self.get_handle()
        async with self._serialized():
            async with engine.connect() as conn:
                yield conn

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        """Transaction délimitée : COMMIT en sortie normale, ROLLBACK sur exception."""
        engine = self.get_handle()
        async with self._serialized():
            async with engine.begin() as conn:
                yield conn

    # --- Encodage / décodage propres au moteur ---

    @abc.abstractmethod
    def encode_array(self, values: list[Any]) -> Any:
        """Valeur de paramètre pour une colonne tableau."""

    @abc.abstractmethod
    def encode_timestamp(self, value: datetime) -> Any:
        """Valeur de paramètre pour la colonne `timestamp`."""

    def decode_timestamp(self, value: Any, book_id: int | None = None) -> datetime | None:
        """Convertit la valeur lue en datetime ; une valeur illisible donne None."""
        parsed = parse_timestamp(value)
        if parsed is None and value not in (None, ""):
            logger.warning("Timestamp illisible pour le livre id=%s : %r", book_id, value)
        return parsed

    def row_to_book(self, row: Any) -> Book:
        """
        Normalise une ligne de résultat en `Book`.

        Les colonnes sont lues par leur objet `Column` (donc quelle que soit
        leur casse SQL) ; les tableaux passent par le décodage tolérant.
        """
        data = row._mapping
        c = self.books.c
        book_id = data[c.id]
        return Book(
            id=book_id,
            titolo=data[c.titolo],
            autore=data[c.autore],
            prezzo=data[c.prezzo],
            confidence=data[c.confidence],
            image_urls=decode_string_list(data[c.image_urls], field="imageUrls", book_id=book_id),
            categories_ai=decode_string_list(
                data[c.categories_ai], field="categoriesAI", book_id=book_id
            ),
            additional_copies=[
                AdditionalCopy.from_dict(copy)
                for copy in decode_copy_list(data[c.additional_copies], book_id=book_id)
            ],
            timestamp=self.decode_timestamp(data[c.timestamp], book_id),
            **{attr: data[c[attr]] for attr in TEXT_FIELDS},
        )
