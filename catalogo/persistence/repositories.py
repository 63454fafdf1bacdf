"""
Implémentation du "Repository Pattern" pour l'accès aux livres.

`BookRepository` est le point d'accès unique aux données du catalogue. Il
est lié à un adaptateur de stockage (SQLite ou PostgreSQL) et ne dépend
jamais du moteur effectif : les différences de dialecte (paramètres,
récupération de l'id inséré, casse des colonnes, type des colonnes
tableau) sont résolues par SQLAlchemy et par l'adaptateur.

Le repository a deux états : non lié (toute méthode sauf `bind` lève
`NotBoundError`) et lié.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import delete, distinct, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from ..services.types import AdditionalCopy, Book
from ..services.utils import to_float, utc_now
from .base import StorageAdapter
from .errors import InsertError, InvalidBookError, NotBoundError, NotFoundError, QueryError
from .models_sa import INSERT_FIELDS, UPDATE_FIELDS
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def _check_required(book: Book) -> None:
    """Vérifie que le titre et l'auteur sont renseignés."""
    for attr in ("titolo", "autore"):
        value = getattr(book, attr)
        if not isinstance(value, str) or not value.strip():
            raise InvalidBookError(f"Champ obligatoire manquant : {attr}.")


def _coerce_id(book_id: Any) -> int:
    try:
        return int(book_id)
    except (TypeError, ValueError):
        raise NotFoundError(book_id) from None


def _copy_payload(copy: AdditionalCopy | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(copy, AdditionalCopy):
        return copy.to_dict()
    return dict(copy)


class BookRepository:
    """Gestionnaire d'accès aux livres, indépendant du moteur SQL."""

    def __init__(self, storage: StorageAdapter | None = None):
        """Initialise le repository, lié d'emblée si un adaptateur est fourni."""
        self._storage: StorageAdapter | None = None
        if storage is not None:
            self.bind(storage)

    def bind(self, storage: StorageAdapter) -> None:
        """Lie le repository à un adaptateur connecté (une nouvelle liaison remplace l'ancienne)."""
        self._storage = storage
        logger.info("Repository lié au stockage : %s", storage.kind.value)

    @property
    def is_bound(self) -> bool:
        return self._storage is not None

    @property
    def storage(self) -> StorageAdapter:
        """
        L'adaptateur lié.

        Raises:
            NotBoundError: Si aucun stockage n'a été attaché.
        """
        if self._storage is None:
            raise NotBoundError("Repository non lié : appeler bind() avec un stockage connecté.")
        return self._storage

    # --- Construction des valeurs de ligne ---

    def _row_values(self, book: Book, fields: tuple[str, ...], **overrides: Any) -> dict[str, Any]:
        storage = self.storage
        values: dict[str, Any] = {}
        for key in fields:
            if key in overrides:
                values[key] = overrides[key]
            elif key == "prezzo" or key == "confidence":
                values[key] = to_float(getattr(book, key))
            elif key == "additional_copies":
                values[key] = storage.encode_array(
                    [_copy_payload(copy) for copy in book.additional_copies]
                )
            elif key in ("image_urls", "categories_ai"):
                values[key] = storage.encode_array(list(getattr(book, key) or []))
            elif key == "timestamp":
                values[key] = storage.encode_timestamp(book.timestamp or utc_now())
            else:
                values[key] = getattr(book, key)
        return values

    def _insert_values(self, book: Book, **overrides: Any) -> dict[str, Any]:
        """Valeurs d'INSERT : une par colonne de la table hormis `id`."""
        values = self._row_values(book, INSERT_FIELDS, **overrides)
        expected = len(self.storage.books.c) - 1
        if len(values) != expected:
            logger.error(
                "Paramètres INSERT incohérents : %d attendus, %d trouvés.", expected, len(values)
            )
            raise InsertError("Erreur interne : nombre de paramètres INSERT incohérent.")
        return values

    # --- Lecture ---

    async def _scalar(self, statement: Any) -> Any:
        storage = self.storage
        try:
            async with storage.connection() as conn:
                return (await conn.execute(statement)).scalar()
        except SQLAlchemyError as e:
            logger.error("Erreur de requête : %s", e)
            raise QueryError(str(e)) from e

    async def get_all_books(self) -> list[Book]:
        """Retourne tous les livres, du plus récent au plus ancien."""
        storage = self.storage
        table = storage.books
        statement = select(table).order_by(table.c.timestamp.desc(), table.c.id.desc())
        try:
            async with storage.connection() as conn:
                rows = (await conn.execute(statement)).all()
        except SQLAlchemyError as e:
            logger.error("Erreur de lecture des livres : %s", e)
            raise QueryError(str(e)) from e
        return [storage.row_to_book(row) for row in rows]

    async def get_book(self, book_id: int) -> Book:
        """
        Récupère un livre par son identifiant.

        Raises:
            NotFoundError: Si aucun livre ne porte cet identifiant.
        """
        storage = self.storage
        book_id = _coerce_id(book_id)
        table = storage.books
        try:
            async with storage.connection() as conn:
                row = (await conn.execute(select(table).where(table.c.id == book_id))).first()
        except SQLAlchemyError as e:
            logger.error("Erreur de lecture du livre id=%s : %s", book_id, e)
            raise QueryError(str(e)) from e
        if row is None:
            raise NotFoundError(book_id)
        return storage.row_to_book(row)

    # --- Écriture ---

    async def add_book(self, book: Book) -> Book:
        """
        Insère un nouveau livre.

        Args:
            book: Le livre à insérer ; son `id` et son `timestamp` sont ignorés.

        Returns:
            Book: Le livre reçu, complété de l'`id` attribué et de l'horodatage.

        Raises:
            InvalidBookError: Si le titre ou l'auteur est vide.
            InsertError: Si l'insertion échoue côté base.
        """
        storage = self.storage
        _check_required(book)
        now = utc_now()
        values = self._insert_values(book, timestamp=storage.encode_timestamp(now))
        try:
            async with storage.transaction() as conn:
                result = await conn.execute(insert(storage.books).values(values))
                new_id = result.inserted_primary_key[0]
        except SQLAlchemyError as e:
            logger.error("Erreur d'insertion du livre '%s' : %s", book.titolo, e)
            raise InsertError(str(e)) from e

        logger.info("Livre ajouté id=%s : %s - %s", new_id, book.titolo, book.autore)
        return dataclasses.replace(book, id=int(new_id), timestamp=now)

    async def update_book(self, book_id: int, book: Book) -> Book:
        """
        Remplace toutes les colonnes modifiables d'un livre.

        Returns:
            Book: Le livre reçu, avec `id` converti en entier.

        Raises:
            NotFoundError: Si aucune ligne ne correspond.
            QueryError: Si la mise à jour échoue côté base.
        """
        storage = self.storage
        _check_required(book)
        book_id = _coerce_id(book_id)
        table = storage.books
        values = self._row_values(book, UPDATE_FIELDS)
        try:
            async with storage.transaction() as conn:
                result = await conn.execute(
                    update(table).where(table.c.id == book_id).values(values)
                )
        except SQLAlchemyError as e:
            logger.error("Erreur de mise à jour du livre id=%s : %s", book_id, e)
            raise QueryError(str(e)) from e
        if result.rowcount == 0:
            raise NotFoundError(book_id)

        logger.info("Livre mis à jour id=%s : %s - %s", book_id, book.titolo, book.autore)
        return dataclasses.replace(book, id=book_id)

    async def delete_book(self, book_id: int) -> None:
        """
        Supprime un livre.

        Raises:
            NotFoundError: Si aucune ligne ne correspond.
        """
        storage = self.storage
        book_id = _coerce_id(book_id)
        table = storage.books
        try:
            async with storage.transaction() as conn:
                result = await conn.execute(delete(table).where(table.c.id == book_id))
        except SQLAlchemyError as e:
            logger.error("Erreur de suppression du livre id=%s : %s", book_id, e)
            raise QueryError(str(e)) from e
        if result.rowcount == 0:
            raise NotFoundError(book_id)
        logger.info("Livre supprimé id=%s", book_id)

    async def import_books(self, books: Iterable[Book | Mapping[str, Any]]) -> int:
        """
        Remplace tout le catalogue par la liste fournie, en une transaction.

        Les lignes existantes sont supprimées puis chaque livre est inséré.
        Contrairement à `add_book`, l'horodatage d'origine est conservé et
        les champs `confidence`, `descrizioneAI` et `condizioniLibro` absents
        reçoivent 0 ou une chaîne vide. Au moindre échec, la transaction est
        annulée et le catalogue reste tel qu'il était.

        Args:
            books: Des `Book` ou des dictionnaires au format d'échange.

        Returns:
            Le nombre de livres importés.

        Raises:
            InvalidBookError: Si un livre n'a pas de titre ou d'auteur (aucune
                instruction n'est alors envoyée).
            InsertError: Si une instruction échoue côté base.
        """
        storage = self.storage
        table = storage.books
        items = [b if isinstance(b, Book) else Book.from_dict(b) for b in books]
        for book in items:
            _check_required(book)
        now = utc_now()

        try:
            async with UnitOfWork(storage) as uow:
                await uow.execute(delete(table))
                logger.info('Table "books" vidée avant import.')
                for book in items:
                    values = self._insert_values(
                        book,
                        timestamp=storage.encode_timestamp(book.timestamp or now),
                        confidence=to_float(book.confidence) or 0,
                        descrizione_ai=book.descrizione_ai or "",
                        condizioni_libro=book.condizioni_libro or "",
                    )
                    await uow.execute(insert(table).values(values))
        except SQLAlchemyError as e:
            logger.error("Erreur d'import (rollback effectué) : %s", e)
            raise InsertError(str(e)) from e

        logger.info("Import terminé : %d livres importés.", len(items))
        return len(items)

    # --- Statistiques ---

    async def get_total_books(self) -> int:
        """Nombre de livres du catalogue."""
        value = await self._scalar(select(func.count()).select_from(self.storage.books))
        return int(value or 0)

    async def get_last_updated(self) -> datetime | None:
        """Horodatage du livre le plus récent (None si le catalogue est vide)."""
        storage = self.storage
        value = await self._scalar(select(func.max(storage.books.c.timestamp)))
        return storage.decode_timestamp(value)

    async def get_unique_authors(self) -> int:
        """Nombre d'auteurs distincts."""
        table = self.storage.books
        value = await self._scalar(
            select(func.count(distinct(table.c.autore))).where(table.c.autore.is_not(None))
        )
        return int(value or 0)

    async def get_total_catalog_value(self) -> float:
        """Somme des prix renseignés (0.0 si aucun)."""
        table = self.storage.books
        value = await self._scalar(
            select(func.sum(table.c.prezzo)).where(table.c.prezzo.is_not(None))
        )
        return float(value or 0)
