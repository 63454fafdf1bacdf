"""
Service de gestion de la logique métier des livres.

Ce module fournit les opérations de haut niveau (CRUD, statistiques) sur
le catalogue, au-dessus de `BookRepository`. Il accepte indifféremment des
`Book` ou des dictionnaires au format d'échange (corps JSON reçus par la
couche HTTP) et valide les champs obligatoires avant tout accès au
stockage.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..persistence.errors import InvalidBookError
from ..persistence.repositories import BookRepository
from .types import Book

logger = logging.getLogger(__name__)

BookInput = Book | Mapping[str, Any]


@dataclass(slots=True)
class CatalogStats:
    """Statistiques globales du catalogue."""

    total_books: int
    last_updated: datetime | None
    unique_authors: int
    total_value: float

    def to_dict(self) -> dict[str, Any]:
        """Format d'échange : `totalValue` est une chaîne à deux décimales."""
        return {
            "totalBooks": self.total_books,
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
            "uniqueAuthors": self.unique_authors,
            "totalValue": f"{self.total_value:.2f}",
        }


class CatalogService:
    """Service gérant la logique métier du catalogue."""

    def __init__(self, repository: BookRepository):
        """Initialise le service avec un repository lié."""
        self.repository = repository

    @staticmethod
    def _prepare(data: BookInput) -> Book:
        """Convertit l'entrée en `Book` et normalise titre/auteur."""
        book = data if isinstance(data, Book) else Book.from_dict(data)
        titolo = (book.titolo or "").strip()
        autore = (book.autore or "").strip()
        if not titolo or not autore:
            raise InvalidBookError("Titolo e Autore sono campi obbligatori.")
        return dataclasses.replace(book, titolo=titolo, autore=autore)

    async def list_books(self) -> list[Book]:
        """Retourne tous les livres, du plus récent au plus ancien."""
        return await self.repository.get_all_books()

    async def get_book(self, book_id: int) -> Book:
        return await self.repository.get_book(book_id)

    async def create_book(self, data: BookInput) -> Book:
        """
        Crée un nouveau livre.

        Args:
            data: Le livre ou son dictionnaire d'échange.

        Returns:
            Book: Le livre persisté, avec son identifiant.

        Raises:
            InvalidBookError: Si le titre ou l'auteur manque.
        """
        book = await self.repository.add_book(self._prepare(data))
        logger.info("Création livre id=%s: %s - %s", book.id, book.titolo, book.autore)
        return book

    async def update_book(self, book_id: int, data: BookInput) -> Book:
        """
        Met à jour un livre existant (remplacement complet des champs modifiables).

        Raises:
            InvalidBookError: Si le titre ou l'auteur manque.
            NotFoundError: Si le livre n'existe pas.
        """
        book = await self.repository.update_book(book_id, self._prepare(data))
        logger.info("MAJ livre id=%s: %s - %s", book.id, book.titolo, book.autore)
        return book

    async def delete_book(self, book_id: int) -> None:
        """Supprime un livre par son identifiant (NotFoundError s'il n'existe pas)."""
        await self.repository.delete_book(book_id)
        logger.info("Suppression livre id=%s", book_id)

    async def stats(self) -> CatalogStats:
        """Calcule les statistiques du catalogue."""
        total_value = await self.repository.get_total_catalog_value()
        return CatalogStats(
            total_books=await self.repository.get_total_books(),
            last_updated=await self.repository.get_last_updated(),
            unique_authors=await self.repository.get_unique_authors(),
            total_value=round(total_value, 2),
        )
