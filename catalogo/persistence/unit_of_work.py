"""
Implémentation du pattern "Unit of Work" pour la gestion des transactions.

Ce module fournit une classe `UnitOfWork` qui agit comme un context manager
asynchrone pour encapsuler une transaction de base de données complète.
Elle s'appuie sur la capacité `transaction()` de l'adaptateur actif, que
chaque moteur implémente avec ses propres primitives (BEGIN/COMMIT sur la
connexion unique de SQLite, connexion réservée dans le pool PostgreSQL).
"""

from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager
from typing import Any

from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncConnection

from .base import StorageAdapter

logger = logging.getLogger(__name__)


class UnitOfWork(AbstractAsyncContextManager):
    """
    Gestionnaire de transaction et d'unité de travail.

    Toutes les instructions exécutées dans un bloc `async with` forment une
    seule transaction : COMMIT si le bloc se termine normalement, ROLLBACK
    sinon. La connexion est toujours rendue à l'adaptateur.

    Exemple d'utilisation :
        async with UnitOfWork(storage) as uow:
            await uow.execute(delete(storage.books))
            await uow.execute(insert(storage.books).values(...))

    Attributs après entrée dans le contexte :
        storage (StorageAdapter): L'adaptateur qui porte la transaction.
        connection (AsyncConnection): La connexion transactionnelle active.
    """

    def __init__(self, storage: StorageAdapter):
        """Initialise l'unité de travail sur un adaptateur connecté."""
        self.storage = storage
        self.connection: AsyncConnection | None = None
        self._scope: AbstractAsyncContextManager | None = None

    async def __aenter__(self) -> UnitOfWork:
        """Démarre une nouvelle transaction."""
        self._scope = self.storage.transaction()
        self.connection = await self._scope.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, traceback):
        """
        Termine la transaction.

        Effectue un commit si aucune exception n'a été levée dans le bloc,
        sinon un rollback. L'exception éventuelle est propagée.
        """
        if exc_type is not None:
            logger.warning("Transaction annulée (rollback) : %s", exc_val)
        try:
            return await self._scope.__aexit__(exc_type, exc_val, traceback)
        finally:
            self.connection = None
            self._scope = None

    async def execute(self, statement: Any, parameters: Any = None) -> CursorResult:
        """Exécute une instruction dans la transaction courante."""
        if self.connection is None:
            raise RuntimeError("UnitOfWork utilisé hors d'un bloc `async with`.")
        return await self.connection.execute(statement, parameters)
