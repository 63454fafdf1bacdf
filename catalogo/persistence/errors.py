"""
Exceptions de la couche de persistance.

Toutes les erreurs levées par les adaptateurs de stockage et par le
repository héritent de `CatalogError`. La traduction en codes HTTP (404,
500, ...) est du ressort de l'appelant, jamais de cette couche.
"""

from __future__ import annotations


class CatalogError(Exception):
    """Base commune de toutes les erreurs du catalogue."""


class NotBoundError(CatalogError):
    """Le repository est utilisé avant qu'un stockage lui soit attaché."""


class NotConnectedError(CatalogError):
    """`get_handle()` appelé avant `connect()` sur un adaptateur."""


class DatabaseConnectionError(CatalogError, ConnectionError):
    """Échec d'ouverture de la connexion (E/S, authentification). Fatal au démarrage."""


class SchemaSetupError(CatalogError):
    """Échec de la création de la table `books`. Fatal au démarrage."""


class NotFoundError(CatalogError, LookupError):
    """Aucun livre ne correspond à l'identifiant demandé."""

    def __init__(self, book_id: int):
        super().__init__(f"Libro non trovato (id={book_id}).")
        self.book_id = book_id


class InsertError(CatalogError):
    """Échec d'une insertion (ou d'un import) côté pilote SQL."""


class QueryError(CatalogError):
    """Échec d'une requête de lecture ou de mise à jour côté pilote SQL."""


class MalformedArrayDataError(CatalogError, ValueError):
    """Valeur de colonne tableau illisible. Toujours récupérée localement."""


class InvalidBookError(CatalogError, ValueError):
    """Données de livre incomplètes (titre ou auteur manquant)."""
