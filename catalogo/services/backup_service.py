"""
Service pour la gestion des sauvegardes et des restaurations.

Une sauvegarde est un document JSON `{exportedAt, totalBooks, books}`
écrit dans le dossier des sauvegardes. La restauration (ou l'import d'un
fichier quelconque au même format) remplace tout le catalogue en une seule
transaction via `BookRepository.import_books`.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from ..persistence.repositories import BookRepository
from .export_service import build_backup_document
from .types import Book
from .utils import utc_now

# Configure un logger spécifique à ce module pour un meilleur suivi
logger = logging.getLogger(__name__)


class BackupError(Exception):
    """
    Exception personnalisée levée pour toute erreur durant le processus
    de sauvegarde ou de restauration.
    """

    pass


def _backup_file(backup_folder: Path, filename: str) -> Path:
    """Résout un nom de sauvegarde dans le dossier, sans permettre d'en sortir."""
    if not filename or filename != Path(filename).name or filename in (".", ".."):
        raise BackupError(f"Nom de sauvegarde invalide : {filename!r}")
    return backup_folder / filename


def backup_filename(when=None) -> str:
    """Nom de fichier horodaté d'une sauvegarde (les ':' deviennent des '-')."""
    when = when or utc_now()
    return f"backup_catalogo_{when.isoformat().replace(':', '-')}.json"


async def create_backup(repository: BookRepository, backup_folder: Path) -> Path:
    """
    Écrit une sauvegarde JSON de tout le catalogue.

    Args:
        repository: Le repository lié à lire.
        backup_folder: Le dossier de destination (créé si besoin).

    Returns:
        Le chemin complet du fichier de sauvegarde créé.

    Raises:
        BackupError: Si l'écriture du fichier échoue.
    """
    books = await repository.get_all_books()
    backup_folder.mkdir(parents=True, exist_ok=True)
    dest_path = backup_folder / backup_filename()
    logger.info("Création de la sauvegarde : %s", dest_path)

    try:
        with dest_path.open("w", encoding="utf-8") as f:
            json.dump(build_backup_document(books), f, ensure_ascii=False, indent=2)
    except OSError as e:
        logger.error("Erreur d'E/S lors de l'écriture de la sauvegarde : %s", e)
        raise BackupError(f"Échec de la création de la sauvegarde : {e}") from e

    logger.info("Sauvegarde créée avec succès (%d livres).", len(books))
    return dest_path


def list_backups(backup_folder: Path) -> list[str]:
    """Retourne les noms des sauvegardes JSON, de la plus récente à la plus ancienne."""
    if not backup_folder.exists():
        return []
    names = [p.name for p in backup_folder.iterdir() if p.is_file() and p.suffix == ".json"]
    return sorted(names, reverse=True)


def load_backup(path: Path) -> list[Book]:
    """
    Lit un fichier de sauvegarde et retourne ses livres.

    Raises:
        BackupError: Si le fichier est illisible ou ne contient pas de liste `books`.
    """
    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise BackupError(f"Lecture impossible de {path.name} : {e}") from e
    except json.JSONDecodeError as e:
        raise BackupError(f"JSON invalide dans {path.name} : {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("books"), list):
        raise BackupError(f"Fichier de sauvegarde invalide : {path.name}")

    books = []
    for index, item in enumerate(data["books"]):
        if not isinstance(item, dict):
            raise BackupError(f"Entrée {index} invalide dans {path.name}.")
        books.append(Book.from_dict(item))
    return books


async def import_backup_file(repository: BookRepository, path: Path) -> int:
    """Remplace le catalogue par le contenu d'un fichier de sauvegarde ; retourne le nombre de livres."""
    books = load_backup(path)
    count = await repository.import_books(books)
    logger.info("Import de %s terminé : %d livres.", path.name, count)
    return count


async def restore_backup(repository: BookRepository, backup_folder: Path, filename: str) -> int:
    """Restaure une sauvegarde du dossier des sauvegardes."""
    path = _backup_file(backup_folder, filename)
    if not path.exists():
        raise BackupError(f"Sauvegarde introuvable : {filename}")
    return await import_backup_file(repository, path)


def delete_backup(backup_folder: Path, filename: str) -> None:
    """
    Supprime une sauvegarde.

    Raises:
        BackupError: Si le nom est invalide ou la suppression échoue.
    """
    path = _backup_file(backup_folder, filename)
    try:
        path.unlink()
    except OSError as e:
        raise BackupError(f"Suppression de la sauvegarde impossible : {e}") from e
    logger.info("Sauvegarde supprimée : %s", filename)
