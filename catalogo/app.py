"""
Point d'entrée en ligne de commande de l'application Catalogo Libri.

Ouvre le stockage configuré (SQLite ou PostgreSQL), lie le repository puis
exécute la sous-commande demandée. Une erreur de connexion ou de création
du schéma est fatale : le processus se termine avec un code non nul.

Usage :
    python -m catalogo init
    python -m catalogo stats
    python -m catalogo export --format xlsx --output catalogo.xlsx
    python -m catalogo backup | backups | restore FICHIER | import FICHIER
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from dataclasses import replace
from pathlib import Path

from .__version__ import __app_name__, __version__
from .persistence.database import open_storage
from .persistence.errors import CatalogError, DatabaseConnectionError, SchemaSetupError
from .persistence.repositories import BookRepository
from .services.backup_service import (
    BackupError,
    create_backup,
    import_backup_file,
    list_backups,
    restore_backup,
)
from .services.book_service import CatalogService
from .services.config_service import AppConfig, load_config
from .services.export_service import export_books
from .services.logging_config import setup_app_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="catalogo", description=__app_name__)
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--db-type", help="sqlite (défaut) ou postgres")
    parser.add_argument("--sqlite-path", help="Fichier de base SQLite")
    parser.add_argument("--backups-dir", help="Dossier des sauvegardes JSON")
    parser.add_argument("--verbose", action="store_true", help="Logs aussi sur la console")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init", help="Connecte la base et prépare le schéma")
    sub.add_parser("stats", help="Affiche les statistiques du catalogue")

    export = sub.add_parser("export", help="Exporte le catalogue")
    export.add_argument("--format", choices=["json", "csv", "xlsx"], default="json")
    export.add_argument("--output", required=True, type=Path)

    sub.add_parser("backup", help="Crée une sauvegarde JSON")
    sub.add_parser("backups", help="Liste les sauvegardes")

    restore = sub.add_parser("restore", help="Restaure une sauvegarde du dossier")
    restore.add_argument("filename")

    imp = sub.add_parser("import", help="Remplace le catalogue par un fichier JSON")
    imp.add_argument("path", type=Path)
    return parser


def _config_from_args(args: argparse.Namespace) -> AppConfig:
    config = load_config()
    changes = {}
    if args.db_type:
        changes["database_type"] = args.db_type
    if args.sqlite_path:
        changes["sqlite_path"] = args.sqlite_path
    if args.backups_dir:
        changes["backups_dir"] = args.backups_dir
    return replace(config, **changes) if changes else config


async def run(args: argparse.Namespace, config: AppConfig) -> int:
    """Exécute une sous-commande ; retourne le code de sortie."""
    try:
        storage = await open_storage(config)
    except (DatabaseConnectionError, SchemaSetupError, ValueError) as e:
        logger.critical("Erreur fatale au démarrage de la base %s : %s", config.database_type, e)
        print(f"Errore fatale all'avvio del database: {e}")
        return 2

    repository = BookRepository(storage)
    service = CatalogService(repository)
    backups_dir = config.resolved_backups_dir()
    try:
        if args.command == "init":
            print(f"Database ({storage.kind.value}) pronto: {storage.describe()}")
        elif args.command == "stats":
            stats = await service.stats()
            print(json.dumps(stats.to_dict(), indent=2))
        elif args.command == "export":
            books = await service.list_books()
            export_books(args.output, books, args.format)
            print(f"{len(books)} libri esportati in {args.output}")
        elif args.command == "backup":
            path = await create_backup(repository, backups_dir)
            print(f"Dati esportati con successo: {path.name}")
        elif args.command == "backups":
            for name in list_backups(backups_dir):
                print(name)
        elif args.command == "restore":
            count = await restore_backup(repository, backups_dir, args.filename)
            print(f"Importazione completata. {count} libri importati.")
        elif args.command == "import":
            count = await import_backup_file(repository, args.path)
            print(f"Importazione completata. {count} libri importati.")
    except (CatalogError, BackupError, OSError) as e:
        logger.error("Commande %s en échec : %s", args.command, e)
        print(f"Errore: {e}")
        return 1
    finally:
        await storage.dispose()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = _config_from_args(args)
    setup_app_logging(config.log_level, console_output=args.verbose)
    return asyncio.run(run(args, config))
