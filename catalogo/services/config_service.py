"""
Service de gestion de la configuration de l'application.

La configuration est lue dans `config.json` (dossier de données de
l'utilisateur) puis complétée par les variables d'environnement, qui ont
toujours le dernier mot. C'est ici que se choisit le moteur de stockage
(`database_type`) et ses paramètres de connexion.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path

from ..utils.paths import backups_path, db_path, user_config_file

logger = logging.getLogger(__name__)

# Variable d'environnement -> attribut de AppConfig
ENV_OVERRIDES = {
    "DATABASE_TYPE": "database_type",
    "SQLITE_PATH": "sqlite_path",
    "PG_HOST": "pg_host",
    "PG_PORT": "pg_port",
    "PG_USER": "pg_user",
    "PG_PASSWORD": "pg_password",
    "PG_DATABASE": "pg_database",
    "PG_POOL_SIZE": "pg_pool_size",
    "BACKUPS_DIR": "backups_dir",
    "LOG_LEVEL": "log_level",
}

_INT_FIELDS = {"pg_port", "pg_pool_size"}


@dataclass(frozen=True)
class AppConfig:
    """Holds the application's settings."""

    database_type: str = "sqlite"  # "sqlite" or "postgres"
    sqlite_path: str | None = None
    pg_host: str = "localhost"
    pg_port: int = 5432
    pg_user: str = "postgres"
    pg_password: str | None = None
    pg_database: str = "books_db"
    pg_pool_size: int = 10
    backups_dir: str | None = None
    log_level: str = "INFO"

    def resolved_sqlite_path(self) -> Path:
        """Chemin du fichier SQLite (dossier de données par défaut)."""
        return Path(self.sqlite_path) if self.sqlite_path else db_path()

    def resolved_backups_dir(self) -> Path:
        """Dossier des sauvegardes JSON (dossier de données par défaut)."""
        return Path(self.backups_dir) if self.backups_dir else backups_path()


def get_config_path() -> Path:
    return user_config_file()


def _from_file(config_path: Path) -> AppConfig:
    if not config_path.exists():
        logger.info("Config file not found. Using default configuration.")
        return AppConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
        known = {f.name for f in fields(AppConfig)}
        # Unknown keys are ignored so older files keep loading after upgrades
        return AppConfig(**{k: v for k, v in data.items() if k in known})
    except (OSError, json.JSONDecodeError, TypeError, AttributeError) as e:
        logger.error(
            f"Could not read, parse, or validate config file at {config_path}: {e}. Using defaults."
        )
        return AppConfig()


def apply_env_overrides(config: AppConfig, environ: dict[str, str] | None = None) -> AppConfig:
    """Applique les variables d'environnement définies (et non vides) à la configuration."""
    environ = os.environ if environ is None else environ
    changes: dict[str, object] = {}
    for env_name, attr in ENV_OVERRIDES.items():
        raw = environ.get(env_name)
        if raw is None or raw == "":
            continue
        if attr in _INT_FIELDS:
            try:
                changes[attr] = int(raw)
            except ValueError:
                logger.warning(f"Ignoring {env_name}={raw!r}: not an integer.")
                continue
        else:
            changes[attr] = raw
    return replace(config, **changes) if changes else config


def load_config(config_path: Path | None = None) -> AppConfig:
    """Loads config from file, then applies environment overrides."""
    config = _from_file(config_path or get_config_path())
    return apply_env_overrides(config)


def save_config(config: AppConfig, config_path: Path | None = None) -> None:
    """Saves the given configuration object to the file."""
    config_path = config_path or get_config_path()
    try:
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(asdict(config), f, indent=4)
        logger.info(f"Configuration saved to {config_path}")
    except OSError as e:
        logger.error(f"Could not write to config file at {config_path}: {e}")
