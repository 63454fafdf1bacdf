"""
Gestion centralisée des chemins de fichiers de l'application.

Tout vit sous un seul dossier de données :

    <data>/CatalogoLibri/
        config.json
        data/books.db      base SQLite par défaut
        backups/           sauvegardes JSON
        logs/              catalogo.log (rotation)

`<data>` vaut %LOCALAPPDATA% sous Windows et $XDG_DATA_HOME (ou
~/.local/share) ailleurs. La variable CATALOGO_HOME remplace le dossier
complet, ce qui est pratique pour les tests et les installations portables.
"""

from __future__ import annotations

import os
from pathlib import Path

_APP_NAME = "CatalogoLibri"
HOME_ENV = "CATALOGO_HOME"


def _data_root() -> Path:
    if os.name == "nt":
        return Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def user_data_dir() -> Path:
    """Retourne le dossier des données utilisateur (créé si besoin)."""
    override = os.environ.get(HOME_ENV)
    p = Path(override) if override else _data_root() / _APP_NAME
    p.mkdir(parents=True, exist_ok=True)
    return p


def user_config_file() -> Path:
    return user_data_dir() / "config.json"


def db_path() -> Path:
    """Chemin par défaut du fichier SQLite (le dossier est créé à la connexion)."""
    return user_data_dir() / "data" / "books.db"


def backups_path() -> Path:
    return user_data_dir() / "backups"


def logs_path() -> Path:
    """Dossier des fichiers de log (créé si besoin)."""
    p = user_data_dir() / "logs"
    p.mkdir(parents=True, exist_ok=True)
    return p
