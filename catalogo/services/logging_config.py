"""Configuration centralisée du logging pour l'application Catalogo Libri.

Un seul fichier `catalogo.log` (rotation 10 MB x 5) reçoit les messages de
tous les modules. Les loggers des pilotes de base de données sont bridés à
WARNING sauf en mode DEBUG, sinon chaque requête SQL finirait dans le log.
"""

import logging
import logging.handlers
from pathlib import Path

from ..utils.paths import logs_path

LOG_FILENAME = "catalogo.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers tiers trop bavards au niveau INFO
DRIVER_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite", "asyncpg")


def _level(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.INFO


def setup_app_logging(
    log_level: str = "INFO", console_output: bool = False, log_dir: Path | None = None
) -> logging.Logger:
    """Installe les handlers de l'application sur le root logger.

    Args:
        log_level: Niveau de log (DEBUG, INFO, WARNING, ERROR); INFO si inconnu
        console_output: Si True, duplique les messages sur stderr
        log_dir: Dossier du fichier de log (dossier de données par défaut)

    Returns:
        Le root logger configuré
    """
    log_dir = log_dir or logs_path()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILENAME
    level = _level(log_level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger()
    root.handlers.clear()  # un second appel remplace la configuration précédente
    root.setLevel(level)

    file_handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=10_000_000, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    driver_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in DRIVER_LOGGERS:
        logging.getLogger(name).setLevel(driver_level)

    root.info("Logging configuré (%s) - fichier : %s", logging.getLevelName(level), log_file)
    return root
