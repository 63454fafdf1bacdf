import logging
import os
import sys

import pytest
import pytest_asyncio

# Ajoute la racine du dépôt (celle qui contient catalogo/) au PYTHONPATH
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from catalogo.persistence.repositories import BookRepository  # noqa: E402
from catalogo.persistence.sqlite_db import SqliteStorage  # noqa: E402
from catalogo.services.config_service import ENV_OVERRIDES  # noqa: E402
from catalogo.services.types import Book  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    # Dossier de données et configuration isolés pour chaque test
    monkeypatch.setenv("CATALOGO_HOME", str(tmp_path / "home"))
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest_asyncio.fixture
async def storage(tmp_path):
    s = SqliteStorage(tmp_path / "data" / "books.db")
    await s.connect()
    await s.ensure_schema()
    yield s
    await s.dispose()


@pytest_asyncio.fixture
async def repo(storage):
    return BookRepository(storage)


def make_book(titolo="Il Nome della Rosa", autore="Umberto Eco", **kwargs) -> Book:
    return Book(titolo=titolo, autore=autore, **kwargs)


@pytest.fixture
def restore_root_logger():
    # setup_app_logging remplace les handlers du root logger
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
