import pytest
from sqlalchemy import text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import OperationalError

from catalogo.persistence.database import create_storage, open_storage
from catalogo.persistence.errors import (
    DatabaseConnectionError,
    NotConnectedError,
    SchemaSetupError,
)
from catalogo.persistence.kinds import BackendKind
from catalogo.persistence.migrate import existing_columns
from catalogo.persistence.models_sa import INSERT_FIELDS, OPTIONAL_COLUMNS, UPDATE_FIELDS
from catalogo.persistence.pg_db import PostgresStorage
from catalogo.persistence.repositories import BookRepository
from catalogo.persistence.sqlite_db import SqliteStorage
from catalogo.services.config_service import AppConfig

LEGACY_SCHEMA = """
CREATE TABLE books (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    titolo TEXT NOT NULL,
    autore TEXT NOT NULL,
    editore TEXT,
    anno TEXT,
    isbn TEXT,
    prezzo REAL,
    lingua TEXT,
    descrizione TEXT,
    categoria TEXT,
    imageUrls TEXT,
    timestamp TEXT DEFAULT CURRENT_TIMESTAMP
)
"""


def test_column_contract():
    assert len(INSERT_FIELDS) == 18
    assert len(UPDATE_FIELDS) == 17
    assert "timestamp" not in UPDATE_FIELDS


def test_server_table_uses_lowercase_names_and_jsonb():
    table = PostgresStorage().books
    assert table.c.image_urls.name == "imageurls"
    assert table.c.condizioni_libro.name == "condizionilibro"
    assert isinstance(table.c.categories_ai.type, JSONB)


def test_embedded_table_keeps_camel_case_names():
    table = SqliteStorage(":memory:").books
    assert table.c.image_urls.name == "imageUrls"
    assert table.c.additional_copies.name == "additionalCopies"


@pytest.mark.asyncio
async def test_handle_requires_connect():
    storage = SqliteStorage(":memory:")
    assert not storage.is_connected
    with pytest.raises(NotConnectedError):
        storage.get_handle()
    await storage.connect()
    try:
        assert storage.get_handle() is not None
    finally:
        await storage.dispose()


@pytest.mark.asyncio
async def test_connect_failure_is_reported(tmp_path):
    blocker = tmp_path / "file.txt"
    blocker.write_text("x")
    storage = SqliteStorage(blocker / "books.db")
    with pytest.raises(DatabaseConnectionError):
        await storage.connect()
    assert not storage.is_connected


@pytest.mark.asyncio
async def test_ensure_schema_is_idempotent(storage):
    columns = await existing_columns(storage)
    assert await storage.ensure_schema() == []
    assert await existing_columns(storage) == columns
    assert {name.lower() for name, _ in OPTIONAL_COLUMNS} <= columns


@pytest.mark.asyncio
async def test_legacy_table_is_upgraded_in_place(tmp_path):
    storage = SqliteStorage(tmp_path / "legacy.db")
    await storage.connect()
    try:
        async with storage.transaction() as conn:
            await conn.execute(text(LEGACY_SCHEMA))
            await conn.execute(
                text(
                    "INSERT INTO books (titolo, autore, prezzo, imageUrls) "
                    "VALUES ('Vecchio libro', 'Anonimo', 3.5, '[\"a.jpg\"]')"
                )
            )

        added = await storage.ensure_schema()
        assert sorted(added) == sorted(name for name, _ in OPTIONAL_COLUMNS)

        books = await BookRepository(storage).get_all_books()
        assert len(books) == 1
        assert books[0].titolo == "Vecchio libro"
        assert books[0].prezzo == 3.5
        assert books[0].image_urls == ["a.jpg"]
        assert books[0].categories_ai == []
        assert books[0].additional_copies == []

        assert await storage.ensure_schema() == []
    finally:
        await storage.dispose()


def test_create_storage_selects_adapter(tmp_path):
    sqlite = create_storage(AppConfig(sqlite_path=str(tmp_path / "x.db")))
    assert isinstance(sqlite, SqliteStorage)
    assert sqlite.kind is BackendKind.EMBEDDED

    pg = create_storage(
        AppConfig(database_type="postgres", pg_host="db.local", pg_password="secret")
    )
    assert isinstance(pg, PostgresStorage)
    assert pg.kind is BackendKind.SERVER
    assert "secret" not in pg.describe()

    with pytest.raises(ValueError):
        create_storage(AppConfig(database_type="mysql"))


@pytest.mark.asyncio
async def test_open_storage_prepares_schema(tmp_path):
    storage = await open_storage(AppConfig(sqlite_path=str(tmp_path / "books.db")))
    try:
        assert await BookRepository(storage).get_total_books() == 0
    finally:
        await storage.dispose()


@pytest.mark.asyncio
async def test_failed_alter_does_not_stop_the_upgrade(tmp_path, monkeypatch, caplog):
    # La deuxième entrée échoue ("duplicate column"), la troisième doit passer
    monkeypatch.setattr(
        "catalogo.persistence.migrate.OPTIONAL_COLUMNS",
        (("confidence", "REAL"), ("confidence", "REAL"), ("descrizioneAI", "TEXT")),
    )
    storage = SqliteStorage(tmp_path / "legacy.db")
    await storage.connect()
    try:
        async with storage.transaction() as conn:
            await conn.execute(text(LEGACY_SCHEMA))

        assert await storage.ensure_schema() == ["confidence", "descrizioneAI"]
        assert {"confidence", "descrizioneai"} <= await existing_columns(storage)
        assert "ALTER TABLE" in caplog.text
    finally:
        await storage.dispose()


@pytest.mark.asyncio
async def test_unreadable_table_structure_is_a_schema_error(tmp_path, monkeypatch):
    async def failing_table_info(storage, table="books"):
        raise OperationalError("PRAGMA table_info(books)", {}, Exception("disk I/O error"))

    monkeypatch.setattr("catalogo.persistence.migrate.existing_columns", failing_table_info)
    storage = SqliteStorage(tmp_path / "books.db")
    await storage.connect()
    try:
        with pytest.raises(SchemaSetupError):
            await storage.ensure_schema()
    finally:
        await storage.dispose()
