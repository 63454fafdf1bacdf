import pytest
from sqlalchemy import text

from catalogo.persistence.errors import (
    InsertError,
    InvalidBookError,
    NotBoundError,
    NotFoundError,
)
from catalogo.persistence.models_sa import INSERT_FIELDS
from catalogo.persistence.repositories import BookRepository
from catalogo.services.types import AdditionalCopy

from conftest import make_book


@pytest.mark.asyncio
async def test_add_then_read_back_keeps_scalar_fields(repo):
    created = await repo.add_book(
        make_book(
            editore="Bompiani",
            anno="1980",
            isbn="9788845292613",
            prezzo=12.5,
            lingua="Italiano",
            categoria="Narrativa",
            sottocategoria1="Romanzo storico",
            condizioni_libro="Buone",
        )
    )
    assert created.id is not None
    assert created.timestamp is not None

    book = await repo.get_book(created.id)
    assert book.titolo == "Il Nome della Rosa"
    assert book.autore == "Umberto Eco"
    assert book.editore == "Bompiani"
    assert book.anno == "1980"
    assert book.isbn == "9788845292613"
    assert book.prezzo == 12.5
    assert book.categoria == "Narrativa"
    assert book.sottocategoria1 == "Romanzo storico"
    assert book.sottocategoria2 is None
    assert book.condizioni_libro == "Buone"
    assert book.timestamp == created.timestamp


@pytest.mark.asyncio
async def test_new_book_has_empty_arrays(repo):
    await repo.add_book(make_book(prezzo=12.5))
    books = await repo.get_all_books()
    assert len(books) == 1
    assert books[0].prezzo == 12.5
    assert books[0].additional_copies == []
    assert books[0].image_urls == []
    assert books[0].categories_ai == []


@pytest.mark.asyncio
async def test_blank_categories_are_dropped_on_read(repo):
    created = await repo.add_book(make_book(categories_ai=["Narrativa", "", "Classici"]))
    book = await repo.get_book(created.id)
    assert book.categories_ai == ["Narrativa", "Classici"]


@pytest.mark.asyncio
async def test_arrays_and_copies_round_trip(repo):
    created = await repo.add_book(
        make_book(
            image_urls=["data:image/png;base64,AAA", "https://example.org/cover.jpg"],
            additional_copies=[
                AdditionalCopy(anno="1990", prezzo=8.0, condizioni_libro="Discrete"),
                AdditionalCopy(anno="2001"),
            ],
        )
    )
    book = await repo.get_book(created.id)
    assert book.image_urls == ["data:image/png;base64,AAA", "https://example.org/cover.jpg"]
    assert book.additional_copies == [
        AdditionalCopy(anno="1990", prezzo=8.0, condizioni_libro="Discrete"),
        AdditionalCopy(anno="2001"),
    ]


@pytest.mark.asyncio
async def test_price_given_as_text_is_stored_as_number(repo):
    created = await repo.add_book(make_book(prezzo="€ 12,50"))
    book = await repo.get_book(created.id)
    assert book.prezzo == 12.5


@pytest.mark.asyncio
async def test_books_are_listed_newest_first(repo):
    first = await repo.add_book(make_book(titolo="Primo"))
    second = await repo.add_book(make_book(titolo="Secondo"))
    books = await repo.get_all_books()
    assert [b.id for b in books] == [second.id, first.id]


@pytest.mark.asyncio
async def test_update_replaces_fields_but_keeps_timestamp(repo):
    created = await repo.add_book(make_book(prezzo=10, categories_ai=["Saggi"]))
    updated = await repo.update_book(
        created.id,
        make_book(titolo="Il Pendolo di Foucault", prezzo=None, categories_ai=[]),
    )
    assert updated.id == created.id

    book = await repo.get_book(created.id)
    assert book.titolo == "Il Pendolo di Foucault"
    assert book.prezzo is None
    assert book.categories_ai == []
    assert book.timestamp == created.timestamp


@pytest.mark.asyncio
async def test_update_missing_book_raises_and_changes_nothing(repo):
    await repo.add_book(make_book())
    before = await repo.get_all_books()

    with pytest.raises(NotFoundError) as excinfo:
        await repo.update_book(9999, make_book(titolo="Altro"))
    assert excinfo.value.book_id == 9999

    assert await repo.get_all_books() == before


@pytest.mark.asyncio
async def test_delete_book(repo):
    created = await repo.add_book(make_book())
    await repo.delete_book(created.id)
    assert await repo.get_all_books() == []

    with pytest.raises(NotFoundError):
        await repo.delete_book(created.id)


@pytest.mark.asyncio
async def test_get_missing_book_raises(repo):
    with pytest.raises(NotFoundError):
        await repo.get_book(42)
    with pytest.raises(NotFoundError):
        await repo.get_book("abc")


@pytest.mark.asyncio
async def test_deleted_ids_are_not_reused(repo):
    await repo.add_book(make_book(titolo="A"))
    b = await repo.add_book(make_book(titolo="B"))
    await repo.delete_book(b.id)
    c = await repo.add_book(make_book(titolo="C"))
    assert c.id > b.id


@pytest.mark.asyncio
@pytest.mark.parametrize("titolo,autore", [("", "Eco"), ("Titolo", "   ")])
async def test_required_fields_are_enforced(repo, titolo, autore):
    with pytest.raises(InvalidBookError):
        await repo.add_book(make_book(titolo=titolo, autore=autore))
    assert await repo.get_total_books() == 0


@pytest.mark.asyncio
async def test_malformed_legacy_row_reads_with_empty_arrays(repo, storage):
    async with storage.transaction() as conn:
        await conn.execute(
            text(
                "INSERT INTO books (titolo, autore, imageUrls, categoriesAI, additionalCopies) "
                "VALUES ('Vecchio', 'Anonimo', 'not json', '{\"a\": 1}', '[1, 2')"
            )
        )

    books = await repo.get_all_books()
    assert len(books) == 1
    assert books[0].titolo == "Vecchio"
    assert books[0].image_urls == []
    assert books[0].categories_ai == []
    assert books[0].additional_copies == []
    # horodatage par défaut de SQLite ("YYYY-MM-DD HH:MM:SS")
    assert books[0].timestamp is not None


@pytest.mark.asyncio
async def test_unbound_repository_refuses_every_call():
    repo = BookRepository()
    assert not repo.is_bound
    with pytest.raises(NotBoundError):
        await repo.get_all_books()
    with pytest.raises(NotBoundError):
        await repo.add_book(make_book(titolo=""))
    with pytest.raises(NotBoundError):
        await repo.import_books([])
    with pytest.raises(NotBoundError):
        await repo.get_total_books()


@pytest.mark.asyncio
async def test_bind_attaches_storage(storage):
    repo = BookRepository()
    repo.bind(storage)
    assert repo.is_bound
    assert await repo.get_all_books() == []


@pytest.mark.asyncio
async def test_aggregates_on_empty_catalog(repo):
    assert await repo.get_total_books() == 0
    assert await repo.get_last_updated() is None
    assert await repo.get_unique_authors() == 0
    assert await repo.get_total_catalog_value() == 0.0


@pytest.mark.asyncio
async def test_aggregates(repo):
    await repo.add_book(make_book(titolo="A", autore="Eco", prezzo=10))
    await repo.add_book(make_book(titolo="B", autore="Eco", prezzo=5.5))
    last = await repo.add_book(make_book(titolo="C", autore="Calvino"))

    assert await repo.get_total_books() == 3
    assert await repo.get_unique_authors() == 2
    assert await repo.get_total_catalog_value() == pytest.approx(15.5)
    assert await repo.get_last_updated() == last.timestamp


@pytest.mark.asyncio
async def test_insert_values_must_cover_every_column(repo, monkeypatch):
    monkeypatch.setattr("catalogo.persistence.repositories.INSERT_FIELDS", INSERT_FIELDS[:-1])
    with pytest.raises(InsertError):
        await repo.add_book(make_book())
    assert await repo.get_total_books() == 0
