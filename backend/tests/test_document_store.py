"""Tests for the SQLModel-backed document store."""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.catalog_api.db import create_engine_from_settings, init_database  # noqa: E402
from backend.catalog_api.errors import StoreError, is_missing_index_error  # noqa: E402
from backend.catalog_api.settings import CatalogSettings  # noqa: E402
from backend.catalog_api.stores.document_store import FieldPredicate, SortKey  # noqa: E402
from backend.catalog_api.stores.sql_document_store import (  # noqa: E402
    SqlDocumentStore,
    parse_index_definition,
    required_index,
)


@pytest.fixture()
def store(tmp_path: Path) -> SqlDocumentStore:
    settings = CatalogSettings(database_url=f"sqlite:///{tmp_path / 'catalog.db'}")
    engine = create_engine_from_settings(settings)
    init_database(engine, settings)
    return SqlDocumentStore(
        engine,
        batch_limit=3,
        composite_indexes=settings.composite_indexes,
        enforce_indexes=True,
    )


def seed(store: SqlDocumentStore) -> None:
    documents = {
        "bleach": {"title": "Bleach", "genre": ["Action", "Supernatural"], "type": "TV", "year": 2004, "popularity": 50.0},
        "mushishi": {"title": "Mushishi", "genre": ["Mystery"], "type": "TV", "year": 2005, "is_featured": True},
        "akira": {"title": "Akira", "genre": ["Action", "Sci-Fi"], "type": "Movie", "year": 1988, "popularity": 80.0},
    }

    async def _seed() -> None:
        for doc_id, document in documents.items():
            await store.set(doc_id, document)

    asyncio.run(_seed())


def test_set_and_get_round_trip(store: SqlDocumentStore) -> None:
    seed(store)

    document = asyncio.run(store.get("akira"))

    assert document is not None
    assert document["id"] == "akira"
    assert document["genre"] == ["Action", "Sci-Fi"]
    assert document["created_at"] is not None
    assert document["updated_at"] >= document["created_at"]


def test_get_missing_returns_none(store: SqlDocumentStore) -> None:
    assert asyncio.run(store.get("nope")) is None


def test_update_merges_fields_and_keeps_timestamps_monotonic(store: SqlDocumentStore) -> None:
    seed(store)
    before = asyncio.run(store.get("bleach"))

    asyncio.run(store.update("bleach", {"status": "Completed", "updated_at": "1999-01-01T00:00:00"}))
    after = asyncio.run(store.get("bleach"))

    assert after["status"] == "Completed"
    assert after["title"] == "Bleach"
    assert after["updated_at"] >= before["updated_at"]
    assert after["created_at"] == before["created_at"]


def test_update_missing_document_raises_not_found(store: SqlDocumentStore) -> None:
    with pytest.raises(StoreError) as excinfo:
        asyncio.run(store.update("ghost", {"title": "Ghost"}))

    assert excinfo.value.code == "not-found"


def test_delete_removes_document(store: SqlDocumentStore) -> None:
    seed(store)

    asyncio.run(store.delete("akira"))
    asyncio.run(store.delete("akira"))

    assert asyncio.run(store.get("akira")) is None


def test_genre_query_with_declared_index(store: SqlDocumentStore) -> None:
    seed(store)

    documents = asyncio.run(
        store.query(
            [FieldPredicate("genre", "array-contains", "Action")],
            [SortKey("updated_at", "desc"), SortKey("title", "asc")],
            10,
        )
    )

    assert {doc["id"] for doc in documents} == {"akira", "bleach"}


def test_undeclared_composite_query_reports_missing_index(store: SqlDocumentStore) -> None:
    with pytest.raises(StoreError) as excinfo:
        asyncio.run(
            store.query(
                [FieldPredicate("genre", "array-contains", "Action")],
                [SortKey("year", "desc"), SortKey("title", "asc")],
                10,
            )
        )

    assert excinfo.value.code == "failed-precondition"
    assert is_missing_index_error(excinfo.value)
    assert "genre array-contains 'Action'" in excinfo.value.message


def test_single_field_order_needs_no_index(store: SqlDocumentStore) -> None:
    seed(store)

    documents = asyncio.run(store.query([], [SortKey("year", "asc")], None))

    assert [doc["id"] for doc in documents] == ["akira", "bleach", "mushishi"]


def test_count_with_predicates(store: SqlDocumentStore) -> None:
    seed(store)

    assert asyncio.run(store.count([])) == 3
    assert asyncio.run(store.count([FieldPredicate("type", "==", "TV")])) == 2
    assert asyncio.run(store.count([FieldPredicate("is_featured", "==", True)])) == 1


def test_batch_get_enforces_limit(store: SqlDocumentStore) -> None:
    seed(store)

    documents = asyncio.run(store.batch_get(["akira", "missing", "bleach"]))
    assert {doc["id"] for doc in documents} == {"akira", "bleach"}

    with pytest.raises(StoreError) as excinfo:
        asyncio.run(store.batch_get(["a", "b", "c", "d"]))
    assert excinfo.value.code == "invalid-argument"


def test_genre_tokens_do_not_match_partial_names(store: SqlDocumentStore) -> None:
    seed(store)

    documents = asyncio.run(store.query([FieldPredicate("genre", "array-contains", "Sci")], [], None))

    assert documents == []


def test_index_definitions() -> None:
    assert parse_index_definition("genre, updated_at desc, title asc") == (
        frozenset({"genre"}),
        (("updated_at", "desc"), ("title", "asc")),
    )
    assert required_index([FieldPredicate("title", ">=", "A")], [SortKey("title", "asc")]) is None
    assert required_index([], [SortKey("updated_at", "desc"), SortKey("title", "asc")]) == (
        frozenset(),
        (("updated_at", "desc"), ("title", "asc")),
    )
