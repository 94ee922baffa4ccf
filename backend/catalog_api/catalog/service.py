"""Catalog facade composing query building, execution, batching and enrichment."""
from __future__ import annotations

import logging
from typing import Any, Iterable, Literal, Sequence

from pydantic import ValidationError

from ..errors import ConfigurationError, QueryError
from ..schemas import CATALOG_STATUSES, CATALOG_TYPES, CatalogRecord
from ..stores.document_store import Document, DocumentStore
from .batch import BatchIdResolver
from .executor import IndexFallbackExecutor
from .merger import MetadataMerger
from .query_builder import QueryBuilder, QueryFilter, capitalize_first
from .timestamps import normalize_timestamps

logger = logging.getLogger(__name__)

FacetField = Literal["genre", "type", "status", "year"]
FACET_FIELDS: tuple[str, ...] = ("genre", "type", "status", "year")

DEFAULT_FEATURED_COUNT = 5


def to_record(document: Document) -> CatalogRecord | None:
    """Validate a raw document, returning ``None`` for unreadable entries."""

    try:
        return CatalogRecord.model_validate(normalize_timestamps(document))
    except ValidationError as exc:
        logger.warning("Skipping malformed catalog document %s: %s", document.get("id"), exc)
        return None


def to_records(documents: Iterable[Document]) -> list[CatalogRecord]:
    records = (to_record(document) for document in documents)
    return [record for record in records if record is not None]


def matches_term(record: CatalogRecord, term: str) -> bool:
    """Case-insensitive substring match on title or any genre."""

    needle = term.lower()
    if needle in record.title.lower():
        return True
    return any(needle in genre.lower() for genre in record.genre)


def rank_search_results(records: Sequence[CatalogRecord], term: str) -> list[CatalogRecord]:
    """Titles starting with ``term`` first, then alphabetical by title."""

    needle = term.lower()
    return sorted(
        records,
        key=lambda record: (not record.title.lower().startswith(needle), record.title.lower()),
    )


class CatalogService:
    """Public read entry points for the catalog."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        builder: QueryBuilder | None = None,
        merger: MetadataMerger | None = None,
        fallback_genres: Sequence[str] = (),
        facet_sample_size: int = 500,
        batch_limit: int | None = None,
    ) -> None:
        self._store = store
        self._builder = builder or QueryBuilder()
        self._executor = IndexFallbackExecutor(store, self._builder)
        self._resolver = BatchIdResolver(store, batch_limit=batch_limit)
        self._merger = merger
        self._fallback_genres = tuple(fallback_genres)
        self._facet_sample_size = facet_sample_size

    async def list(self, filters: QueryFilter | None = None) -> list[CatalogRecord]:
        """Return records matching ``filters``; a search term switches to search mode."""

        filters = filters or QueryFilter()
        if filters.search and filters.search.strip():
            return await self._search(filters)
        query = self._builder.build(filters)
        return to_records(await self._executor.execute(query))

    async def featured(self, count: int = DEFAULT_FEATURED_COUNT) -> list[CatalogRecord]:
        return await self.list(QueryFilter(featured=True, count=count))

    async def search(self, term: str, count: int | None = None) -> list[CatalogRecord]:
        """Title search; a blank term matches nothing."""

        if not term or not term.strip():
            return []
        return await self.list(QueryFilter(search=term, count=count))

    async def get_by_id(self, doc_id: str, *, enrich: bool = True) -> CatalogRecord | None:
        """Return one record, merged with provider metadata when enrichment is enabled.

        A missing record is a normal ``None`` result.
        """

        try:
            document = await self._store.get(doc_id)
        except Exception as exc:
            raise QueryError.from_exception(exc, f"get id={doc_id!r}") from exc
        if document is None:
            return None

        record = to_record(document)
        if record is None or not enrich or self._merger is None:
            return record
        return await self._merger.enrich(record)

    async def get_by_ids(self, ids: Sequence[str]) -> list[CatalogRecord]:
        """Resolve ``ids`` in caller order; bulk reads are never enriched."""

        return to_records(await self._resolver.resolve_many(ids))

    async def unique_values(self, field: str) -> list[Any]:
        """Distinct values of ``field`` from a bounded scan, unioned with the static vocabulary."""

        if field not in FACET_FIELDS:
            raise ConfigurationError(f"Unsupported facet field {field!r}; expected one of {', '.join(FACET_FIELDS)}")

        vocabulary = self._vocabulary(field)
        try:
            documents = await self._store.query([], [], self._facet_sample_size)
        except Exception as exc:
            logger.warning("Facet scan for %s failed, using fallback vocabulary: %s", field, exc)
            documents = []

        values: set[Any] = set(vocabulary)
        for document in documents:
            raw = document.get(field)
            items = raw if isinstance(raw, list) else [raw]
            for item in items:
                if item is None or item == "":
                    continue
                values.add(item.strip() if isinstance(item, str) else item)

        if field == "year":
            return sorted((value for value in values if isinstance(value, int)), reverse=True)
        return sorted((str(value) for value in values), key=str.lower)

    async def count(self, filters: QueryFilter | None = None) -> int:
        predicates = self._builder.equality_predicates(filters or QueryFilter())
        try:
            return await self._store.count(predicates)
        except Exception as exc:
            context = "count " + ("; ".join(p.describe() for p in predicates) or "all")
            raise QueryError.from_exception(exc, context) from exc

    def _vocabulary(self, field: str) -> tuple[Any, ...]:
        if field == "genre":
            return self._fallback_genres
        if field == "type":
            return tuple(value for value in CATALOG_TYPES if value != "Unknown")
        if field == "status":
            return tuple(value for value in CATALOG_STATUSES if value != "Unknown")
        return ()

    async def _search(self, filters: QueryFilter) -> list[CatalogRecord]:
        term = (filters.search or "").strip()
        query = self._builder.build(filters)
        if query.is_empty:
            return []

        documents = await self._executor.execute(query)
        lowered = term.lower()
        if len(documents) < query.requested and lowered != capitalize_first(term):
            second = self._builder.build(
                QueryFilter(
                    genre=filters.genre,
                    type=filters.type,
                    status=filters.status,
                    year=filters.year,
                    featured=filters.featured,
                    search=lowered,
                    count=filters.count,
                ),
                capitalize_search=False,
            )
            known = {document.get("id") for document in documents}
            for document in await self._executor.execute(second):
                if document.get("id") not in known:
                    documents.append(document)
                    known.add(document.get("id"))

        records = [record for record in to_records(documents) if matches_term(record, term)]
        return rank_search_results(records, term)[: query.requested]
