"""Run built catalog queries with a single fallback for missing composite indexes."""
from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

from ..errors import QueryError, is_missing_index_error
from ..stores.document_store import Document, DocumentStore, FieldPredicate, SortKey
from .query_builder import CatalogQuery, QueryBuilder

logger = logging.getLogger(__name__)


def filter_documents(
    documents: Iterable[Document], predicates: Sequence[FieldPredicate]
) -> list[Document]:
    """Keep documents satisfying every predicate."""

    return [doc for doc in documents if all(p.matches(doc) for p in predicates)]


def sort_documents(documents: Iterable[Document], order_by: Sequence[SortKey]) -> list[Document]:
    """Sort in memory the way the store would, with missing values last."""

    ordered = list(documents)
    for key in reversed(order_by):
        present = [doc for doc in ordered if doc.get(key.field) is not None]
        missing = [doc for doc in ordered if doc.get(key.field) is None]
        present.sort(key=lambda doc: _sort_value(doc.get(key.field)), reverse=key.direction == "desc")
        ordered = present + missing
    return ordered


def _sort_value(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return value


class IndexFallbackExecutor:
    """Executes a query verbatim, retrying once with a reduced query on missing indexes."""

    def __init__(self, store: DocumentStore, builder: QueryBuilder) -> None:
        self._store = store
        self._builder = builder

    async def execute(self, query: CatalogQuery) -> list[Document]:
        """Return documents for ``query`` or raise a classified :class:`QueryError`."""

        if query.is_empty:
            return []

        try:
            documents = await self._store.query(query.predicates, query.order_by, query.limit)
        except Exception as exc:
            if not is_missing_index_error(exc):
                raise QueryError.from_exception(exc, query.describe()) from exc
            return await self._execute_fallback(query, exc)

        return _complete(documents, query)

    async def _execute_fallback(self, query: CatalogQuery, original: Exception) -> list[Document]:
        context = query.describe()
        logger.warning("Query requires a missing composite index (%s): %s", context, original)

        fallback = self._builder.fallback(query)
        logger.warning("Attempting fallback query %s", fallback.describe())
        try:
            documents = await self._store.query(
                fallback.predicates, fallback.order_by, fallback.limit
            )
        except Exception as fallback_exc:
            logger.error("Fallback query also failed (%s): %s", fallback.describe(), fallback_exc)
            raise QueryError.from_exception(original, context) from original

        return _complete(documents, fallback)


def _complete(documents: list[Document], query: CatalogQuery) -> list[Document]:
    if query.client_predicates:
        documents = filter_documents(documents, query.client_predicates)
    if query.client_order:
        documents = sort_documents(documents, query.client_order)
    if query.trim_to is not None:
        documents = documents[: query.trim_to]
    return documents
