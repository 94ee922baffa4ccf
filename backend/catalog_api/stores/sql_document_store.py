"""SQLModel-backed implementation of the catalog document store."""
from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, Sequence, TypeVar

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from ..errors import StoreError
from ..models import CatalogDocumentRecord
from .document_store import Document, FieldPredicate, SortKey, describe_query

T = TypeVar("T")

IndexKey = tuple[frozenset[str], tuple[tuple[str, str], ...]]

_COLUMNS = {
    "id": CatalogDocumentRecord.id,
    "title": CatalogDocumentRecord.title,
    "type": CatalogDocumentRecord.type,
    "status": CatalogDocumentRecord.status,
    "year": CatalogDocumentRecord.year,
    "is_featured": CatalogDocumentRecord.is_featured,
    "popularity": CatalogDocumentRecord.popularity,
    "average_rating": CatalogDocumentRecord.average_rating,
    "created_at": CatalogDocumentRecord.created_at,
    "updated_at": CatalogDocumentRecord.updated_at,
}

_TIMESTAMP_FIELDS = ("created_at", "updated_at")


def parse_index_definition(definition: str) -> IndexKey:
    """Parse ``"genre, updated_at desc, title asc"`` into an index key."""

    filter_fields: set[str] = set()
    orders: list[tuple[str, str]] = []
    for token in definition.split(","):
        parts = token.split()
        if not parts:
            continue
        if len(parts) == 1:
            filter_fields.add(parts[0])
        elif len(parts) == 2 and parts[1].lower() in ("asc", "desc"):
            orders.append((parts[0], parts[1].lower()))
        else:
            raise ValueError(f"Invalid index token {token.strip()!r} in {definition!r}")
    return frozenset(filter_fields), tuple(orders)


def required_index(
    predicates: Sequence[FieldPredicate], order_by: Sequence[SortKey]
) -> IndexKey | None:
    """Return the composite index a query needs, or ``None`` when single-field indexes suffice."""

    filter_fields = {p.field for p in predicates if p.field != "id"}
    orders = tuple((key.field, key.direction) for key in order_by)
    if not orders:
        return None
    if len(orders) == 1 and filter_fields <= {orders[0][0]}:
        return None
    return frozenset(filter_fields), orders


def _genre_tokens(genres: Any) -> str:
    if not isinstance(genres, (list, tuple)) or not genres:
        return ""
    return "|" + "|".join(str(g) for g in genres) + "|"


class SqlDocumentStore:
    """Document store persisting catalog documents in a SQL database."""

    def __init__(
        self,
        engine: Engine,
        *,
        batch_limit: int = 30,
        composite_indexes: Iterable[str] = (),
        enforce_indexes: bool = True,
    ) -> None:
        self._engine = engine
        self.batch_limit = batch_limit
        self._indexes = {parse_index_definition(item) for item in composite_indexes}
        self._enforce_indexes = enforce_indexes

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except OperationalError as exc:
            raise StoreError("unavailable", f"Database operation failed: {exc.orig}") from exc

    async def get(self, doc_id: str) -> Document | None:
        return await self._run(self._get, doc_id)

    async def set(self, doc_id: str, document: Mapping[str, Any]) -> None:
        await self._run(self._set, doc_id, dict(document))

    async def update(self, doc_id: str, partial: Mapping[str, Any]) -> None:
        await self._run(self._update, doc_id, dict(partial))

    async def delete(self, doc_id: str) -> None:
        await self._run(self._delete, doc_id)

    async def query(
        self,
        predicates: Sequence[FieldPredicate],
        order_by: Sequence[SortKey],
        limit: int | None,
    ) -> list[Document]:
        self._check_index(predicates, order_by)
        return await self._run(self._query, list(predicates), list(order_by), limit)

    async def count(self, predicates: Sequence[FieldPredicate]) -> int:
        return await self._run(self._count, list(predicates))

    async def batch_get(self, ids: Sequence[str]) -> list[Document]:
        if len(ids) > self.batch_limit:
            raise StoreError(
                "invalid-argument",
                f"Batch lookups accept at most {self.batch_limit} ids, got {len(ids)}",
            )
        if not ids:
            return []
        return await self._run(self._query, [FieldPredicate("id", "in", list(ids))], [], None)

    # ------------------------------------------------------------------
    # Synchronous helpers executed off the event loop

    def _check_index(
        self, predicates: Sequence[FieldPredicate], order_by: Sequence[SortKey]
    ) -> None:
        if not self._enforce_indexes:
            return
        needed = required_index(predicates, order_by)
        if needed is None or needed in self._indexes:
            return
        fields = ", ".join(sorted(needed[0])) or "-"
        orders = ", ".join(f"{field} {direction}" for field, direction in needed[1])
        raise StoreError(
            "failed-precondition",
            "The query requires an index. Create a composite index on "
            f"({fields}) ordered by ({orders}) for {describe_query(predicates, order_by)}.",
        )

    def _get(self, doc_id: str) -> Document | None:
        with Session(self._engine) as session:
            record = session.get(CatalogDocumentRecord, doc_id)
            return _to_document(record) if record else None

    def _set(self, doc_id: str, document: Document) -> None:
        now = datetime.utcnow()
        payload = _strip_timestamps(document)
        payload["id"] = doc_id
        with Session(self._engine) as session:
            record = session.get(CatalogDocumentRecord, doc_id)
            if record is None:
                record = CatalogDocumentRecord(id=doc_id, created_at=now, updated_at=now)
            else:
                record.updated_at = max(now, record.updated_at)
            record.data = payload
            _apply_columns(record, payload)
            session.add(record)
            session.commit()

    def _update(self, doc_id: str, partial: Document) -> None:
        with Session(self._engine) as session:
            record = session.get(CatalogDocumentRecord, doc_id)
            if record is None:
                raise StoreError("not-found", f"No document to update: {doc_id}")
            payload = {**record.data, **_strip_timestamps(partial), "id": doc_id}
            record.data = payload
            record.updated_at = max(datetime.utcnow(), record.updated_at)
            _apply_columns(record, payload)
            session.add(record)
            session.commit()

    def _delete(self, doc_id: str) -> None:
        with Session(self._engine) as session:
            record = session.get(CatalogDocumentRecord, doc_id)
            if record is not None:
                session.delete(record)
                session.commit()

    def _query(
        self,
        predicates: list[FieldPredicate],
        order_by: list[SortKey],
        limit: int | None,
    ) -> list[Document]:
        statement = select(CatalogDocumentRecord)
        for predicate in predicates:
            statement = statement.where(_condition(predicate))
        for key in order_by:
            column = _column(key.field)
            clause = column.desc() if key.direction == "desc" else column.asc()
            statement = statement.order_by(clause.nullslast())
        if limit is not None:
            statement = statement.limit(limit)
        with Session(self._engine) as session:
            records = session.exec(statement).scalars().all()
            return [_to_document(record) for record in records]

    def _count(self, predicates: list[FieldPredicate]) -> int:
        statement = select(func.count()).select_from(CatalogDocumentRecord)
        for predicate in predicates:
            statement = statement.where(_condition(predicate))
        with Session(self._engine) as session:
            return session.exec(statement).scalar_one()


def _column(field: str):
    column = _COLUMNS.get(field)
    if column is None:
        raise StoreError("invalid-argument", f"Field {field!r} is not queryable")
    return column


def _condition(predicate: FieldPredicate):
    if predicate.field == "genre":
        if predicate.op != "array-contains":
            raise StoreError("invalid-argument", "genre only supports array-contains filters")
        return CatalogDocumentRecord.genre_tokens.contains(f"|{predicate.value}|", autoescape=True)

    column = _column(predicate.field)
    if predicate.op == "==":
        return column == predicate.value
    if predicate.op == ">=":
        return column >= predicate.value
    if predicate.op == "<=":
        return column <= predicate.value
    if predicate.op == "in":
        return column.in_(list(predicate.value))
    raise StoreError(
        "invalid-argument", f"Operator {predicate.op!r} is not supported on {predicate.field!r}"
    )


def _strip_timestamps(document: Mapping[str, Any]) -> Document:
    return {key: value for key, value in document.items() if key not in _TIMESTAMP_FIELDS}


def _apply_columns(record: CatalogDocumentRecord, payload: Mapping[str, Any]) -> None:
    """Copy queryable fields from the document into their indexed columns."""

    record.title = payload.get("title") or ""
    record.type = payload.get("type")
    record.status = payload.get("status")
    record.year = payload.get("year")
    record.is_featured = payload.get("is_featured")
    record.popularity = payload.get("popularity")
    record.average_rating = payload.get("average_rating")
    record.genre_tokens = _genre_tokens(payload.get("genre"))


def _to_document(record: CatalogDocumentRecord) -> Document:
    document = dict(record.data or {})
    document["id"] = record.id
    document["created_at"] = record.created_at
    document["updated_at"] = record.updated_at
    return document
