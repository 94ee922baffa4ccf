"""Translate declarative catalog filters into ordered document store queries.

The builder is the only place that decides query shape. Filters are always
emitted in the same order (genre, type, status, year, featured) so that two
identical requests produce identical predicate and sort sequences, which keeps
the number of composite indexes the store needs small and predictable.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..errors import ConfigurationError
from ..stores.document_store import FieldPredicate, SortKey, describe_query

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..settings import CatalogSettings

SORT_FIELDS: tuple[str, ...] = (
    "title",
    "year",
    "average_rating",
    "updated_at",
    "created_at",
    "popularity",
)
SORT_DIRECTIONS: tuple[str, ...] = ("asc", "desc")

UNBOUNDED = -1
PREFIX_UPPER_BOUND = "\uf8ff"

# First present filter decides the default sort; title is never a default.
_FILTER_DEFAULT_SORTS: tuple[tuple[str, str], ...] = (
    ("genre", "updated_at"),
    ("type", "popularity"),
    ("status", "updated_at"),
    ("year", "popularity"),
    ("is_featured", "updated_at"),
)

FALLBACK_ORDER: tuple[SortKey, ...] = (SortKey("updated_at", "desc"), SortKey("title", "asc"))
FALLBACK_KEPT_FIELDS: frozenset[str] = frozenset({"is_featured"})


@dataclass(slots=True)
class QueryFilter:
    """Transient browse request coming from the UI or CLI."""

    genre: str | None = None
    type: str | None = None
    status: str | None = None
    year: int | None = None
    featured: bool | None = None
    sort_by: str | None = None
    sort_order: str | None = None
    search: str | None = None
    count: int | None = None


@dataclass(slots=True, frozen=True)
class CatalogQuery:
    """Store query plus the client-side work needed to complete it."""

    predicates: tuple[FieldPredicate, ...]
    order_by: tuple[SortKey, ...]
    limit: int
    requested: int
    client_predicates: tuple[FieldPredicate, ...] = ()
    client_order: tuple[SortKey, ...] = ()
    trim_to: int | None = None
    search_term: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.limit == 0

    def describe(self) -> str:
        summary = describe_query(self.predicates, self.order_by, self.limit)
        if self.client_predicates:
            summary += " client_filters=[" + "; ".join(
                p.describe() for p in self.client_predicates
            ) + "]"
        if self.search_term:
            summary += f" search={self.search_term!r}"
        return summary


def capitalize_first(term: str) -> str:
    """Upper-case only the first character, leaving the rest untouched."""

    return term[:1].upper() + term[1:]


class QueryBuilder:
    """Builds :class:`CatalogQuery` objects from :class:`QueryFilter` requests."""

    def __init__(
        self,
        *,
        default_count: int = 20,
        unbounded_cap: int = 1000,
        search_overfetch: int = 2,
        fallback_overfetch: int = 5,
    ) -> None:
        self.default_count = default_count
        self.unbounded_cap = unbounded_cap
        self.search_overfetch = search_overfetch
        self.fallback_overfetch = fallback_overfetch

    @classmethod
    def from_settings(cls, settings: "CatalogSettings") -> "QueryBuilder":
        return cls(
            default_count=settings.default_page_size,
            unbounded_cap=settings.unbounded_result_cap,
            search_overfetch=settings.search_overfetch_factor,
            fallback_overfetch=settings.fallback_overfetch_factor,
        )

    def resolve_count(self, count: int | None) -> int:
        """Translate a requested count into a finite store limit."""

        if count is None:
            return self.default_count
        if count == UNBOUNDED:
            return self.unbounded_cap
        if count < 0:
            raise ConfigurationError(
                f"Invalid count {count}; use a positive number, 0, or {UNBOUNDED} for unbounded"
            )
        return min(count, self.unbounded_cap)

    def equality_predicates(self, filters: QueryFilter) -> list[FieldPredicate]:
        """Return filter predicates in their fixed, index-friendly order."""

        predicates: list[FieldPredicate] = []
        if filters.genre:
            predicates.append(FieldPredicate("genre", "array-contains", filters.genre))
        if filters.type:
            predicates.append(FieldPredicate("type", "==", filters.type))
        if filters.status:
            predicates.append(FieldPredicate("status", "==", filters.status))
        if filters.year is not None:
            predicates.append(FieldPredicate("year", "==", filters.year))
        if filters.featured is not None:
            predicates.append(FieldPredicate("is_featured", "==", filters.featured))
        return predicates

    def build(self, filters: QueryFilter, *, capitalize_search: bool = True) -> CatalogQuery:
        """Build the store query for ``filters``.

        Raises :class:`ConfigurationError` for unknown sort fields or
        directions before any store access happens.
        """

        self._validate(filters)
        requested = self.resolve_count(filters.count)
        predicates = self.equality_predicates(filters)

        term = (filters.search or "").strip()
        if term:
            start = capitalize_first(term) if capitalize_search else term
            limit = min(requested * self.search_overfetch, self.unbounded_cap)
            return CatalogQuery(
                predicates=(
                    FieldPredicate("title", ">=", start),
                    FieldPredicate("title", "<=", start + PREFIX_UPPER_BOUND),
                ),
                order_by=(SortKey("title", "asc"),),
                limit=limit,
                requested=requested,
                client_predicates=tuple(predicates),
                search_term=term,
            )

        return CatalogQuery(
            predicates=tuple(predicates),
            order_by=self._order_by(filters),
            limit=requested,
            requested=requested,
        )

    def fallback(self, query: CatalogQuery) -> CatalogQuery:
        """Return the reduced query used when ``query`` lacks a composite index.

        Only the featured flag survives at the store level; every other
        predicate is re-applied in memory and the original ordering is
        restored client-side before trimming back to the original limit. The
        store is over-fetched whenever its rows need filtering or reordering.
        """

        kept = tuple(p for p in query.predicates if p.field in FALLBACK_KEPT_FIELDS)
        dropped = tuple(p for p in query.predicates if p.field not in FALLBACK_KEPT_FIELDS)
        limit = query.limit
        if dropped or query.client_predicates or query.order_by != FALLBACK_ORDER:
            limit = min(query.limit * self.fallback_overfetch, self.unbounded_cap)
        return CatalogQuery(
            predicates=kept,
            order_by=FALLBACK_ORDER,
            limit=max(limit, query.limit),
            requested=query.requested,
            client_predicates=dropped + query.client_predicates,
            client_order=query.order_by,
            trim_to=query.limit,
            search_term=query.search_term,
        )

    def _validate(self, filters: QueryFilter) -> None:
        if filters.sort_by is not None and filters.sort_by not in SORT_FIELDS:
            raise ConfigurationError(
                f"Unsupported sort field {filters.sort_by!r}; expected one of {', '.join(SORT_FIELDS)}"
            )
        if filters.sort_order is not None and filters.sort_order not in SORT_DIRECTIONS:
            raise ConfigurationError(
                f"Unsupported sort direction {filters.sort_order!r}; expected asc or desc"
            )

    def _order_by(self, filters: QueryFilter) -> tuple[SortKey, ...]:
        if filters.sort_by:
            primary = SortKey(filters.sort_by, filters.sort_order or "asc")  # type: ignore[arg-type]
        else:
            field = "updated_at"
            for name, default_sort in _FILTER_DEFAULT_SORTS:
                value = filters.featured if name == "is_featured" else getattr(filters, name)
                if value is not None and value != "":
                    field = default_sort
                    break
            primary = SortKey(field, filters.sort_order or "desc")  # type: ignore[arg-type]

        if primary.field == "title":
            return (primary,)
        return (primary, SortKey("title", "asc"))
