"""Document store contract and query vocabulary shared by catalog components."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Protocol, Sequence

PredicateOp = Literal["==", "array-contains", ">=", "<=", "in"]
SortDirection = Literal["asc", "desc"]

Document = dict[str, Any]


@dataclass(slots=True, frozen=True)
class FieldPredicate:
    """Single filter clause evaluated by the document store."""

    field: str
    op: PredicateOp
    value: Any

    def describe(self) -> str:
        return f"{self.field} {self.op} {self.value!r}"

    def matches(self, document: Mapping[str, Any]) -> bool:
        """Evaluate the predicate in memory against ``document``."""

        actual = document.get(self.field)
        if self.op == "array-contains":
            return isinstance(actual, (list, tuple)) and self.value in actual
        if self.op == "in":
            return actual in self.value
        if self.op == "==":
            return actual == self.value
        if actual is None:
            return False
        if self.op == ">=":
            return actual >= self.value
        return actual <= self.value


@dataclass(slots=True, frozen=True)
class SortKey:
    """Ordering clause applied to a query."""

    field: str
    direction: SortDirection = "asc"

    def describe(self) -> str:
        return f"{self.field} {self.direction}"


def describe_query(
    predicates: Sequence[FieldPredicate],
    order_by: Sequence[SortKey],
    limit: int | None = None,
) -> str:
    """Return a human-readable summary used in diagnostics and logs."""

    where = "; ".join(p.describe() for p in predicates) or "none"
    order = ", ".join(k.describe() for k in order_by) or "none"
    summary = f"filters=[{where}] sort=[{order}]"
    if limit is not None:
        summary += f" limit={limit}"
    return summary


class DocumentStore(Protocol):
    """Asynchronous document store consumed by the catalog layer."""

    batch_limit: int

    async def get(self, doc_id: str) -> Document | None: ...

    async def set(self, doc_id: str, document: Mapping[str, Any]) -> None: ...

    async def update(self, doc_id: str, partial: Mapping[str, Any]) -> None: ...

    async def delete(self, doc_id: str) -> None: ...

    async def query(
        self,
        predicates: Sequence[FieldPredicate],
        order_by: Sequence[SortKey],
        limit: int | None,
    ) -> list[Document]: ...

    async def count(self, predicates: Sequence[FieldPredicate]) -> int: ...

    async def batch_get(self, ids: Sequence[str]) -> list[Document]: ...
