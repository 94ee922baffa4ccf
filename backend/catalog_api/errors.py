"""Error taxonomy shared by the catalog stores, services and routers."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import httpx
from sqlalchemy.exc import OperationalError


class ErrorKind(str, Enum):
    """Operator-facing classification of store and network failures."""

    MISSING_INDEX = "MissingIndex"
    PERMISSION_DENIED = "PermissionDenied"
    UNAVAILABLE = "Unavailable"
    NOT_FOUND = "NotFound"
    UNKNOWN = "Unknown"


_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.MISSING_INDEX: 412,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.UNAVAILABLE: 503,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNKNOWN: 500,
}

_KIND_BY_STORE_CODE: dict[str, ErrorKind] = {
    "permission-denied": ErrorKind.PERMISSION_DENIED,
    "unauthenticated": ErrorKind.PERMISSION_DENIED,
    "unavailable": ErrorKind.UNAVAILABLE,
    "deadline-exceeded": ErrorKind.UNAVAILABLE,
    "not-found": ErrorKind.NOT_FOUND,
}


class StoreError(RuntimeError):
    """Structured failure raised by document stores."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class CatalogError(RuntimeError):
    """Base class for failures surfaced by the catalog layer."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(CatalogError):
    """Raised for invalid filter or sort combinations before any store call."""

    status_code = 422


class QueryError(CatalogError):
    """Classified store failure carrying the attempted query context."""

    def __init__(self, kind: ErrorKind, message: str, context: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.context = context

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return _STATUS_BY_KIND[self.kind]

    @classmethod
    def from_exception(cls, exc: BaseException, context: str) -> "QueryError":
        if isinstance(exc, QueryError):
            return exc
        normalized = normalize_error(exc, context)
        return cls(normalized.kind, normalized.message, context)


@dataclass(slots=True, frozen=True)
class NormalizedError:
    """Classification result returned by :func:`normalize_error`."""

    kind: ErrorKind
    message: str


def is_missing_index_error(exc: BaseException) -> bool:
    """Return whether ``exc`` reports a missing composite index.

    The managed store only signals this through the generic
    ``failed-precondition`` code, so the message text is inspected as well.
    This is inherently brittle and pinned by tests to the known message shapes.
    """

    code = getattr(exc, "code", None)
    if code != "failed-precondition":
        return False
    message = getattr(exc, "message", None) or str(exc)
    return "index" in message.lower()


def _original_message(exc: BaseException) -> str:
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc) or exc.__class__.__name__


def normalize_error(exc: BaseException, context: str) -> NormalizedError:
    """Classify ``exc`` into an :class:`ErrorKind` with an actionable message."""

    detail = _original_message(exc)

    if is_missing_index_error(exc):
        return NormalizedError(
            ErrorKind.MISSING_INDEX,
            f"A composite index is required for {context}. "
            f"Create the index and retry. Store response: {detail}",
        )

    kind = ErrorKind.UNKNOWN
    if isinstance(exc, StoreError):
        kind = _KIND_BY_STORE_CODE.get(exc.code, ErrorKind.UNKNOWN)
    elif isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status in (401, 403):
            kind = ErrorKind.PERMISSION_DENIED
        elif status == 404:
            kind = ErrorKind.NOT_FOUND
        elif status in (502, 503, 504):
            kind = ErrorKind.UNAVAILABLE
    elif isinstance(exc, (httpx.TransportError, OperationalError, TimeoutError, ConnectionError)):
        kind = ErrorKind.UNAVAILABLE
    elif isinstance(exc, PermissionError):
        kind = ErrorKind.PERMISSION_DENIED

    messages: dict[ErrorKind, str] = {
        ErrorKind.PERMISSION_DENIED: f"Permission denied while running {context}: {detail}",
        ErrorKind.UNAVAILABLE: f"The catalog store is unavailable ({context}): {detail}",
        ErrorKind.NOT_FOUND: f"Requested document was not found ({context}): {detail}",
        ErrorKind.UNKNOWN: detail,
    }
    return NormalizedError(kind, messages[kind])


class ProviderError(RuntimeError):
    """Raised by external metadata clients; never surfaced to catalog readers."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
