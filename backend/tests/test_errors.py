"""Tests for store error classification."""
from __future__ import annotations

import sys
from pathlib import Path

import httpx
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.catalog_api.errors import (  # noqa: E402
    ErrorKind,
    QueryError,
    StoreError,
    is_missing_index_error,
    normalize_error,
)


@pytest.mark.parametrize(
    "message",
    [
        "The query requires an index. You can create it here: https://console.example/indexes?create=abc",
        "The query requires an index. Create a composite index on (genre) ordered by (updated_at desc, title asc).",
        "9 FAILED_PRECONDITION: The query requires an INDEX.",
    ],
)
def test_missing_index_message_shapes_are_detected(message: str) -> None:
    assert is_missing_index_error(StoreError("failed-precondition", message))


def test_failed_precondition_without_index_is_not_missing_index() -> None:
    exc = StoreError("failed-precondition", "Document was modified concurrently")

    assert not is_missing_index_error(exc)
    assert normalize_error(exc, "ctx").kind is ErrorKind.UNKNOWN


def test_index_text_with_other_code_is_not_missing_index() -> None:
    assert not is_missing_index_error(StoreError("unavailable", "index server offline"))
    assert not is_missing_index_error(RuntimeError("requires an index"))


def test_missing_index_message_embeds_query_context() -> None:
    exc = StoreError("failed-precondition", "The query requires an index.")

    normalized = normalize_error(exc, "filters=[genre array-contains 'Action'] sort=[year desc]")

    assert normalized.kind is ErrorKind.MISSING_INDEX
    assert "genre array-contains 'Action'" in normalized.message
    assert "year desc" in normalized.message


@pytest.mark.parametrize(
    ("code", "kind"),
    [
        ("permission-denied", ErrorKind.PERMISSION_DENIED),
        ("unauthenticated", ErrorKind.PERMISSION_DENIED),
        ("unavailable", ErrorKind.UNAVAILABLE),
        ("deadline-exceeded", ErrorKind.UNAVAILABLE),
        ("not-found", ErrorKind.NOT_FOUND),
        ("internal", ErrorKind.UNKNOWN),
    ],
)
def test_store_codes_are_classified(code: str, kind: ErrorKind) -> None:
    assert normalize_error(StoreError(code, "boom"), "ctx").kind is kind


def test_unknown_errors_preserve_original_message() -> None:
    normalized = normalize_error(ValueError("something odd"), "ctx")

    assert normalized.kind is ErrorKind.UNKNOWN
    assert normalized.message == "something odd"


def test_network_errors_are_unavailable() -> None:
    request = httpx.Request("GET", "https://example.invalid")

    assert normalize_error(httpx.ConnectError("offline", request=request), "ctx").kind is ErrorKind.UNAVAILABLE


def test_query_error_status_codes() -> None:
    error = QueryError.from_exception(StoreError("failed-precondition", "requires an index"), "ctx")

    assert error.kind is ErrorKind.MISSING_INDEX
    assert error.status_code == 412
    assert error.context == "ctx"
    assert QueryError(ErrorKind.UNAVAILABLE, "down").status_code == 503
