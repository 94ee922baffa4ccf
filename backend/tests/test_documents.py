"""Tests for write normalisation and timestamp conversion."""
from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.catalog_api.catalog.documents import build_update_document, slugify  # noqa: E402
from backend.catalog_api.catalog.timestamps import (  # noqa: E402
    normalize_timestamps,
    to_iso_date,
    to_iso_timestamp,
)
from backend.catalog_api.schemas import CatalogRecordUpdate  # noqa: E402


def test_slugify_is_deterministic() -> None:
    assert slugify("Fullmetal Alchemist: Brotherhood") == "fullmetal-alchemist-brotherhood"
    assert slugify("Pokémon") == "pokemon"
    assert slugify("  ") == "untitled"


def test_update_document_keeps_explicit_nulls_only_for_optional_fields() -> None:
    payload = CatalogRecordUpdate.model_validate({"trailer_url": None, "title": None, "banner_image": ""})

    assert build_update_document(payload) == {"trailer_url": None, "banner_image": None}


def test_timestamp_shapes() -> None:
    moment = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)

    assert to_iso_timestamp(moment) == "2024-05-01T12:30:00+00:00"
    assert to_iso_timestamp({"seconds": 1714566600, "nanoseconds": 0}) == "2024-05-01T12:30:00+00:00"
    assert to_iso_timestamp("2024-05-01T12:30:00Z") == "2024-05-01T12:30:00+00:00"
    assert to_iso_timestamp(1714566600000) == "2024-05-01T12:30:00+00:00"
    assert to_iso_timestamp("not a date") is None
    assert to_iso_timestamp(None) is None


def test_naive_datetimes_are_treated_as_utc() -> None:
    assert to_iso_timestamp(datetime(2024, 5, 1, 12, 30)) == "2024-05-01T12:30:00+00:00"


def test_dates_are_reduced_to_day() -> None:
    assert to_iso_date("2007-02-15T00:00:00Z") == "2007-02-15"
    assert to_iso_date("2007-02-15") == "2007-02-15"


def test_normalize_timestamps_touches_nested_episodes() -> None:
    document = {
        "id": "x",
        "created_at": datetime(2024, 1, 1),
        "aired_from": "2007-02-15T10:00:00Z",
        "episodes": [{"id": "e1", "air_date": {"seconds": 1171497600, "nanoseconds": 0}}],
    }

    normalized = normalize_timestamps(document)

    assert normalized["created_at"] == "2024-01-01T00:00:00+00:00"
    assert normalized["aired_from"] == "2007-02-15"
    assert normalized["episodes"][0]["air_date"] == "2007-02-15"
    assert document["episodes"][0]["air_date"] == {"seconds": 1171497600, "nanoseconds": 0}
