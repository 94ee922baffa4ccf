"""Normalise stored timestamp shapes into ISO-8601 strings."""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Mapping

logger = logging.getLogger(__name__)

_MILLISECOND_THRESHOLD = 100_000_000_000


def to_iso_timestamp(value: Any) -> str | None:
    """Convert datetimes, epoch numbers, ``{seconds, nanoseconds}`` mappings or strings."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        moment = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return moment.astimezone(timezone.utc).isoformat()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc).isoformat()
    if isinstance(value, Mapping) and "seconds" in value:
        seconds = value.get("seconds")
        nanos = value.get("nanoseconds", 0) or 0
        if isinstance(seconds, (int, float)) and isinstance(nanos, (int, float)):
            return datetime.fromtimestamp(seconds + nanos / 1_000_000_000, tz=timezone.utc).isoformat()
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if abs(value) >= _MILLISECOND_THRESHOLD else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Invalid date string encountered for conversion: %s", value)
            return None
        return to_iso_timestamp(parsed)

    logger.warning("Unexpected date/timestamp format for conversion: %r", value)
    return None


def to_iso_date(value: Any) -> str | None:
    """Like :func:`to_iso_timestamp` but reduced to ``YYYY-MM-DD``."""

    iso = to_iso_timestamp(value)
    return iso[:10] if iso else None


def normalize_timestamps(document: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``document`` with every temporal field normalised."""

    data = dict(document)
    data["created_at"] = to_iso_timestamp(data.get("created_at"))
    data["updated_at"] = to_iso_timestamp(data.get("updated_at"))
    data["aired_from"] = to_iso_date(data.get("aired_from"))
    data["aired_to"] = to_iso_date(data.get("aired_to"))

    episodes = data.get("episodes")
    if isinstance(episodes, list):
        normalized = []
        for episode in episodes:
            if isinstance(episode, Mapping):
                episode = dict(episode)
                episode["air_date"] = to_iso_date(episode.get("air_date"))
            normalized.append(episode)
        data["episodes"] = normalized
    return data
