"""Write-side document construction and normalisation."""
from __future__ import annotations

import re
import unicodedata
from typing import Any, Mapping

from ..schemas import CatalogRecordCreate, CatalogRecordUpdate

EMPTY_AS_NULL_FIELDS: tuple[str, ...] = ("trailer_url", "banner_image")
EPISODE_EMPTY_AS_NULL_FIELDS: tuple[str, ...] = ("url", "thumbnail")
NON_NULLABLE_FIELDS: tuple[str, ...] = ("title", "cover_image", "synopsis", "genre", "status")


def slugify(title: str) -> str:
    """Derive the immutable document id from a title."""

    normalized = unicodedata.normalize("NFKD", title)
    ascii_value = normalized.encode("ascii", "ignore").decode("ascii").lower()
    cleaned = re.sub(r"[^a-z0-9]+", "-", ascii_value).strip("-")
    return cleaned or "untitled"


def normalize_episode(episode: Mapping[str, Any]) -> dict[str, Any]:
    data = dict(episode)
    for field in EPISODE_EMPTY_AS_NULL_FIELDS:
        if data.get(field) == "":
            data[field] = None
    return data


def normalize_document(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Single normalisation pass applied to every administrative write."""

    data = dict(payload)
    for field in EMPTY_AS_NULL_FIELDS:
        if data.get(field) == "":
            data[field] = None
    if isinstance(data.get("title"), str):
        data["title"] = data["title"].strip()
    if isinstance(data.get("genre"), list):
        genres: list[str] = []
        for genre in data["genre"]:
            value = str(genre).strip()
            if value and value not in genres:
                genres.append(value)
        data["genre"] = genres
    if isinstance(data.get("episodes"), list):
        data["episodes"] = [normalize_episode(ep) for ep in data["episodes"]]
    return data


def build_new_document(payload: CatalogRecordCreate, doc_id: str) -> dict[str, Any]:
    document = normalize_document(payload.model_dump(mode="json"))
    document["id"] = doc_id
    return document


def build_update_document(payload: CatalogRecordUpdate) -> dict[str, Any]:
    """Return the partial document for ``payload``.

    Explicit nulls clear optional fields; they are ignored for fields a
    record cannot exist without.
    """

    changes = payload.model_dump(mode="json", exclude_unset=True)
    changes = {
        key: value
        for key, value in changes.items()
        if value is not None or key not in NON_NULLABLE_FIELDS
    }
    return normalize_document(changes)
