"""Merge external provider metadata into stored catalog records.

The merge is a read-time projection: nothing here writes back to the store.
Each provider contributes a flat mapping of catalog fields; fields are built
independently so one malformed provider value only loses that field.
"""
from __future__ import annotations

import asyncio
import html
import logging
import re
from typing import Any, Callable, Iterable, Mapping

from pydantic import ValidationError

from ..errors import ProviderError
from ..schemas import CatalogRecord
from ..services.anilist_client import (
    AniListCharacterConnection,
    AniListClient,
    AniListMedia,
    AniListStudioConnection,
    AniListTrailer,
    FuzzyDate,
)
from ..services.tmdb_client import MediaKind, TmdbClient, TmdbDetails, TmdbEpisode

logger = logging.getLogger(__name__)

TRAILER_URL_TEMPLATES: dict[str, str] = {
    "youtube": "https://www.youtube.com/watch?v={id}",
    "dailymotion": "https://www.dailymotion.com/video/{id}",
}

ANILIST_STATUS_MAP: dict[str, str] = {
    "FINISHED": "Completed",
    "RELEASING": "Ongoing",
    "NOT_YET_RELEASED": "Upcoming",
    "CANCELLED": "Cancelled",
    "HIATUS": "Hiatus",
}

ANILIST_FORMAT_MAP: dict[str, str] = {
    "TV": "TV",
    "TV_SHORT": "TV",
    "MOVIE": "Movie",
    "SPECIAL": "Special",
    "OVA": "OVA",
    "ONA": "ONA",
    "MUSIC": "Music",
}

TMDB_STATUS_MAP: dict[str, dict[str, str]] = {
    "movie": {
        "Released": "Completed",
        "Post Production": "Upcoming",
        "In Production": "Upcoming",
        "Planned": "Upcoming",
    },
    "tv": {
        "Ended": "Completed",
        "Canceled": "Completed",
        "Returning Series": "Ongoing",
        "In Production": "Ongoing",
        "Pilot": "Ongoing",
        "Planned": "Upcoming",
    },
}

_TAG_PATTERN = re.compile(r"<[^>]+>")
_BREAK_PATTERN = re.compile(r"<br\s*/?>", re.IGNORECASE)

FieldBuilder = Callable[[], Any]


def is_absent(value: Any) -> bool:
    """Return whether a provider value should leave the stored field untouched."""

    return value is None or value == "" or (isinstance(value, (list, tuple, dict)) and not value)


def scale_score(score: float | None) -> float | None:
    """Convert a 0-100 score to the catalog's 0-10 scale, one decimal place."""

    if score is None:
        return None
    return round(score / 10, 1)


def format_fuzzy_date(date: FuzzyDate | None) -> str | None:
    """Format ``{year, month, day}`` as ``YYYY-MM-DD``; unknown month/day become 01."""

    if date is None or date.year is None:
        return None
    return f"{date.year:04d}-{date.month or 1:02d}-{date.day or 1:02d}"


def strip_html(text: str | None) -> str | None:
    if text is None:
        return None
    text = _BREAK_PATTERN.sub("\n", text)
    return html.unescape(_TAG_PATTERN.sub("", text)).strip()


def map_trailer(trailer: AniListTrailer | None) -> str | None:
    """Return a playable trailer URL only for recognised hosting sites."""

    if trailer is None or not trailer.id or not trailer.site:
        return None
    template = TRAILER_URL_TEMPLATES.get(trailer.site.lower())
    return template.format(id=trailer.id) if template else None


def map_studios(connection: AniListStudioConnection | None) -> list[dict[str, Any]]:
    if connection is None:
        return []
    studios: list[dict[str, Any]] = []
    for edge in connection.edges:
        node = edge.node
        if node is None or node.id is None or not node.name:
            continue
        studios.append(
            {
                "id": node.id,
                "name": node.name,
                "is_main": edge.is_main,
                "is_animation_studio": node.is_animation_studio,
            }
        )
    return studios


def map_characters(connection: AniListCharacterConnection | None) -> list[dict[str, Any]]:
    """Flatten character edges; entries lacking an id or a name are dropped."""

    if connection is None:
        return []
    characters: list[dict[str, Any]] = []
    for edge in connection.edges:
        node = edge.node
        name = (node.name.full or node.name.user_preferred) if node and node.name else None
        if node is None or node.id is None or not name:
            continue
        voice_actors = []
        for actor in edge.voice_actors:
            actor_name = (actor.name.full or actor.name.user_preferred) if actor.name else None
            if actor.id is None or not actor_name:
                continue
            voice_actors.append(
                {
                    "id": actor.id,
                    "name": actor_name,
                    "native_name": actor.name.native if actor.name else None,
                    "image": actor.image.large if actor.image else None,
                    "language": actor.language_v2,
                }
            )
        role = edge.role if edge.role in ("MAIN", "SUPPORTING", "BACKGROUND") else None
        characters.append(
            {
                "id": node.id,
                "name": name,
                "native_name": node.name.native if node.name else None,
                "role": role,
                "image": node.image.large if node.image else None,
                "voice_actors": voice_actors,
            }
        )
    return characters


def map_tmdb_status(status: str | None, media_kind: MediaKind) -> str | None:
    if not status:
        return None
    return TMDB_STATUS_MAP[media_kind].get(status)


def map_tmdb_episode(episode: TmdbEpisode, tmdb_id: int, client: TmdbClient) -> dict[str, Any]:
    season = episode.season_number or 1
    return {
        "id": f"s{season}e{episode.episode_number}-{tmdb_id}",
        "tmdb_episode_id": episode.id,
        "title": episode.name or f"Episode {episode.episode_number}",
        "episode_number": episode.episode_number,
        "season_number": season,
        "thumbnail": client.image_url(episode.still_path, "w300"),
        "duration": f"{episode.runtime}min" if episode.runtime else None,
        "air_date": episode.air_date or None,
        "overview": episode.overview or None,
    }


def _year_from_date(value: str | None) -> int | None:
    if not value:
        return None
    head = value.split("-", 1)[0]
    return int(head) if head.isdigit() else None


def _collect(provider: str, builders: Mapping[str, FieldBuilder]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for name, build in builders.items():
        try:
            value = build()
        except Exception as exc:
            logger.debug("Skipping %s field %s: %s", provider, name, exc)
            continue
        if not is_absent(value):
            fields[name] = value
    return fields


def tmdb_fields(details: TmdbDetails, client: TmdbClient) -> dict[str, Any]:
    """Catalog fields contributed by a TMDB movie or series payload."""

    return _collect(
        "tmdb",
        {
            "synopsis": lambda: details.overview,
            "cover_image": lambda: client.image_url(details.poster_path, "w500"),
            "banner_image": lambda: client.image_url(details.backdrop_path, "w1280"),
            "year": lambda: _year_from_date(details.release_date),
            "genre": lambda: [genre.name for genre in details.genres],
            # TMDB reports 0 for unrated titles.
            "average_rating": lambda: round(details.vote_average, 1) if details.vote_average else None,
            "status": lambda: map_tmdb_status(details.status, details.media_kind),
            "episodes": lambda: [map_tmdb_episode(ep, details.id, client) for ep in details.episodes],
        },
    )


def anilist_fields(media: AniListMedia) -> dict[str, Any]:
    """Catalog fields contributed by an AniList media payload."""

    return _collect(
        "anilist",
        {
            "banner_image": lambda: media.banner_image,
            "cover_image": lambda: media.cover_image and (media.cover_image.extra_large or media.cover_image.large),
            "synopsis": lambda: strip_html(media.description),
            "genre": lambda: list(media.genres),
            "status": lambda: ANILIST_STATUS_MAP.get(media.status or ""),
            "type": lambda: ANILIST_FORMAT_MAP.get(media.format or ""),
            "average_rating": lambda: scale_score(media.average_score),
            "popularity": lambda: media.popularity,
            "year": lambda: media.start_date.year if media.start_date else None,
            "season": lambda: media.season,
            "season_year": lambda: media.season_year,
            "episode_duration": lambda: media.duration,
            "country_of_origin": lambda: media.country_of_origin,
            "source_material": lambda: media.source,
            "studios": lambda: map_studios(media.studios),
            "characters": lambda: map_characters(media.characters),
            "trailer_url": lambda: map_trailer(media.trailer),
            "aired_from": lambda: format_fuzzy_date(media.start_date),
            "aired_to": lambda: format_fuzzy_date(media.end_date),
        },
    )


def merge_episodes(
    stored: Iterable[Mapping[str, Any]], provided: Iterable[Mapping[str, Any]]
) -> list[dict[str, Any]]:
    """Overlay provider episodes on stored ones matched by (season, number).

    Stored ids and playable URLs survive the merge; stored episodes the
    provider does not list are kept.
    """

    stored_list = [dict(ep) for ep in stored]
    by_key = {(ep.get("season_number", 1), ep.get("episode_number")): ep for ep in stored_list}
    merged: list[dict[str, Any]] = []
    seen_keys: set[tuple[Any, Any]] = set()
    for episode in provided:
        key = (episode.get("season_number", 1), episode.get("episode_number"))
        if key in seen_keys:
            continue
        seen_keys.add(key)
        existing = by_key.get(key)
        if existing is None:
            merged.append(dict(episode))
            continue
        combined = {**existing, **{k: v for k, v in episode.items() if not is_absent(v)}}
        combined["id"] = existing["id"]
        combined["url"] = existing.get("url")
        merged.append(combined)

    merged.extend(ep for key, ep in by_key.items() if key not in seen_keys)
    merged.sort(key=lambda ep: (ep.get("season_number", 1), ep.get("episode_number") or 0))

    ids: set[str] = set()
    unique: list[dict[str, Any]] = []
    for episode in merged:
        if episode["id"] in ids:
            continue
        ids.add(episode["id"])
        unique.append(episode)
    return unique


def apply_precedence(stored: Mapping[str, Any], *overlays: Mapping[str, Any]) -> dict[str, Any]:
    """Apply provider overlays in order; later overlays win, absent values never do."""

    merged = dict(stored)
    for overlay in overlays:
        for field, value in overlay.items():
            if is_absent(value):
                continue
            if field == "episodes":
                merged[field] = merge_episodes(merged.get("episodes") or [], value)
            else:
                merged[field] = value
    return merged


class MetadataMerger:
    """Enrich a stored record with TMDB and AniList metadata.

    Providers are queried concurrently with independent timeouts. Any provider
    failure is logged and only costs that provider's fields.
    """

    def __init__(
        self,
        *,
        tmdb: TmdbClient | None = None,
        anilist: AniListClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._tmdb = tmdb
        self._anilist = anilist
        self._timeout = timeout

    async def enrich(
        self,
        record: CatalogRecord,
        tmdb_id: str | None = None,
        anilist_id: int | None = None,
    ) -> CatalogRecord:
        tmdb_id = tmdb_id or record.tmdb_id
        anilist_id = anilist_id or record.anilist_id
        if not tmdb_id and not anilist_id:
            return record

        media_kind: MediaKind = "movie" if record.type == "Movie" else "tv"
        tmdb_overlay, anilist_overlay = await asyncio.gather(
            self._guarded("tmdb", record.id, self._tmdb_overlay(tmdb_id, media_kind)),
            self._guarded("anilist", record.id, self._anilist_overlay(anilist_id)),
        )

        stored = record.model_dump()
        merged = apply_precedence(stored, tmdb_overlay, anilist_overlay)
        return _validate_merged(merged, stored, record)

    async def _tmdb_overlay(self, tmdb_id: str | None, media_kind: MediaKind) -> dict[str, Any]:
        if self._tmdb is None or not tmdb_id:
            return {}
        details = await self._tmdb.fetch_details(tmdb_id, media_kind)
        return tmdb_fields(details, self._tmdb) if details else {}

    async def _anilist_overlay(self, anilist_id: int | None) -> dict[str, Any]:
        if self._anilist is None or not anilist_id:
            return {}
        media = await self._anilist.fetch_media(anilist_id)
        return anilist_fields(media) if media else {}

    async def _guarded(self, provider: str, record_id: str, call) -> dict[str, Any]:
        try:
            return await asyncio.wait_for(call, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("%s lookup for %s timed out after %.1fs", provider, record_id, self._timeout)
        except ProviderError as exc:
            logger.warning("%s lookup for %s failed: %s", provider, record_id, exc.message)
        except Exception as exc:
            logger.warning("Unexpected %s failure while enriching %s: %s", provider, record_id, exc)
        return {}


def _validate_merged(
    merged: dict[str, Any], stored: dict[str, Any], record: CatalogRecord
) -> CatalogRecord:
    try:
        return CatalogRecord.model_validate(merged)
    except ValidationError as exc:
        bad_fields = {error["loc"][0] for error in exc.errors() if error.get("loc")}
        logger.debug("Reverting merged fields that failed validation: %s", sorted(map(str, bad_fields)))
        for field in bad_fields:
            if field in stored:
                merged[field] = stored[field]
    try:
        return CatalogRecord.model_validate(merged)
    except ValidationError:
        return record
