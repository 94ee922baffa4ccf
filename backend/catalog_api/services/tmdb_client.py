"""Async client for the TMDB v3 REST API."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import ProviderError

logger = logging.getLogger(__name__)

MediaKind = Literal["movie", "tv"]

PROVIDER_NAME = "tmdb"


class TmdbGenre(BaseModel):
    id: int
    name: str


class TmdbEpisode(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str | None = None
    episode_number: int
    season_number: int | None = None
    still_path: str | None = None
    runtime: int | None = None
    air_date: str | None = None
    overview: str | None = None


class TmdbSeasonSummary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    season_number: int
    episode_count: int | None = None


class TmdbDetails(BaseModel):
    """Normalised subset of a movie or series payload."""

    model_config = ConfigDict(extra="ignore")

    id: int
    media_kind: MediaKind
    title: str | None = None
    overview: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    release_date: str | None = None
    genres: list[TmdbGenre] = Field(default_factory=list)
    vote_average: float | None = None
    status: str | None = None
    seasons: list[TmdbSeasonSummary] = Field(default_factory=list)
    episodes: list[TmdbEpisode] = Field(default_factory=list)


class TmdbClient:
    """Fetch movie and series details, including per-season episode listings."""

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = "https://api.themoviedb.org/3",
        image_base_url: str = "https://image.tmdb.org/t/p/",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self.image_base_url = image_base_url
        self._timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def image_url(self, path: str | None, size: str) -> str | None:
        if not path:
            return None
        return f"{self.image_base_url}{size}{path}"

    async def fetch_details(self, tmdb_id: str, media_kind: MediaKind) -> TmdbDetails | None:
        """Return details for ``tmdb_id`` or ``None`` when TMDB does not know it.

        Raises :class:`ProviderError` for transport failures, unexpected HTTP
        statuses and malformed payloads.
        """

        if not self.configured:
            logger.info("TMDB API key is not configured; skipping TMDB lookup")
            return None

        async with httpx.AsyncClient(
            base_url=self._base_url, timeout=self._timeout, transport=self._transport
        ) as client:
            payload = await self._get(client, f"/{media_kind}/{tmdb_id}")
            if payload is None:
                return None

            data: dict[str, Any] = dict(payload)
            data["media_kind"] = media_kind
            if media_kind == "tv":
                data["title"] = payload.get("name")
                data["release_date"] = payload.get("first_air_date")
            try:
                details = TmdbDetails.model_validate(data)
            except ValidationError as exc:
                raise ProviderError(PROVIDER_NAME, f"Invalid payload for {media_kind} {tmdb_id}: {exc}") from exc

            if media_kind == "tv":
                details.episodes = await self._fetch_episodes(client, tmdb_id, details.seasons)
            return details

    async def _fetch_episodes(
        self,
        client: httpx.AsyncClient,
        tmdb_id: str,
        seasons: list[TmdbSeasonSummary],
    ) -> list[TmdbEpisode]:
        # Season 0 holds specials and is not imported.
        numbers = sorted({season.season_number for season in seasons if season.season_number > 0})
        payloads = await asyncio.gather(
            *(self._get(client, f"/tv/{tmdb_id}/season/{number}") for number in numbers)
        )

        episodes: list[TmdbEpisode] = []
        for number, payload in zip(numbers, payloads):
            if not payload:
                continue
            for raw in payload.get("episodes") or []:
                try:
                    episode = TmdbEpisode.model_validate(raw)
                except ValidationError:
                    logger.debug("Skipping malformed TMDB episode in season %s of %s", number, tmdb_id)
                    continue
                episode.season_number = number
                episodes.append(episode)
        return episodes

    async def _get(self, client: httpx.AsyncClient, path: str) -> dict[str, Any] | None:
        try:
            response = await client.get(path, params={"api_key": self._api_key})
        except httpx.HTTPError as exc:
            raise ProviderError(PROVIDER_NAME, f"Failed to contact TMDB: {exc}") from exc

        if response.status_code == 404:
            return None
        if response.is_error:
            raise ProviderError(PROVIDER_NAME, f"TMDB responded with HTTP {response.status_code} for {path}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError(PROVIDER_NAME, "TMDB returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise ProviderError(PROVIDER_NAME, "TMDB response must be an object")
        return payload
