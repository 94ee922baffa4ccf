"""Async client for the AniList GraphQL API."""
from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..errors import ProviderError

logger = logging.getLogger(__name__)

PROVIDER_NAME = "anilist"

MEDIA_QUERY = """
query Media($id: Int, $type: MediaType) {
  Media(id: $id, type: $type) {
    id
    idMal
    title { romaji english native userPreferred }
    bannerImage
    coverImage { extraLarge large medium color }
    description(asHtml: false)
    genres
    status
    averageScore
    popularity
    season
    seasonYear
    format
    duration
    countryOfOrigin
    source(version: 2)
    episodes
    studios { edges { isMain node { id name isAnimationStudio } } }
    trailer { id site thumbnail }
    characters(sort: [ROLE, RELEVANCE, ID], perPage: 25) {
      edges {
        role
        node { id name { full native userPreferred } image { large } }
        voiceActors(language: JAPANESE, sort: [RELEVANCE, ID]) {
          id
          name { full native userPreferred }
          image { large }
          languageV2
        }
      }
    }
    startDate { year month day }
    endDate { year month day }
  }
}
"""


class AniListModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class AniListTitle(AniListModel):
    romaji: str | None = None
    english: str | None = None
    native: str | None = None
    user_preferred: str | None = None


class AniListCoverImage(AniListModel):
    extra_large: str | None = None
    large: str | None = None
    medium: str | None = None
    color: str | None = None


class FuzzyDate(AniListModel):
    year: int | None = None
    month: int | None = None
    day: int | None = None


class AniListImage(AniListModel):
    large: str | None = None


class AniListName(AniListModel):
    full: str | None = None
    native: str | None = None
    user_preferred: str | None = None


class AniListStudio(AniListModel):
    id: int | None = None
    name: str | None = None
    is_animation_studio: bool | None = None


class AniListStudioEdge(AniListModel):
    is_main: bool = False
    node: AniListStudio | None = None


class AniListStudioConnection(AniListModel):
    edges: list[AniListStudioEdge] = Field(default_factory=list)


class AniListTrailer(AniListModel):
    id: str | None = None
    site: str | None = None
    thumbnail: str | None = None


class AniListVoiceActor(AniListModel):
    id: int | None = None
    name: AniListName | None = None
    image: AniListImage | None = None
    language_v2: str | None = None


class AniListCharacter(AniListModel):
    id: int | None = None
    name: AniListName | None = None
    image: AniListImage | None = None


class AniListCharacterEdge(AniListModel):
    role: str | None = None
    node: AniListCharacter | None = None
    voice_actors: list[AniListVoiceActor] = Field(default_factory=list)


class AniListCharacterConnection(AniListModel):
    edges: list[AniListCharacterEdge] = Field(default_factory=list)


class AniListMedia(AniListModel):
    """Subset of the ``Media`` object used for catalog enrichment."""

    id: int
    id_mal: int | None = None
    title: AniListTitle | None = None
    banner_image: str | None = None
    cover_image: AniListCoverImage | None = None
    description: str | None = None
    genres: list[str] = Field(default_factory=list)
    status: str | None = None
    average_score: int | None = None
    popularity: int | None = None
    season: str | None = None
    season_year: int | None = None
    format: str | None = None
    duration: int | None = None
    country_of_origin: str | None = None
    source: str | None = None
    episodes: int | None = None
    studios: AniListStudioConnection | None = None
    trailer: AniListTrailer | None = None
    characters: AniListCharacterConnection | None = None
    start_date: FuzzyDate | None = None
    end_date: FuzzyDate | None = None


class AniListClient:
    """Fetch anime media details by AniList id."""

    def __init__(
        self,
        *,
        endpoint: str = "https://graphql.anilist.co",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._timeout = timeout
        self._transport = transport

    async def fetch_media(self, anilist_id: int) -> AniListMedia | None:
        """Return the media for ``anilist_id`` or ``None`` when AniList has no match."""

        body = {"query": MEDIA_QUERY, "variables": {"id": anilist_id, "type": "ANIME"}}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self._endpoint, json=body, headers={"Accept": "application/json"}
                )
        except httpx.HTTPError as exc:
            raise ProviderError(PROVIDER_NAME, f"Failed to contact AniList: {exc}") from exc

        if response.status_code == 404:
            return None
        if response.is_error:
            raise ProviderError(
                PROVIDER_NAME, f"AniList responded with HTTP {response.status_code} for id {anilist_id}"
            )

        try:
            payload: dict[str, Any] = response.json()
        except ValueError as exc:
            raise ProviderError(PROVIDER_NAME, "AniList returned invalid JSON") from exc

        errors = payload.get("errors")
        if errors:
            messages = "; ".join(str(item.get("message", item)) for item in errors if isinstance(item, dict))
            raise ProviderError(PROVIDER_NAME, f"GraphQL error for id {anilist_id}: {messages or errors}")

        media = (payload.get("data") or {}).get("Media")
        if media is None:
            return None
        try:
            return AniListMedia.model_validate(media)
        except ValidationError as exc:
            raise ProviderError(PROVIDER_NAME, f"Invalid media payload for id {anilist_id}: {exc}") from exc
