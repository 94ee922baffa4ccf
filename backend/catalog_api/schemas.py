"""Pydantic models exposed by the Catalog API."""
from __future__ import annotations

from datetime import datetime
from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator

CatalogStatus = Literal[
    "Ongoing",
    "Completed",
    "Upcoming",
    "Unknown",
    "Airing",
    "NotYetAired",
    "Cancelled",
    "Hiatus",
]

CatalogType = Literal["TV", "Movie", "OVA", "ONA", "Special", "Music", "Unknown"]

CATALOG_STATUSES: tuple[str, ...] = get_args(CatalogStatus)
CATALOG_TYPES: tuple[str, ...] = get_args(CatalogType)


class HealthStatus(BaseModel):
    """Service health payload."""

    status: Literal["ok", "degraded"] = Field(default="ok")
    version: str = Field(default="0.1.0", description="Semantic version of the API service.")
    database: Literal["ok", "error"] = Field(
        default="ok", description="Connectivity of the backing document store."
    )


class ConfigModel(BaseModel):
    """Represents the persisted runtime configuration."""

    tmdb_api_key: str | None = Field(default=None, description="TMDB API key if configured.")
    enrich_on_read: bool = Field(
        default=True,
        description="Whether single-record reads merge external provider metadata.",
    )


class ConfigUpdate(BaseModel):
    """Subset of configuration fields allowed to be updated at runtime."""

    tmdb_api_key: str | None = Field(default=None)
    enrich_on_read: bool | None = Field(default=None)


class EpisodeModel(BaseModel):
    """Episode embedded in a catalog record."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    episode_number: int = Field(ge=0)
    season_number: int = Field(default=1, ge=0)
    tmdb_episode_id: int | None = None
    url: str | None = None
    thumbnail: str | None = None
    duration: str | None = None
    air_date: str | None = None
    overview: str | None = None


class StudioModel(BaseModel):
    """Production studio credited on a record."""

    id: int
    name: str
    is_main: bool = False
    is_animation_studio: bool | None = None


class VoiceActorModel(BaseModel):
    """Voice actor attached to a character credit."""

    id: int
    name: str
    native_name: str | None = None
    image: str | None = None
    language: str | None = None


class CharacterModel(BaseModel):
    """Character credit with nested voice actors."""

    id: int
    name: str
    native_name: str | None = None
    role: Literal["MAIN", "SUPPORTING", "BACKGROUND"] | None = None
    image: str | None = None
    voice_actors: list[VoiceActorModel] = Field(default_factory=list)


class CatalogRecord(BaseModel):
    """Canonical catalog entry returned to the UI and admin tooling."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    cover_image: str = ""
    banner_image: str | None = None
    year: int | None = None
    genre: list[str] = Field(default_factory=list)
    status: CatalogStatus = "Unknown"
    type: CatalogType | None = None
    synopsis: str = ""
    average_rating: float | None = Field(default=None, ge=0, le=10)
    popularity: float | None = None
    is_featured: bool | None = None
    trailer_url: str | None = None
    episodes: list[EpisodeModel] = Field(default_factory=list)
    tmdb_id: str | None = None
    anilist_id: int | None = None
    source_admin: Literal["tmdb", "manual"] | None = None
    season: str | None = None
    season_year: int | None = None
    episode_duration: int | None = None
    country_of_origin: str | None = None
    source_material: str | None = None
    studios: list[StudioModel] = Field(default_factory=list)
    characters: list[CharacterModel] = Field(default_factory=list)
    aired_from: str | None = None
    aired_to: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("episodes")
    @classmethod
    def _unique_episode_ids(cls, episodes: list[EpisodeModel]) -> list[EpisodeModel]:
        seen: set[str] = set()
        for episode in episodes:
            if episode.id in seen:
                raise ValueError(f"Duplicate episode id {episode.id!r}")
            seen.add(episode.id)
        return episodes


class CatalogRecordCreate(BaseModel):
    """Payload accepted when an administrator adds a catalog record."""

    title: str = Field(..., min_length=1)
    cover_image: str = ""
    banner_image: str | None = None
    year: int | None = Field(default=None, ge=1900, le=3000)
    genre: list[str] = Field(default_factory=list)
    status: CatalogStatus = "Unknown"
    type: CatalogType | None = None
    synopsis: str = ""
    average_rating: float | None = Field(default=None, ge=0, le=10)
    popularity: float | None = None
    is_featured: bool | None = None
    trailer_url: str | None = None
    episodes: list[EpisodeModel] = Field(default_factory=list)
    tmdb_id: str | None = None
    anilist_id: int | None = Field(default=None, gt=0)
    source_admin: Literal["tmdb", "manual"] | None = "manual"


class CatalogRecordUpdate(BaseModel):
    """Partial update for an existing record; episodes are edited separately."""

    title: str | None = Field(default=None, min_length=1)
    cover_image: str | None = None
    banner_image: str | None = None
    year: int | None = Field(default=None, ge=1900, le=3000)
    genre: list[str] | None = None
    status: CatalogStatus | None = None
    type: CatalogType | None = None
    synopsis: str | None = None
    average_rating: float | None = Field(default=None, ge=0, le=10)
    popularity: float | None = None
    is_featured: bool | None = None
    trailer_url: str | None = None
    tmdb_id: str | None = None
    anilist_id: int | None = Field(default=None, gt=0)


class EpisodeUpdate(BaseModel):
    """Partial update applied to one embedded episode."""

    title: str | None = None
    episode_number: int | None = Field(default=None, ge=0)
    season_number: int | None = Field(default=None, ge=0)
    url: str | None = None
    thumbnail: str | None = None
    duration: str | None = None
    air_date: str | None = None
    overview: str | None = None


class FeaturedUpdate(BaseModel):
    """Payload toggling the featured flag."""

    is_featured: bool


class BatchRequest(BaseModel):
    """Ordered list of record ids to resolve."""

    ids: list[str] = Field(default_factory=list)


class CountModel(BaseModel):
    """Number of records matching a filter."""

    count: int


class FacetValuesModel(BaseModel):
    """Distinct values for a facet field."""

    field: str
    values: list[str | int]


class CreatedModel(BaseModel):
    """Identifier assigned to a newly created record."""

    id: str
