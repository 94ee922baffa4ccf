"""Runtime configuration for the Catalog API."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_FALLBACK_GENRES: list[str] = [
    "Action",
    "Adventure",
    "Animation",
    "Comedy",
    "Crime",
    "Demons",
    "Drama",
    "Ecchi",
    "Family",
    "Fantasy",
    "Game",
    "Harem",
    "Historical",
    "Horror",
    "Isekai",
    "Josei",
    "Kids",
    "Magic",
    "Martial Arts",
    "Mecha",
    "Military",
    "Music",
    "Mystery",
    "Parody",
    "Police",
    "Psychological",
    "Reality",
    "Romance",
    "Samurai",
    "School",
    "Sci-Fi",
    "Seinen",
    "Shoujo",
    "Shounen",
    "Slice of Life",
    "Soap",
    "Space",
    "Sports",
    "Super Power",
    "Supernatural",
    "Talk",
    "Thriller",
    "Vampire",
    "War & Politics",
    "Western",
]

DEFAULT_COMPOSITE_INDEXES: list[str] = [
    "updated_at desc, title asc",
    "popularity desc, title asc",
    "is_featured, updated_at desc, title asc",
    "genre, updated_at desc, title asc",
    "status, updated_at desc, title asc",
    "type, popularity desc, title asc",
    "year, popularity desc, title asc",
]


class CatalogSettings(BaseSettings):
    """Environment-aware settings for the Catalog API service."""

    database_url: str = Field(
        default="sqlite:///./data/catalog.db",
        description="Connection URL for the catalog document database.",
    )
    database_echo: bool = Field(
        default=False, description="Enable SQL echo for debugging queries."
    )
    default_tmdb_api_key: str | None = Field(
        default=None, description="Optional TMDB API key used for metadata enrichment."
    )
    tmdb_base_url: str = Field(
        "https://api.themoviedb.org/3", description="Base URL of the TMDB v3 API."
    )
    tmdb_image_base_url: str = Field(
        "https://image.tmdb.org/t/p/", description="Base URL used to build TMDB image links."
    )
    anilist_endpoint: str = Field(
        "https://graphql.anilist.co", description="AniList GraphQL endpoint."
    )
    provider_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout applied to each metadata provider call."
    )
    default_page_size: int = Field(
        default=20, ge=1, description="Number of records returned when no count is requested."
    )
    unbounded_result_cap: int = Field(
        default=1000,
        ge=1,
        description="Hard cap substituted for unbounded (-1) result requests.",
    )
    search_overfetch_factor: int = Field(
        default=2, ge=1, description="Over-fetch multiplier for title prefix searches."
    )
    fallback_overfetch_factor: int = Field(
        default=5,
        ge=1,
        description="Over-fetch multiplier used by index fallback queries before client-side filtering.",
    )
    batch_query_limit: int = Field(
        default=30, ge=1, description="Maximum number of ids per batch lookup."
    )
    facet_sample_size: int = Field(
        default=500, ge=1, description="Number of documents scanned to build facet values."
    )
    enforce_composite_indexes: bool = Field(
        default=True,
        description="Reject queries that need a composite index which is not declared.",
    )
    composite_indexes: list[str] = Field(
        default_factory=lambda: list(DEFAULT_COMPOSITE_INDEXES),
        description="Composite index definitions, e.g. 'genre, updated_at desc, title asc'.",
    )
    fallback_genres: list[str] = Field(
        default_factory=lambda: list(DEFAULT_FALLBACK_GENRES),
        description="Genre vocabulary merged into facet results.",
    )
    log_level: str = Field(default="INFO", description="Root logging level.")

    model_config = SettingsConfigDict(
        env_prefix="ANIMEVERSE_",
        env_file=".env",
        env_file_encoding="utf-8",
    )
