"""Database models for the Catalog API."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel


class ConfigRecord(SQLModel, table=True):
    """Persisted configuration row for runtime catalog settings."""

    __tablename__ = "catalog_config"

    id: int | None = Field(default=None, primary_key=True)
    tmdb_api_key: str | None = Field(default=None)
    enrich_on_read: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class CatalogDocumentRecord(SQLModel, table=True):
    """Catalog document with denormalised columns for predicate queries."""

    __tablename__ = "catalog_documents"

    id: str = Field(primary_key=True, index=True)
    title: str = Field(index=True)
    type: str | None = Field(default=None, index=True)
    status: str | None = Field(default=None, index=True)
    year: int | None = Field(default=None, index=True)
    is_featured: bool | None = Field(default=None, index=True)
    popularity: float | None = Field(default=None, index=True)
    average_rating: float | None = Field(default=None, index=True)
    genre_tokens: str = Field(default="", index=True)
    data: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False, index=True)
