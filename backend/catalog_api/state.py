"""Shared state container for the Catalog API."""
from __future__ import annotations

from dataclasses import dataclass

import httpx
from sqlalchemy.engine import Engine

from .catalog import CatalogAdmin, CatalogService, MetadataMerger, QueryBuilder
from .db import create_engine_from_settings, init_database
from .settings import CatalogSettings
from .services import AniListClient, TmdbClient
from .stores.config_store import ConfigStore
from .stores.sql_document_store import SqlDocumentStore


@dataclass(slots=True)
class AppState:
    """Encapsulates application state shared across routers."""

    settings: CatalogSettings
    config_store: ConfigStore
    document_store: SqlDocumentStore
    query_builder: QueryBuilder
    engine: Engine
    provider_transport: httpx.AsyncBaseTransport | None

    def __init__(
        self,
        settings: CatalogSettings,
        *,
        provider_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.engine = create_engine_from_settings(settings)
        init_database(self.engine, settings)
        self.config_store = ConfigStore(self.engine)
        self.document_store = SqlDocumentStore(
            self.engine,
            batch_limit=settings.batch_query_limit,
            composite_indexes=settings.composite_indexes,
            enforce_indexes=settings.enforce_composite_indexes,
        )
        self.query_builder = QueryBuilder.from_settings(settings)
        self.provider_transport = provider_transport

    def metadata_merger(self) -> MetadataMerger | None:
        """Build a merger from the current runtime configuration, or ``None`` when disabled."""

        config = self.config_store.read()
        if not config.enrich_on_read:
            return None
        timeout = self.settings.provider_timeout_seconds
        return MetadataMerger(
            tmdb=TmdbClient(
                config.tmdb_api_key,
                base_url=self.settings.tmdb_base_url,
                image_base_url=self.settings.tmdb_image_base_url,
                timeout=timeout,
                transport=self.provider_transport,
            ),
            anilist=AniListClient(
                endpoint=self.settings.anilist_endpoint,
                timeout=timeout,
                transport=self.provider_transport,
            ),
            timeout=timeout,
        )

    def catalog_service(self) -> CatalogService:
        return CatalogService(
            self.document_store,
            builder=self.query_builder,
            merger=self.metadata_merger(),
            fallback_genres=self.settings.fallback_genres,
            facet_sample_size=self.settings.facet_sample_size,
            batch_limit=self.settings.batch_query_limit,
        )

    def catalog_admin(self) -> CatalogAdmin:
        return CatalogAdmin(self.document_store)
