"""Application factory for the AnimeVerse Catalog API."""
import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import admin, catalog, config, health
from .settings import CatalogSettings
from .state import AppState


def create_app(
    settings: CatalogSettings | None = None,
    *,
    provider_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application."""

    resolved_settings = settings or CatalogSettings()
    app_state = AppState(settings=resolved_settings, provider_transport=provider_transport)

    app = FastAPI(title="AnimeVerse Catalog API", version="0.1.0")
    app.state.app_state = app_state
    app.state.settings = app_state.settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in (
        health.router,
        config.router,
        catalog.router,
        admin.router,
    ):
        app.include_router(router)

    return app
