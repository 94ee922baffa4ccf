"""FastAPI dependencies for the Catalog API."""
from fastapi import Depends, Request

from .catalog import CatalogAdmin, CatalogService
from .state import AppState
from .stores.config_store import ConfigStore
from .stores.sql_document_store import SqlDocumentStore


def get_app_state(request: Request) -> AppState:
    """Resolve the shared application state from the FastAPI request."""
    return request.app.state.app_state


def get_config_store(app_state: AppState = Depends(get_app_state)) -> ConfigStore:
    """Return the configuration store dependency."""
    return app_state.config_store


def get_document_store(app_state: AppState = Depends(get_app_state)) -> SqlDocumentStore:
    return app_state.document_store


def get_catalog_service(app_state: AppState = Depends(get_app_state)) -> CatalogService:
    """Return a catalog facade bound to the current runtime configuration."""
    return app_state.catalog_service()


def get_catalog_admin(app_state: AppState = Depends(get_app_state)) -> CatalogAdmin:
    return app_state.catalog_admin()
