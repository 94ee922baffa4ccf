"""Router exports for the Catalog API."""
from . import admin, catalog, config, health

__all__ = ["admin", "catalog", "config", "health"]
