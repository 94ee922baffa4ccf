"""Catalog query, aggregation and enrichment core."""

from .admin import CatalogAdmin
from .batch import BatchIdResolver
from .executor import IndexFallbackExecutor
from .merger import MetadataMerger
from .query_builder import CatalogQuery, QueryBuilder, QueryFilter
from .service import CatalogService

__all__ = [
    "BatchIdResolver",
    "CatalogAdmin",
    "CatalogQuery",
    "CatalogService",
    "IndexFallbackExecutor",
    "MetadataMerger",
    "QueryBuilder",
    "QueryFilter",
]
