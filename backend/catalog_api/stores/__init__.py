"""Persistence layer for catalog documents and runtime configuration."""

from .config_store import ConfigStore
from .document_store import DocumentStore, FieldPredicate, SortKey, describe_query
from .sql_document_store import SqlDocumentStore

__all__ = [
    "ConfigStore",
    "DocumentStore",
    "FieldPredicate",
    "SortKey",
    "SqlDocumentStore",
    "describe_query",
]
