# oauth2_docstore/storage/__init__.py

"""Storage module initialization.

This module provides the document database capability consumed by the OAuth2
stores, together with an in-memory and an SQLite-backed implementation.
"""

from .document_store import (
    AbstractCollection,
    AbstractCursor,
    AbstractDocumentStore,
    BindParameterError,
    CollectionNotFoundError,
    CorruptDocumentError,
    CursorClosedError,
    Document,
    DocumentMeta,
    DocumentNotFoundError,
    DocumentStoreError,
    InvalidKeyError,
    NoMoreDocumentsError,
    QuerySyntaxError,
    UniqueConstraintError,
)
from .query import (
    FilterQuery,
    QueryAction,
    build_bind_vars,
    build_filter_query,
    parse_filter_query,
)
from .memory_store import InMemoryCollection, InMemoryCursor, InMemoryDocumentStore
from .sqlite_store import SQLiteCollection, SQLiteCursor, SQLiteDocumentStore

# Export public API for document storage
__all__ = [
    # Capability interface
    "AbstractCollection",
    "AbstractCursor",
    "AbstractDocumentStore",
    "Document",
    "DocumentMeta",

    # Backend errors
    "DocumentStoreError",
    "InvalidKeyError",
    "CollectionNotFoundError",
    "CorruptDocumentError",
    "DocumentNotFoundError",
    "UniqueConstraintError",
    "QuerySyntaxError",
    "BindParameterError",
    "CursorClosedError",
    "NoMoreDocumentsError",

    # Query helpers
    "FilterQuery",
    "QueryAction",
    "build_bind_vars",
    "build_filter_query",
    "parse_filter_query",

    # Implementations
    "InMemoryCollection",
    "InMemoryCursor",
    "InMemoryDocumentStore",
    "SQLiteCollection",
    "SQLiteCursor",
    "SQLiteDocumentStore",
]
