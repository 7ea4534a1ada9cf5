# oauth2_docstore/storage/document_store.py
"""Narrow capability interface over a document-oriented database.

The OAuth2 stores only ever talk to the database through these classes:
collection resolution by name, single-document create/read, and query
execution returning a forward-only cursor that must be closed.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


class DocumentStoreError(Exception):
    """Base class for errors raised by a document store backend."""


class CollectionNotFoundError(DocumentStoreError):
    """The named collection does not exist."""


class DocumentNotFoundError(DocumentStoreError):
    """No document exists for the requested key."""


class UniqueConstraintError(DocumentStoreError):
    """A document with the same key already exists in the collection."""


class InvalidKeyError(DocumentStoreError):
    """The supplied `_key` cannot identify a document."""


class CorruptDocumentError(DocumentStoreError):
    """A stored document could not be decoded by the backend."""


class QuerySyntaxError(DocumentStoreError):
    """The query text is not understood by the backend."""


class BindParameterError(DocumentStoreError):
    """A bind parameter referenced by the query was not supplied."""


class CursorClosedError(DocumentStoreError):
    """The cursor was read after being closed."""


class NoMoreDocumentsError(DocumentStoreError):
    """The cursor was read past its last document."""


def resolve_document_key(document: Mapping[str, Any], generate) -> str:
    """Return the document's `_key`, calling `generate()` only when it is absent or None."""
    key = document.get("_key")
    if key is None:
        return generate()
    if not isinstance(key, str) or not key:
        raise InvalidKeyError(f"Document key must be a non-empty string, got {key!r}.")
    return key


@dataclass(frozen=True)
class DocumentMeta:
    """Metadata returned by the backend for a written document."""
    key: str
    id: str
    rev: Optional[str] = None


class AbstractCursor(ABC):
    """Forward-only handle over query results; single owner, must be closed."""

    @abstractmethod
    def has_more(self) -> bool:
        """Whether another document can be read."""
        pass

    @abstractmethod
    async def next(self) -> Document:
        """Read the next document."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the server-side cursor. Closing twice is a no-op."""
        pass

    async def __aenter__(self) -> "AbstractCursor":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class AbstractCollection(ABC):
    """A named group of documents."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def create_document(self, document: Mapping[str, Any]) -> DocumentMeta:
        """Insert a new document, assigning `_key` when absent or None.

        Any other `_key` must be a non-empty string, else InvalidKeyError.
        """
        pass

    @abstractmethod
    async def read_document(self, key: str) -> Document:
        """Read a single document by key."""
        pass


class AbstractDocumentStore(ABC):
    """Handle to an already-connected document database."""

    @abstractmethod
    async def resolve_collection(self, name: str) -> AbstractCollection:
        """Return the named collection or raise CollectionNotFoundError."""
        pass

    @abstractmethod
    async def ensure_collection(self, name: str) -> AbstractCollection:
        """Return the named collection, creating it when missing."""
        pass

    @abstractmethod
    async def execute_query(self, query: str, bind_vars: Mapping[str, Any]) -> AbstractCursor:
        """Run a parameterized query and return a cursor over its results."""
        pass
