# oauth2_docstore/storage/memory_store.py
import copy
import logging
from typing import Any, Dict, Iterable, List, Mapping
from uuid import uuid4

from .document_store import (
    AbstractCollection,
    AbstractCursor,
    AbstractDocumentStore,
    CollectionNotFoundError,
    CursorClosedError,
    NoMoreDocumentsError,
    Document,
    DocumentMeta,
    DocumentNotFoundError,
    UniqueConstraintError,
    resolve_document_key,
)
from .query import QueryAction, parse_filter_query

logger = logging.getLogger(__name__)


class InMemoryCursor(AbstractCursor):
    """Cursor over a materialized list of documents."""

    def __init__(self, documents: List[Document]):
        self._documents = documents
        self._position = 0
        self.closed = False

    def has_more(self) -> bool:
        return not self.closed and self._position < len(self._documents)

    async def next(self) -> Document:
        if self.closed:
            raise CursorClosedError("Cursor is closed.")
        if self._position >= len(self._documents):
            raise NoMoreDocumentsError("Cursor has no more documents.")
        document = self._documents[self._position]
        self._position += 1
        return document

    async def close(self) -> None:
        self.closed = True


class InMemoryCollection(AbstractCollection):
    """Insertion-ordered collection of documents keyed by `_key`."""

    def __init__(self, name: str):
        self._name = name
        self.documents: Dict[str, Document] = {}

    @property
    def name(self) -> str:
        return self._name

    async def create_document(self, document: Mapping[str, Any]) -> DocumentMeta:
        stored = copy.deepcopy(dict(document))
        key = resolve_document_key(stored, lambda: uuid4().hex)
        if key in self.documents:
            raise UniqueConstraintError(
                f"Unique constraint violated in collection '{self._name}' for key '{key}'."
            )
        stored["_key"] = key
        self.documents[key] = stored
        return DocumentMeta(key=key, id=f"{self._name}/{key}")

    async def read_document(self, key: str) -> Document:
        try:
            return copy.deepcopy(self.documents[key])
        except KeyError:
            raise DocumentNotFoundError(
                f"Document '{key}' not found in collection '{self._name}'."
            ) from None


class InMemoryDocumentStore(AbstractDocumentStore):
    """
    Dict-backed document store.

    Serves as the test double for the database capability and as an embedded
    backend for single-process deployments. Collections must be created (via
    `ensure_collection` or the `collections` argument) before they resolve.
    """

    def __init__(self, collections: Iterable[str] = ()):
        self._collections: Dict[str, InMemoryCollection] = {}
        for name in collections:
            self._collections[name] = InMemoryCollection(name)

    async def resolve_collection(self, name: str) -> InMemoryCollection:
        try:
            return self._collections[name]
        except KeyError:
            raise CollectionNotFoundError(f"Collection '{name}' not found.") from None

    async def ensure_collection(self, name: str) -> InMemoryCollection:
        if name not in self._collections:
            self._collections[name] = InMemoryCollection(name)
            logger.info(f"InMemoryDocumentStore: created collection '{name}'.")
        return self._collections[name]

    async def execute_query(self, query: str, bind_vars: Mapping[str, Any]) -> InMemoryCursor:
        bound = parse_filter_query(query).bind(bind_vars)
        collection = await self.resolve_collection(bound.collection)
        matched_keys = [
            key for key, document in collection.documents.items()
            if bound.matches(document)
        ]
        if bound.query.action is QueryAction.REMOVE:
            for key in matched_keys:
                del collection.documents[key]
            logger.debug(
                f"InMemoryDocumentStore: removed {len(matched_keys)} document(s) "
                f"from '{bound.collection}'."
            )
            return InMemoryCursor([])
        return InMemoryCursor([copy.deepcopy(collection.documents[key]) for key in matched_keys])
