# oauth2_docstore/storage/sqlite_store.py
import json
import re
import sqlite3
import logging
from pathlib import Path
from typing import Any, List, Mapping, Optional
from uuid import uuid4

from ..settings import settings
from .document_store import (
    AbstractCollection,
    AbstractCursor,
    AbstractDocumentStore,
    CollectionNotFoundError,
    CorruptDocumentError,
    CursorClosedError,
    Document,
    DocumentMeta,
    DocumentNotFoundError,
    DocumentStoreError,
    NoMoreDocumentsError,
    UniqueConstraintError,
    resolve_document_key,
)
from .query import QueryAction, parse_filter_query

logger = logging.getLogger(__name__)

_COLLECTION_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


def _validate_collection_name(name: str) -> str:
    if not isinstance(name, str) or not _COLLECTION_NAME.match(name):
        raise CollectionNotFoundError(f"Invalid collection name: {name!r}")
    return name


class SQLiteCursor(AbstractCursor):
    """Cursor over rows already fetched from SQLite."""

    def __init__(self, rows: List[sqlite3.Row]):
        self._rows = rows
        self._position = 0
        self._closed = False

    def has_more(self) -> bool:
        return not self._closed and self._position < len(self._rows)

    async def next(self) -> Document:
        if self._closed:
            raise CursorClosedError("Cursor is closed.")
        if self._position >= len(self._rows):
            raise NoMoreDocumentsError("Cursor has no more documents.")
        row = self._rows[self._position]
        self._position += 1
        try:
            return json.loads(row["document"])
        except json.JSONDecodeError as e:
            raise CorruptDocumentError(f"Stored document '{row['_key']}' is not valid JSON: {e}") from e

    async def close(self) -> None:
        self._closed = True
        self._rows = []


class SQLiteCollection(AbstractCollection):
    """A collection stored as a two-column table: `_key` plus the JSON document."""

    def __init__(self, store: "SQLiteDocumentStore", name: str):
        self._store = store
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def create_document(self, document: Mapping[str, Any]) -> DocumentMeta:
        stored = dict(document)
        key = resolve_document_key(stored, lambda: uuid4().hex)
        stored["_key"] = key
        query = f'INSERT INTO "{self._name}" (_key, document) VALUES (?, ?)'
        try:
            await self._store._execute_query(query, (key, json.dumps(stored)))
        except sqlite3.IntegrityError as e:
            raise UniqueConstraintError(
                f"Unique constraint violated in collection '{self._name}' for key '{key}'."
            ) from e
        except sqlite3.Error as e:
            raise DocumentStoreError(f"Failed to insert into '{self._name}': {e}") from e
        return DocumentMeta(key=key, id=f"{self._name}/{key}")

    async def read_document(self, key: str) -> Document:
        query = f'SELECT _key, document FROM "{self._name}" WHERE _key = ?'
        try:
            rows = await self._store._fetchall(query, (key,))
        except sqlite3.Error as e:
            raise DocumentStoreError(f"Failed to read from '{self._name}': {e}") from e
        if not rows:
            raise DocumentNotFoundError(
                f"Document '{key}' not found in collection '{self._name}'."
            )
        try:
            return json.loads(rows[0]["document"])
        except json.JSONDecodeError as e:
            raise CorruptDocumentError(f"Stored document '{key}' is not valid JSON: {e}") from e


class SQLiteDocumentStore(AbstractDocumentStore):
    """
    Document store persisted in a single SQLite file.

    Each collection is its own table; filter queries are evaluated with
    `json_extract` over the stored JSON document. The connection is opened
    lazily and shared by all collections of this store.
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or settings.sqlite_db_path
        self._connection: Optional[sqlite3.Connection] = None

    async def connect(self) -> sqlite3.Connection:
        """Get or create the SQLite connection for this store."""
        if self._connection is None:
            try:
                db_path = Path(self.db_path)
                if self.db_path != ":memory:":
                    db_path = db_path.resolve()
                    # Ensure the database directory structure exists
                    db_path.parent.mkdir(parents=True, exist_ok=True)

                logger.info(f"Connecting to SQLite document store at: {db_path}")
                # Enable thread-safe access for async callers
                self._connection = sqlite3.connect(str(db_path), check_same_thread=False)
                self._connection.row_factory = sqlite3.Row
            except sqlite3.Error as e:
                logger.error(
                    f"Error connecting to SQLite database at {self.db_path}: {e}",
                    exc_info=True
                )
                raise DocumentStoreError(f"Cannot open SQLite database: {e}") from e
        return self._connection

    async def close(self) -> None:
        """Close the SQLite connection. Safe to call when never connected."""
        if self._connection is not None:
            logger.info("Closing SQLite document store connection.")
            self._connection.close()
            self._connection = None

    async def _execute_query(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute a write query with automatic commit/rollback handling."""
        conn = await self.connect()
        cursor = conn.cursor()
        try:
            cursor.execute(query, params)
            conn.commit()
        except sqlite3.Error as e:
            logger.error(f"SQLite error executing query '{query}': {e}", exc_info=True)
            conn.rollback()
            raise
        return cursor

    async def _fetchall(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        """Execute a read query and return all rows."""
        conn = await self.connect()
        cursor = conn.cursor()
        try:
            cursor.execute(query, params)
            return cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"SQLite error during fetchall for query '{query}': {e}", exc_info=True)
            raise
        finally:
            cursor.close()

    async def _table_exists(self, name: str) -> bool:
        rows = await self._fetchall(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
        )
        return bool(rows)

    async def resolve_collection(self, name: str) -> SQLiteCollection:
        _validate_collection_name(name)
        try:
            exists = await self._table_exists(name)
        except sqlite3.Error as e:
            raise DocumentStoreError(f"Cannot inspect SQLite schema: {e}") from e
        if not exists:
            raise CollectionNotFoundError(f"Collection '{name}' not found.")
        return SQLiteCollection(self, name)

    async def ensure_collection(self, name: str) -> SQLiteCollection:
        _validate_collection_name(name)
        try:
            await self._execute_query(f'''
            CREATE TABLE IF NOT EXISTS "{name}" (
                _key TEXT PRIMARY KEY,
                document TEXT NOT NULL
            )
            ''')
        except sqlite3.Error as e:
            raise DocumentStoreError(f"Cannot create collection '{name}': {e}") from e
        logger.info(f"Ensured collection '{name}' exists.")
        return SQLiteCollection(self, name)

    async def execute_query(self, query: str, bind_vars: Mapping[str, Any]) -> SQLiteCursor:
        bound = parse_filter_query(query).bind(bind_vars)
        collection = await self.resolve_collection(bound.collection)
        # Field names are restricted to identifiers by the query grammar
        path = f"$.{bound.query.field}"
        try:
            if bound.query.action is QueryAction.REMOVE:
                cursor = await self._execute_query(
                    f'DELETE FROM "{collection.name}" WHERE json_extract(document, ?) = ?',
                    (path, bound.value),
                )
                logger.debug(
                    f"SQLiteDocumentStore: removed {cursor.rowcount} document(s) "
                    f"from '{collection.name}'."
                )
                cursor.close()
                return SQLiteCursor([])
            rows = await self._fetchall(
                f'SELECT _key, document FROM "{collection.name}" '
                f'WHERE json_extract(document, ?) = ? ORDER BY rowid',
                (path, bound.value),
            )
        except sqlite3.Error as e:
            # json_extract rejects rows whose document is not valid JSON
            if "malformed JSON" in str(e):
                raise CorruptDocumentError(
                    f"Collection '{collection.name}' holds a document that is not valid JSON: {e}"
                ) from e
            raise DocumentStoreError(f"Query against '{collection.name}' failed: {e}") from e
        return SQLiteCursor(rows)


# Global singleton instance for the configured SQLite document store
_sqlite_document_store_instance: Optional[SQLiteDocumentStore] = None


async def get_sqlite_document_store() -> SQLiteDocumentStore:
    """Get or create the singleton SQLite document store at `settings.sqlite_db_path`."""
    global _sqlite_document_store_instance
    if _sqlite_document_store_instance is None:
        _sqlite_document_store_instance = SQLiteDocumentStore(settings.sqlite_db_path)
        await _sqlite_document_store_instance.connect()
    return _sqlite_document_store_instance


async def close_sqlite_document_store() -> None:
    """Close and forget the singleton store; should be called during shutdown."""
    global _sqlite_document_store_instance
    if _sqlite_document_store_instance is not None:
        await _sqlite_document_store_instance.close()
        _sqlite_document_store_instance = None
