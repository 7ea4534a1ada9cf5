# oauth2_docstore/oauth/token_store.py
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Optional

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from ..settings import DEFAULT_TOKEN_STORE_COLLECTION, settings
from ..storage.document_store import AbstractCursor, CorruptDocumentError, DocumentStoreError
from ..storage.query import QueryAction, build_bind_vars, build_filter_query
from ..storage.sqlite_store import get_sqlite_document_store
from .base_store import DocumentBackedStore
from .errors import DeserializationError, NotFoundError, QueryError, SerializationError, WriteError
from .models import TokenInfo, TokenRecord
from .storage_interfaces import AbstractTokenStore

logger = logging.getLogger(__name__)

# Document fields the lookups filter on
CODE_FIELD = "code"
ACCESS_FIELD = "access_token"
REFRESH_FIELD = "refresh_token"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentTokenStore(DocumentBackedStore, AbstractTokenStore):
    """
    Document database implementation of OAuth2 token storage.

    A grant is flattened into one TokenRecord: the code, access and refresh
    values become queryable fields and the full TokenInfo is kept as an
    opaque payload. Records are found again by any one of the three values
    and are never updated in place; rotation is remove + create by the caller.

    Uniqueness of code/access/refresh values is assumed, not enforced. When a
    lookup matches several records, the last one produced by the cursor is
    returned; the query imposes no ordering, so which duplicate wins is
    backend-defined.
    """
    DEFAULT_COLLECTION = DEFAULT_TOKEN_STORE_COLLECTION
    SETTINGS_COLLECTION_FIELD = "oauth2_token_collection"

    async def create(self, token_info: TokenInfo) -> None:
        """Save a token grant as a new record."""
        try:
            data = token_info.model_dump_json().encode("utf-8")
        except (PydanticSerializationError, TypeError, ValueError) as e:
            logger.error(f"Error serializing token for client '{token_info.client_id}': {e}", exc_info=True)
            raise SerializationError("Cannot serialize token.") from e

        record = self._build_record(token_info, data)
        collection = await self._resolve_collection()

        try:
            meta = await collection.create_document(record.to_document())
        except DocumentStoreError as e:
            logger.error(f"Error writing token record: {e}", exc_info=True)
            raise WriteError("Cannot create token record.") from e
        logger.debug(f"Saved token record '{meta.key}' for client '{token_info.client_id}'.")

    @staticmethod
    def _build_record(token_info: TokenInfo, data: bytes) -> TokenRecord:
        """
        Promote the lookup fields and derive `expires_at`.

        A code grant takes the code expiry; otherwise an access token takes the
        access expiry. A refresh token is recorded independently and its expiry
        overwrites any value set before it, so a record holding both an access
        and a refresh token carries only the refresh expiry.
        """
        record = TokenRecord(data=data, created_at=_utcnow())

        if token_info.code:
            record.code = token_info.code
            record.expires_at = token_info.code_expires_at()
        elif token_info.access:
            record.access = token_info.access
            record.expires_at = token_info.access_expires_at()

        if token_info.refresh:
            record.refresh = token_info.refresh
            record.expires_at = token_info.refresh_expires_at()

        return record

    async def get_by_code(self, code: str) -> TokenInfo:
        return await self._get_by_field(CODE_FIELD, code)

    async def get_by_access(self, access: str) -> TokenInfo:
        return await self._get_by_field(ACCESS_FIELD, access)

    async def get_by_refresh(self, refresh: str) -> TokenInfo:
        return await self._get_by_field(REFRESH_FIELD, refresh)

    async def remove_by_code(self, code: str) -> None:
        await self._remove_by_field(CODE_FIELD, code)

    async def remove_by_access(self, access: str) -> None:
        await self._remove_by_field(ACCESS_FIELD, access)

    async def remove_by_refresh(self, refresh: str) -> None:
        await self._remove_by_field(REFRESH_FIELD, refresh)

    @asynccontextmanager
    async def _open_cursor(self, query: str, bind_vars: Dict[str, Any]) -> AsyncIterator[AbstractCursor]:
        """Execute `query` and close its cursor on every exit path."""
        try:
            cursor = await self.db.execute_query(query, bind_vars)
        except CorruptDocumentError as e:
            logger.error(f"Corrupt token document hit by query '{query}': {e}", exc_info=True)
            raise DeserializationError(f"Collection '{self.collection}' holds a malformed token record.") from e
        except DocumentStoreError as e:
            logger.error(f"Error executing query '{query}': {e}", exc_info=True)
            raise QueryError(f"Query against '{self.collection}' failed.") from e

        try:
            yield cursor
        except BaseException:
            # A failure to close never replaces the error already raised
            await self._close_cursor(cursor, query, surface_errors=False)
            raise
        await self._close_cursor(cursor, query, surface_errors=True)

    async def _close_cursor(self, cursor: AbstractCursor, query: str, surface_errors: bool) -> None:
        try:
            await cursor.close()
        except DocumentStoreError as e:
            logger.error(f"Error closing cursor for query '{query}': {e}", exc_info=True)
            if surface_errors:
                raise QueryError("Failed to close query cursor.") from e

    async def _get_by_field(self, field: str, value: str) -> TokenInfo:
        # Empty means "not issued", so it never identifies a record
        if not value:
            raise NotFoundError(f"No token record for empty '{field}'.")

        query = build_filter_query(field, QueryAction.RETURN)
        bind_vars = build_bind_vars(self.collection, field, value)

        record: Optional[TokenRecord] = None
        async with self._open_cursor(query, bind_vars) as cursor:
            while cursor.has_more():
                try:
                    document = await cursor.next()
                except CorruptDocumentError as e:
                    logger.error(f"Corrupt token document found by '{field}': {e}", exc_info=True)
                    raise DeserializationError(f"Stored token record found by '{field}' is malformed.") from e
                except DocumentStoreError as e:
                    logger.error(f"Error reading token cursor for '{field}': {e}", exc_info=True)
                    raise QueryError(f"Failed to read token records by '{field}'.") from e
                record = self._document_to_record(field, document)

        if record is None:
            raise NotFoundError(f"Token record not found by '{field}'.")
        return self._record_to_token_info(field, record)

    async def _remove_by_field(self, field: str, value: str) -> None:
        if not value:
            logger.debug(f"Skipping removal by empty '{field}'.")
            return

        query = build_filter_query(field, QueryAction.REMOVE)
        bind_vars = build_bind_vars(self.collection, field, value)
        async with self._open_cursor(query, bind_vars):
            pass
        logger.debug(f"Removed token records by '{field}'.")

    def _document_to_record(self, field: str, document: Dict[str, Any]) -> TokenRecord:
        try:
            return TokenRecord.model_validate(document)
        except ValidationError as e:
            logger.error(f"Malformed token document found by '{field}': {e}", exc_info=True)
            raise DeserializationError(f"Stored token record found by '{field}' is malformed.") from e

    def _record_to_token_info(self, field: str, record: TokenRecord) -> TokenInfo:
        try:
            return TokenInfo.model_validate_json(record.data)
        except ValidationError as e:
            logger.error(f"Error deserializing token payload of record '{record.key}': {e}", exc_info=True)
            raise DeserializationError(f"Stored token payload found by '{field}' is malformed.") from e


# Global singleton instance for the token store
_token_store_instance: Optional[DocumentTokenStore] = None


async def get_token_store() -> DocumentTokenStore:
    """Get the singleton token store backed by the configured SQLite document store."""
    global _token_store_instance
    if _token_store_instance is None:
        database = await get_sqlite_document_store()
        _token_store_instance = DocumentTokenStore.from_settings(database, settings)
        await _token_store_instance.initialize()
    return _token_store_instance
