# oauth2_docstore/oauth/client_store.py
import logging
from typing import Optional

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from ..settings import DEFAULT_CLIENT_STORE_COLLECTION, settings
from ..storage.document_store import CorruptDocumentError, DocumentNotFoundError, DocumentStoreError
from ..storage.sqlite_store import get_sqlite_document_store
from .base_store import DocumentBackedStore
from .errors import DeserializationError, NotFoundError, QueryError, SerializationError, WriteError
from .models import ClientInfo, ClientRecord
from .storage_interfaces import AbstractClientStore

logger = logging.getLogger(__name__)


class DocumentClientStore(DocumentBackedStore, AbstractClientStore):
    """Document database implementation of OAuth2 client storage.

    Each client is one document keyed by the client id, carrying the secret
    and domain as plain fields and the full ClientInfo as an opaque payload.
    Clients are created once and read many times; there is no update path.
    """
    DEFAULT_COLLECTION = DEFAULT_CLIENT_STORE_COLLECTION
    SETTINGS_COLLECTION_FIELD = "oauth2_client_collection"

    async def create(self, client_info: ClientInfo) -> None:
        """Save a new client. An empty or duplicate id surfaces as WriteError."""
        # The id is the document key; an empty one would be replaced by a generated key
        if not client_info.id:
            logger.error("Refusing to save a client with an empty id.")
            raise WriteError("Client id must not be empty.")

        try:
            data = client_info.model_dump_json().encode("utf-8")
        except (PydanticSerializationError, TypeError, ValueError) as e:
            logger.error(f"Error serializing client '{client_info.id}': {e}", exc_info=True)
            raise SerializationError(f"Cannot serialize client '{client_info.id}'.") from e

        collection = await self._resolve_collection()

        record = ClientRecord(
            key=client_info.id,
            secret=client_info.secret,
            domain=client_info.domain,
            data=data,
        )
        try:
            await collection.create_document(record.to_document())
        except DocumentStoreError as e:
            logger.error(f"Error writing client '{client_info.id}': {e}", exc_info=True)
            raise WriteError(f"Cannot create client '{client_info.id}'.") from e
        logger.info(f"Saved OAuth2 client '{client_info.id}'.")

    async def get_by_id(self, client_id: str) -> ClientInfo:
        """Load a client by id."""
        collection = await self._resolve_collection()

        try:
            document = await collection.read_document(client_id)
        except DocumentNotFoundError as e:
            raise NotFoundError(f"Client '{client_id}' not found.") from e
        except CorruptDocumentError as e:
            logger.error(f"Corrupt document for client '{client_id}': {e}", exc_info=True)
            raise DeserializationError(f"Stored client '{client_id}' is malformed.") from e
        except DocumentStoreError as e:
            logger.error(f"Error reading client '{client_id}': {e}", exc_info=True)
            raise QueryError(f"Cannot read client '{client_id}'.") from e

        return self._document_to_client_info(client_id, document)

    def _document_to_client_info(self, client_id: str, document: dict) -> ClientInfo:
        """Decode the stored envelope and its payload back into a ClientInfo."""
        try:
            record = ClientRecord.model_validate(document)
            return ClientInfo.model_validate_json(record.data)
        except (ValidationError, ValueError) as e:
            logger.error(f"Error deserializing client '{client_id}': {e}", exc_info=True)
            raise DeserializationError(f"Stored client '{client_id}' is malformed.") from e


# Global singleton instance
_client_store_instance: Optional[DocumentClientStore] = None


async def get_client_store() -> DocumentClientStore:
    """Get the singleton client store backed by the configured SQLite document store."""
    global _client_store_instance
    if _client_store_instance is None:
        database = await get_sqlite_document_store()
        _client_store_instance = DocumentClientStore.from_settings(database, settings)
        await _client_store_instance.initialize()
    return _client_store_instance
