# oauth2_docstore/oauth/base_store.py
import logging
from typing import Optional

from ..settings import Settings
from ..storage.document_store import AbstractCollection, AbstractDocumentStore, DocumentStoreError
from .errors import CollectionUnavailableError, ConfigurationError

logger = logging.getLogger(__name__)


class DocumentBackedStore:
    """
    Shared configuration for stores persisted in one document collection.

    `database` is required. `collection` falls back to the class default when
    omitted, but an explicitly empty name is rejected.
    """
    DEFAULT_COLLECTION: str = ""
    SETTINGS_COLLECTION_FIELD: str = ""

    def __init__(
        self,
        database: Optional[AbstractDocumentStore] = None,
        collection: Optional[str] = None
    ):
        if database is None:
            raise ConfigurationError("A document database handle is required.")
        if collection is None:
            collection = self.DEFAULT_COLLECTION
        if not collection:
            raise ConfigurationError("Collection name must not be empty.")

        self.db = database
        self.collection = collection
        logger.debug(f"{type(self).__name__} configured with collection '{self.collection}'.")

    @classmethod
    def from_settings(cls, database: AbstractDocumentStore, settings: Settings):
        """Build the store using the collection configured in `settings`."""
        return cls(database=database, collection=getattr(settings, cls.SETTINGS_COLLECTION_FIELD))

    async def initialize(self) -> None:
        """Ensure the backing collection exists."""
        try:
            await self.db.ensure_collection(self.collection)
        except DocumentStoreError as e:
            logger.error(
                f"{type(self).__name__}: cannot ensure collection '{self.collection}': {e}",
                exc_info=True
            )
            raise CollectionUnavailableError(
                f"Collection '{self.collection}' could not be created."
            ) from e
        logger.info(f"{type(self).__name__} initialized (collection '{self.collection}').")

    async def teardown(self) -> None:
        """The database handle is owned by the caller, so nothing is released here."""
        logger.info(f"{type(self).__name__} teardown (database managed by caller).")

    async def _resolve_collection(self) -> AbstractCollection:
        try:
            return await self.db.resolve_collection(self.collection)
        except DocumentStoreError as e:
            logger.error(
                f"{type(self).__name__}: collection '{self.collection}' unavailable: {e}",
                exc_info=True
            )
            raise CollectionUnavailableError(
                f"Collection '{self.collection}' could not be resolved."
            ) from e

    def __repr__(self) -> str:
        return f"{type(self).__name__}(collection={self.collection!r})"
