# oauth2_docstore/__init__.py
"""OAuth2 client and token storage on top of a document-oriented database."""
from .settings import Settings, settings
from .oauth import (
    AbstractClientStore,
    AbstractTokenStore,
    ClientInfo,
    CollectionUnavailableError,
    ConfigurationError,
    DeserializationError,
    DocumentClientStore,
    DocumentTokenStore,
    NotFoundError,
    OAuthStoreError,
    QueryError,
    SerializationError,
    TokenInfo,
    WriteError,
    get_client_store,
    get_token_store,
)
from .storage import (
    AbstractDocumentStore,
    InMemoryDocumentStore,
    SQLiteDocumentStore,
)

__all__ = [
    "Settings",
    "settings",
    "AbstractClientStore",
    "AbstractTokenStore",
    "ClientInfo",
    "TokenInfo",
    "DocumentClientStore",
    "DocumentTokenStore",
    "get_client_store",
    "get_token_store",
    "OAuthStoreError",
    "ConfigurationError",
    "CollectionUnavailableError",
    "SerializationError",
    "DeserializationError",
    "WriteError",
    "QueryError",
    "NotFoundError",
    "AbstractDocumentStore",
    "InMemoryDocumentStore",
    "SQLiteDocumentStore",
]
