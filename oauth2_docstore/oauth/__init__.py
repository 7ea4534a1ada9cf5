# oauth2_docstore/oauth/__init__.py
# OAuth2 client and token stores persisted in a document database

# Domain entities and stored envelopes
from .models import (
    ClientInfo,
    TokenInfo,
    ClientRecord,
    TokenRecord
)

# Store error types
from .errors import (
    OAuthStoreError,
    ConfigurationError,
    CollectionUnavailableError,
    SerializationError,
    DeserializationError,
    WriteError,
    QueryError,
    NotFoundError
)

# Abstract storage interfaces expected by the authorization server
from .storage_interfaces import (
    AbstractClientStore,
    AbstractTokenStore
)

# Document database implementations and their singleton factories
from .base_store import DocumentBackedStore
from .client_store import DocumentClientStore, get_client_store
from .token_store import DocumentTokenStore, get_token_store

__all__ = [
    # Models
    "ClientInfo",
    "TokenInfo",
    "ClientRecord",
    "TokenRecord",

    # Error handling
    "OAuthStoreError",
    "ConfigurationError",
    "CollectionUnavailableError",
    "SerializationError",
    "DeserializationError",
    "WriteError",
    "QueryError",
    "NotFoundError",

    # Interfaces
    "AbstractClientStore",
    "AbstractTokenStore",

    # Implementations
    "DocumentBackedStore",
    "DocumentClientStore",
    "DocumentTokenStore",
    "get_client_store",
    "get_token_store",
]
