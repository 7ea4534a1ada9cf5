# oauth2_docstore/oauth/errors.py
from typing import Optional


class OAuthStoreError(Exception):
    """Base class for errors raised by the OAuth2 client and token stores.

    Errors coming from the document store are chained as `__cause__`, so the
    underlying failure is always available to the caller unchanged.
    """

    default_detail = "OAuth2 store operation failed."

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ConfigurationError(OAuthStoreError):
    """
    The store was constructed without a database handle, or with an
    explicitly empty collection name.
    """

    default_detail = "Invalid store configuration."


class CollectionUnavailableError(OAuthStoreError):
    """The configured collection could not be resolved."""

    default_detail = "Backing collection is unavailable."


class SerializationError(OAuthStoreError):
    """The domain entity could not be encoded into a payload."""

    default_detail = "Failed to serialize entity payload."


class DeserializationError(OAuthStoreError):
    """
    A stored document or its payload could not be decoded.

    Distinct from NotFoundError: the record exists but is corrupt, so the
    caller should fail hard rather than issue a new credential.
    """

    default_detail = "Failed to deserialize stored record."


class WriteError(OAuthStoreError):
    """Creating the document failed, including duplicate key conflicts."""

    default_detail = "Failed to write record."


class QueryError(OAuthStoreError):
    """Executing a lookup or removal query, or draining its cursor, failed."""

    default_detail = "Query execution failed."


class NotFoundError(OAuthStoreError):
    """No record exists for the given key."""

    default_detail = "Record not found."
