# oauth2_docstore/oauth/storage_interfaces.py
from abc import ABC, abstractmethod

from .models import ClientInfo, TokenInfo


class AbstractClientStore(ABC):
    """Abstract base class for storing OAuth2 client registrations."""

    @abstractmethod
    async def create(self, client_info: ClientInfo) -> None:
        """Store a new client keyed by its id."""
        pass

    @abstractmethod
    async def get_by_id(self, client_id: str) -> ClientInfo:
        """Retrieve a client by id. Raises NotFoundError when absent."""
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the storage backend."""
        pass

    @abstractmethod
    async def teardown(self) -> None:
        """Clean up storage resources."""
        pass


class AbstractTokenStore(ABC):
    """Abstract base class for storing authorization codes, access and refresh tokens."""

    @abstractmethod
    async def create(self, token_info: TokenInfo) -> None:
        """Store a token grant as a single record."""
        pass

    @abstractmethod
    async def get_by_code(self, code: str) -> TokenInfo:
        """Retrieve a token grant by authorization code."""
        pass

    @abstractmethod
    async def get_by_access(self, access: str) -> TokenInfo:
        """Retrieve a token grant by access token."""
        pass

    @abstractmethod
    async def get_by_refresh(self, refresh: str) -> TokenInfo:
        """Retrieve a token grant by refresh token."""
        pass

    @abstractmethod
    async def remove_by_code(self, code: str) -> None:
        """Remove every record carrying the authorization code. Idempotent."""
        pass

    @abstractmethod
    async def remove_by_access(self, access: str) -> None:
        """Remove every record carrying the access token. Idempotent."""
        pass

    @abstractmethod
    async def remove_by_refresh(self, refresh: str) -> None:
        """Remove every record carrying the refresh token. Idempotent."""
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the storage backend."""
        pass

    @abstractmethod
    async def teardown(self) -> None:
        """Clean up storage resources."""
        pass
