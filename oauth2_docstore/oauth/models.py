# oauth2_docstore/oauth/models.py
import base64
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from typing import Any, Dict, Optional
from datetime import datetime, timedelta


def _expires_at(create_at: Optional[datetime], expires_in: timedelta) -> Optional[datetime]:
    if create_at is None:
        return None
    return create_at + expires_in


class ClientInfo(BaseModel):
    """A registered OAuth2 client application."""
    id: str = Field(description="The client identifier.")
    secret: str = ""
    domain: str = Field(default="", description="The redirect domain registered for the client.")
    public: bool = False
    user_id: str = ""


class TokenInfo(BaseModel):
    """
    Token grant data handed to the store by the authorization server.

    A single grant may carry an authorization code, an access token and a
    refresh token at once, each with its own creation time and lifetime.
    """
    client_id: str = ""
    user_id: str = ""
    redirect_uri: str = ""
    scope: str = ""

    code: str = ""
    code_challenge: str = ""
    code_challenge_method: str = ""
    code_create_at: Optional[datetime] = None
    code_expires_in: timedelta = timedelta(0)

    access: str = ""
    access_create_at: Optional[datetime] = None
    access_expires_in: timedelta = timedelta(0)

    refresh: str = ""
    refresh_create_at: Optional[datetime] = None
    refresh_expires_in: timedelta = timedelta(0)

    def code_expires_at(self) -> Optional[datetime]:
        return _expires_at(self.code_create_at, self.code_expires_in)

    def access_expires_at(self) -> Optional[datetime]:
        return _expires_at(self.access_create_at, self.access_expires_in)

    def refresh_expires_at(self) -> Optional[datetime]:
        return _expires_at(self.refresh_create_at, self.refresh_expires_in)


class _StoredRecord(BaseModel):
    """Envelope persisted as one document: indexed fields plus an opaque payload."""
    model_config = ConfigDict(populate_by_name=True)

    # Payload bytes travel as base64 text inside the JSON document
    @field_serializer("data", check_fields=False)
    def _encode_data(self, data: bytes) -> str:
        return base64.b64encode(data).decode("ascii")

    @field_validator("data", mode="before", check_fields=False)
    @classmethod
    def _decode_data(cls, value: Any) -> Any:
        if isinstance(value, str):
            return base64.b64decode(value, validate=True)
        return value

    def to_document(self) -> Dict[str, Any]:
        exclude = {"key"} if getattr(self, "key", None) is None else None
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)


class ClientRecord(_StoredRecord):
    """Stored form of a client, keyed by the client id."""
    key: str = Field(alias="_key")
    secret: str = ""
    domain: str = ""
    data: bytes = Field(description="Serialized ClientInfo.")


class TokenRecord(_StoredRecord):
    """
    Stored form of a token grant.

    `code`, `access` and `refresh` are the queryable lookup fields; each is
    empty when the grant did not produce that credential. `expires_at` is
    advisory metadata only and is never enforced by the store.
    """
    key: Optional[str] = Field(default=None, alias="_key")
    code: str = ""
    access: str = Field(default="", alias="access_token")
    refresh: str = Field(default="", alias="refresh_token")
    data: bytes = Field(description="Serialized TokenInfo.")
    created_at: datetime
    expires_at: Optional[datetime] = None
