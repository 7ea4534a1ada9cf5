# tests/conftest.py
import logging
from datetime import timedelta

import pytest

from oauth2_docstore.oauth.client_store import DocumentClientStore
from oauth2_docstore.oauth.models import ClientInfo, TokenInfo
from oauth2_docstore.oauth.token_store import DocumentTokenStore

from doubles import T0, CountingDocumentStore, make_token

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s - %(name)s - [%(levelname)s] - %(message)s",
)


@pytest.fixture
def database() -> CountingDocumentStore:
    return CountingDocumentStore()


@pytest.fixture
def client_store(database) -> DocumentClientStore:
    return DocumentClientStore(database=database)


@pytest.fixture
def token_store(database) -> DocumentTokenStore:
    return DocumentTokenStore(database=database)


@pytest.fixture
def sample_client() -> ClientInfo:
    return ClientInfo(id="c1", secret="s", domain="d")


@pytest.fixture
def code_token() -> TokenInfo:
    return make_token(
        redirect_uri="https://client.example/cb",
        code="test-code",
        code_challenge="challenge",
        code_challenge_method="S256",
        code_create_at=T0,
        code_expires_in=timedelta(seconds=10),
    )


@pytest.fixture
def access_refresh_token() -> TokenInfo:
    return make_token(
        access="test-access-token",
        access_create_at=T0,
        access_expires_in=timedelta(hours=1),
        refresh="test-refresh-token",
        refresh_create_at=T0 + timedelta(seconds=5),
        refresh_expires_in=timedelta(days=30),
    )
