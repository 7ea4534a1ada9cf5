# tests/test_token_store.py
import base64
import logging
from datetime import timedelta

import pytest
from pydantic import ConfigDict

from oauth2_docstore.oauth import token_store as token_store_module
from oauth2_docstore.oauth.errors import (
    CollectionUnavailableError,
    ConfigurationError,
    DeserializationError,
    NotFoundError,
    QueryError,
    SerializationError,
    WriteError,
)
from oauth2_docstore.oauth.models import TokenInfo, TokenRecord
from oauth2_docstore.oauth.token_store import DocumentTokenStore
from oauth2_docstore.settings import DEFAULT_TOKEN_STORE_COLLECTION, Settings
from oauth2_docstore.storage.document_store import CorruptDocumentError, DocumentStoreError
from oauth2_docstore.storage.memory_store import InMemoryDocumentStore

from doubles import T0, CountingDocumentStore, make_token

logger = logging.getLogger(__name__)


def _stored_record(database: CountingDocumentStore, index: int = -1) -> TokenRecord:
    return TokenRecord.model_validate(database.stored_documents()[index])


# --- Construction ---

async def test_construction_requires_database():
    with pytest.raises(ConfigurationError):
        DocumentTokenStore(database=None)


async def test_construction_rejects_empty_collection(database):
    with pytest.raises(ConfigurationError):
        DocumentTokenStore(database=database, collection="")


async def test_default_collection(database):
    store = DocumentTokenStore(database=database)
    assert store.collection == DEFAULT_TOKEN_STORE_COLLECTION
    assert store.db is database


async def test_from_settings_uses_configured_collection(database):
    store = DocumentTokenStore.from_settings(database, Settings(oauth2_token_collection="grants"))
    assert store.collection == "grants"


async def test_initialize_creates_collection():
    database = InMemoryDocumentStore()
    store = DocumentTokenStore(database=database)
    await store.initialize()
    collection = await database.resolve_collection(DEFAULT_TOKEN_STORE_COLLECTION)
    assert collection.name == DEFAULT_TOKEN_STORE_COLLECTION


async def test_create_without_collection_fails():
    store = DocumentTokenStore(database=InMemoryDocumentStore())
    with pytest.raises(CollectionUnavailableError):
        await store.create(make_token(access="A1"))


# --- Round trips ---

async def test_access_token_scenario(token_store):
    token = make_token(access="A1", access_create_at=T0, access_expires_in=timedelta(seconds=10))
    await token_store.create(token)

    found = await token_store.get_by_access("A1")
    logger.info(f"Loaded token: {found}")
    assert found.access == "A1", "Access token should survive the round trip"
    assert found == token, "Loaded token should deep-equal the stored one"

    with pytest.raises(NotFoundError):
        await token_store.get_by_access("nope")


async def test_code_round_trip(token_store, code_token):
    await token_store.create(code_token)

    found = await token_store.get_by_code("test-code")
    assert found == code_token
    assert found.code_challenge == "challenge"
    assert found.code_expires_in == timedelta(seconds=10)

    # A code-only grant is not reachable through the other lookups
    with pytest.raises(NotFoundError):
        await token_store.get_by_access("test-code")
    with pytest.raises(NotFoundError):
        await token_store.get_by_refresh("test-code")


async def test_access_and_refresh_lookups_return_same_grant(token_store, access_refresh_token):
    await token_store.create(access_refresh_token)

    by_access = await token_store.get_by_access("test-access-token")
    by_refresh = await token_store.get_by_refresh("test-refresh-token")
    assert by_access == access_refresh_token
    assert by_refresh == access_refresh_token


async def test_stored_document_layout(token_store, database, access_refresh_token, monkeypatch):
    monkeypatch.setattr(token_store_module, "_utcnow", lambda: T0)
    await token_store.create(access_refresh_token)

    documents = database.stored_documents()
    assert len(documents) == 1
    document = documents[0]
    logger.info(f"Stored token document: {document}")
    assert document["access_token"] == "test-access-token"
    assert document["refresh_token"] == "test-refresh-token"
    assert document["code"] == ""
    assert isinstance(document["data"], str), "Payload should be stored as base64 text"
    assert "_key" in document and document["_key"], "Backend should assign a key"

    payload = base64.b64decode(document["data"])
    assert TokenInfo.model_validate_json(payload) == access_refresh_token

    record = TokenRecord.model_validate(document)
    assert record.created_at == T0


# --- Expiry derivation ---

async def test_code_grant_expiry(token_store, database, code_token):
    await token_store.create(code_token)
    record = _stored_record(database)
    assert record.code == "test-code"
    assert record.expires_at == T0 + timedelta(seconds=10)


async def test_access_grant_expiry(token_store, database):
    await token_store.create(
        make_token(access="A1", access_create_at=T0, access_expires_in=timedelta(hours=1))
    )
    record = _stored_record(database)
    assert record.access == "A1"
    assert record.refresh == ""
    assert record.expires_at == T0 + timedelta(hours=1)


async def test_refresh_expiry_overrides_access_expiry(token_store, database, access_refresh_token):
    await token_store.create(access_refresh_token)
    record = _stored_record(database)
    assert record.expires_at == T0 + timedelta(seconds=5) + timedelta(days=30), \
        "A record with access and refresh should carry the refresh expiry"


async def test_refresh_expiry_overrides_code_expiry(token_store, database):
    await token_store.create(make_token(
        code="C1", code_create_at=T0, code_expires_in=timedelta(seconds=10),
        refresh="R1", refresh_create_at=T0, refresh_expires_in=timedelta(days=1),
    ))
    record = _stored_record(database)
    assert record.code == "C1"
    assert record.refresh == "R1"
    assert record.expires_at == T0 + timedelta(days=1)


async def test_code_grant_does_not_index_access(token_store, database):
    token = make_token(
        code="C1", code_create_at=T0, code_expires_in=timedelta(seconds=10),
        access="A1", access_create_at=T0, access_expires_in=timedelta(hours=1),
    )
    await token_store.create(token)

    record = _stored_record(database)
    assert record.access == "", "Access token is only indexed when no code is present"
    assert record.expires_at == T0 + timedelta(seconds=10)

    assert await token_store.get_by_code("C1") == token
    with pytest.raises(NotFoundError):
        await token_store.get_by_access("A1")


async def test_grant_without_timestamps_has_no_expiry(token_store, database):
    await token_store.create(make_token(access="A1"))
    assert _stored_record(database).expires_at is None


async def test_created_at_is_assigned_at_save(token_store, database, monkeypatch):
    saved_at = T0 + timedelta(minutes=3)
    monkeypatch.setattr(token_store_module, "_utcnow", lambda: saved_at)
    await token_store.create(make_token(access="A1"))
    assert _stored_record(database).created_at == saved_at


# --- Removal ---

async def test_remove_by_code(token_store, code_token):
    await token_store.create(code_token)
    await token_store.remove_by_code("test-code")
    with pytest.raises(NotFoundError):
        await token_store.get_by_code("test-code")


async def test_remove_by_access(token_store, access_refresh_token):
    await token_store.create(access_refresh_token)
    await token_store.remove_by_access("test-access-token")

    with pytest.raises(NotFoundError):
        await token_store.get_by_access("test-access-token")
    # The whole record is gone, not only the access field
    with pytest.raises(NotFoundError):
        await token_store.get_by_refresh("test-refresh-token")


async def test_remove_by_refresh(token_store, access_refresh_token):
    await token_store.create(access_refresh_token)
    await token_store.remove_by_refresh("test-refresh-token")
    with pytest.raises(NotFoundError):
        await token_store.get_by_access("test-access-token")


async def test_remove_nonexistent_value_succeeds(token_store, database):
    await token_store.create(make_token(access="A1"))
    await token_store.remove_by_access("never-issued")

    with pytest.raises(NotFoundError):
        await token_store.get_by_access("never-issued")
    assert await token_store.get_by_access("A1"), "Unrelated records must survive"
    database.assert_cursors_closed_once()


async def test_remove_deletes_all_duplicates(token_store, database):
    await token_store.create(make_token(access="dup", scope="first"))
    await token_store.create(make_token(access="dup", scope="second"))
    await token_store.remove_by_access("dup")
    assert database.stored_documents() == []


async def test_rotation_is_remove_then_create(token_store):
    await token_store.create(make_token(access="old", refresh="R1"))
    await token_store.remove_by_refresh("R1")
    await token_store.create(make_token(access="new", refresh="R2"))

    assert (await token_store.get_by_refresh("R2")).access == "new"
    with pytest.raises(NotFoundError):
        await token_store.get_by_access("old")


# --- Duplicates and empty values ---

async def test_duplicate_lookup_returns_last_record(token_store):
    await token_store.create(make_token(access="dup", scope="first"))
    await token_store.create(make_token(access="dup", scope="second"))

    found = await token_store.get_by_access("dup")
    assert found.scope == "second", "In-memory cursors yield insertion order, so the last record wins"


@pytest.mark.parametrize("lookup", ["get_by_code", "get_by_access", "get_by_refresh"])
async def test_empty_value_lookup_is_not_found(token_store, database, lookup):
    # A stored record with an empty code must not match an empty lookup
    await token_store.create(make_token(access="A1"))
    with pytest.raises(NotFoundError):
        await getattr(token_store, lookup)("")
    assert database.queries == [], "Empty lookups should not reach the database"


@pytest.mark.parametrize("remove", ["remove_by_code", "remove_by_access", "remove_by_refresh"])
async def test_empty_value_remove_is_noop(token_store, database, remove):
    await token_store.create(make_token(access="A1"))
    await getattr(token_store, remove)("")
    assert len(database.stored_documents()) == 1
    assert database.cursors == [], "Empty removals should not open a cursor"


# --- Query shape ---

async def test_lookup_uses_bind_variables(token_store, database):
    secret_value = "A1' || true"
    await token_store.create(make_token(access=secret_value))
    await token_store.get_by_access(secret_value)

    query, bind_vars = database.queries[-1]
    logger.info(f"Lookup query: {query} {bind_vars}")
    assert secret_value not in query, "Values must never be interpolated into the query text"
    assert bind_vars["@collection"] == DEFAULT_TOKEN_STORE_COLLECTION
    assert bind_vars["access_token"] == secret_value
    assert "RETURN" in query


async def test_remove_query_shape(token_store, database):
    await token_store.remove_by_refresh("R1")
    query, bind_vars = database.queries[-1]
    assert "REMOVE" in query
    assert bind_vars == {"@collection": DEFAULT_TOKEN_STORE_COLLECTION, "refresh_token": "R1"}


async def test_custom_collection_is_bound(database):
    await database.ensure_collection("grants")
    store = DocumentTokenStore(database=database, collection="grants")
    await store.create(make_token(code="C1"))
    assert (await store.get_by_code("C1")).code == "C1"
    assert database.queries[-1][1]["@collection"] == "grants"


# --- Cursor lifecycle ---

async def test_cursor_closed_after_successful_lookup(token_store, database, code_token):
    await token_store.create(code_token)
    await token_store.get_by_code("test-code")
    assert len(database.cursors) == 1
    database.assert_cursors_closed_once()


async def test_cursor_closed_after_empty_lookup(token_store, database):
    with pytest.raises(NotFoundError):
        await token_store.get_by_code("missing")
    assert len(database.cursors) == 1
    database.assert_cursors_closed_once()


async def test_cursor_closed_after_remove(token_store, database, code_token):
    await token_store.create(code_token)
    await token_store.remove_by_code("test-code")
    assert len(database.cursors) == 1
    database.assert_cursors_closed_once()


async def test_cursor_read_failure_is_query_error(token_store, database, code_token):
    await token_store.create(code_token)
    database.fail_next = True

    with pytest.raises(QueryError) as exc_info:
        await token_store.get_by_code("test-code")
    assert isinstance(exc_info.value.__cause__, DocumentStoreError)
    database.assert_cursors_closed_once()


async def test_close_failure_does_not_mask_read_failure(token_store, database, code_token):
    await token_store.create(code_token)
    database.fail_next = True
    database.fail_close = True

    with pytest.raises(QueryError) as exc_info:
        await token_store.get_by_code("test-code")
    assert "injected cursor read failure" in str(exc_info.value.__cause__)
    database.assert_cursors_closed_once()


async def test_close_failure_after_success_is_query_error(token_store, database, code_token):
    await token_store.create(code_token)
    database.fail_close = True

    with pytest.raises(QueryError):
        await token_store.get_by_code("test-code")
    database.assert_cursors_closed_once()


async def test_query_failure_opens_no_cursor(token_store, database):
    database.fail_query = True
    with pytest.raises(QueryError):
        await token_store.get_by_access("A1")
    with pytest.raises(QueryError):
        await token_store.remove_by_access("A1")
    assert database.cursors == []


async def test_query_against_missing_collection_is_query_error():
    store = DocumentTokenStore(database=InMemoryDocumentStore())
    with pytest.raises(QueryError):
        await store.get_by_code("C1")
    with pytest.raises(QueryError):
        await store.remove_by_code("C1")


# --- Encoding failures ---

async def test_unserializable_token_is_serialization_error(token_store, database):
    class LooseTokenInfo(TokenInfo):
        model_config = ConfigDict(extra="allow")

    token = LooseTokenInfo(access="A1", opaque=object())
    with pytest.raises(SerializationError):
        await token_store.create(token)
    assert database.stored_documents() == [], "Nothing should be written"


async def test_write_failure_is_write_error(token_store, database):
    database.fail_writes = True
    with pytest.raises(WriteError) as exc_info:
        await token_store.create(make_token(access="A1"))
    assert isinstance(exc_info.value.__cause__, DocumentStoreError)


async def test_malformed_payload_is_deserialization_error(token_store, database):
    collection = await database.resolve_collection(DEFAULT_TOKEN_STORE_COLLECTION)
    await collection.create_document({
        "access_token": "A1",
        "data": base64.b64encode(b"not json").decode("ascii"),
        "created_at": T0.isoformat(),
    })

    with pytest.raises(DeserializationError):
        await token_store.get_by_access("A1")
    database.assert_cursors_closed_once()


async def test_malformed_document_is_deserialization_error(token_store, database):
    collection = await database.resolve_collection(DEFAULT_TOKEN_STORE_COLLECTION)
    await collection.create_document({"access_token": "A1", "data": "%%% not base64 %%%"})

    with pytest.raises(DeserializationError):
        await token_store.get_by_access("A1")
    assert len(database.cursors) == 1
    database.assert_cursors_closed_once()


async def test_corrupt_document_read_is_deserialization_error(token_store, database, code_token):
    await token_store.create(code_token)
    database.fail_next = True
    database.next_error = CorruptDocumentError("stored document is not valid JSON")

    with pytest.raises(DeserializationError) as exc_info:
        await token_store.get_by_code("test-code")
    assert isinstance(exc_info.value.__cause__, CorruptDocumentError)
    database.assert_cursors_closed_once()
