"""Account store tests — CRUD against a real SQLite file."""

import pytest
from sqlalchemy import select

from keygate.db.models import Account
from keygate.errors import BadRequestError, DuplicateKeyError, NotFoundError
from keygate.schemas.account import AccountRead


async def _create(store, user_id="alice", api_key="key-alice", email="a@x.com"):
    return await store.create(
        user_id=user_id, password_hash=f"hash-{user_id}", api_key=api_key, email=email
    )


async def _stored_hash(database, user_id):
    async with database.session_factory() as session:
        return await session.scalar(
            select(Account.password_hash).where(Account.user_id == user_id)
        )


# ═══════════════════════════════════════════════════════════
# Create / read
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_returns_view_without_hash(store):
    account = await _create(store)
    assert account == AccountRead(user_id="alice", api_key="key-alice", email="a@x.com")
    assert not hasattr(account, "password_hash")


@pytest.mark.asyncio
async def test_read_by_id_and_key(store):
    await _create(store)
    by_id = await store.read_by_id("alice")
    by_key = await store.read_by_key("key-alice")
    assert by_id == by_key
    assert by_id.email == "a@x.com"


@pytest.mark.asyncio
async def test_read_missing_raises_not_found(store):
    with pytest.raises(NotFoundError):
        await store.read_by_id("nobody")
    with pytest.raises(NotFoundError):
        await store.read_by_key("no-such-key")


@pytest.mark.asyncio
async def test_duplicate_user_id_rejected_and_original_untouched(store, database):
    await _create(store)
    with pytest.raises(DuplicateKeyError) as exc:
        await _create(store, api_key="other-key", email="evil@x.com")
    assert exc.value.field == "user_id"

    account = await store.read_by_id("alice")
    assert account.api_key == "key-alice"
    assert account.email == "a@x.com"
    assert await _stored_hash(database, "alice") == "hash-alice"


@pytest.mark.asyncio
async def test_duplicate_api_key_rejected(store):
    await _create(store)
    with pytest.raises(DuplicateKeyError) as exc:
        await _create(store, user_id="bob", api_key="key-alice")
    assert exc.value.field == "api_key"
    with pytest.raises(NotFoundError):
        await store.read_by_id("bob")


@pytest.mark.asyncio
async def test_read_all(store):
    assert await store.read_all() == []
    await _create(store)
    await _create(store, user_id="bob", api_key="key-bob", email="b@x.com")
    accounts = await store.read_all()
    assert isinstance(accounts, list)
    assert {a.user_id for a in accounts} == {"alice", "bob"}


# ═══════════════════════════════════════════════════════════
# Update
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_update_api_key_only(store, database):
    await _create(store)
    await store.update("alice", api_key="newkey")

    assert (await store.read_by_key("newkey")).user_id == "alice"
    assert await _stored_hash(database, "alice") == "hash-alice"
    with pytest.raises(NotFoundError):
        await store.read_by_key("key-alice")


@pytest.mark.asyncio
async def test_update_password_only(store, database):
    await _create(store)
    await store.update("alice", password_hash="new-hash")
    assert await _stored_hash(database, "alice") == "new-hash"
    assert (await store.read_by_id("alice")).api_key == "key-alice"


@pytest.mark.asyncio
async def test_update_both_fields(store, database):
    await _create(store)
    await store.update("alice", password_hash="new-hash", api_key="newkey")
    assert await _stored_hash(database, "alice") == "new-hash"
    assert (await store.read_by_id("alice")).api_key == "newkey"


@pytest.mark.asyncio
async def test_update_missing_account(store):
    with pytest.raises(NotFoundError):
        await store.update("nobody", api_key="whatever")


@pytest.mark.asyncio
async def test_update_with_nothing_is_bad_request(store):
    await _create(store)
    with pytest.raises(BadRequestError):
        await store.update("alice")


@pytest.mark.asyncio
async def test_update_to_taken_key_is_atomic(store, database):
    """A key collision rolls back the whole update, password included."""
    await _create(store)
    await _create(store, user_id="bob", api_key="key-bob", email="b@x.com")

    with pytest.raises(DuplicateKeyError) as exc:
        await store.update("alice", password_hash="new-hash", api_key="key-bob")
    assert exc.value.field == "api_key"

    assert await _stored_hash(database, "alice") == "hash-alice"
    assert (await store.read_by_id("alice")).api_key == "key-alice"


# ═══════════════════════════════════════════════════════════
# Delete
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_delete_then_read_is_not_found(store):
    await _create(store)
    await store.delete("alice")
    with pytest.raises(NotFoundError):
        await store.read_by_id("alice")


@pytest.mark.asyncio
async def test_delete_missing_is_not_found(store):
    with pytest.raises(NotFoundError):
        await store.delete("nobody")


@pytest.mark.asyncio
async def test_create_tables_is_idempotent(database, store):
    await _create(store)
    await database.create_tables()
    assert (await store.read_by_id("alice")).user_id == "alice"
