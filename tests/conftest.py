"""Test fixtures — a throwaway SQLite database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets Settings pointing at a fresh SQLite file under tmp_path
   and cheap argon2 parameters (the production ones cost ~100ms a hash).
2. create_app(settings) builds the app; httpx's ASGITransport doesn't run
   the lifespan, so the fixture creates the table and tears down the
   pools itself.
3. `client` overrides the auth dependency with a fixed caller, so route
   tests don't need to bootstrap a key first. `unauthenticated_client`
   leaves the real x-api-key pipeline in place.
"""

import ipaddress
from concurrent.futures import ThreadPoolExecutor

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from keygate.auth.api_keys import ApiKeyIssuer
from keygate.auth.dependencies import AuthenticatedCaller, get_current_caller
from keygate.auth.password import HashParameters, PasswordHasher
from keygate.config import Settings
from keygate.db.engine import Database
from keygate.db.store import AccountStore
from keygate.main import create_app
from keygate.schemas.account import AccountCreate, AccountRead
from keygate.services.account_service import AccountService

CHEAP_HASH = HashParameters(time_cost=1, memory_cost=8, parallelism=1, hash_len=32)


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path}/keygate-test.db",
        hash_time_cost=1,
        hash_memory_cost=8,
        hash_parallelism=1,
        hash_workers=2,
    )


@pytest.fixture()
def hasher():
    return PasswordHasher(CHEAP_HASH)


@pytest_asyncio.fixture()
async def database(settings):
    db = Database(settings.database_url)
    await db.create_tables()
    try:
        yield db
    finally:
        await db.dispose()


@pytest_asyncio.fixture()
async def store(database):
    return AccountStore(database.session_factory)


@pytest_asyncio.fixture()
async def service(store, hasher):
    with ThreadPoolExecutor(max_workers=2) as executor:
        yield AccountService(store, hasher=hasher, issuer=ApiKeyIssuer(), executor=executor)


@pytest_asyncio.fixture()
async def app(settings):
    application = create_app(settings)
    await application.state.database.create_tables()
    try:
        yield application
    finally:
        application.dependency_overrides.clear()
        application.state.hash_executor.shutdown(wait=True)
        await application.state.database.dispose()


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client with the auth dependency overridden for testing."""

    def override_get_current_caller():
        return AuthenticatedCaller(
            account=AccountRead(user_id="admin", api_key="kg_test_admin", email="admin@example.com"),
            origin=ipaddress.ip_address("127.0.0.1"),
        )

    app.dependency_overrides[get_current_caller] = override_get_current_caller

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def unauthenticated_client(app):
    """HTTP client WITHOUT auth override, for testing real x-api-key flows."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def admin_key(app):
    """Bootstrap an account straight through the service and return its key.

    Learn: Mirrors `keygate create-account`: the first key has to come
    from outside the HTTP API, since every account route needs one.
    """
    state = app.state
    svc = AccountService(
        AccountStore(state.database.session_factory),
        hasher=state.hasher,
        issuer=state.issuer,
        executor=state.hash_executor,
    )
    account = await svc.create_account(
        AccountCreate(user_id="root", password="root-password", email="root@example.com")
    )
    return account.api_key
