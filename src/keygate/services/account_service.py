"""Account service — business logic for creating and managing accounts.

Learn: Service layer separates business logic from HTTP routing.
API routes (and the CLI) call the service, the service calls the store.

Two rules live here rather than in the store:
1. A password is hashed and then immediately verified against its own
   hash before anything is written. A hash that can't verify would lock
   the account out forever, so a failed self-check aborts the write.
2. Hashing is expensive, so it runs on a bounded thread pool instead of
   the event loop. One slow hash can't stall every other request.
"""

import asyncio
from concurrent.futures import Executor

import structlog

from keygate.auth.api_keys import ApiKeyIssuer
from keygate.auth.password import HashingError, HashParameters, PasswordHasher, generate_salt
from keygate.config import Settings
from keygate.db.store import AccountStore
from keygate.errors import BadRequestError, DuplicateKeyError, InternalError, PasswordHashError
from keygate.schemas.account import AccountCreate, AccountRead, AccountUpdate

logger = structlog.get_logger()


class AccountService:
    """Create/update/delete/list/get accounts."""

    def __init__(
        self,
        store: AccountStore,
        hasher: PasswordHasher,
        issuer: ApiKeyIssuer,
        executor: Executor | None = None,
        salt_length: int = 16,
        key_attempts: int = 3,
    ):
        self.store = store
        self.hasher = hasher
        self.issuer = issuer
        self.executor = executor
        self.salt_length = salt_length
        self.key_attempts = key_attempts

    # ─── Create ─────────────────────────────────────────

    async def create_account(self, body: AccountCreate) -> AccountRead:
        """Hash + self-check the password, mint a key, persist.

        A freshly minted key that collides with an existing one is
        re-minted (up to key_attempts times). A user_id collision is
        returned to the caller as DuplicateKeyError.
        """
        password_hash = await self._hash_password(body.password)

        for attempt in range(1, self.key_attempts + 1):
            api_key = self.issuer.issue()
            try:
                account = await self.store.create(
                    user_id=body.user_id,
                    password_hash=password_hash,
                    api_key=api_key,
                    email=body.email,
                )
            except DuplicateKeyError as e:
                if e.field != "api_key":
                    raise
                logger.warning("account.api_key_collision", attempt=attempt)
                continue

            logger.info("account.created", user_id=account.user_id)
            return account

        raise InternalError("Could not mint a unique API key")

    # ─── Update ─────────────────────────────────────────

    async def update_account(self, body: AccountUpdate, user_id: str) -> None:
        if body.is_empty():
            raise BadRequestError("No data to update")

        # Fail fast on a missing account before paying for a hash.
        await self.store.read_by_id(user_id)

        password_hash = None
        if body.password is not None:
            password_hash = await self._hash_password(body.password)

        await self.store.update(user_id, password_hash=password_hash, api_key=body.api_key)
        logger.info(
            "account.updated",
            user_id=user_id,
            password=body.password is not None,
            api_key=body.api_key is not None,
        )

    # ─── Delete / read ──────────────────────────────────

    async def delete_account(self, user_id: str) -> None:
        await self.store.delete(user_id)
        logger.info("account.deleted", user_id=user_id)

    async def list_accounts(self) -> list[AccountRead]:
        return await self.store.read_all()

    async def get_account(self, user_id: str) -> AccountRead:
        return await self.store.read_by_id(user_id)

    async def get_account_by_key(self, api_key: str) -> AccountRead:
        return await self.store.read_by_key(api_key)

    # ─── Hashing ────────────────────────────────────────

    async def _hash_password(self, password: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self._hash_and_check, password)

    def _hash_and_check(self, password: str) -> str:
        """Runs on the worker pool."""
        salt = generate_salt(self.salt_length)
        try:
            password_hash = self.hasher.hash(password, salt)
            verified = self.hasher.verify(password, password_hash)
        except HashingError as e:
            logger.error("account.hash_failed", error=str(e))
            raise PasswordHashError() from e

        if not verified:
            logger.error("account.hash_self_check_failed")
            raise PasswordHashError()
        return password_hash


def build_hasher(settings: Settings) -> PasswordHasher:
    return PasswordHasher(
        HashParameters(
            time_cost=settings.hash_time_cost,
            memory_cost=settings.hash_memory_cost,
            parallelism=settings.hash_parallelism,
            hash_len=settings.hash_length,
        )
    )


def build_issuer(settings: Settings) -> ApiKeyIssuer:
    return ApiKeyIssuer(prefix=settings.api_key_prefix, nbytes=settings.api_key_bytes)
