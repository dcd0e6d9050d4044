"""Account store — durable CRUD over the accounts table.

Learn: Every operation opens its own session from the pool and runs in
one transaction (``session_factory.begin()`` commits on success, rolls
back on any exception). Statements are Core-style insert/select/update/
delete against the ORM table, so no ORM identity map sits between two
calls and reads always see the database.

Reads select only user_id, api_key and email: the password hash is
written here but never leaves this module.

Driver errors are translated on the spot:
- IntegrityError → DuplicateKeyError (which column collided)
- any other SQLAlchemyError → InternalError
"""

from typing import Optional

import structlog
from fastapi import Depends
from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from keygate.db.engine import Database, get_database
from keygate.db.models import Account
from keygate.errors import BadRequestError, DuplicateKeyError, InternalError, NotFoundError
from keygate.schemas.account import AccountRead

logger = structlog.get_logger()

_VIEW_COLUMNS = (Account.user_id, Account.api_key, Account.email)


class AccountStore:
    """CRUD over accounts, returning AccountRead views."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.sessions = session_factory

    # ─── Create ─────────────────────────────────────────

    async def create(
        self, user_id: str, password_hash: str, api_key: str, email: str
    ) -> AccountRead:
        """Insert a new account.

        Raises DuplicateKeyError("user_id") if the id is taken, or
        DuplicateKeyError("api_key") if the key collides with another
        account's. The existing row is left untouched either way.
        """
        try:
            async with self.sessions.begin() as session:
                await session.execute(
                    insert(Account).values(
                        user_id=user_id,
                        password_hash=password_hash,
                        api_key=api_key,
                        email=email,
                    )
                )
        except IntegrityError as e:
            # Both unique columns raise the same error; ask the table which one.
            field = "user_id" if await self._exists(user_id) else "api_key"
            logger.info("account.duplicate", user_id=user_id, field=field)
            raise DuplicateKeyError(field) from e
        except SQLAlchemyError as e:
            logger.error("account.create_failed", user_id=user_id, error=str(e))
            raise InternalError("Could not create account") from e

        return AccountRead(user_id=user_id, api_key=api_key, email=email)

    # ─── Read ───────────────────────────────────────────

    async def read_by_id(self, user_id: str) -> AccountRead:
        return await self._read_one(Account.user_id == user_id)

    async def read_by_key(self, api_key: str) -> AccountRead:
        return await self._read_one(Account.api_key == api_key)

    async def read_all(self) -> list[AccountRead]:
        """All accounts, materialised. Order is whatever the database returns."""
        try:
            async with self.sessions() as session:
                result = await session.execute(select(*_VIEW_COLUMNS))
                rows = result.all()
        except SQLAlchemyError as e:
            logger.error("account.list_failed", error=str(e))
            raise InternalError("Could not list accounts") from e
        return [AccountRead(**row._mapping) for row in rows]

    # ─── Update ─────────────────────────────────────────

    async def update(
        self,
        user_id: str,
        password_hash: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> None:
        """Replace the password hash and/or API key in one transaction.

        The existence check and the single UPDATE share a transaction,
        so a reader never sees a new password next to an old key.
        """
        values = {}
        if password_hash is not None:
            values["password_hash"] = password_hash
        if api_key is not None:
            values["api_key"] = api_key
        if not values:
            raise BadRequestError("No data to update")

        try:
            async with self.sessions.begin() as session:
                found = await session.scalar(
                    select(Account.user_id).where(Account.user_id == user_id)
                )
                if found is None:
                    raise NotFoundError("Account")
                await session.execute(
                    update(Account).where(Account.user_id == user_id).values(**values)
                )
        except IntegrityError as e:
            # Only api_key can collide here.
            logger.info("account.duplicate", user_id=user_id, field="api_key")
            raise DuplicateKeyError("api_key") from e
        except SQLAlchemyError as e:
            logger.error("account.update_failed", user_id=user_id, error=str(e))
            raise InternalError("Could not update account") from e

    # ─── Delete ─────────────────────────────────────────

    async def delete(self, user_id: str) -> None:
        """Delete an account. NotFoundError if no row was removed."""
        try:
            async with self.sessions.begin() as session:
                result = await session.execute(
                    delete(Account).where(Account.user_id == user_id)
                )
                deleted = result.rowcount
        except SQLAlchemyError as e:
            logger.error("account.delete_failed", user_id=user_id, error=str(e))
            raise InternalError("Could not delete account") from e

        if deleted == 0:
            raise NotFoundError("Account")

    # ─── Helpers ────────────────────────────────────────

    async def _read_one(self, condition) -> AccountRead:
        try:
            async with self.sessions() as session:
                result = await session.execute(select(*_VIEW_COLUMNS).where(condition))
                row = result.first()
        except SQLAlchemyError as e:
            logger.error("account.read_failed", error=str(e))
            raise InternalError("Could not read account") from e

        if row is None:
            raise NotFoundError("Account")
        return AccountRead(**row._mapping)

    async def _exists(self, user_id: str) -> bool:
        try:
            async with self.sessions() as session:
                found = await session.scalar(
                    select(Account.user_id).where(Account.user_id == user_id)
                )
        except SQLAlchemyError as e:
            raise InternalError("Could not read account") from e
        return found is not None


def get_account_store(db: Database = Depends(get_database)) -> AccountStore:
    """FastAPI dependency: a store bound to the app's pool."""
    return AccountStore(db.session_factory)
