"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] +
mapped_column). One table:

    accounts(user_id TEXT PRIMARY KEY, password_hash TEXT NOT NULL,
             api_key TEXT NOT NULL, email TEXT NOT NULL)

api_key is what every request is authenticated by, so it also gets a
UNIQUE index: two accounts can never answer to the same key.
"""

from sqlalchemy import Index, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Account(Base):
    """A stored identity: who (user_id), how to prove it (hash, key), contact."""

    __tablename__ = "accounts"
    __table_args__ = (
        Index("ix_accounts_api_key", "api_key", unique=True),
    )

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    api_key: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"Account(user_id={self.user_id!r}, email={self.email!r})"
