"""Pydantic schemas for accounts.

Learn: Pydantic v2 models validate request/response data. "Create" and
"Update" schemas are input, AccountRead is the only output shape. It
has no password_hash field, so a hash can't leak through a response
even by accident.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class AccountCreate(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1, max_length=255)


class AccountUpdate(BaseModel):
    """Partial update. At least one field must be set (checked by the service)."""

    password: Optional[str] = Field(None, min_length=1)
    api_key: Optional[str] = Field(None, min_length=1)

    @field_validator("api_key", mode="before")
    @classmethod
    def strip_api_key(cls, value):
        # Matches the trimming applied to the credential header on lookup
        return value.strip() if isinstance(value, str) else value

    def is_empty(self) -> bool:
        return self.password is None and self.api_key is None


class AccountRead(BaseModel):
    """An account as seen outside the store. Never includes the hash."""

    user_id: str
    api_key: str
    email: str

    model_config = {"from_attributes": True, "frozen": True}
