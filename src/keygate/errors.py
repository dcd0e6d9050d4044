"""Error vocabulary shared by the store, the resolver and the service.

Learn: Every failure is converted into one of these kinds where it
happens (store, hasher, resolver). The API layer then needs exactly one
exception handler: it asks the error for its status and renders
``{"error": message, "code": status}``.

status_for() is an exhaustive match over ErrorKind ending in
assert_never, so adding a kind without a status is a type-check error.
"""

from enum import Enum
from typing import assert_never


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    PASSWORD_HASH = "password_hash"
    DUPLICATE_KEY = "duplicate_key"
    TOO_MANY_REQUESTS = "too_many_requests"
    INTERNAL = "internal"


def status_for(kind: ErrorKind) -> int:
    """Map an error kind to its HTTP status code."""
    match kind:
        case ErrorKind.UNAUTHENTICATED:
            return 401
        case ErrorKind.FORBIDDEN:
            return 403
        case ErrorKind.NOT_FOUND:
            return 404
        case ErrorKind.BAD_REQUEST:
            return 400
        case ErrorKind.PASSWORD_HASH:
            return 500
        case ErrorKind.DUPLICATE_KEY:
            return 409
        case ErrorKind.TOO_MANY_REQUESTS:
            return 429
        case ErrorKind.INTERNAL:
            return 500
        case _:
            assert_never(kind)


class KeygateError(Exception):
    """Base class. Subclasses pin the kind and a default message."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return status_for(self.kind)

    def to_payload(self) -> dict:
        return {"error": self.message, "code": self.status_code}


class UnauthenticatedError(KeygateError):
    kind = ErrorKind.UNAUTHENTICATED
    default_message = "Unauthenticated user"


class ForbiddenAccessError(KeygateError):
    kind = ErrorKind.FORBIDDEN
    default_message = "User does not have access rights"


class NotFoundError(KeygateError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, resource: str = "Account"):
        self.resource = resource
        super().__init__(f"{resource} not found")


class BadRequestError(KeygateError):
    kind = ErrorKind.BAD_REQUEST
    default_message = "Bad request"


class PasswordHashError(KeygateError):
    kind = ErrorKind.PASSWORD_HASH
    default_message = "Error verifying hashed password"


class DuplicateKeyError(KeygateError):
    """A unique column collided. ``field`` says which one."""

    kind = ErrorKind.DUPLICATE_KEY

    def __init__(self, field: str = "user_id"):
        self.field = field
        super().__init__(f"An account with this {field} already exists")


class TooManyRequestsError(KeygateError):
    kind = ErrorKind.TOO_MANY_REQUESTS
    default_message = "Too many requests"


class InternalError(KeygateError):
    kind = ErrorKind.INTERNAL
    default_message = "Internal error"
