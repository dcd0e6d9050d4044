"""Password hashing utilities.

Learn: Uses argon2id (memory-hard) through argon2-cffi's low-level API so
the caller controls the salt. The encoded output is self-describing:

    $argon2id$v=19$m=65536,t=10,p=4$<salt b64>$<digest b64>

verify() reads the version, parameters and salt back out of that string,
so changing the defaults never invalidates stored hashes.

Both calls are CPU/memory heavy (~100ms+ with the defaults). Callers on
the event loop run them on a worker pool (see AccountService).
"""

import secrets
from dataclasses import dataclass

from argon2 import Type
from argon2.exceptions import HashingError as Argon2HashingError
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from argon2.low_level import ARGON2_VERSION, hash_secret, verify_secret


class HashingError(Exception):
    """Raised when the primitive rejects its input or a hash is malformed."""


@dataclass(frozen=True)
class HashParameters:
    """argon2id cost parameters. Memory cost is in KiB."""

    time_cost: int = 10
    memory_cost: int = 65536
    parallelism: int = 4
    hash_len: int = 32
    version: int = ARGON2_VERSION


def generate_salt(length: int = 16) -> bytes:
    """Random salt for a new password hash."""
    return secrets.token_bytes(length)


class PasswordHasher:
    """Salted argon2id hashing with fixed, versioned parameters."""

    def __init__(self, params: HashParameters | None = None):
        self.params = params or HashParameters()

    def hash(self, password: str, salt: bytes) -> str:
        """Hash ``password`` with ``salt``; returns the encoded hash.

        argon2 requires at least 8 bytes of salt; shorter (or empty)
        salts raise HashingError.
        """
        p = self.params
        try:
            encoded = hash_secret(
                password.encode("utf-8"),
                salt,
                time_cost=p.time_cost,
                memory_cost=p.memory_cost,
                parallelism=p.parallelism,
                hash_len=p.hash_len,
                type=Type.ID,
                version=p.version,
            )
        except Argon2HashingError as e:
            raise HashingError(f"Password hashing failed: {e}") from e
        return encoded.decode("ascii")

    def verify(self, password: str, encoded_hash: str) -> bool:
        """Check ``password`` against ``encoded_hash`` in constant time.

        A wrong password is a clean False. A hash that cannot be decoded
        raises HashingError.
        """
        try:
            return verify_secret(
                encoded_hash.encode("utf-8"),
                password.encode("utf-8"),
                Type.ID,
            )
        except VerifyMismatchError:
            return False
        except (VerificationError, InvalidHashError) as e:
            raise HashingError(f"Malformed password hash: {e}") from e
