"""API key generation.

Learn: A key is the configured prefix plus the urlsafe-base64 SHA-256 of
a seed. Without an explicit seed the seed is 32 bytes from ``secrets``,
so keys are unguessable; passing a seed makes the derivation repeatable
(useful in tests and fixtures). Uniqueness is enforced by the UNIQUE
index on accounts.api_key, and AccountService retries on a collision.
"""

import base64
import hashlib
import secrets


class ApiKeyIssuer:
    """Mints opaque per-account bearer tokens."""

    def __init__(self, prefix: str = "kg_", nbytes: int = 32):
        self.prefix = prefix
        self.nbytes = nbytes

    def issue(self, seed: bytes | None = None) -> str:
        if seed is None:
            seed = secrets.token_bytes(self.nbytes)
        digest = hashlib.sha256(seed).digest()
        token = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
        return f"{self.prefix}{token}"
