"""FastAPI auth dependencies.

Learn: The request gate. Every protected route depends on
get_current_caller, which turns a raw request into an
AuthenticatedCaller (account + origin IP) or raises:

- no / blank x-api-key header    → UnauthenticatedError (401)
- key not found in the store     → UnauthenticatedError (401); the
  store's NotFoundError is never surfaced as "resource not found"
- caller origin can't be worked out → ForbiddenAccessError (403), even
  with a valid key. Every authenticated call must be attributable

Origin comes from the socket peer, or in gateway mode
(trust_forwarded_headers) from the first X-Forwarded-For entry, then
X-Real-IP when that entry is missing or not an address.
"""

import ipaddress
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import Depends, Request

from keygate.db.store import AccountStore, get_account_store
from keygate.errors import ForbiddenAccessError, NotFoundError, UnauthenticatedError
from keygate.schemas.account import AccountRead

logger = structlog.get_logger()

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


@dataclass(frozen=True)
class AuthenticatedCaller:
    """The only thing protected routes may trust as "who is calling"."""

    account: AccountRead
    origin: IPAddress

    @property
    def user_id(self) -> str:
        return self.account.user_id


def _parse_ip(value: Optional[str]) -> Optional[IPAddress]:
    if not value:
        return None
    try:
        return ipaddress.ip_address(value.strip())
    except ValueError:
        return None


class AuthResolver:
    """Resolve request headers + peer address to an AuthenticatedCaller."""

    def __init__(
        self,
        store: AccountStore,
        header_name: str = "x-api-key",
        trust_forwarded_headers: bool = False,
    ):
        self.store = store
        self.header_name = header_name.lower()
        self.trust_forwarded_headers = trust_forwarded_headers

    def extract_key(self, headers: Mapping[str, str]) -> str:
        """Case-insensitive header lookup, trimmed."""
        for name, value in headers.items():
            if name.lower() == self.header_name:
                key = value.strip()
                if key:
                    return key
                break
        raise UnauthenticatedError()

    def resolve_origin(
        self, headers: Mapping[str, str], peer_host: Optional[str]
    ) -> Optional[IPAddress]:
        if not self.trust_forwarded_headers:
            return _parse_ip(peer_host)

        lowered = {name.lower(): value for name, value in headers.items()}
        # An unparseable first hop (e.g. "unknown") falls through to X-Real-IP
        forwarded = _parse_ip(lowered.get("x-forwarded-for", "").split(",")[0])
        if forwarded is not None:
            return forwarded
        return _parse_ip(lowered.get("x-real-ip"))

    async def resolve(
        self, headers: Mapping[str, str], peer_host: Optional[str]
    ) -> AuthenticatedCaller:
        try:
            api_key = self.extract_key(headers)
        except UnauthenticatedError:
            logger.info("auth.denied", reason="missing_key")
            raise

        try:
            account = await self.store.read_by_key(api_key)
        except NotFoundError:
            logger.info("auth.denied", reason="unknown_key")
            raise UnauthenticatedError("Invalid API key") from None

        origin = self.resolve_origin(headers, peer_host)
        if origin is None:
            logger.warning("auth.denied", reason="no_origin", user_id=account.user_id)
            raise ForbiddenAccessError()

        return AuthenticatedCaller(account=account, origin=origin)


async def get_current_caller(
    request: Request,
    store: AccountStore = Depends(get_account_store),
) -> AuthenticatedCaller:
    """Resolve the caller. Raises 401/403 if it can't be."""
    settings = request.app.state.settings
    resolver = AuthResolver(
        store,
        header_name=settings.api_key_header,
        trust_forwarded_headers=settings.trust_forwarded_headers,
    )
    peer_host = request.client.host if request.client else None
    caller = await resolver.resolve(request.headers, peer_host)
    # Bind for correlated logging (request_id is bound by middleware)
    structlog.contextvars.bind_contextvars(caller=caller.user_id)
    return caller
