"""Account API routes.

Learn: FastAPI routers define HTTP endpoints. Each route receives the
service via Depends() and delegates to it. Routes only choose status
codes; every failure is a KeygateError that the app-level handler turns
into ``{"error", "code"}``.

/users/api_key is declared before /users/{user_id} so the literal path
wins the match.
"""

from fastapi import APIRouter, Depends, Request, Response

from keygate.auth.dependencies import AuthenticatedCaller, get_current_caller
from keygate.db.store import AccountStore, get_account_store
from keygate.schemas.account import AccountCreate, AccountRead, AccountUpdate
from keygate.services.account_service import AccountService

router = APIRouter(prefix="/users")


def _svc(request: Request, store: AccountStore = Depends(get_account_store)) -> AccountService:
    state = request.app.state
    return AccountService(
        store,
        hasher=state.hasher,
        issuer=state.issuer,
        executor=state.hash_executor,
        salt_length=state.settings.salt_length,
        key_attempts=state.settings.api_key_attempts,
    )


@router.post("", response_model=AccountRead, status_code=201)
async def create_account(body: AccountCreate, svc: AccountService = Depends(_svc)):
    """Create an account. The response carries the new API key, never the hash."""
    return await svc.create_account(body)


@router.get("", response_model=list[AccountRead])
async def list_accounts(svc: AccountService = Depends(_svc)):
    return await svc.list_accounts()


@router.get("/api_key", response_model=AccountRead)
async def get_account_by_key(
    caller: AuthenticatedCaller = Depends(get_current_caller),
    svc: AccountService = Depends(_svc),
):
    """The account owning the key in the request's credential header."""
    return await svc.get_account_by_key(caller.account.api_key)


@router.get("/{user_id}", response_model=AccountRead)
async def get_account(user_id: str, svc: AccountService = Depends(_svc)):
    return await svc.get_account(user_id)


@router.patch("/{user_id}", status_code=204)
async def update_account(
    user_id: str,
    body: AccountUpdate,
    svc: AccountService = Depends(_svc),
):
    """Replace the password and/or API key. At least one is required."""
    await svc.update_account(body, user_id)
    return Response(status_code=204)


@router.delete("/{user_id}", status_code=204)
async def delete_account(user_id: str, svc: AccountService = Depends(_svc)):
    await svc.delete_account(user_id)
    return Response(status_code=204)
