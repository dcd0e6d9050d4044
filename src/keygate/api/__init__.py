"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects every account route without
touching individual handlers. Health stays open.
"""

from fastapi import APIRouter, Depends

from keygate.api.accounts import router as accounts_router
from keygate.api.health import router as health_router
from keygate.auth.dependencies import get_current_caller

# All protected routers require a valid API key
_auth = [Depends(get_current_caller)]

api_router = APIRouter(prefix="/api/v1")

# Open routes, no auth required
api_router.include_router(health_router, tags=["health"])

# Protected routes require a valid x-api-key
api_router.include_router(accounts_router, tags=["accounts"], dependencies=_auth)
