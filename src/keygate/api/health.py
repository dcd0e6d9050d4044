"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and the
database is reachable. Open, no API key needed.
"""

from fastapi import APIRouter, Depends

from keygate import __version__
from keygate.db.engine import Database, get_database

router = APIRouter()


@router.get("/health")
async def health_check(db: Database = Depends(get_database)):
    """Check server health and database connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        await db.ping()
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
