"""FastAPI application factory.

Learn: App factory pattern: create_app() returns a configured FastAPI
instance. Everything with a lifetime (database pool, hashing worker
pool, hasher, key issuer) is built here and hung on app.state, so it is
passed explicitly to whatever needs it instead of living in module
globals. The lifespan creates the table at startup and tears the pools
down at shutdown.
"""

from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from keygate import __version__
from keygate.api import api_router
from keygate.api.errors import register_error_handlers
from keygate.config import Settings, settings as default_settings
from keygate.db.engine import Database
from keygate.log import configure_logging
from keygate.services.account_service import build_hasher, build_issuer

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs
    at shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(
        "keygate.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    await app.state.database.create_tables()
    logger.info("keygate.database_ready")

    yield

    logger.info("keygate.shutdown")
    app.state.hash_executor.shutdown(wait=True)
    await app.state.database.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or default_settings
    configure_logging(settings.log_level, json=settings.log_json)

    app = FastAPI(
        title="Keygate",
        description="Accounts and API keys for a small multi-tenant JSON API",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = Database(settings.database_url, echo=settings.debug)
    app.state.hasher = build_hasher(settings)
    app.state.issuer = build_issuer(settings)
    app.state.hash_executor = ThreadPoolExecutor(
        max_workers=settings.hash_workers,
        thread_name_prefix="keygate-hash",
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → CORS → handler

    from keygate.middleware.request_id import RequestIdMiddleware
    from keygate.middleware.security import SecurityHeadersMiddleware

    if settings.allow_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    register_error_handlers(app)
    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: keygate.main:app)
app = create_app()
