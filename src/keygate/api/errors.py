"""Exception handlers — every failure leaves as ``{"error", "code"}``.

Learn: Three sources of errors reach the client:
1. KeygateError raised by the resolver, service or store
2. Request validation (bad JSON, missing fields) → 422
3. Starlette's own HTTP errors (unknown route, wrong method)
All three render the same payload shape.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from keygate.errors import KeygateError

logger = structlog.get_logger()


async def keygate_error_handler(request: Request, exc: KeygateError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request.failed", path=request.url.path, kind=exc.kind.value, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "error": "Check your input data",
            "code": 422,
            "details": jsonable_encoder(exc.errors()),
        },
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "code": exc.status_code},
        headers=getattr(exc, "headers", None),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(KeygateError, keygate_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
