"""JSON error envelopes; every error body carries the request id."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookswap.api.request_id import get_request_id
from bookswap.infra.rate_limit import RateLimitExceeded


def _envelope(request: Request, status_code: int, detail: Any, *, headers: Optional[dict] = None, **extra: Any) -> JSONResponse:
    body = {"detail": detail, **extra, "request_id": get_request_id(request)}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def on_http_error(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        return _envelope(request, exc.status_code, exc.detail, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def on_validation_error(request: Request, exc: RequestValidationError):  # type: ignore[override]
        return _envelope(request, 422, "validation_error", errors=exc.errors())

    @app.exception_handler(RateLimitExceeded)
    async def on_rate_limited(request: Request, exc: RateLimitExceeded):  # type: ignore[override]
        return _envelope(
            request,
            429,
            "rate_limited",
            headers={"Retry-After": str(exc.retry_after)},
            scope=exc.kind,
        )
