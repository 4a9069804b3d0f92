"""Per-request id, log context and Prometheus timing."""

from __future__ import annotations

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from bookswap.obs import logging as obs_logging
from bookswap.obs import metrics
from bookswap.settings import settings

REQUEST_ID_ATTR = "request_id"
REQUEST_ID_HEADER = "X-Request-Id"

# Probes and scrapes are timed but not logged.
_QUIET_PATHS = frozenset({"/health/live", "/health/ready", "/metrics"})

_logger = obs_logging.get_logger("bookswap.http")


class RequestContextMiddleware(BaseHTTPMiddleware):
	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
		setattr(request.state, REQUEST_ID_ATTR, request_id)
		token = obs_logging.bind_context(
			request_id=request_id,
			user_id=request.headers.get("X-User-Id"),
			client_ip=request.client.host if request.client else None,
		)
		started = time.perf_counter()
		status_code = 500
		try:
			response = await call_next(request)
			status_code = response.status_code
		except Exception:
			_logger.exception("unhandled error", extra={"method": request.method, "path": request.url.path})
			raise
		finally:
			elapsed = time.perf_counter() - started
			route = getattr(request.scope.get("route"), "path", None) or request.url.path
			if settings.obs_enabled:
				metrics.observe_request(route, request.method, status_code, elapsed)
				if request.url.path not in _QUIET_PATHS:
					_logger.info(
						"http request",
						extra={
							"route": route,
							"method": request.method,
							"status": status_code,
							"latency_ms": round(elapsed * 1000, 2),
						},
					)
			obs_logging.reset_context(token)
		response.headers.setdefault(REQUEST_ID_HEADER, request_id)
		return response


def install(app) -> None:
	app.add_middleware(RequestContextMiddleware)
