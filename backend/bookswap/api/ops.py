"""Probes and the Prometheus scrape endpoint."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from bookswap.obs import health
from bookswap.settings import settings

router = APIRouter(tags=["ops"])


async def require_metrics_access(
	x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
	authorization: Optional[str] = Header(default=None),
) -> None:
	if settings.obs_metrics_public:
		return
	if not settings.obs_admin_token:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="admin_token_not_configured")
	presented = x_admin_token
	if not presented and authorization and authorization.lower().startswith("bearer "):
		presented = authorization[7:].strip()
	if presented != settings.obs_admin_token:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")


@router.get("/health/live")
async def health_live() -> dict:
	return await health.liveness()


@router.get("/health/ready")
async def health_ready(request: Request) -> Response:
	status_code, payload = await health.readiness()
	# Geocoding is reported but never fails readiness; search still works without it.
	loader = getattr(request.app.state, "geo_loader", None)
	if loader is not None:
		payload["checks"]["geocoding"] = loader.status()
	return JSONResponse(content=payload, status_code=status_code)


@router.get("/metrics")
async def prometheus_metrics(_: None = Depends(require_metrics_access)) -> Response:
	return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
