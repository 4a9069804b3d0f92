"""Where handlers find the id of the request they are serving."""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from bookswap.obs import logging as obs_logging
from bookswap.obs.middleware import REQUEST_ID_ATTR, REQUEST_ID_HEADER

__all__ = ["REQUEST_ID_ATTR", "REQUEST_ID_HEADER", "get_request_id"]


def get_request_id(request: Optional[Request] = None, default: str = "unknown") -> str:
    if request is not None:
        rid = getattr(request.state, REQUEST_ID_ATTR, None)
        if rid:
            return str(rid)
    return obs_logging.current_request_id() or default
