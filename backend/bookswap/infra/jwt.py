"""HS256 access tokens shared by the REST and Socket.IO surfaces."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

import jwt

from bookswap.settings import settings

ISSUER = "bookswap-api"
AUDIENCE = "authenticated"
ALGORITHM = "HS256"


@dataclass(slots=True, frozen=True)
class AccessClaims:
    user_id: str
    email: Optional[str]
    expires_at: int


def issue_access_token(user_id: str, *, email: Optional[str] = None, ttl_seconds: int = 3600) -> str:
    issued = int(time.time())
    claims = {
        "iss": ISSUER,
        "aud": AUDIENCE,
        "sub": str(user_id),
        "iat": issued,
        "exp": issued + ttl_seconds,
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def decode_access(token: str) -> AccessClaims:
    """Validate signature, audience, issuer and expiry.

    Raises jwt.InvalidTokenError (or a subclass) when the token is unusable.
    """
    payload = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[ALGORITHM],
        audience=AUDIENCE,
        issuer=ISSUER,
        leeway=5,
        options={"require": ["exp", "iat", "sub"]},
    )
    subject = str(payload.get("sub") or "").strip()
    if not subject:
        raise jwt.InvalidTokenError("empty subject")
    email = payload.get("email")
    return AccessClaims(user_id=subject, email=str(email) if email else None, expires_at=int(payload["exp"]))
