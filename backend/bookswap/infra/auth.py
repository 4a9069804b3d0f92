"""Authentication helpers for FastAPI endpoints.

Access tokens are HS256 JWTs signed with settings.secret_key. Dev headers
(X-User-Id) are only respected in development.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError

from bookswap.infra import jwt as jwt_helper
from bookswap.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	email: Optional[str] = None


_bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser."""
	try:
		claims = jwt_helper.decode_access(token)
	except InvalidTokenError:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token") from None
	return AuthenticatedUser(id=claims.user_id, email=claims.email)


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user.

	In development we allow a simple header. In all other environments, headers are
	ignored and a valid Bearer JWT is required.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)

	if settings.is_dev() and x_user_id:
		return AuthenticatedUser(id=x_user_id)

	raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")


def user_from_socket(scope: dict, auth_payload: Optional[dict]) -> AuthenticatedUser:
	"""Resolve the connecting user for a Socket.IO handshake.

	Raises ConnectionRefusedError when no identity can be established.
	"""
	auth_payload = auth_payload or {}
	token = auth_payload.get("token") or _bearer_from_scope(scope)
	if token:
		try:
			claims = jwt_helper.decode_access(str(token))
		except InvalidTokenError:
			raise ConnectionRefusedError("invalid_token") from None
		return AuthenticatedUser(id=claims.user_id, email=claims.email)
	user_id = auth_payload.get("userId") or _header(scope, "x-user-id")
	if user_id and settings.is_dev():
		return AuthenticatedUser(id=str(user_id))
	raise ConnectionRefusedError("missing user id")


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


def _bearer_from_scope(scope: dict) -> Optional[str]:
	raw = _header(scope, "authorization")
	if raw and raw.lower().startswith("bearer "):
		return raw.split(" ", 1)[1].strip()
	return None
