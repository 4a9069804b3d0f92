import pytest
from fastapi import HTTPException

from bookswap.infra import jwt as jwt_helper
from bookswap.infra.auth import user_from_socket, verify_access_jwt
from bookswap.settings import settings


def test_access_token_round_trip_carries_email():
	token = jwt_helper.issue_access_token("user-1", email="u1@example.com")
	user = verify_access_jwt(token)
	assert user.id == "user-1"
	assert user.email == "u1@example.com"


def test_garbage_token_is_rejected():
	with pytest.raises(HTTPException) as excinfo:
		verify_access_jwt("not-a-jwt")
	assert excinfo.value.status_code == 401
	assert excinfo.value.detail == "invalid_token"


def test_socket_identity_from_bearer_header():
	token = jwt_helper.issue_access_token("user-2")
	scope = {"headers": [(b"authorization", f"Bearer {token}".encode())]}
	assert user_from_socket(scope, None).id == "user-2"


def test_socket_dev_header_only_in_dev():
	scope = {"headers": [(b"x-user-id", b"user-3")]}
	assert user_from_socket(scope, None).id == "user-3"

	settings.environment = "production"
	with pytest.raises(ConnectionRefusedError):
		user_from_socket(scope, None)


def test_socket_without_identity_is_refused():
	with pytest.raises(ConnectionRefusedError):
		user_from_socket({"headers": []}, {})


def test_expired_token_is_rejected():
	token = jwt_helper.issue_access_token("user-4", ttl_seconds=-60)
	with pytest.raises(HTTPException):
		verify_access_jwt(token)
