from uuid import uuid4
import pytest
import jwt
from datetime import timedelta
from fastapi import HTTPException
from conftest import BASE64URL
from srv.schemas import SessionUser, UserPublic, UserRole
from srv.security import (
    create_access_token, create_session_token, decode_session_token, get_current_session,
    get_hashed_pwd, require_roles, session_from_claims, settings, verify_pwd, _secret_key,
)


def _user(role: UserRole = UserRole.USER) -> UserPublic:
    return UserPublic(
        id=uuid4(), first_name="John", last_name="Doe", email="john@example.com", role=role)


def test_password_hash_and_verify():
    """Tests that hashing and verifying a password works."""
    hashed = get_hashed_pwd("pw123456")
    assert isinstance(hashed, str)
    assert hashed != "pw123456"
    assert verify_pwd("pw123456", hashed) is True
    assert verify_pwd("nope", hashed) is False


def test_produce_jwt_that_can_expire_and_is_decodable():
    """Tests that `create_access_token()` produces a decodable JWT with an expiration date."""
    token = create_access_token({"sub": "johndoe"})

    # all valid JWTs are 3 Base64URL strings separated by dots
    assert token.count(".") == 2    # 3 Base64URL strings = 2 dots
    for b64 in token.split("."):
        assert BASE64URL.match(b64)

    payload = jwt.decode(token, _secret_key(), algorithms=[settings.jwt_algorithm])
    assert payload.get("sub") == "johndoe"
    assert "exp" in payload


def test_session_token_carries_the_session_claims():
    """Tests that a session token holds the id, name, email and role of the user."""
    user = _user(UserRole.EVENT_PLANNER)
    claims = decode_session_token(create_session_token(user))
    assert claims is not None
    assert claims["sub"] == str(user.id)
    assert claims["name"] == "John Doe"
    assert claims["email"] == "john@example.com"
    assert claims["role"] == "event-planner"


def test_decode_rejects_expired_and_tampered_tokens():
    expired = create_session_token(_user(), expires_delta=timedelta(seconds=-1))
    assert decode_session_token(expired) is None

    forged = jwt.encode({"sub": str(uuid4()), "role": "super-admin"}, "not-the-key", algorithm="HS256")
    assert decode_session_token(forged) is None
    assert decode_session_token("garbage") is None


def test_session_from_claims():
    uid = uuid4()
    s = session_from_claims({"sub": str(uid), "name": "Jo", "email": "jo@example.com", "role": "user"})
    assert s == SessionUser(id=uid, name="Jo", email="jo@example.com", role="user")
    # a subject that isn't a user id is not a session
    assert session_from_claims({"sub": "johndoe"}) is None


def test_get_current_session_raises_401_without_session():
    with pytest.raises(HTTPException) as ex:
        get_current_session(None)
    assert ex.value.status_code == 401
    assert ex.value.detail == "Unauthorized"


def test_require_roles_allows_and_forbids():
    dep = require_roles(UserRole.EVENT_PLANNER, UserRole.SUPER_ADMIN)
    planner = SessionUser(id=uuid4(), name="P", email="p@example.com", role="event-planner")
    user = SessionUser(id=uuid4(), name="U", email="u@example.com", role="user")

    assert dep(planner) is planner
    with pytest.raises(HTTPException) as ex:
        dep(user)
    assert ex.value.status_code == 403
    assert ex.value.detail == "Forbidden: Insufficient permissions"
