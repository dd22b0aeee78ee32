import pytest
from uuid import uuid4
from pydantic import ValidationError
from conftest import HEX32
from crud.users import get_user_by_email
from services.users import DuplicateUserError, authenticate_user, create_user, get_user, list_users
from srv.schemas import UserCreate, UserPublic, UserRole


def _user_in(**overrides) -> UserCreate:
    data = {
        "first_name": "Alice", "last_name": "Liddell", "email": "Alice@Example.com", "password": "wonderland",
    }
    data.update(overrides)
    return UserCreate(**data)


@pytest.mark.asyncio(loop_scope="session")
async def test_create_user_and_get_user_roundtrip(session_override):
    """Tests `create_user()` and `get_user()` work together."""
    # verify that it returns nothing if the user doesn't exist
    assert await get_user(session_override, uuid4()) is None

    saved = await create_user(session_override, _user_in())
    assert isinstance(saved, UserPublic)
    assert HEX32.match(str(saved.id))
    assert saved.email == "alice@example.com"
    assert saved.full_name == "Alice Liddell"
    assert saved.role == UserRole.USER

    # the password must never be exposed
    obj = saved.model_dump_json()
    assert "password" not in obj

    found = await get_user(session_override, saved.id)
    assert found is not None and found.id == saved.id
    assert [u.email for u in await list_users(session_override)] == ["alice@example.com"]


@pytest.mark.asyncio(loop_scope="session")
async def test_create_user_hashes_password(monkeypatch, session_override):
    # NOTE: "services.users" imports `get_hashed_pwd()`, so that's the name we have to patch
    monkeypatch.setattr("services.users.get_hashed_pwd", lambda _: "hashed:xyz")
    await create_user(session_override, _user_in())
    stored = await get_user_by_email(session_override, "ALICE@example.com")
    assert stored is not None
    assert stored.hashed_password == "hashed:xyz"


@pytest.mark.asyncio(loop_scope="session")
async def test_create_user_rejects_duplicates_and_admin_role(session_override):
    await create_user(session_override, _user_in())
    with pytest.raises(DuplicateUserError):
        await create_user(session_override, _user_in(email="alice@example.com"))
    with pytest.raises(ValueError):
        await create_user(session_override, _user_in(email="root@example.com", role=UserRole.SUPER_ADMIN))


@pytest.mark.asyncio(loop_scope="session")
async def test_authenticate_user(session_override):
    await create_user(session_override, _user_in())
    u = await authenticate_user(session_override, "alice@example.com", "wonderland")
    assert u is not None and u.email == "alice@example.com"
    assert await authenticate_user(session_override, "alice@example.com", "WRONG") is None
    assert await authenticate_user(session_override, "ghost@example.com", "wonderland") is None


def test_user_create_validation():
    with pytest.raises(ValidationError) as ex:
        _user_in(password="short")
    assert "string should have at least 8 characters" in str(ex.value).lower()

    with pytest.raises(ValidationError):
        _user_in(email="nope")
