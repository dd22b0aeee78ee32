from typing import Optional
from uuid import UUID
from sqlmodel.ext.asyncio.session import AsyncSession
from core.logging import get_logger
from crud.users import get_user_by_email, get_user_by_id, save_user, select_users
from srv.schemas import UserPublic, UserCreate, User, UserRole
from srv.security import verify_pwd, get_hashed_pwd

logger = get_logger(__name__)

# roles anyone may pick for themselves when signing up
SELF_SERVICE_ROLES = (UserRole.USER, UserRole.EVENT_PLANNER)


class DuplicateUserError(ValueError):
    """Raised when the email is already registered."""


async def get_user(session: AsyncSession, user_id: UUID) -> Optional[UserPublic]:
    """
    Business logic to retrieve a user. Will return a valid `UserPublic` if provided a valid `user_id`. Otherwise, it will return `None`.
    """
    user = await get_user_by_id(session, user_id)
    if user:
        return UserPublic.model_validate(user, from_attributes=True)
    return None


async def list_users(session: AsyncSession) -> list[UserPublic]:
    return [UserPublic.model_validate(u, from_attributes=True) for u in await select_users(session)]


async def authenticate_user(session: AsyncSession, email: str, password: str) -> Optional[UserPublic]:
    """
    Given the `email` and `password` of a valid user, this will return a `UserPublic`. Otherwise, it will return `None`.
    """
    user: Optional[User] = await get_user_by_email(session, email)
    if not user:
        return None
    if not verify_pwd(password, user.hashed_password):
        return None

    # once proven successful, return the user
    return UserPublic.model_validate(user, from_attributes=True)


async def create_user(session: AsyncSession, user: UserCreate) -> UserPublic:
    """
    Creates and returns a new `UserPublic`. Saves the new user in the database. Does not return the password.

    Raises `ValueError` for a role that cannot be self-assigned and `DuplicateUserError` when the email is taken.
    """
    if user.role not in SELF_SERVICE_ROLES:
        raise ValueError("This role cannot be requested at signup.")

    # also ensure that there isn't an existing user with the same email
    existing_user = await get_user_by_email(session, user.email)
    if existing_user:
        raise DuplicateUserError("User with this email already exists")

    user_in_db = User(
        **user.model_dump(exclude={"password"}),
        hashed_password=get_hashed_pwd(user.password)
    )
    await save_user(session, user_in_db)
    logger.info("user_created", user_id=str(user_in_db.id), role=UserRole(user_in_db.role).value)

    # this should return a valid UserPublic object WITHOUT the password
    return UserPublic.model_validate(user_in_db, from_attributes=True)
