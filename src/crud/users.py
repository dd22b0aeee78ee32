from typing import Optional
from uuid import UUID
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from srv.schemas import User


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    """
    Retrieves a single user from the database by their (lowercased) email.
    """
    result = await session.exec(select(User).where(User.email == email.strip().lower()))
    return result.first()


async def get_user_by_id(session: AsyncSession, user_id: UUID) -> Optional[User]:
    return await session.get(User, user_id)


async def select_users(session: AsyncSession) -> list[User]:
    result = await session.exec(select(User).order_by(User.created_at))
    return list(result.all())


async def save_user(session: AsyncSession, user: User) -> User:
    """
    Saves a user to the database.
    """
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user
