import os
import sys
import re
import pytest
import pytest_asyncio
from pathlib import Path
from datetime import timedelta
from typing import AsyncGenerator, Any, Optional
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession


# for tests that interact with the DB, create a SQLite file per-test session
TEST_DB_FILE = "./test_sqlite.db"
TEST_DB_URL = f"sqlite+aiosqlite:///{TEST_DB_FILE}"

# will create a safe test default for the DB_URL variable
# NOTE: this MUST come before we import the app, otherwise the test suite will fail to run
os.environ.setdefault("DB_URL", TEST_DB_URL)
# the mailer must never reach a real mail service from the test suite
os.environ.setdefault("MAIL_API_URL", "http://mail.test/send")


# makes sure that "src" is importable without setting PYTHONPATH manually
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# NOTE: these imports MUST come after sys.path tweak, otherwise you won't be able to run the test suite
from srv.app import app
from srv.mailer import get_mailer
from srv.schemas import (
    Event, EventFormat, EventStatus, EventVisibility, User, UserPublic, UserRole, utcnow,
)
from srv.security import create_session_token, get_hashed_pwd
from db.session import get_session


# regex taken from this source: https://regex101.com/r/wL7uN1/1
HEX32 = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[0-9a-f]{4}-[0-9a-f]{12}|[0-9a-f]{12}4[0-9a-f]{19}")
# regex taken from this source: https://base64.guru/standards/base64url
BASE64URL = re.compile(r"^[A-Za-z0-9_-]+$")

TEST_PASSWORD = "password123"
# bcrypt is slow on purpose, so every seeded user shares one hash
TEST_PASSWORD_HASH = get_hashed_pwd(TEST_PASSWORD)


class FakeMailer:
    """
    Stands in for `srv.mailer.Mailer`. Records every message and answers with `ok`
    (or raises, when `should_raise` is set).
    """

    def __init__(self, ok: bool = True, should_raise: bool = False):
        self.ok = ok
        self.should_raise = should_raise
        self.sent: list[dict] = []

    async def send(self, to: str, subject: Optional[str], text: Optional[str] = None, html: Optional[str] = None) -> bool:
        if self.should_raise:
            raise RuntimeError("mail service exploded")
        self.sent.append({"to": to, "subject": subject, "text": text, "html": html})
        return self.ok


def session_token_for(user: User, expires_delta: Optional[timedelta] = None) -> str:
    return create_session_token(UserPublic.model_validate(user, from_attributes=True), expires_delta)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {session_token_for(user)}"}


async def make_user(
    session: AsyncSession,
    email: str,
    role: UserRole = UserRole.USER,
    first_name: str = "Test",
    last_name: str = "User"
) -> User:
    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        role=role,
        hashed_password=TEST_PASSWORD_HASH,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def make_event(
    session: AsyncSession,
    organizer: User,
    title: str = "Python Meetup",
    starts_in: timedelta = timedelta(days=7),
    category: Optional[str] = "Tech",
    status: EventStatus = EventStatus.PUBLISHED,
    capacity: int = 100,
    end_date_offset: Optional[timedelta] = None,
    slug: Optional[str] = None
) -> Event:
    start = utcnow() + starts_in
    event = Event(
        title=title,
        description="An evening of talks and pizza.",
        date=start,
        end_date=start + end_date_offset if end_date_offset is not None else None,
        location="Community Hall",
        capacity=capacity,
        category=category,
        visibility=EventVisibility.PUBLIC,
        type=EventFormat.OFFLINE,
        slug=slug or f"{title.lower().replace(' ', '-')}-{utcnow().timestamp()}",
        status=status,
        organizer_id=organizer.id,
    )
    session.add(event)
    await session.commit()
    await session.refresh(event)
    return event


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def test_engine() -> AsyncGenerator[Any, Any]:
    # ensure SQLite file from previous runs removed
    try:
        os.remove(TEST_DB_FILE)
    except OSError:
        pass

    engine = create_async_engine(TEST_DB_URL)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    try:
        yield engine
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.drop_all)
        await engine.dispose()

    # delete the SQLite file, if possible
    try:
        os.remove(TEST_DB_FILE)
    except OSError:
        pass


@pytest_asyncio.fixture(loop_scope="session")
async def session_override(test_engine):
    # this ensures that there's only 1 connection per test
    async with test_engine.connect() as conn:
        # this sets up the outer transaction, which is rolled back at the end of the test
        outer_txn = await conn.begin()

        # clear any committed leftovers from previous runs
        for table in reversed(SQLModel.metadata.sorted_tables):
            await conn.execute(table.delete())

        # binds session to this connection and this one ONLY
        SessionLocal = async_sessionmaker(
            bind=conn, expire_on_commit=False, class_=AsyncSession,
            # every session transaction is a SAVEPOINT inside the outer transaction, so a COMMIT
            # only releases the savepoint and everything is still rolled back at the end
            join_transaction_mode="create_savepoint",
        )
        session: AsyncSession = SessionLocal()

        try:
            yield session
        finally:
            await session.close()
            # dump all changes from the test
            await outer_txn.rollback()


@pytest.fixture
def fake_mailer() -> FakeMailer:
    return FakeMailer()


# every route in the app shares the test session and the fake mailer
@pytest_asyncio.fixture(loop_scope="session")
async def client(session_override, fake_mailer) -> AsyncGenerator[AsyncClient, None]:
    async def _override_get_session():
        yield session_override

    app.dependency_overrides[get_session] = _override_get_session
    app.dependency_overrides[get_mailer] = lambda: fake_mailer

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    # doing this prevents other overrides from having conflicts
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(loop_scope="session")
async def attendee(session_override) -> User:
    return await make_user(session_override, "attendee@example.com", UserRole.USER, "Ada", "Attendee")


@pytest_asyncio.fixture(loop_scope="session")
async def planner(session_override) -> User:
    return await make_user(session_override, "planner@example.com", UserRole.EVENT_PLANNER, "Pat", "Planner")


@pytest_asyncio.fixture(loop_scope="session")
async def other_planner(session_override) -> User:
    return await make_user(session_override, "other@example.com", UserRole.EVENT_PLANNER, "Otto", "Other")


@pytest_asyncio.fixture(loop_scope="session")
async def admin(session_override) -> User:
    return await make_user(session_override, "admin@example.com", UserRole.SUPER_ADMIN, "Sue", "Admin")


@pytest_asyncio.fixture(loop_scope="session")
async def published_event(session_override, planner) -> Event:
    return await make_event(session_override, planner, slug="python-meetup")
