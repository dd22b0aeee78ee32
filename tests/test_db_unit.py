import pytest
import db.session as db_session
from conftest import TEST_DB_URL


@pytest.mark.asyncio(loop_scope="session")
async def test_get_session_requires_init_engine(monkeypatch):
    monkeypatch.setattr(db_session, "AsyncSessionLocal", None)
    with pytest.raises(RuntimeError):
        await anext(db_session.get_session())


@pytest.mark.asyncio(loop_scope="session")
async def test_init_engine_and_close_engine(test_engine):
    """Tests that `init_engine()` connects, hands out sessions and is reset by `close_engine()`."""
    await db_session.close_engine()
    await db_session.init_engine(TEST_DB_URL, max_retries=1, retry_delay=0)
    try:
        assert db_session.engine is not None
        gen = db_session.get_session()
        session = await anext(gen)
        assert session is not None
        await gen.aclose()
    finally:
        await db_session.close_engine()
    assert db_session.engine is None
    assert db_session.AsyncSessionLocal is None


@pytest.mark.asyncio(loop_scope="session")
async def test_init_engine_gives_up_after_retries():
    await db_session.close_engine()
    with pytest.raises(RuntimeError):
        # the directory doesn't exist, so SQLite cannot open the file
        await db_session.init_engine(
            "sqlite+aiosqlite:///./missing-dir/nowhere/test.db", max_retries=2, retry_delay=0)
    assert db_session.engine is None
    assert db_session.AsyncSessionLocal is None

    # a failed start must not block a later one
    await db_session.init_engine(TEST_DB_URL, max_retries=1, retry_delay=0)
    try:
        assert db_session.engine is not None
        assert str(db_session.engine.url) == TEST_DB_URL
    finally:
        await db_session.close_engine()
