from contextlib import asynccontextmanager
from typing import AsyncIterator
from fastapi import FastAPI
from core.config import get_settings
from core.logging import get_logger, setup_logging
from db.session import DB_URL, close_engine, init_engine
from .errors import register_exception_handlers
from .routers import (
    auth as auth_router,
    contact as contact_router,
    debug as debug_router,
    email_templates as email_templates_router,
    events as events_router,
    pages as pages_router,
    tickets as tickets_router,
)

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    setup_logging(settings.log_level, settings.json_logs)
    # SQLite is only used locally and in tests, so its schema is created on startup
    await init_engine(DB_URL, create_tables=DB_URL.startswith("sqlite"))
    logger.info("app_started", site_name=settings.site_name)
    try:
        yield
    finally:
        await close_engine()
        logger.info("app_stopped")


app = FastAPI(title=settings.site_name, lifespan=lifespan)
register_exception_handlers(app)

app.include_router(auth_router.router)
app.include_router(events_router.router)
app.include_router(events_router.admin_router)
app.include_router(tickets_router.router)
app.include_router(email_templates_router.router)
app.include_router(contact_router.router)
app.include_router(debug_router.router)
# the HTML pages come last so that no page route shadows an API route
app.include_router(pages_router.router)
