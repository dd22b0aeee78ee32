"""
Jinja2 rendering for the server-rendered pages.
"""
from pathlib import Path
from typing import Any, Optional
from fastapi import Request, status
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from core.config import get_settings
from srv.schemas import SessionUser

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals["site_name"] = get_settings().site_name


def render_page(
    request: Request,
    name: str,
    session_user: Optional[SessionUser] = None,
    status_code: int = status.HTTP_200_OK,
    **context: Any
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        name,
        {"session_user": session_user, **context},
        status_code=status_code,
    )
