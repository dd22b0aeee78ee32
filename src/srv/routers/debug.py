from typing import Optional
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from core.logging import get_logger
from ..errors import error_response
from ..security import decode_session_token, get_session_token, session_from_claims

logger = get_logger(__name__)

router = APIRouter(prefix="/api/debug", tags=["debug"])


@router.get("/user-role")
async def get_user_role(token: Optional[str] = Depends(get_session_token)) -> JSONResponse:
    """
    Shows what the server sees in the current session: the user's id, name, email and role, plus the raw claims.

    Throws a 401 if there is no valid session.
    """
    try:
        claims = decode_session_token(token) if token else None
        session_user = session_from_claims(claims) if claims else None
        if session_user is None:
            return error_response(status.HTTP_401_UNAUTHORIZED, "Not authenticated")

        return JSONResponse({
            "user": session_user.model_dump(mode="json"),
            "session_data": claims,
        })
    except Exception as e:
        logger.error("debug_user_role_failed", error=str(e))
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
