from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from core.logging import get_logger
from services.contact import send_contact_form_email
from ..errors import error_response
from ..mailer import Mailer, get_mailer

logger = get_logger(__name__)

router = APIRouter(prefix="/api/contact", tags=["contact"])

REQUIRED_FIELDS = ("name", "email", "message")


@router.post("")
async def submit_contact_form(
    request: Request,
    mailer: Mailer = Depends(get_mailer)
) -> JSONResponse:
    """
    Sends a contact form submission `{name, email, message}` (and optionally `subject`) by email.

    Throws a 400 if any of name, email or message is missing or empty.

    Throws a 500 if the email could not be sent, or if the body could not be processed.
    """
    try:
        body = await request.json()
        if not isinstance(body, dict):
            raise TypeError("The request body must be a JSON object")

        if not all(body.get(field) for field in REQUIRED_FIELDS):
            return error_response(status.HTTP_400_BAD_REQUEST, "Name, email, and message are required")

        sent = await send_contact_form_email(
            mailer,
            name=str(body["name"]),
            email=str(body["email"]),
            message=str(body["message"]),
            subject=body.get("subject") or None,
        )
        if not sent:
            return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to send email")

        return JSONResponse({"message": "Email sent successfully"}, status_code=status.HTTP_200_OK)
    except Exception as e:
        logger.error("contact_form_failed", error=str(e))
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "An error occurred while submitting the form")
