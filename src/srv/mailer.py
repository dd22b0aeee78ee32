from typing import Optional
import httpx
from core.config import get_settings
from core.logging import get_logger

logger = get_logger(__name__)


class Mailer:
    """
    Client for the HTTP mail-sending collaborator. It accepts one JSON message per request:
    `{"email": <to>, "emailbody": <html or text>, "emailsubject": <subject>}`.

    Sending never raises: every failure is logged and reported as `False`.
    """

    def __init__(
        self,
        api_url: Optional[str],
        default_subject: str = "Notification",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_url = api_url
        self.default_subject = default_subject
        self.timeout = timeout
        # only swapped out by the tests
        self._transport = transport

    async def send(
        self,
        to: str,
        subject: Optional[str],
        text: Optional[str] = None,
        html: Optional[str] = None
    ) -> bool:
        if not self.api_url:
            logger.warning("mail_not_configured", to=to)
            return False

        payload = {
            "email": to,
            "emailbody": html or text or f"Subject: {subject}",
            "emailsubject": subject or self.default_subject,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.api_url, json=payload)
        except httpx.HTTPError as e:
            logger.error("mail_send_failed", to=to, error=str(e))
            return False

        if response.is_error:
            logger.error(
                "mail_send_rejected", to=to, status_code=response.status_code, body=response.text[:500])
            return False

        logger.info("mail_sent", to=to, subject=payload["emailsubject"])
        return True


_mailer: Optional[Mailer] = None


# dependency for FastAPI routes
def get_mailer() -> Mailer:
    global _mailer
    if _mailer is None:
        settings = get_settings()
        _mailer = Mailer(
            settings.mail_api_url,
            default_subject=f"Notification from {settings.site_name}",
            timeout=settings.mail_timeout_seconds,
        )
    return _mailer
