from html import escape
from typing import Optional
from core.config import get_settings
from srv.mailer import Mailer


def _html_paragraphs(text: str) -> str:
    return escape(text).replace("\n", "<br>")


async def send_contact_form_email(
    mailer: Mailer,
    name: str,
    email: str,
    message: str,
    subject: Optional[str] = None
) -> bool:
    """
    Forwards a contact form submission to the site's inbox and sends the submitter a confirmation.
    Returns `True` only if the mail collaborator accepted both messages.
    """
    settings = get_settings()
    topic = subject or "General enquiry"

    forwarded = await mailer.send(
        settings.contact_email,
        f"Contact Form: {topic}",
        text=f"Name: {name}\nEmail: {email}\nSubject: {topic}\n\nMessage:\n{message}\n",
        html=(
            "<div style=\"font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;\">"
            "<h2>New Contact Form Submission</h2>"
            f"<p><strong>Name:</strong> {escape(name)}</p>"
            f"<p><strong>Email:</strong> {escape(email)}</p>"
            f"<p><strong>Subject:</strong> {escape(topic)}</p>"
            f"<h3>Message:</h3><p>{_html_paragraphs(message)}</p>"
            "</div>"
        ),
    )
    if not forwarded:
        return False

    return await mailer.send(
        email,
        f"Thank you for contacting {settings.site_name}",
        text=(
            f"Dear {name},\n\nThank you for contacting {settings.site_name}. We have received your message "
            f"and will get back to you as soon as possible.\n\nFor your reference, here's a copy of your "
            f"message:\n\n{message}\n\nBest regards,\n{settings.site_name} Team\n"
        ),
        html=(
            "<div style=\"font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;\">"
            "<h2>Thank You for Contacting Us</h2>"
            f"<p>Dear {escape(name)},</p>"
            f"<p>Thank you for contacting {escape(settings.site_name)}. We have received your message "
            "and will get back to you as soon as possible.</p>"
            f"<h3>Your Message:</h3><p>{_html_paragraphs(message)}</p>"
            f"<p>Best regards,<br>{escape(settings.site_name)} Team</p>"
            "</div>"
        ),
    )
