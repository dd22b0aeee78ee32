import re
from typing import Any, Mapping, Optional
from uuid import UUID
from sqlmodel.ext.asyncio.session import AsyncSession
from core.logging import get_logger
from crud import email_templates as templates_crud
from srv.schemas import (
    EmailTemplate, EmailTemplateCreate, EmailTemplateUpdate, RenderedTemplate, SessionUser,
    TemplateType, UserRole, utcnow,
)

logger = get_logger(__name__)

PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")

# built-in (subject, content) per template type, used until a user saves a default of their own
DEFAULT_TEMPLATES: dict[TemplateType, tuple[str, str]] = {
    TemplateType.SUCCESS: (
        "Registration confirmed: {{eventName}}",
        "Dear {{attendeeName}},\n\nYour registration for **{{eventName}}** has been confirmed!\n\n"
        "**Event Details:**\n- Date: {{eventDate}}\n- Time: {{eventTime}}\n- Location: {{eventLocation}}\n\n"
        "We look forward to seeing you there!\n\nBest regards,\n{{organizerName}}",
    ),
    TemplateType.REJECTION: (
        "Update on your registration for {{eventName}}",
        "Dear {{attendeeName}},\n\nThank you for your interest in **{{eventName}}**.\n\n"
        "We regret to inform you that we are unable to confirm your registration at this time.\n\n"
        "Please contact us if you have any questions.\n\nBest regards,\n{{organizerName}}",
    ),
    TemplateType.TICKET: (
        "Your ticket for {{eventName}}",
        "# Event Ticket\n\n**{{eventName}}**\n\nAttendee: {{attendeeName}}\nTicket ID: {{ticketId}}\n"
        "Date: {{eventDate}}\nTime: {{eventTime}}\nLocation: {{eventLocation}}\n\n"
        "*Please present this ticket at the event entrance.*",
    ),
    TemplateType.CERTIFICATE: (
        "Your certificate for {{eventName}}",
        "# Certificate of Participation\n\nThis is to certify that\n\n**{{attendeeName}}**\n\n"
        "has successfully participated in\n\n**{{eventName}}**\n\n"
        "held on {{eventDate}} at {{eventLocation}}.\n\n{{organizerName}}\nEvent Organizer",
    ),
    TemplateType.REMINDER: (
        "Reminder: {{eventName}} is coming up",
        "Dear {{attendeeName}},\n\nThis is a friendly reminder about the upcoming event:\n\n**{{eventName}}**\n\n"
        "**Event Details:**\n- Date: {{eventDate}}\n- Time: {{eventTime}}\n- Location: {{eventLocation}}\n\n"
        "We look forward to seeing you there!\n\nBest regards,\n{{organizerName}}",
    ),
    TemplateType.CUSTOM: (
        "A message from {{organizerName}}",
        "Dear {{recipientName}},\n\nThank you for your interest in our events.\n\n{{customMessage}}\n\n"
        "Best regards,\n{{organizerName}}",
    ),
}


def render_text(text: str, variables: Mapping[str, Any]) -> str:
    """
    Replaces every `{{key}}` in `text`. Missing or empty values become "[No key provided]".
    """
    def _sub(match: re.Match) -> str:
        key = match.group(1)
        value = variables.get(key)
        if value is None or value == "":
            return f"[No {key} provided]"
        return str(value)

    return PLACEHOLDER.sub(_sub, text)


def render(subject: str, content: str, variables: Mapping[str, Any]) -> RenderedTemplate:
    return RenderedTemplate(subject=render_text(subject, variables), content=render_text(content, variables))


async def resolve_template(session: AsyncSession, user_id: UUID, template_type: TemplateType) -> tuple[str, str]:
    """
    Returns the user's default `(subject, content)` for `template_type`, or the built-in one.
    """
    template = await templates_crud.get_default_template(session, user_id, template_type)
    if template:
        return template.subject, template.content
    return DEFAULT_TEMPLATES[template_type]


def _is_admin(actor: SessionUser) -> bool:
    return actor.role == UserRole.SUPER_ADMIN.value


async def list_templates(
    session: AsyncSession,
    actor: SessionUser,
    user_id: Optional[UUID] = None,
    template_type: Optional[TemplateType] = None,
    event_id: Optional[UUID] = None
) -> list[EmailTemplate]:
    """
    Users only ever see their own templates. Super-admins see everyone's, or one user's with `user_id`.
    """
    if not _is_admin(actor):
        if user_id and user_id != actor.id:
            raise PermissionError("Forbidden: You can only access your own templates")
        user_id = actor.id
    return await templates_crud.select_templates(session, user_id, template_type, event_id)


async def create_template(session: AsyncSession, data: EmailTemplateCreate, actor: SessionUser) -> EmailTemplate:
    owner_id = data.user_id if (_is_admin(actor) and data.user_id) else actor.id
    template = EmailTemplate(**data.model_dump(exclude={"user_id"}), user_id=owner_id)
    if template.is_default:
        await templates_crud.clear_defaults(session, owner_id, template.template_type)
    await templates_crud.save_template(session, template)
    logger.info("email_template_created", template_id=str(template.id), user_id=str(owner_id))
    return template


async def get_template_for_actor(session: AsyncSession, template_id: UUID, actor: SessionUser) -> EmailTemplate:
    template = await templates_crud.get_template(session, template_id)
    if template is None:
        raise LookupError("Template not found")
    if not _is_admin(actor) and template.user_id != actor.id:
        raise PermissionError("Forbidden: You can only access your own templates")
    return template


async def update_template(
    session: AsyncSession,
    template_id: UUID,
    data: EmailTemplateUpdate,
    actor: SessionUser
) -> EmailTemplate:
    template = await get_template_for_actor(session, template_id, actor)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(template, field, value)
    if template.is_default:
        await templates_crud.clear_defaults(session, template.user_id, template.template_type, keep_id=template.id)
    template.updated_at = utcnow()
    return await templates_crud.save_template(session, template)


async def set_default_template(session: AsyncSession, template_id: UUID, actor: SessionUser) -> EmailTemplate:
    template = await get_template_for_actor(session, template_id, actor)
    await templates_crud.clear_defaults(session, template.user_id, template.template_type, keep_id=template.id)
    template.is_default = True
    template.updated_at = utcnow()
    return await templates_crud.save_template(session, template)


async def delete_template(session: AsyncSession, template_id: UUID, actor: SessionUser) -> None:
    template = await get_template_for_actor(session, template_id, actor)
    await templates_crud.delete_template(session, template)
    logger.info("email_template_deleted", template_id=str(template_id))
