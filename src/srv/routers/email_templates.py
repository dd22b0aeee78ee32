from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession
from db.session import get_session
from services import email_templates as templates_service
from ..gate import EVENT_MANAGER_ROLES
from ..schemas import (
    EmailTemplateCreate, EmailTemplatePublic, EmailTemplateUpdate, MessageResponse,
    RenderedTemplate, SessionUser, TemplatePreviewRequest, TemplateType,
)
from ..security import get_current_session, require_roles

router = APIRouter(prefix="/api/email-templates", tags=["email-templates"])


def _to_http(e: Exception) -> HTTPException:
    if isinstance(e, PermissionError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("", response_model=list[EmailTemplatePublic])
async def list_templates(
    template_type: Optional[TemplateType] = None,
    event_id: Optional[UUID] = None,
    user_id: Optional[UUID] = None,
    current_user: SessionUser = Depends(get_current_session),
    session: AsyncSession = Depends(get_session)
) -> list[EmailTemplatePublic]:
    """
    Returns the current user's templates, defaults first. Super admins may list another user's templates with `user_id`.

    Throws a 403 if a regular user asks for someone else's templates.
    """
    try:
        templates = await templates_service.list_templates(
            session, current_user, user_id, template_type, event_id)
    except PermissionError as e:
        raise _to_http(e)
    return [EmailTemplatePublic.model_validate(t, from_attributes=True) for t in templates]


@router.post("", response_model=EmailTemplatePublic, status_code=status.HTTP_201_CREATED)
async def create_template(
    template_in: EmailTemplateCreate,
    current_user: SessionUser = Depends(require_roles(*EVENT_MANAGER_ROLES)),
    session: AsyncSession = Depends(get_session)
) -> EmailTemplatePublic:
    """
    Creates a template. Marking it as the default replaces the previous default of the same type.

    Throws a 403 unless the user is an event planner or a super admin.
    """
    template = await templates_service.create_template(session, template_in, current_user)
    return EmailTemplatePublic.model_validate(template, from_attributes=True)


@router.get("/{template_id}", response_model=EmailTemplatePublic)
async def get_template(
    template_id: UUID,
    current_user: SessionUser = Depends(get_current_session),
    session: AsyncSession = Depends(get_session)
) -> EmailTemplatePublic:
    try:
        template = await templates_service.get_template_for_actor(session, template_id, current_user)
    except (LookupError, PermissionError) as e:
        raise _to_http(e)
    return EmailTemplatePublic.model_validate(template, from_attributes=True)


@router.put("/{template_id}", response_model=EmailTemplatePublic)
async def update_template(
    template_id: UUID,
    changes: EmailTemplateUpdate,
    current_user: SessionUser = Depends(get_current_session),
    session: AsyncSession = Depends(get_session)
) -> EmailTemplatePublic:
    try:
        template = await templates_service.update_template(session, template_id, changes, current_user)
    except (LookupError, PermissionError) as e:
        raise _to_http(e)
    return EmailTemplatePublic.model_validate(template, from_attributes=True)


@router.delete("/{template_id}", response_model=MessageResponse)
async def delete_template(
    template_id: UUID,
    current_user: SessionUser = Depends(get_current_session),
    session: AsyncSession = Depends(get_session)
) -> MessageResponse:
    try:
        await templates_service.delete_template(session, template_id, current_user)
    except (LookupError, PermissionError) as e:
        raise _to_http(e)
    return MessageResponse(message="Template deleted successfully")


@router.post("/{template_id}/set-default", response_model=EmailTemplatePublic)
async def set_default_template(
    template_id: UUID,
    current_user: SessionUser = Depends(get_current_session),
    session: AsyncSession = Depends(get_session)
) -> EmailTemplatePublic:
    """
    Makes this template the owner's default for its type.
    """
    try:
        template = await templates_service.set_default_template(session, template_id, current_user)
    except (LookupError, PermissionError) as e:
        raise _to_http(e)
    return EmailTemplatePublic.model_validate(template, from_attributes=True)


@router.post("/{template_id}/preview", response_model=RenderedTemplate)
async def preview_template(
    template_id: UUID,
    body: TemplatePreviewRequest,
    current_user: SessionUser = Depends(get_current_session),
    session: AsyncSession = Depends(get_session)
) -> RenderedTemplate:
    """
    Renders the template's subject and content with the given `variables`. Unfilled placeholders show up as "[No <name> provided]".
    """
    try:
        template = await templates_service.get_template_for_actor(session, template_id, current_user)
    except (LookupError, PermissionError) as e:
        raise _to_http(e)
    return templates_service.render(template.subject, template.content, body.variables)
