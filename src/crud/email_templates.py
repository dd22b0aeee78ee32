from typing import Optional
from uuid import UUID
from sqlalchemy import update
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession
from srv.schemas import EmailTemplate, TemplateType


async def save_template(session: AsyncSession, template: EmailTemplate) -> EmailTemplate:
    session.add(template)
    await session.commit()
    await session.refresh(template)
    return template


async def get_template(session: AsyncSession, template_id: UUID) -> Optional[EmailTemplate]:
    return await session.get(EmailTemplate, template_id)


async def select_templates(
    session: AsyncSession,
    user_id: Optional[UUID] = None,
    template_type: Optional[TemplateType] = None,
    event_id: Optional[UUID] = None
) -> list[EmailTemplate]:
    """
    Filters the stored templates. Defaults come first, then the most recently updated ones.
    """
    query = select(EmailTemplate)
    if user_id:
        query = query.where(EmailTemplate.user_id == user_id)
    if template_type:
        query = query.where(EmailTemplate.template_type == template_type)
    if event_id:
        query = query.where(EmailTemplate.event_id == event_id)
    result = await session.exec(
        query.order_by(col(EmailTemplate.is_default).desc(), col(EmailTemplate.updated_at).desc()))
    return list(result.all())


async def get_default_template(
    session: AsyncSession,
    user_id: UUID,
    template_type: TemplateType
) -> Optional[EmailTemplate]:
    result = await session.exec(
        select(EmailTemplate).where(
            (EmailTemplate.user_id == user_id)
            & (EmailTemplate.template_type == template_type)
            & (col(EmailTemplate.is_default).is_(True))
        )
    )
    return result.first()


async def clear_defaults(
    session: AsyncSession,
    user_id: UUID,
    template_type: TemplateType,
    keep_id: Optional[UUID] = None
) -> None:
    """
    Unsets `is_default` on the user's templates of one type (except `keep_id`). Does not commit.
    """
    stmt = update(EmailTemplate).where(
        (col(EmailTemplate.user_id) == user_id) & (col(EmailTemplate.template_type) == template_type))
    if keep_id:
        stmt = stmt.where(col(EmailTemplate.id) != keep_id)
    await session.execute(stmt.values(is_default=False))


async def detach_event_templates(session: AsyncSession, event_id: UUID) -> None:
    """
    Turns an event's templates into general ones. Does not commit.
    """
    await session.execute(
        update(EmailTemplate).where(col(EmailTemplate.event_id) == event_id).values(event_id=None))


async def delete_template(session: AsyncSession, template: EmailTemplate) -> None:
    await session.delete(template)
    await session.commit()
