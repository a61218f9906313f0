"""Contact repository: filtered listing, search and stage transitions."""
import logging
from typing import Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crm_errors import NotFoundError
from db.models import Contact, utcnow
from db.repositories.stages import get_stage

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20

# Most recently touched first; id breaks ties between rows written together.
_RECENCY = (Contact.updated_at.desc(), Contact.id.desc())


def _has_any_tag(session: AsyncSession, tags: list[str]):
    """Contacts whose tags share at least one element with `tags`."""
    if session.get_bind().dialect.name == "postgresql":
        return Contact.tags.overlap(tags)
    # SQLite keeps tags as a JSON array; compare the decoded elements.
    element = func.json_each(Contact.tags).table_valued("value")
    return select(element.c.value).where(element.c.value.in_(tags)).exists()


async def list_contacts(
    session: AsyncSession,
    agent_id: str,
    *,
    stage_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    assigned_to: Optional[str] = None,
    tags: Optional[list[str]] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[Contact]:
    """Return the tenant's contacts, most recently updated first.

    tags matches contacts carrying ANY of the given tags. With offset, the
    page size is limit (default 20).
    """
    stmt = select(Contact).where(Contact.agent_id == agent_id)
    if stage_id is not None:
        stmt = stmt.where(Contact.stage_id == stage_id)
    if is_active is not None:
        stmt = stmt.where(Contact.is_active == is_active)
    if assigned_to:
        stmt = stmt.where(Contact.assigned_to == assigned_to)
    if tags:
        stmt = stmt.where(_has_any_tag(session, list(tags)))
    stmt = stmt.order_by(*_RECENCY)
    if offset:
        stmt = stmt.offset(offset).limit(limit or DEFAULT_PAGE_SIZE)
    elif limit:
        stmt = stmt.limit(limit)

    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_contact(session: AsyncSession, agent_id: str, contact_id: int) -> Contact:
    """Return the contact or raise NotFoundError (also for another tenant's id)."""
    result = await session.execute(
        select(Contact)
        .where(Contact.id == contact_id)
        .where(Contact.agent_id == agent_id)
        .execution_options(populate_existing=True)
    )
    contact = result.scalar_one_or_none()
    if contact is None:
        raise NotFoundError("Contact", contact_id)
    return contact


async def create_contact(session: AsyncSession, agent_id: str, data: dict) -> Contact:
    """Insert a contact.

    data dict keys: name, email, phone, company, role, stage_id, source,
    source_detail, assigned_to, tags, custom_fields, deal_value, currency,
    is_active
    """
    data = dict(data)
    if data.get("stage_id") is not None:
        await get_stage(session, agent_id, data["stage_id"])
        data["stage_entered_at"] = utcnow()

    contact = Contact(agent_id=agent_id, **data)
    session.add(contact)
    await session.flush()
    logger.info("Created contact %s for agent %s", contact.id, agent_id)
    return await get_contact(session, agent_id, contact.id)


async def update_contact(
    session: AsyncSession, agent_id: str, contact_id: int, changes: dict
) -> Contact:
    """Apply a partial update and bump updated_at.

    A stage_id change refreshes stage_entered_at in the same statement.
    """
    values = dict(changes)
    if "stage_id" in values:
        if values["stage_id"] is not None:
            await get_stage(session, agent_id, values["stage_id"])
            values["stage_entered_at"] = utcnow()
        else:
            values["stage_entered_at"] = None
    values["updated_at"] = utcnow()

    result = await session.execute(
        update(Contact)
        .where(Contact.id == contact_id)
        .where(Contact.agent_id == agent_id)
        .values({getattr(Contact, key): value for key, value in values.items()})
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("Contact", contact_id)
    return await get_contact(session, agent_id, contact_id)


async def move_stage(
    session: AsyncSession, agent_id: str, contact_id: int, stage_id: Optional[int]
) -> Contact:
    """Set stage_id and stage_entered_at together in one UPDATE."""
    if stage_id is not None:
        await get_stage(session, agent_id, stage_id)
    now = utcnow()
    result = await session.execute(
        update(Contact)
        .where(Contact.id == contact_id)
        .where(Contact.agent_id == agent_id)
        .values(stage_id=stage_id, stage_entered_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("Contact", contact_id)
    logger.info("Moved contact %s to stage %s for agent %s", contact_id, stage_id, agent_id)
    return await get_contact(session, agent_id, contact_id)


async def delete_contact(session: AsyncSession, agent_id: str, contact_id: int) -> None:
    """Hard-delete a contact; its interactions and tasks go with it (FK cascade)."""
    result = await session.execute(
        delete(Contact)
        .where(Contact.id == contact_id)
        .where(Contact.agent_id == agent_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("Contact", contact_id)
    logger.info("Deleted contact %s for agent %s", contact_id, agent_id)


async def search_contacts(
    session: AsyncSession, agent_id: str, query: str, limit: Optional[int] = None
) -> list[Contact]:
    """Case-insensitive substring match on name, email, company or phone."""
    term = query.strip()
    stmt = (
        select(Contact)
        .where(Contact.agent_id == agent_id)
        .where(
            or_(
                Contact.name.icontains(term, autoescape=True),
                Contact.email.icontains(term, autoescape=True),
                Contact.company.icontains(term, autoescape=True),
                Contact.phone.icontains(term, autoescape=True),
            )
        )
        .order_by(*_RECENCY)
    )
    if limit:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())
