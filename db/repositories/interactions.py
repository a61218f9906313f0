"""Interaction repository: touchpoint logging against a contact."""
import logging
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crm_errors import NotFoundError
from db.models import Interaction, utcnow
from db.repositories.contacts import get_contact, update_contact

logger = logging.getLogger(__name__)


def _column_values(changes: dict) -> dict:
    # "metadata" is the public/column name; the mapped attribute is `meta`.
    values = dict(changes)
    if "metadata" in values:
        values["meta"] = values.pop("metadata")
    return {getattr(Interaction, key): value for key, value in values.items()}


async def list_interactions(
    session: AsyncSession,
    agent_id: str,
    *,
    contact_id: Optional[int] = None,
    interaction_type: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[Interaction]:
    """Return the tenant's interactions, newest first."""
    stmt = select(Interaction).where(Interaction.agent_id == agent_id)
    if contact_id is not None:
        stmt = stmt.where(Interaction.contact_id == contact_id)
    if interaction_type:
        stmt = stmt.where(Interaction.type == interaction_type)
    stmt = stmt.order_by(Interaction.created_at.desc(), Interaction.id.desc())
    if limit:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_interaction(
    session: AsyncSession, agent_id: str, interaction_id: int
) -> Interaction:
    result = await session.execute(
        select(Interaction)
        .where(Interaction.id == interaction_id)
        .where(Interaction.agent_id == agent_id)
        .execution_options(populate_existing=True)
    )
    interaction = result.scalar_one_or_none()
    if interaction is None:
        raise NotFoundError("Interaction", interaction_id)
    return interaction


async def add_interaction(session: AsyncSession, agent_id: str, data: dict) -> Interaction:
    """Insert an interaction and stamp the contact's last_contact_at.

    Both writes share the caller's transaction: if the contact refresh
    fails, the interaction is rolled back with it.

    data dict keys: contact_id, type, subject, content, created_by,
    created_by_type, scheduled_at, completed_at, metadata
    """
    values = dict(data)
    meta = values.pop("metadata", None) or {}
    await get_contact(session, agent_id, values["contact_id"])

    interaction = Interaction(agent_id=agent_id, meta=meta, **values)
    session.add(interaction)
    await session.flush()

    await update_contact(
        session, agent_id, interaction.contact_id, {"last_contact_at": utcnow()}
    )
    logger.info(
        "Logged %s interaction %s on contact %s for agent %s",
        interaction.type,
        interaction.id,
        interaction.contact_id,
        agent_id,
    )
    return await get_interaction(session, agent_id, interaction.id)


async def update_interaction(
    session: AsyncSession, agent_id: str, interaction_id: int, changes: dict
) -> Interaction:
    """Partial update. changes keys: type, subject, content, scheduled_at,
    completed_at, metadata"""
    if changes:
        result = await session.execute(
            update(Interaction)
            .where(Interaction.id == interaction_id)
            .where(Interaction.agent_id == agent_id)
            .values(_column_values(changes))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Interaction", interaction_id)
    return await get_interaction(session, agent_id, interaction_id)


async def delete_interaction(
    session: AsyncSession, agent_id: str, interaction_id: int
) -> None:
    result = await session.execute(
        delete(Interaction)
        .where(Interaction.id == interaction_id)
        .where(Interaction.agent_id == agent_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("Interaction", interaction_id)
    logger.info("Deleted interaction %s for agent %s", interaction_id, agent_id)
