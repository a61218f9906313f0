"""Stage repository: tenant-scoped pipeline stage CRUD and ordering."""
import logging
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crm_errors import NotFoundError
from db.models import Contact, Stage, utcnow

logger = logging.getLogger(__name__)


async def list_stages(session: AsyncSession, agent_id: str) -> list[Stage]:
    """Return the tenant's stages in pipeline order."""
    result = await session.execute(
        select(Stage)
        .where(Stage.agent_id == agent_id)
        .order_by(Stage.position, Stage.id)
    )
    return list(result.scalars().all())


async def count_stages(session: AsyncSession, agent_id: str) -> int:
    result = await session.execute(
        select(func.count()).select_from(Stage).where(Stage.agent_id == agent_id)
    )
    return result.scalar_one()


async def get_stage(session: AsyncSession, agent_id: str, stage_id: int) -> Stage:
    """Return the stage or raise NotFoundError (also for another tenant's id)."""
    result = await session.execute(
        select(Stage)
        .where(Stage.id == stage_id)
        .where(Stage.agent_id == agent_id)
        .execution_options(populate_existing=True)
    )
    stage = result.scalar_one_or_none()
    if stage is None:
        raise NotFoundError("Stage", stage_id)
    return stage


async def create_stage(
    session: AsyncSession,
    agent_id: str,
    name: str,
    position: int,
    color: Optional[str] = None,
) -> Stage:
    stage = Stage(agent_id=agent_id, name=name, position=position, color=color)
    session.add(stage)
    await session.flush()
    logger.info("Created stage %s (%s) for agent %s", stage.id, name, agent_id)
    return stage


async def update_stage(
    session: AsyncSession, agent_id: str, stage_id: int, changes: dict
) -> Stage:
    """Apply a partial update. changes keys: name, position, color."""
    if changes:
        result = await session.execute(
            update(Stage)
            .where(Stage.id == stage_id)
            .where(Stage.agent_id == agent_id)
            .values(**changes)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Stage", stage_id)
    return await get_stage(session, agent_id, stage_id)


async def delete_stage(session: AsyncSession, agent_id: str, stage_id: int) -> None:
    """Hard-delete a stage. Its contacts stay, with no stage."""
    await session.execute(
        update(Contact)
        .where(Contact.agent_id == agent_id)
        .where(Contact.stage_id == stage_id)
        .values(stage_id=None, stage_entered_at=None, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(
        delete(Stage)
        .where(Stage.id == stage_id)
        .where(Stage.agent_id == agent_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("Stage", stage_id)
    logger.info("Deleted stage %s for agent %s", stage_id, agent_id)


async def reorder_stages(
    session: AsyncSession, agent_id: str, stage_ids: list[int]
) -> list[Stage]:
    """Set each listed stage's position to its index + 1, in list order.

    Runs one UPDATE per stage inside the caller's transaction, so an unknown
    id aborts the whole reorder.
    """
    for position, stage_id in enumerate(stage_ids, start=1):
        result = await session.execute(
            update(Stage)
            .where(Stage.id == stage_id)
            .where(Stage.agent_id == agent_id)
            .values(position=position)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Stage", stage_id)
    logger.info("Reordered %d stages for agent %s", len(stage_ids), agent_id)
    return await list_stages(session, agent_id)
