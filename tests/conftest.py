"""Shared fixtures: a throwaway SQLite database per test.

The schema is created straight from the ORM metadata, and foreign keys are
enforced so ON DELETE behaves the way it does on PostgreSQL.
"""
import pytest
import pytest_asyncio

from crm import CRM
from db.connection import build_engine, make_sessionmaker
from db.models import Base


@pytest_asyncio.fixture
async def sessionmaker(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'crm.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield make_sessionmaker(engine)
    await engine.dispose()


@pytest.fixture
def crm(sessionmaker):
    return CRM(agent_id="t1", sessionmaker=sessionmaker)


@pytest.fixture
def other_crm(sessionmaker):
    return CRM(agent_id="t2", sessionmaker=sessionmaker)
