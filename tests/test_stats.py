"""Tests for the pipeline and activity reports."""
from datetime import timedelta
from decimal import Decimal

import pytest

from crm_errors import ValidationError
from db import get_db
from db.models import Contact, Interaction, Task, utcnow


def _bucket(stats, name):
    return next(s for s in stats.stages if s.name == name)


class TestPipelineStats:
    @pytest.mark.asyncio
    async def test_mixed_pipeline(self, crm):
        """Active contacts bucket by stage; inactive ones count nowhere."""
        lead = await crm.create_stage({"name": "Lead", "position": 1})
        won = await crm.create_stage({"name": "Won", "position": 2})
        await crm.create_contact({"name": "A", "stage_id": lead.id, "deal_value": 100})
        await crm.create_contact({"name": "B", "stage_id": won.id, "deal_value": 50})
        await crm.create_contact({"name": "C", "deal_value": 25})
        await crm.create_contact(
            {"name": "D", "stage_id": lead.id, "deal_value": 1000, "is_active": False}
        )

        stats = await crm.get_pipeline_stats()

        assert [s.name for s in stats.stages] == ["Unstaged", "Lead", "Won"]
        assert (_bucket(stats, "Lead").count, _bucket(stats, "Lead").value) == (1, Decimal("100"))
        assert (_bucket(stats, "Won").count, _bucket(stats, "Won").value) == (1, Decimal("50"))
        unstaged = _bucket(stats, "Unstaged")
        assert (unstaged.count, unstaged.value) == (1, Decimal("25"))
        assert unstaged.id is None
        assert unstaged.position == 0
        assert unstaged.color == "#888888"
        assert stats.total_contacts == 3
        assert stats.total_value == Decimal("175")

    @pytest.mark.asyncio
    async def test_buckets_add_up_to_totals(self, crm):
        stages = (await crm.initialize_default_stages()).stages
        values = [10, None, 250, 0, 75, 1200, None, 5]
        for i, value in enumerate(values):
            stage_id = stages[i % len(stages)].id if i % 3 else None
            await crm.create_contact(
                {"name": f"C{i}", "stage_id": stage_id, "deal_value": value, "is_active": i != 4}
            )

        stats = await crm.get_pipeline_stats()

        assert sum(s.count for s in stats.stages) == stats.total_contacts == len(values) - 1
        assert sum((s.value for s in stats.stages), Decimal("0")) == stats.total_value
        assert stats.total_value == Decimal("1465")

    @pytest.mark.asyncio
    async def test_no_unstaged_bucket_when_everyone_is_staged(self, crm):
        lead = await crm.create_stage({"name": "Lead"})
        await crm.create_contact({"name": "A", "stage_id": lead.id})

        stats = await crm.get_pipeline_stats()

        assert [s.name for s in stats.stages] == ["Lead"]
        assert stats.stages[0].value == Decimal("0")

    @pytest.mark.asyncio
    async def test_empty_tenant(self, crm):
        await crm.initialize_default_stages()
        stats = await crm.get_pipeline_stats()
        assert len(stats.stages) == 6
        assert all(s.count == 0 for s in stats.stages)
        assert stats.total_contacts == 0
        assert stats.total_value == Decimal("0")

    @pytest.mark.asyncio
    async def test_ignores_other_tenants(self, crm, other_crm):
        await other_crm.create_contact({"name": "Elsewhere", "deal_value": 999})
        stats = await crm.get_pipeline_stats()
        assert stats.total_contacts == 0
        assert stats.stages == []


class TestActivityStats:
    @pytest.mark.asyncio
    async def test_counts_only_rows_created_in_window(self, crm, sessionmaker):
        contact = await crm.create_contact({"name": "Fresh"})
        await crm.mark_lost((await crm.create_contact({"name": "Gone"})).id)
        await crm.add_note(contact.id, "one", "alice")
        await crm.log_call(contact.id, created_by="alice")
        await crm.log_call(contact.id, created_by="alice")
        await crm.add_task({"title": "open"})
        done_task = await crm.add_task({"title": "done"})
        await crm.complete_task(done_task.id)

        old = utcnow() - timedelta(days=45)
        async with get_db(sessionmaker) as session:
            stale = Contact(agent_id="t1", name="Stale", created_at=old, updated_at=old)
            session.add(stale)
            await session.flush()
            session.add(
                Interaction(
                    agent_id="t1",
                    contact_id=stale.id,
                    type="email",
                    created_by="alice",
                    created_at=old,
                )
            )
            session.add(Task(agent_id="t1", title="ancient", completed=True, created_at=old))

        stats = await crm.get_activity_stats(30)

        assert stats.period == "30 days"
        assert stats.days == 30
        assert stats.interactions.total == 3
        assert stats.interactions.by_type == {"note": 1, "call": 2}
        assert stats.tasks.created == 2
        assert stats.tasks.completed == 1
        assert stats.contacts.created == 2
        assert stats.contacts.active == 1

    @pytest.mark.asyncio
    async def test_wider_window_includes_older_rows(self, crm, sessionmaker):
        old = utcnow() - timedelta(days=45)
        async with get_db(sessionmaker) as session:
            session.add(Contact(agent_id="t1", name="Stale", created_at=old, updated_at=old))

        assert (await crm.get_activity_stats(30)).contacts.created == 0
        assert (await crm.get_activity_stats(60)).contacts.created == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("days", [-1, "30", 1.5, True])
    async def test_rejects_bad_days(self, crm, days):
        with pytest.raises(ValidationError):
            await crm.get_activity_stats(days)


@pytest.mark.asyncio
async def test_overview_combines_both_reports(crm):
    await crm.initialize_default_stages()
    await crm.create_contact({"name": "Jane", "deal_value": 10})

    overview = await crm.get_stats()

    assert overview.agent_id == "t1"
    assert overview.pipeline.total_contacts == 1
    assert overview.activity.period == "30 days"
    assert overview.activity.contacts.created == 1
    assert overview.generated_at is not None
