"""Tests for crm_cli: line formatting and command dispatch."""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from crm_cli import (
    _build_arg_parser,
    _parse_when,
    _split_tags,
    format_contact,
    format_interaction,
    format_task,
    main,
    run,
)
from schemas import ContactRead, ContactRef, InteractionRead, StageRef, TaskRead


def _args(*argv):
    return _build_arg_parser().parse_args(list(argv))


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


class TestFormatContact:
    def test_full_record(self):
        contact = ContactRead(
            id=7,
            agent_id="t1",
            name="Jane Smith",
            email="jane@example.com",
            company="Acme",
            deal_value=Decimal("5000"),
            stage=StageRef(name="Proposal", color="#d946ef"),
        )
        assert format_contact(contact) == (
            "[7] Jane Smith <jane@example.com> @ Acme | Proposal | $5000"
        )

    def test_minimal_lost_record(self):
        contact = ContactRead(id=1, agent_id="t1", name="Bob", is_active=False)
        assert format_contact(contact) == "[1] Bob | Unstaged [LOST]"


class TestFormatTask:
    def test_open_task_with_contact_and_due(self):
        task = TaskRead(
            id=3,
            agent_id="t1",
            title="Send proposal",
            priority="high",
            due_at=datetime(2026, 3, 3, 9, 0, tzinfo=timezone.utc),
            contact=ContactRef(name="Jane"),
        )
        assert format_task(task) == "○ [3] Send proposal [Jane] (due: 2026-03-03) [HIGH]"

    def test_completed_medium_task(self):
        task = TaskRead(id=4, agent_id="t1", title="Call back", completed=True)
        assert format_task(task) == "✓ [4] Call back"


def test_format_interaction():
    interaction = InteractionRead(
        id=9,
        agent_id="t1",
        contact_id=2,
        type="call",
        subject="Pricing",
        created_by="alice",
        created_at=datetime(2026, 2, 1, 15, 30),
        contact=ContactRef(name="Jane"),
    )
    assert format_interaction(interaction) == "[9] 2026-02-01 | CALL: Pricing | Jane | by alice"


class TestHelpers:
    def test_split_tags(self):
        assert _split_tags("vip, retail,,") == ["vip", "retail"]
        assert _split_tags(None) == []

    def test_parse_when_assumes_utc(self):
        assert _parse_when("2026-03-03") == datetime(2026, 3, 3, tzinfo=timezone.utc)
        assert _parse_when(None) is None

    def test_parse_when_keeps_offset(self):
        parsed = _parse_when("2026-03-03T10:00:00+10:00")
        assert parsed.utcoffset().total_seconds() == 36000


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestRun:
    @pytest.mark.asyncio
    async def test_init_then_list_stages(self, crm, capsys):
        assert await run(crm, _args("init")) == 0
        assert await run(crm, _args("init")) == 0
        assert await run(crm, _args("stages")) == 0

        out = capsys.readouterr().out
        assert "Initialized default pipeline stages:" in out
        assert "Pipeline already initialized." in out
        assert "1. Lead (#6366f1)" in out
        assert "6. Won (#22c55e)" in out

    @pytest.mark.asyncio
    async def test_contact_lifecycle(self, crm, capsys):
        stage = await crm.create_stage({"name": "Lead"})

        code = await run(
            crm,
            _args(
                "contacts", "create", "Jane Smith",
                "--email", "jane@example.com",
                "--stage", str(stage.id),
                "--value", "1500",
                "--tags", "vip,retail",
            ),
        )
        assert code == 0
        contact = (await crm.list_contacts())[0]
        assert contact.tags == ["vip", "retail"]
        assert contact.deal_value == Decimal("1500")

        assert await run(crm, _args("contacts", "lost", str(contact.id), "--reason", "budget")) == 0
        assert await run(crm, _args("contacts", "search", "jane")) == 0

        out = capsys.readouterr().out
        assert f"Created contact: [{contact.id}] Jane Smith <jane@example.com> | Lead" in out
        assert "[LOST]" in out
        assert "Search Results (1):" in out
        assert (await crm.get_contact(contact.id)).lost_reason == "budget"

    @pytest.mark.asyncio
    async def test_interaction_add_defaults_to_cli_user(self, crm, capsys):
        contact = await crm.create_contact({"name": "Jane"})

        code = await run(
            crm,
            _args("interactions", "add", str(contact.id), "call", "Discussed", "pricing"),
        )

        assert code == 0
        interaction = (await crm.list_interactions())[0]
        assert interaction.content == "Discussed pricing"
        assert interaction.created_by == "cli"
        assert interaction.created_by_type == "user"
        assert "CALL | Jane | by cli" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_task_commands(self, crm, capsys):
        assert await run(
            crm, _args("tasks", "add", "Send", "proposal", "--due", "2000-01-01", "--priority", "high")
        ) == 0
        task = (await crm.list_tasks())[0]
        assert task.title == "Send proposal"

        assert await run(crm, _args("tasks", "list", "--overdue")) == 0
        assert await run(crm, _args("tasks", "complete", str(task.id))) == 0
        assert await run(crm, _args("tasks", "list", "--pending")) == 0

        out = capsys.readouterr().out
        assert "○ [1] Send proposal (due: 2000-01-01) [HIGH]" in out
        assert "Completed: ✓ [1] Send proposal" in out
        assert "Tasks (0):" in out

    @pytest.mark.asyncio
    async def test_stats_all(self, crm, capsys):
        await crm.initialize_default_stages()
        await crm.create_contact({"name": "Jane", "deal_value": 1000})

        assert await run(crm, _args("stats", "all", "--days", "7")) == 0

        out = capsys.readouterr().out
        assert "Total Contacts: 1" in out
        assert "Total Value: $1,000.00" in out
        assert "Unstaged" in out
        assert "Activity (Last 7 days):" in out
        assert "Contacts Created: 1" in out

    @pytest.mark.asyncio
    async def test_errors_exit_nonzero(self, crm, capsys):
        assert await run(crm, _args("contacts", "get", "999")) == 1
        assert await run(crm, _args("stages", "create", " ")) == 1

        err = capsys.readouterr().err
        assert "Error: Contact 999 not found" in err
        assert "Error: 'name' is required" in err


def test_main_without_command_prints_usage(capsys):
    assert main([]) == 1
    assert "usage: crm" in capsys.readouterr().out


def test_main_reports_missing_database_url(monkeypatch, capsys):
    """A missing DATABASE_URL is a clean error, not a traceback."""
    monkeypatch.delenv("DATABASE_URL", raising=False)

    assert main(["stages"]) == 1
    assert "DATABASE_URL environment variable is not set" in capsys.readouterr().err


def test_main_does_not_mask_unexpected_errors(monkeypatch):
    async def broken(crm, args):
        raise RuntimeError("boom")

    monkeypatch.setattr("crm_cli.run", broken)

    with pytest.raises(RuntimeError, match="boom"):
        main(["stages"])
