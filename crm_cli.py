"""CRM command line interface.

Usage:
  crm init                                  # seed the default pipeline stages
  crm stages list | create NAME [--color HEX] | delete ID | reorder ID [ID ...]
  crm contacts list [--stage ID] [--active] [--tag T] [--limit N] [--offset N]
  crm contacts create "Jane Smith" --email jane@example.com --stage 1 --value 5000
  crm contacts move 12 3
  crm interactions add 12 call "Discussed pricing" --by alice
  crm tasks add Send proposal --contact 12 --due 2026-03-03 --priority high
  crm stats all --days 14

Environment:
  DATABASE_URL   postgresql+asyncpg://... (required)
  CRM_AGENT_ID   tenant id (default: 'default'); --agent-id overrides it
"""
import argparse
import asyncio
import logging
import sys
from datetime import timezone
from typing import Optional

from dateutil import parser as date_parser

from crm import CRM
from crm_config import get_log_level
from crm_errors import CRMError
from db.models import utcnow
from schemas import (
    PRIORITIES,
    ActivityStats,
    ContactRead,
    InteractionRead,
    PipelineStats,
    TaskRead,
)

logger = logging.getLogger(__name__)

BAR_WIDTH = 20


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def format_contact(c: ContactRead) -> str:
    stage = c.stage.name if c.stage else "Unstaged"
    value = f" | ${c.deal_value}" if c.deal_value else ""
    email = f" <{c.email}>" if c.email else ""
    company = f" @ {c.company}" if c.company else ""
    status = "" if c.is_active else " [LOST]"
    return f"[{c.id}] {c.name}{email}{company} | {stage}{value}{status}"


def format_task(t: TaskRead) -> str:
    status = "✓" if t.completed else "○"
    due = f" (due: {t.due_at.date().isoformat()})" if t.due_at else ""
    contact = f" [{t.contact.name}]" if t.contact else ""
    priority = f" [{t.priority.upper()}]" if t.priority != "medium" else ""
    return f"{status} [{t.id}] {t.title}{contact}{due}{priority}"


def format_interaction(i: InteractionRead) -> str:
    date = i.created_at.date().isoformat() if i.created_at else "-"
    contact = i.contact.name if i.contact else "Unknown"
    subject = f": {i.subject}" if i.subject else ""
    return f"[{i.id}] {date} | {i.type.upper()}{subject} | {contact} | by {i.created_by}"


def format_pipeline(stats: PipelineStats) -> list[str]:
    lines = [
        "Pipeline Overview:",
        f"  Total Contacts: {stats.total_contacts}",
        f"  Total Value: ${stats.total_value:,}",
        "",
        "  Stages:",
    ]
    for s in stats.stages:
        bar = "█" * min(s.count, BAR_WIDTH)
        lines.append(f"    {s.name:<15} {s.count:>3} {bar} (${s.value:,})")
    return lines


def format_activity(stats: ActivityStats) -> list[str]:
    lines = [
        f"Activity (Last {stats.period}):",
        f"  Contacts Created: {stats.contacts.created}",
        f"  Interactions: {stats.interactions.total}",
    ]
    if stats.interactions.by_type:
        lines.append("    By Type:")
        for kind, count in sorted(stats.interactions.by_type.items()):
            lines.append(f"      {kind}: {count}")
    lines.append(f"  Tasks Created: {stats.tasks.created}")
    lines.append(f"  Tasks Completed: {stats.tasks.completed}")
    return lines


def _parse_when(value: Optional[str]):
    """Parse a user-supplied date/time; naive values are taken as UTC."""
    if not value:
        return None
    parsed = date_parser.parse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _split_tags(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [tag.strip() for tag in value.split(",") if tag.strip()]


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _cmd_init(crm: CRM, args: argparse.Namespace) -> None:
    result = await crm.initialize_default_stages()
    if result.status == "already_initialized":
        print("Pipeline already initialized. Existing stages:")
    else:
        print("Initialized default pipeline stages:")
    for s in result.stages:
        print(f"  [{s.id}] {s.name} ({s.color or 'no color'})")


async def _cmd_stages(crm: CRM, args: argparse.Namespace) -> None:
    action = args.action or "list"
    if action == "list":
        stages = await crm.list_stages()
        print("Pipeline Stages:")
        if not stages:
            print("  No stages defined. Run: crm init")
        for s in stages:
            print(f"  [{s.id}] {s.position}. {s.name} ({s.color or 'no color'})")
    elif action == "create":
        stage = await crm.create_stage(
            {"name": args.name, "color": args.color, "position": args.position}
        )
        print(f"Created stage: [{stage.id}] {stage.name}")
    elif action == "delete":
        await crm.delete_stage(args.id)
        print(f"Deleted stage {args.id}")
    elif action == "reorder":
        for s in await crm.reorder_stages(args.ids):
            print(f"  [{s.id}] {s.position}. {s.name}")


async def _cmd_contacts(crm: CRM, args: argparse.Namespace) -> None:
    action = args.action or "list"
    if action == "list":
        contacts = await crm.list_contacts(
            stage_id=getattr(args, "stage", None),
            is_active=True if getattr(args, "active", False) else None,
            tags=getattr(args, "tag", None),
            limit=getattr(args, "limit", 20),
            offset=getattr(args, "offset", None),
        )
        print(f"Contacts ({len(contacts)}):")
        for c in contacts:
            print("  " + format_contact(c))
    elif action == "get":
        contact = await crm.get_contact(args.id)
        print(contact.model_dump_json(indent=2))
    elif action == "create":
        contact = await crm.create_contact(
            {
                "name": args.name,
                "email": args.email,
                "phone": args.phone,
                "company": args.company,
                "role": args.role,
                "stage_id": args.stage,
                "deal_value": args.value,
                "source": args.source,
                "tags": _split_tags(args.tags),
            }
        )
        print(f"Created contact: {format_contact(contact)}")
    elif action == "update":
        fields = ("name", "email", "phone", "company")
        updates = {f: getattr(args, f) for f in fields if getattr(args, f) is not None}
        if args.stage is not None:
            updates["stage_id"] = args.stage
        if args.value is not None:
            updates["deal_value"] = args.value
        contact = await crm.update_contact(args.id, updates)
        print(f"Updated: {format_contact(contact)}")
    elif action == "delete":
        await crm.delete_contact(args.id)
        print(f"Deleted contact {args.id}")
    elif action == "search":
        results = await crm.search_contacts(" ".join(args.query))
        print(f"Search Results ({len(results)}):")
        for c in results:
            print("  " + format_contact(c))
    elif action == "move":
        contact = await crm.move_stage(args.id, args.stage_id)
        print(f"Moved: {format_contact(contact)}")
    elif action == "lost":
        contact = await crm.mark_lost(args.id, args.reason)
        print(f"Marked lost: {format_contact(contact)}")
    elif action == "reactivate":
        contact = await crm.reactivate(args.id)
        print(f"Reactivated: {format_contact(contact)}")


async def _cmd_interactions(crm: CRM, args: argparse.Namespace) -> None:
    action = args.action or "list"
    if action == "list":
        interactions = await crm.list_interactions(
            contact_id=getattr(args, "contact", None),
            interaction_type=getattr(args, "type", None),
            limit=getattr(args, "limit", 20),
        )
        print(f"Interactions ({len(interactions)}):")
        for i in interactions:
            print("  " + format_interaction(i))
    elif action == "add":
        interaction = await crm.add_interaction(
            {
                "contact_id": args.contact_id,
                "type": args.type,
                "content": " ".join(args.content) or None,
                "subject": args.subject,
                "created_by": args.by,
                "created_by_type": "user",
            }
        )
        print(f"Added: {format_interaction(interaction)}")
    elif action == "delete":
        await crm.delete_interaction(args.id)
        print(f"Deleted interaction {args.id}")


async def _cmd_tasks(crm: CRM, args: argparse.Namespace) -> None:
    action = args.action or "list"
    if action == "list":
        tasks = await crm.list_tasks(
            completed=False if getattr(args, "pending", False) else None,
            contact_id=getattr(args, "contact", None),
            due_before=utcnow() if getattr(args, "overdue", False) else None,
            limit=getattr(args, "limit", 20),
        )
        print(f"Tasks ({len(tasks)}):")
        for t in tasks:
            print("  " + format_task(t))
    elif action == "add":
        task = await crm.add_task(
            {
                "title": " ".join(args.title),
                "contact_id": args.contact,
                "due_at": _parse_when(args.due),
                "priority": args.priority,
                "assigned_to": args.assign,
            }
        )
        print(f"Added: {format_task(task)}")
    elif action == "complete":
        print(f"Completed: {format_task(await crm.complete_task(args.id))}")
    elif action == "reopen":
        print(f"Reopened: {format_task(await crm.uncomplete_task(args.id))}")
    elif action == "delete":
        await crm.delete_task(args.id)
        print(f"Deleted task {args.id}")


async def _cmd_stats(crm: CRM, args: argparse.Namespace) -> None:
    report = args.report
    if report in ("pipeline", "all"):
        print("\n".join(format_pipeline(await crm.get_pipeline_stats())))
    if report in ("activity", "all"):
        if report == "all":
            print()
        print("\n".join(format_activity(await crm.get_activity_stats(args.days))))


COMMANDS = {
    "init": _cmd_init,
    "stages": _cmd_stages,
    "contacts": _cmd_contacts,
    "interactions": _cmd_interactions,
    "tasks": _cmd_tasks,
    "stats": _cmd_stats,
}


async def run(crm: CRM, args: argparse.Namespace) -> int:
    """Execute a parsed command against `crm`. Returns the exit code."""
    try:
        await COMMANDS[args.command](crm, args)
    except CRMError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="crm", description="Multi-tenant pipeline CRM")
    parser.add_argument(
        "--agent-id",
        default=None,
        help="Tenant id (default: $CRM_AGENT_ID or 'default')",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("init", help="Initialize default pipeline stages")

    # stages
    stages = sub.add_parser("stages", help="Manage pipeline stages")
    stage_sub = stages.add_subparsers(dest="action")
    stage_sub.add_parser("list")
    p = stage_sub.add_parser("create")
    p.add_argument("name")
    p.add_argument("--color")
    p.add_argument("--position", type=int)
    p = stage_sub.add_parser("delete")
    p.add_argument("id", type=int)
    p = stage_sub.add_parser("reorder", help="Stage ids in the desired order")
    p.add_argument("ids", type=int, nargs="+")

    # contacts
    contacts = sub.add_parser("contacts", help="Manage contacts")
    contact_sub = contacts.add_subparsers(dest="action")
    p = contact_sub.add_parser("list")
    p.add_argument("--stage", type=int)
    p.add_argument("--active", action="store_true")
    p.add_argument("--tag", action="append", help="Repeatable; matches any")
    p.add_argument("--limit", type=int, default=20)
    p.add_argument("--offset", type=int)
    p = contact_sub.add_parser("get")
    p.add_argument("id", type=int)
    p = contact_sub.add_parser("create")
    p.add_argument("name")
    p.add_argument("--email")
    p.add_argument("--phone")
    p.add_argument("--company")
    p.add_argument("--role")
    p.add_argument("--stage", type=int)
    p.add_argument("--value", help="Deal value")
    p.add_argument("--source")
    p.add_argument("--tags", help="Comma-separated")
    p = contact_sub.add_parser("update")
    p.add_argument("id", type=int)
    p.add_argument("--name")
    p.add_argument("--email")
    p.add_argument("--phone")
    p.add_argument("--company")
    p.add_argument("--stage", type=int)
    p.add_argument("--value")
    p = contact_sub.add_parser("delete")
    p.add_argument("id", type=int)
    p = contact_sub.add_parser("search")
    p.add_argument("query", nargs="+")
    p = contact_sub.add_parser("move")
    p.add_argument("id", type=int)
    p.add_argument("stage_id", type=int)
    p = contact_sub.add_parser("lost")
    p.add_argument("id", type=int)
    p.add_argument("--reason")
    p = contact_sub.add_parser("reactivate")
    p.add_argument("id", type=int)

    # interactions
    interactions = sub.add_parser("interactions", help="Log and list interactions")
    interaction_sub = interactions.add_subparsers(dest="action")
    p = interaction_sub.add_parser("list")
    p.add_argument("--contact", type=int)
    p.add_argument("--type")
    p.add_argument("--limit", type=int, default=20)
    p = interaction_sub.add_parser("add")
    p.add_argument("contact_id", type=int)
    p.add_argument("type", help="call, email, meeting, note, ...")
    p.add_argument("content", nargs="*")
    p.add_argument("--subject")
    p.add_argument("--by", default="cli", help="Who logged it (default: cli)")
    p = interaction_sub.add_parser("delete")
    p.add_argument("id", type=int)

    # tasks
    tasks = sub.add_parser("tasks", help="Manage follow-up tasks")
    task_sub = tasks.add_subparsers(dest="action")
    p = task_sub.add_parser("list")
    p.add_argument("--pending", action="store_true")
    p.add_argument("--overdue", action="store_true")
    p.add_argument("--contact", type=int)
    p.add_argument("--limit", type=int, default=20)
    p = task_sub.add_parser("add")
    p.add_argument("title", nargs="+")
    p.add_argument("--contact", type=int)
    p.add_argument("--due", help="Date or ISO 8601 datetime (UTC if no offset)")
    p.add_argument("--priority", choices=PRIORITIES, default="medium")
    p.add_argument("--assign")
    for name in ("complete", "reopen", "delete"):
        p = task_sub.add_parser(name)
        p.add_argument("id", type=int)

    # stats
    stats = sub.add_parser("stats", help="Pipeline and activity reports")
    stats.add_argument("report", nargs="?", choices=("pipeline", "activity", "all"), default="all")
    stats.add_argument("--days", type=int, default=30)

    return parser


async def _main(args: argparse.Namespace) -> int:
    async with CRM(agent_id=args.agent_id) as crm:
        return await run(crm, args)


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=get_log_level(), format="%(levelname)s %(message)s")

    if args.command not in COMMANDS:
        parser.print_help()
        return 1
    # ConfigError (e.g. no DATABASE_URL) is a CRMError, reported by run().
    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
