"""Initial schema: crm_stages, crm_contacts, crm_interactions, crm_tasks.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ─── Pipeline ────────────────────────────────────────────────────────────

    op.create_table(
        "crm_stages",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("agent_id", sa.Text, nullable=False, server_default="default"),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("color", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_crm_stages_agent_position", "crm_stages", ["agent_id", "position"])

    op.create_table(
        "crm_contacts",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("agent_id", sa.Text, nullable=False, server_default="default"),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("email", sa.Text, nullable=True),
        sa.Column("phone", sa.Text, nullable=True),
        sa.Column("company", sa.Text, nullable=True),
        sa.Column("role", sa.Text, nullable=True),
        sa.Column("stage_id", sa.BigInteger, nullable=True),
        sa.Column("stage_entered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("source", sa.Text, nullable=True),
        sa.Column("source_detail", sa.Text, nullable=True),
        sa.Column("assigned_to", sa.Text, nullable=True),
        sa.Column("tags", postgresql.ARRAY(sa.Text), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("custom_fields", sa.JSON, nullable=False, server_default=sa.text("'{}'")),
        sa.Column("deal_value", sa.Numeric(14, 2), nullable=True),
        sa.Column("currency", sa.Text, nullable=False, server_default="AUD"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("lost_reason", sa.Text, nullable=True),
        sa.Column("last_contact_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(
            ["stage_id"], ["crm_stages.id"], name="fk_contact_stage", ondelete="SET NULL"
        ),
    )
    op.create_index("ix_crm_contacts_agent_stage", "crm_contacts", ["agent_id", "stage_id"])
    op.create_index("ix_crm_contacts_agent_updated", "crm_contacts", ["agent_id", "updated_at"])

    # ─── Activity ────────────────────────────────────────────────────────────

    op.create_table(
        "crm_interactions",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("agent_id", sa.Text, nullable=False, server_default="default"),
        sa.Column("contact_id", sa.BigInteger, nullable=False),
        sa.Column("type", sa.Text, nullable=False),
        sa.Column("subject", sa.Text, nullable=True),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("created_by", sa.Text, nullable=False),
        sa.Column("created_by_type", sa.Text, nullable=False, server_default="agent"),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", sa.JSON, nullable=False, server_default=sa.text("'{}'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(
            ["contact_id"], ["crm_contacts.id"], name="fk_interaction_contact", ondelete="CASCADE"
        ),
    )
    op.create_index("ix_crm_interactions_agent_created", "crm_interactions", ["agent_id", "created_at"])
    op.create_index("ix_crm_interactions_contact", "crm_interactions", ["contact_id"])

    op.create_table(
        "crm_tasks",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("agent_id", sa.Text, nullable=False, server_default="default"),
        sa.Column("contact_id", sa.BigInteger, nullable=True),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assigned_to", sa.Text, nullable=True),
        sa.Column("priority", sa.Text, nullable=False, server_default="medium"),
        sa.Column("completed", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(
            ["contact_id"], ["crm_contacts.id"], name="fk_task_contact", ondelete="CASCADE"
        ),
    )
    op.create_index(
        "ix_crm_tasks_agent_completed_due", "crm_tasks", ["agent_id", "completed", "due_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_crm_tasks_agent_completed_due", table_name="crm_tasks")
    op.drop_index("ix_crm_interactions_contact", table_name="crm_interactions")
    op.drop_index("ix_crm_interactions_agent_created", table_name="crm_interactions")
    op.drop_index("ix_crm_contacts_agent_updated", table_name="crm_contacts")
    op.drop_index("ix_crm_contacts_agent_stage", table_name="crm_contacts")
    op.drop_index("ix_crm_stages_agent_position", table_name="crm_stages")
    # Drop in reverse dependency order
    op.drop_table("crm_tasks")
    op.drop_table("crm_interactions")
    op.drop_table("crm_contacts")
    op.drop_table("crm_stages")
