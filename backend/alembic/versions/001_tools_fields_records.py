"""tools, tool_fields, tool_records and execute_sql

Revision ID: 001
Revises:
Create Date: 2025-03-02

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from toolforge.models.sql import (
    DROP_EXECUTE_SQL_FUNCTION,
    DROP_TOUCH_UPDATED_AT_FUNCTION,
    EXECUTE_SQL_FUNCTION,
    RLS_POLICIES,
    TOUCH_UPDATED_AT_FUNCTION,
    TOUCHED_TABLES,
    enable_rls,
    touch_trigger,
)
from toolforge.models.tool import FIELD_TYPES

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    op.create_table(
        "tools",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("purpose", sa.Text(), nullable=True),
        sa.Column("is_deployed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_tools_owner_id", "tools", ["owner_id"])

    op.create_table(
        "tool_fields",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("tool_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("required", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("options", postgresql.ARRAY(sa.Text()), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("tool_id", "name", name="uq_tool_fields_tool_id_name"),
        sa.CheckConstraint(f"type IN ({FIELD_TYPES})", name="ck_tool_fields_type"),
    )
    op.create_index("ix_tool_fields_tool_id", "tool_fields", ["tool_id"])

    op.create_table(
        "tool_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("tool_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("data", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_tool_records_tool_id", "tool_records", ["tool_id"])

    op.execute(TOUCH_UPDATED_AT_FUNCTION)
    for table in TOUCHED_TABLES:
        op.execute(touch_trigger(table))

    for table, policies in RLS_POLICIES.items():
        op.execute(enable_rls(table))
        for policy in policies:
            op.execute(policy)

    op.execute(EXECUTE_SQL_FUNCTION)


def downgrade() -> None:
    op.execute(DROP_EXECUTE_SQL_FUNCTION)
    op.drop_table("tool_records")
    op.drop_table("tool_fields")
    op.drop_table("tools")
    op.execute(DROP_TOUCH_UPDATED_AT_FUNCTION)
