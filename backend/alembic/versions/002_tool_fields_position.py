"""tool_fields.position

Revision ID: 002
Revises: 001
Create Date: 2025-03-09

"""
from alembic import op
import sqlalchemy as sa

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "tool_fields",
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    # Existing fields keep the order they were read in before.
    op.execute(
        "UPDATE tool_fields f SET position = ranked.rn FROM ("
        "SELECT id, row_number() OVER (PARTITION BY tool_id ORDER BY created_at, id) - 1 AS rn "
        "FROM tool_fields) ranked WHERE ranked.id = f.id"
    )
    op.create_index("ix_tool_fields_tool_id_position", "tool_fields", ["tool_id", "position"])


def downgrade() -> None:
    op.drop_index("ix_tool_fields_tool_id_position", table_name="tool_fields")
    op.drop_column("tool_fields", "position")
