"""Add optimistic concurrency version to appointments

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Add the version column bumped on every appointment write."""
    op.add_column(
        "appointments",
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
    )


def downgrade() -> None:
    """Drop the appointment version column."""
    op.drop_column("appointments", "version")
