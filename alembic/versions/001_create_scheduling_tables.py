"""Create users and appointments tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Enable pgcrypto extension
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    op.create_table(
        "users",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("health_district", sa.Text(), nullable=True),
        sa.Column("sub_location", sa.Text(), nullable=True),
        sa.Column(
            "roles",
            postgresql.ARRAY(sa.Text()),
            nullable=False,
            server_default=sa.text("ARRAY['patient']::text[]"),
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_health_district", "users", ["health_district"])

    op.create_table(
        "appointments",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("patient_id", sa.Text(), nullable=False),
        sa.Column("doctor_id", sa.VARCHAR(length=50), nullable=False),
        sa.Column("facility_id", sa.Text(), nullable=True),
        sa.Column("doctor_name", sa.VARCHAR(length=100), nullable=False),
        sa.Column("facility_name", sa.VARCHAR(length=200), nullable=False),
        sa.Column("facility_type", sa.Text(), nullable=False),
        sa.Column("district", sa.Text(), nullable=False),
        sa.Column("sub_location", sa.VARCHAR(length=200), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.String(5), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), server_default=sa.text("30"), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("urgency", sa.Text(), server_default="routine", nullable=False),
        sa.Column(
            "symptoms",
            postgresql.JSONB(),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.Column("notes", sa.Text(), server_default="", nullable=False),
        sa.Column("status", sa.Text(), server_default="pending", nullable=False),
        sa.Column(
            "status_history",
            postgresql.JSONB(),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.Column("rescheduled_from", postgresql.UUID(), nullable=True),
        sa.Column("rescheduled_to", postgresql.UUID(), nullable=True),
        sa.Column("reminder_sent", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("created_by", sa.Text(), nullable=True),
        sa.Column("last_modified_by", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=False),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=False),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed', 'no-show', 'rescheduled')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint(
            "urgency IN ('routine', 'urgent', 'emergency')",
            name="appointments_urgency_check",
        ),
        sa.CheckConstraint(
            "duration_minutes BETWEEN 15 AND 240",
            name="appointments_duration_check",
        ),
        sa.CheckConstraint(
            "urgency <> 'emergency' OR facility_type IN ('public-hospital', 'private-hospital')",
            name="appointments_emergency_facility_check",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # Create indexes
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("idx_appointments_doctor_date", "appointments", ["doctor_id", "date"])
    op.create_index("idx_appointments_district_date", "appointments", ["district", "date"])
    op.create_index(
        "uq_appointments_active_provider_slot",
        "appointments",
        ["doctor_id", "date", "time"],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'confirmed')"),
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("uq_appointments_active_provider_slot", table_name="appointments")
    op.drop_index("idx_appointments_district_date", table_name="appointments")
    op.drop_index("idx_appointments_doctor_date", table_name="appointments")
    op.drop_index("ix_appointments_patient_id", table_name="appointments")
    op.drop_table("appointments")

    op.drop_index("ix_users_health_district", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
