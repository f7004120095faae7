"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID, VARCHAR

# Metadata for all tables
metadata = MetaData()

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    # Ownership / references
    Column("patient_id", Text, nullable=False, index=True),
    Column("doctor_id", VARCHAR(50), nullable=False),
    Column("facility_id", Text, nullable=True),
    # Snapshot fields (denormalized for history)
    Column("doctor_name", VARCHAR(100), nullable=False),
    Column("facility_name", VARCHAR(200), nullable=False),
    Column("facility_type", Text, nullable=False),
    # Geography
    Column("district", Text, nullable=False),
    Column("sub_location", VARCHAR(200), nullable=False),
    # Timing (wall-clock, no time zone)
    Column("date", Date, nullable=False),
    Column("time", String(5), nullable=False),
    Column("duration_minutes", Integer, nullable=False, server_default=text("30")),
    # Clinical details
    Column("reason", Text, nullable=False),
    Column("category", Text, nullable=False),
    Column("urgency", Text, nullable=False, server_default="routine"),
    Column("symptoms", JSONB, nullable=False, server_default=text("'[]'::jsonb")),
    Column("notes", Text, nullable=False, server_default=""),
    # Status management
    Column("status", Text, nullable=False, server_default="pending"),
    Column("status_history", JSONB, nullable=False, server_default=text("'[]'::jsonb")),
    Column("rescheduled_from", UUID(as_uuid=True), nullable=True),
    Column("rescheduled_to", UUID(as_uuid=True), nullable=True),
    Column("reminder_sent", Boolean, nullable=False, server_default=text("false")),
    # Audit fields
    Column("created_by", Text, nullable=True),
    Column("last_modified_by", Text, nullable=True),
    Column("created_at", TIMESTAMP(timezone=False), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=False), nullable=False, server_default=text("NOW()")),
    # Optimistic concurrency token
    Column("version", Integer, nullable=False, server_default=text("1")),
    # Constraints
    CheckConstraint(
        "status IN ('pending', 'confirmed', 'cancelled', 'completed', 'no-show', 'rescheduled')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "urgency IN ('routine', 'urgent', 'emergency')",
        name="appointments_urgency_check",
    ),
    CheckConstraint(
        "duration_minutes BETWEEN 15 AND 240",
        name="appointments_duration_check",
    ),
    CheckConstraint(
        "urgency <> 'emergency' OR facility_type IN ('public-hospital', 'private-hospital')",
        name="appointments_emergency_facility_check",
    ),
)

# Provider schedule lookups
Index("idx_appointments_doctor_date", appointments.c.doctor_id, appointments.c.date)
Index("idx_appointments_district_date", appointments.c.district, appointments.c.date)

# One active booking per provider start slot
Index(
    "uq_appointments_active_provider_slot",
    appointments.c.doctor_id,
    appointments.c.date,
    appointments.c.time,
    unique=True,
    postgresql_where=appointments.c.status.in_(["pending", "confirmed"]),
)
