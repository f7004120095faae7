"""User model definition using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY

metadata = MetaData()

users = Table(
    "users",
    metadata,
    # Opaque identity issued by the auth provider
    Column("id", Text, primary_key=True),
    Column("email", Text, nullable=False, index=True),
    Column("full_name", Text),
    Column("phone", String(20)),
    # Registered health district (null until the profile is completed)
    Column("health_district", Text, nullable=True, index=True),
    Column("sub_location", Text, nullable=True),
    Column(
        "roles",
        ARRAY(Text),
        nullable=False,
        server_default=text("ARRAY['patient']::text[]"),
    ),
    # Account state
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
)
