"""Script to initialize the scheduling database without Alembic."""

import asyncio

from sqlalchemy import text

from firstcare.database import engine
from firstcare.models.appointments import metadata as appointments_metadata
from firstcare.models.users import metadata as users_metadata


async def init_db() -> None:
    """Create the users and appointments tables."""
    async with engine.begin() as conn:
        # Enable pgcrypto extension
        await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))

        await conn.run_sync(users_metadata.create_all)
        await conn.run_sync(appointments_metadata.create_all)

        print("✓ Scheduling tables initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
