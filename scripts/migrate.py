"""Apply or create scheduling database migrations.

Usage:
    python scripts/migrate.py                  # upgrade to head
    python scripts/migrate.py downgrade <rev>  # roll back to a revision
    python scripts/migrate.py create <message> # autogenerate a revision
"""

import sys

from alembic import command
from alembic.config import Config
from alembic.util.exc import CommandError


def _config() -> Config:
    return Config("alembic.ini")


def main(argv: list[str]) -> int:
    """Dispatch a migration command; returns the process exit code."""
    cfg = _config()

    try:
        if not argv:
            print("Upgrading scheduling schema to head...")
            command.upgrade(cfg, "head")
        elif argv[0] == "downgrade" and len(argv) == 2:
            print(f"Downgrading scheduling schema to {argv[1]}...")
            command.downgrade(cfg, argv[1])
        elif argv[0] == "create" and len(argv) > 1:
            message = " ".join(argv[1:])
            print(f"Creating migration: {message}")
            command.revision(cfg, message=message, autogenerate=True)
        else:
            print(__doc__)
            return 2
    except CommandError as e:
        print(f"✗ Migration failed: {e}", file=sys.stderr)
        return 1

    print("✓ Done")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
