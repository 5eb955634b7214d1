#!/usr/bin/env python3
"""Database bootstrap: run Alembic migrations before the API or worker starts.

- Wait for the database to accept connections.
- Always run `alembic upgrade head`.
- If migrations fail on an empty database, create the schema from the models
  and stamp head; on a non-empty database, fail fast.
"""

import os
import sys
import time
from dotenv import load_dotenv

load_dotenv()


def check_db_ready() -> bool:
    """Check if database is ready"""
    from core.database import check_db_connection

    return check_db_connection()


def _get_alembic_config():
    """Load Alembic config for programmatic migrations."""
    from alembic.config import Config

    here = os.path.dirname(os.path.abspath(__file__))
    cfg = Config(os.path.join(here, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(here, "alembic"))
    return cfg


def alembic_upgrade_head() -> None:
    """Apply all pending migrations."""
    from alembic import command

    command.upgrade(_get_alembic_config(), "head")


def alembic_stamp_head() -> None:
    """Stamp alembic_version as head (no schema changes)."""
    from alembic import command

    command.stamp(_get_alembic_config(), "head")


def create_schema_directly():
    """Fallback: create schema directly from SQLAlchemy models.

    Only used when migrations cannot be replayed on an empty database.
    Followed by `alembic stamp head` so future upgrades can apply.
    """
    from sqlalchemy import inspect, text
    from core.database import Base, engine
    import models  # noqa: F401

    if inspect(engine).has_table("narrators"):
        with engine.connect() as conn:
            count = conn.execute(text("SELECT COUNT(*) FROM narrators")).scalar()
        if count:
            raise RuntimeError(
                f"Refusing direct schema creation on non-empty DB (narrators={count}). "
                f"Run Alembic migrations instead."
            )

    print("Creating schema directly from models...")
    Base.metadata.create_all(engine, checkfirst=True)

    # Mark as up to date so future runs can upgrade incrementally.
    alembic_stamp_head()

    print("Schema created successfully!")


def main():
    print("Waiting for database to be ready...")
    max_retries = 30
    retry_count = 0

    while retry_count < max_retries:
        if check_db_ready():
            print("Database is ready!")
            break
        retry_count += 1
        print(f"Database is unavailable - sleeping (attempt {retry_count}/{max_retries})")
        time.sleep(1)
    else:
        print("ERROR: Database is not ready after maximum retries")
        sys.exit(1)

    try:
        alembic_upgrade_head()
        print("Migrations completed successfully!")
        return
    except Exception as e:
        print(f"ERROR: Alembic upgrade failed: {e}")

    try:
        create_schema_directly()
    except Exception as e:
        print(f"ERROR: Schema bootstrap failed: {e}")
        sys.exit(1)
    print("Schema bootstrap completed via create_all fallback.")


if __name__ == '__main__':
    main()
