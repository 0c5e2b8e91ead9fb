#!/usr/bin/env python3
"""Database bootstrap: run Alembic migrations before the API starts.

- Always run `alembic upgrade head`.
- Only an empty database may fall back to `create_all` + `alembic stamp head`.
- If both fail, exit non-zero so the container does not start on an unknown schema.
"""

import os
import sys
import time
from dotenv import load_dotenv

load_dotenv()


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


def create_schema_directly(bind=None) -> None:
    """Fallback: create schema directly from SQLAlchemy models.

    Refuses to run when the coach table already holds rows.
    """
    from sqlalchemy import inspect, text
    from core.database import engine, init_db

    target = bind or engine
    if inspect(target).has_table("coach"):
        with target.connect() as conn:
            count = conn.execute(text("SELECT COUNT(*) FROM coach")).scalar()
        if count:
            raise RuntimeError(
                f"Refusing direct schema creation on non-empty DB (coaches={count}). "
                f"Run Alembic migrations instead."
            )

    print("Creating schema directly from models...")
    init_db(bind=target)

    # Mark as up to date so future runs can upgrade incrementally.
    alembic_stamp_head()

    print("Schema created successfully!")


def main():
    from core.database import check_db_connection

    print("Waiting for database to be ready...")
    max_retries = 30
    retry_count = 0

    while retry_count < max_retries:
        if check_db_connection():
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
