from __future__ import annotations

import logging
from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from claimdesk.core.config import DATABASE_URL, IS_DEV, IS_PROD, IS_STAGE, IS_TEST, SESSION_SECRET

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"
REQUIRED_TABLES = ("organizations", "users")


def validate_runtime_environment() -> None:
    if IS_PROD and DATABASE_URL.startswith("sqlite"):
        logger.critical("%s SQLite is forbidden in production", STARTUP_PREFIX)
        raise RuntimeError("SQLite is forbidden in production environment")
    if (IS_PROD or IS_STAGE) and not SESSION_SECRET:
        logger.critical("%s SESSION_SECRET is not configured", STARTUP_PREFIX)
        raise RuntimeError("SESSION_SECRET is required outside development")


def should_check_migrations() -> bool:
    # SQLite dev/test databases are created from metadata, not migrated.
    if IS_TEST:
        return False
    return not (IS_DEV and DATABASE_URL.startswith("sqlite"))


def ensure_migrations_applied(*, engine: Engine, alembic_config_path: Path) -> None:
    if not should_check_migrations():
        logger.info("%s skipped migration check env=dev/test", STARTUP_PREFIX)
        return

    if not alembic_config_path.exists():
        logger.critical("%s alembic config not found path=%s", STARTUP_PREFIX, alembic_config_path)
        raise RuntimeError("alembic config not found")

    alembic_cfg = Config(str(alembic_config_path))
    script_directory = ScriptDirectory.from_config(alembic_cfg)
    expected_heads = set(script_directory.get_heads())

    with engine.connect() as connection:
        inspector = inspect(connection)
        if "alembic_version" not in inspector.get_table_names():
            logger.critical("%s alembic_version table missing", STARTUP_PREFIX)
            raise RuntimeError("Database has no migration state")

        current_rows = connection.exec_driver_sql("SELECT version_num FROM alembic_version").fetchall()

    current_heads = {row[0] for row in current_rows if row and row[0]}
    if current_heads != expected_heads:
        logger.critical(
            "%s pending migration detected current=%s expected=%s",
            STARTUP_PREFIX,
            sorted(current_heads),
            sorted(expected_heads),
        )
        raise RuntimeError("Pending migrations detected")

    logger.info("%s migration state verified", STARTUP_PREFIX)


def ensure_identity_tables_exist(engine: Engine) -> None:
    inspector = inspect(engine)
    missing = [table for table in REQUIRED_TABLES if not inspector.has_table(table)]
    if missing:
        logger.error(
            "%s tables missing / migrations not applied missing=%s",
            STARTUP_PREFIX,
            ",".join(sorted(missing)),
        )
        raise RuntimeError("tables missing / migrations not applied")
