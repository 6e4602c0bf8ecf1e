from __future__ import annotations

import logging
from pathlib import Path

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Engine

from canteen.core.config import DATABASE_URL, IS_PROD, IS_TEST

logger = logging.getLogger(__name__)
MIGRATIONS_PREFIX = "[MIGRATIONS]"


class MigrationStateError(RuntimeError):
    pass


def validate_database_environment() -> None:
    if IS_PROD and DATABASE_URL.startswith("sqlite"):
        logger.critical("%s SQLite database configured for production", MIGRATIONS_PREFIX)
        raise MigrationStateError("SQLite cannot be used when ENV=production")


def _expected_heads(alembic_config_path: Path) -> set[str]:
    if not alembic_config_path.exists():
        logger.critical("%s alembic.ini missing path=%s", MIGRATIONS_PREFIX, alembic_config_path)
        raise MigrationStateError(f"Alembic config not found: {alembic_config_path}")
    script = ScriptDirectory.from_config(Config(str(alembic_config_path)))
    return set(script.get_heads())


def ensure_migrations_applied(*, engine: Engine, alembic_config_path: Path) -> None:
    """Fail startup unless the database sits at the latest Alembic revision.

    SQLite databases (local dev and tests) are built with ``create_all`` and
    are not checked.
    """
    if IS_TEST or engine.url.get_backend_name() == "sqlite":
        logger.info("%s check skipped backend=%s", MIGRATIONS_PREFIX, engine.url.get_backend_name())
        return

    expected = _expected_heads(alembic_config_path)
    with engine.connect() as connection:
        current = set(MigrationContext.configure(connection).get_current_heads())

    if not current:
        logger.critical("%s database has no alembic revision; run `alembic upgrade head`", MIGRATIONS_PREFIX)
        raise MigrationStateError("Database has not been migrated")

    if current != expected:
        logger.critical(
            "%s revision mismatch current=%s expected=%s",
            MIGRATIONS_PREFIX,
            sorted(current),
            sorted(expected),
        )
        raise MigrationStateError("Pending migrations detected")

    logger.info("%s at head revision=%s", MIGRATIONS_PREFIX, ",".join(sorted(current)))
