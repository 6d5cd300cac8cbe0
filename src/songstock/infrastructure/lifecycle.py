"""Application lifecycle management for startup and shutdown tasks."""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from songstock.config import Settings
from songstock.domain.exceptions import ConfigurationError
from songstock.infrastructure.observability import configure_logging
from songstock.infrastructure.persistence import Database

logger = logging.getLogger(__name__)


# Hey future me, this checks the SQLite directory BEFORE the first connection. SQLite needs
# to create -journal/-wal files next to the .db file, so the directory must be writable.
# We don't pre-create the .db file itself. No-op for PostgreSQL and in-memory URLs.
def _validate_sqlite_path(settings: Settings) -> None:
    """Ensure the SQLite database directory exists and is writable."""
    db_path = settings._get_sqlite_db_path()
    if db_path is None:
        return

    try:
        if db_path.parent and str(db_path.parent) != ".":
            db_path.parent.mkdir(parents=True, exist_ok=True)
        test_file = db_path.parent / f".{db_path.stem}_write_test"
        test_file.write_bytes(b"test")
        test_file.unlink()
    except OSError as exc:
        raise ConfigurationError(
            f"SQLite database directory '{db_path.parent}' is not writable: {exc}. "
            "Update DATABASE__URL or adjust directory permissions."
        ) from exc
    logger.debug("Verified SQLite directory: %s", db_path.parent)


# Listen future me, everything before `yield` runs at STARTUP, everything after at SHUTDOWN.
# Settings and the Database are created by create_app() and already sit on app.state, so
# tests can swap in an in-memory database without touching the environment. Tables are
# only auto-created outside production; production schemas come from alembic.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging, prepare the database, and dispose the engine on shutdown."""
    settings: Settings = app.state.settings
    db: Database = app.state.db

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s (%s)", settings.app_name, settings.app_env)
    app.state.started_at = time.monotonic()

    try:
        _validate_sqlite_path(settings)
        if settings.app_env != "production":
            await db.create_tables()
            logger.info("Database tables ensured")
        yield
    finally:
        await db.close()
        logger.info("Application shutdown complete")
