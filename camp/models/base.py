"""Database base, engine/session setup and startup schema evolution."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import event, inspect, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

import config

logger = logging.getLogger("camp.store")


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def _set_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode = WAL")
    cursor.execute(f"PRAGMA busy_timeout = {int(config.DB_BUSY_TIMEOUT_SECONDS * 1000)}")
    cursor.close()


def create_engine(url: str) -> AsyncEngine:
    """Create the async engine. SQLite file databases get WAL, a busy timeout and one connection per unit of work."""
    db_url = make_url(url)
    kwargs = {"echo": False}
    is_sqlite = db_url.get_backend_name() == "sqlite"
    if is_sqlite and db_url.database not in (None, "", ":memory:"):
        # Every request holds its own connection; SQLite's file lock serializes writers
        kwargs["poolclass"] = NullPool
        kwargs["connect_args"] = {"timeout": config.DB_BUSY_TIMEOUT_SECONDS}
    new_engine = create_async_engine(url, **kwargs)
    if is_sqlite:
        event.listen(new_engine.sync_engine, "connect", _set_sqlite_pragmas)
    return new_engine


engine = create_engine(config.DATABASE_URL)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


# Columns added after the first release of the registrations table. Added in place when missing.
_REGISTRATION_COLUMNS = [
    ("camp_type", "TEXT NOT NULL DEFAULT 'iaido'"),
    ("meal_plan", "TEXT NOT NULL DEFAULT 'none'"),
    ("accommodation", "TEXT NOT NULL DEFAULT 'none'"),
    ("price_breakdown", "TEXT NOT NULL DEFAULT '{}'"),
    ("current_grade", "TEXT NOT NULL DEFAULT ''"),
    ("wants_exam", "INTEGER NOT NULL DEFAULT 0"),
    ("target_grade", "TEXT"),
    ("current_grade_iaido", "TEXT NOT NULL DEFAULT ''"),
    ("current_grade_jodo", "TEXT NOT NULL DEFAULT ''"),
    ("wants_exam_iaido", "INTEGER NOT NULL DEFAULT 0"),
    ("target_grade_iaido", "TEXT"),
    ("wants_exam_jodo", "INTEGER NOT NULL DEFAULT 0"),
    ("target_grade_jodo", "TEXT"),
    ("privacy_policy_version", "TEXT NOT NULL DEFAULT ''"),
    ("terms_version", "TEXT NOT NULL DEFAULT ''"),
    ("privacy_consent_at", "TEXT NOT NULL DEFAULT ''"),
    ("terms_consent_at", "TEXT NOT NULL DEFAULT ''"),
]

# Copy pre-split combined values into the iaido fields. Rows that already carry any
# per-discipline value are left alone, so re-running changes nothing.
_BACKFILLS = [
    """
    UPDATE registrations
    SET
      wants_exam_iaido = 1,
      target_grade_iaido = CASE
        WHEN COALESCE(target_grade_iaido, '') = '' THEN COALESCE(target_grade, '')
        ELSE target_grade_iaido
      END
    WHERE wants_exam = 1 AND wants_exam_iaido = 0 AND wants_exam_jodo = 0
    """,
    """
    UPDATE registrations
    SET current_grade_iaido = current_grade
    WHERE COALESCE(current_grade_iaido, '') = ''
      AND COALESCE(current_grade_jodo, '') = ''
      AND COALESCE(current_grade, '') <> ''
    """,
]


async def _existing_columns(conn: AsyncConnection, table: str) -> set[str]:
    def _inspect(sync_conn) -> set[str]:
        return {column["name"] for column in inspect(sync_conn).get_columns(table)}

    return await conn.run_sync(_inspect)


async def migrate_registrations(conn: AsyncConnection) -> int:
    """Add missing columns and backfill per-discipline fields. Returns the number of changes made."""
    existing = await _existing_columns(conn, "registrations")
    changes = 0
    for name, ddl in _REGISTRATION_COLUMNS:
        if name in existing:
            continue
        await conn.execute(text(f"ALTER TABLE registrations ADD COLUMN {name} {ddl}"))
        logger.info("Added column registrations.%s", name)
        changes += 1
    for sql in _BACKFILLS:
        result = await conn.execute(text(sql))
        if result.rowcount and result.rowcount > 0:
            logger.info("Backfilled %d registration(s)", result.rowcount)
            changes += result.rowcount
    return changes


def _ensure_sqlite_dir(db_engine: AsyncEngine) -> None:
    url = db_engine.url
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


async def init_db(
    db_engine: Optional[AsyncEngine] = None,
    legacy_file: Optional[Path] = None,
    catalog=None,
) -> None:
    """Create tables, run migrations, then the one-time legacy import.

    A failed legacy import raises LegacyImportError; callers must not keep serving.
    """
    from camp.legacy_import import import_legacy_if_needed

    db_engine = db_engine or engine
    _ensure_sqlite_dir(db_engine)
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await migrate_registrations(conn)
    if legacy_file is None:
        legacy_file = config.LEGACY_REGISTRATIONS_FILE
    await import_legacy_if_needed(db_engine, Path(legacy_file), catalog)
