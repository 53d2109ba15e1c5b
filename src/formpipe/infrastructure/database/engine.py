"""Database engine setup for SQLite with WAL mode.

The DB is stored at ``{store_root}/.formpipe/forms.db``. SQLAlchemy Core
(not ORM) is used: the store hands out immutable snapshots, so identity maps
and sessions buy nothing.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from formpipe.infrastructure.database.schema import metadata

DB_DIRNAME = ".formpipe"
DB_FILENAME = "forms.db"


def create_db_engine(db_path: Path) -> Engine:
    """Create a SQLite engine with WAL mode and foreign keys enabled."""
    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def init_database(store_root: Path) -> Engine:
    """Initialize the form database at ``{store_root}/.formpipe/forms.db``.

    Creates the directory and all tables. Idempotent; safe to call on an
    existing store.
    """
    db_dir = store_root / DB_DIRNAME
    db_dir.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(db_dir / DB_FILENAME)
    metadata.create_all(engine)
    return engine
