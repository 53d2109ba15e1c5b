"""SQLite database engine and schema via SQLAlchemy Core."""

from formpipe.infrastructure.database.engine import create_db_engine, init_database
from formpipe.infrastructure.database.schema import (
    event_wal,
    field_values,
    fields,
    forms,
    metadata,
    sections,
)

__all__ = [
    "create_db_engine",
    "event_wal",
    "field_values",
    "fields",
    "forms",
    "init_database",
    "metadata",
    "sections",
]
