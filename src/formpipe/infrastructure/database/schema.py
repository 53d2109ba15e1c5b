"""SQLAlchemy Core table definitions for the form store.

Forms own their sections and fields. ``field_values`` is a plain key/value
table (field id -> value). ``forms.revision`` increases on every write that
affects a form and drives change notification for the producers.
"""

from __future__ import annotations

from sqlalchemy import (
    REAL,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

forms = Table(
    "forms",
    metadata,
    Column("id", Text, primary_key=True),
    Column("title", Text, nullable=False),
    Column("kind", Text, nullable=False, default="event", server_default="event"),
    Column("status", Text, nullable=False, default="active", server_default="active"),
    Column("report_date", Text),  # YYYY-MM-DD
    Column("incident_date", Text),  # YYYY-MM-DD
    Column("latitude", REAL),
    Column("longitude", REAL),
    Column("display_incident_date", Integer, default=0, server_default="0"),
    Column("allow_future_report_dates", Integer, default=0, server_default="0"),
    Column("allow_future_incident_dates", Integer, default=0, server_default="0"),
    Column("revision", Integer, nullable=False, default=0, server_default="0"),
    Column("created", Text, nullable=False),
    Column("modified", Text, nullable=False),
)

sections = Table(
    "sections",
    metadata,
    Column("form_id", Text, ForeignKey("forms.id"), nullable=False),
    Column("section_uid", Text, nullable=False),
    Column("label", Text, nullable=False, default="", server_default=""),
    Column("position", Integer, nullable=False, default=0, server_default="0"),
    UniqueConstraint("form_id", "section_uid"),
)

fields = Table(
    "fields",
    metadata,
    Column("form_id", Text, ForeignKey("forms.id"), nullable=False),
    Column("field_uid", Text, nullable=False),
    Column("section_uid", Text, nullable=False),
    Column("label", Text, nullable=False, default="", server_default=""),
    Column("position", Integer, nullable=False, default=0, server_default="0"),
    Column("mandatory", Integer, default=0, server_default="0"),
    UniqueConstraint("form_id", "field_uid"),
)

field_values = Table(
    "field_values",
    metadata,
    Column("form_id", Text, ForeignKey("forms.id"), nullable=False),
    Column("field_uid", Text, nullable=False),
    Column("value", Text),
    Column("modified", Text, nullable=False),
    UniqueConstraint("form_id", "field_uid"),
)

event_wal = Table(
    "event_wal",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("hook_name", Text, nullable=False),
    Column("payload", Text, nullable=False),  # JSON
    Column("form_id", Text),
    Column("seq", Integer),  # recheck signal; NULL outside a merge
    Column("status", Text, nullable=False),  # pending | delivered | skipped | failed
    Column("error", Text),
    Column("created", Text, nullable=False),
    Column("completed", Text),
)

Index("ix_sections_form", sections.c.form_id)
Index("ix_fields_form", fields.c.form_id)
Index("ix_field_values_form", field_values.c.form_id)
Index("ix_event_wal_status", event_wal.c.status)
Index("ix_event_wal_form_seq", event_wal.c.form_id, event_wal.c.seq)
