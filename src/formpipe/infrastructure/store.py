"""FormStore: SQLite-backed metadata and key/value storage for forms.

The store is the storage collaborator behind both the section source and
the one-shot form streams. Every write bumps ``forms.revision`` inside the
same transaction and notifies the :class:`ChangeFeed` after commit, so
live producers re-read and emit a fresh snapshot.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, insert, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from formpipe.domain.dates import DateRules
from formpipe.domain.lifecycle import FormKind
from formpipe.domain.sections import FieldViewModel, SectionViewModel
from formpipe.infrastructure.changes import ChangeFeed
from formpipe.infrastructure.database.engine import init_database
from formpipe.infrastructure.database.schema import field_values, fields, forms, sections
from formpipe.services._helpers import now_iso

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

    from formpipe.config.settings import FormpipeSettings

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """A store operation was rejected (unknown form, duplicate id, ...)."""

    def __init__(self, code: str, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.detail = detail


class FormStore:
    """Repository over the form database.

    Parameters:
        root: Directory holding ``.formpipe/forms.db``.
        feed: Change feed to notify after writes (a private one if omitted).
    """

    def __init__(self, root: Path, *, feed: ChangeFeed | None = None) -> None:
        self.root = root
        self.feed = feed or ChangeFeed()
        self._engine: Engine = init_database(root)

    @classmethod
    def from_settings(cls, settings: FormpipeSettings) -> FormStore:
        return cls(settings.store.resolve_root(settings.store_root))

    @property
    def engine(self) -> Engine:
        return self._engine

    def close(self) -> None:
        self._engine.dispose()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self, form_id: str) -> Iterator[Connection]:
        """Write transaction for *form_id*; bumps its revision and notifies."""
        with self._engine.begin() as conn:
            self._require_form(conn, form_id)
            yield conn
            conn.execute(
                update(forms)
                .where(forms.c.id == form_id)
                .values(revision=forms.c.revision + 1, modified=now_iso())
            )
        self.feed.notify(form_id)

    # ------------------------------------------------------------------
    # Metadata writes
    # ------------------------------------------------------------------

    def create_form(
        self,
        form_id: str,
        title: str,
        *,
        kind: FormKind | str = FormKind.EVENT,
        report_date: str | None = None,
        incident_date: str | None = None,
        date_rules: DateRules | None = None,
    ) -> None:
        rules = date_rules or DateRules()
        now = now_iso()
        with self._engine.begin() as conn:
            exists = conn.execute(select(forms.c.id).where(forms.c.id == form_id)).first()
            if exists is not None:
                msg = f"Form {form_id!r} already exists"
                raise StoreError("FORM_EXISTS", msg, form_id=form_id)
            conn.execute(
                insert(forms).values(
                    id=form_id,
                    title=title,
                    kind=str(FormKind(kind)),
                    report_date=report_date,
                    incident_date=incident_date,
                    display_incident_date=int(rules.display_incident_date),
                    allow_future_report_dates=int(rules.allow_future_report_dates),
                    allow_future_incident_dates=int(rules.allow_future_incident_dates),
                    revision=0,
                    created=now,
                    modified=now,
                )
            )
        logger.debug("Created form %s", form_id)

    def add_section(
        self, form_id: str, section_uid: str, *, label: str = "", position: int | None = None
    ) -> None:
        with self.transaction(form_id) as conn:
            exists = conn.execute(
                select(sections.c.section_uid).where(
                    sections.c.form_id == form_id, sections.c.section_uid == section_uid
                )
            ).first()
            if exists is not None:
                msg = f"Section {section_uid!r} already exists in form {form_id!r}"
                raise StoreError("SECTION_EXISTS", msg, form_id=form_id, section_uid=section_uid)
            if position is None:
                position = self._next_position(conn, sections, sections.c.form_id == form_id)
            conn.execute(
                insert(sections).values(
                    form_id=form_id, section_uid=section_uid, label=label, position=position
                )
            )

    def add_field(
        self,
        form_id: str,
        field_uid: str,
        section_uid: str,
        *,
        label: str = "",
        mandatory: bool = False,
        position: int | None = None,
    ) -> None:
        with self.transaction(form_id) as conn:
            section = conn.execute(
                select(sections.c.section_uid).where(
                    sections.c.form_id == form_id, sections.c.section_uid == section_uid
                )
            ).first()
            if section is None:
                msg = f"Section {section_uid!r} not found in form {form_id!r}"
                raise StoreError("SECTION_NOT_FOUND", msg, form_id=form_id, section_uid=section_uid)
            exists = conn.execute(
                select(fields.c.field_uid).where(
                    fields.c.form_id == form_id, fields.c.field_uid == field_uid
                )
            ).first()
            if exists is not None:
                msg = f"Field {field_uid!r} already exists in form {form_id!r}"
                raise StoreError("FIELD_EXISTS", msg, form_id=form_id, field_uid=field_uid)
            if position is None:
                position = self._next_position(
                    conn,
                    fields,
                    (fields.c.form_id == form_id) & (fields.c.section_uid == section_uid),
                )
            conn.execute(
                insert(fields).values(
                    form_id=form_id,
                    field_uid=field_uid,
                    section_uid=section_uid,
                    label=label,
                    position=position,
                    mandatory=int(mandatory),
                )
            )

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def set_value(self, form_id: str, field_uid: str, value: str | None) -> None:
        """Upsert a field value (plain field id -> value)."""
        with self.transaction(form_id) as conn:
            known = conn.execute(
                select(fields.c.field_uid).where(
                    fields.c.form_id == form_id, fields.c.field_uid == field_uid
                )
            ).first()
            if known is None:
                msg = f"Field {field_uid!r} not found in form {form_id!r}"
                raise StoreError("FIELD_NOT_FOUND", msg, form_id=form_id, field_uid=field_uid)
            stmt = sqlite_insert(field_values).values(
                form_id=form_id, field_uid=field_uid, value=value, modified=now_iso()
            )
            conn.execute(
                stmt.on_conflict_do_update(
                    index_elements=["form_id", "field_uid"],
                    set_={"value": stmt.excluded.value, "modified": stmt.excluded.modified},
                )
            )

    def field_values(self, form_id: str) -> dict[str, str | None]:
        with self._engine.connect() as conn:
            self._require_form(conn, form_id)
            rows = conn.execute(
                select(field_values.c.field_uid, field_values.c.value).where(
                    field_values.c.form_id == form_id
                )
            ).fetchall()
        return {row.field_uid: row.value for row in rows}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def revision(self, form_id: str) -> int:
        with self._engine.connect() as conn:
            return self._require_form(conn, form_id).revision

    def load_sections(self, form_id: str) -> tuple[int, list[SectionViewModel]]:
        """Read ``(revision, snapshot)`` in one consistent read."""
        with self._engine.connect() as conn:
            form = self._require_form(conn, form_id)
            section_rows = conn.execute(
                select(sections)
                .where(sections.c.form_id == form_id)
                .order_by(sections.c.position, sections.c.section_uid)
            ).fetchall()
            field_rows = conn.execute(
                select(fields)
                .where(fields.c.form_id == form_id)
                .order_by(fields.c.position, fields.c.field_uid)
            ).fetchall()
            values = {
                row.field_uid: row.value
                for row in conn.execute(
                    select(field_values.c.field_uid, field_values.c.value).where(
                        field_values.c.form_id == form_id
                    )
                )
            }

        by_section: dict[str, list[FieldViewModel]] = {}
        for row in field_rows:
            by_section.setdefault(row.section_uid, []).append(
                FieldViewModel(
                    uid=row.field_uid,
                    label=row.label,
                    value=values.get(row.field_uid),
                    section_uid=row.section_uid,
                    mandatory=bool(row.mandatory),
                )
            )
        snapshot = [
            SectionViewModel(
                section_uid=row.section_uid,
                label=row.label,
                order=row.position,
                fields=tuple(by_section.get(row.section_uid, ())),
            )
            for row in section_rows
        ]
        return form.revision, snapshot

    def get_form(self, form_id: str) -> dict[str, Any]:
        with self._engine.connect() as conn:
            row = self._require_form(conn, form_id)
        return dict(row._mapping)

    def list_forms(self) -> list[dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(forms.c.id, forms.c.title, forms.c.kind, forms.c.status).order_by(forms.c.id)
            ).fetchall()
        return [dict(row._mapping) for row in rows]

    # ------------------------------------------------------------------
    # FormRepository (one-shot streams)
    # ------------------------------------------------------------------

    def title(self, form_id: str) -> str:
        return self.get_form(form_id)["title"]

    def report_date(self, form_id: str) -> str | None:
        return self.get_form(form_id)["report_date"]

    def incident_date(self, form_id: str) -> str | None:
        return self.get_form(form_id)["incident_date"]

    def date_rules(self, form_id: str) -> DateRules:
        form = self.get_form(form_id)
        return DateRules(
            display_incident_date=bool(form["display_incident_date"]),
            allow_future_report_dates=bool(form["allow_future_report_dates"]),
            allow_future_incident_dates=bool(form["allow_future_incident_dates"]),
        )

    def store_report_date(self, form_id: str, value: str) -> None:
        self._update_form(form_id, report_date=value)

    def store_incident_date(self, form_id: str, value: str) -> None:
        self._update_form(form_id, incident_date=value)

    def store_coordinates(self, form_id: str, latitude: float, longitude: float) -> None:
        self._update_form(form_id, latitude=latitude, longitude=longitude)

    def store_status(self, form_id: str, status: str) -> None:
        self._update_form(form_id, status=status)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _update_form(self, form_id: str, **values: Any) -> None:
        with self.transaction(form_id) as conn:
            conn.execute(update(forms).where(forms.c.id == form_id).values(**values))

    @staticmethod
    def _require_form(conn: Connection, form_id: str) -> Any:
        row = conn.execute(select(forms).where(forms.c.id == form_id)).first()
        if row is None:
            msg = f"Form {form_id!r} not found"
            raise StoreError("FORM_NOT_FOUND", msg, form_id=form_id)
        return row

    @staticmethod
    def _next_position(conn: Connection, table: Any, where: Any) -> int:
        current = conn.execute(select(func.max(table.c.position)).where(where)).scalar()
        return 0 if current is None else current + 1
