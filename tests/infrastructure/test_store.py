"""Tests for FormStore."""

from __future__ import annotations

from pathlib import Path

import pytest

from formpipe.domain.dates import DateRules
from formpipe.domain.lifecycle import FormKind
from formpipe.infrastructure.store import FormStore, StoreError
from tests.conftest import build_form


class TestForms:
    def test_creates_database_file(self, store: FormStore, store_root: Path) -> None:
        assert (store_root / ".formpipe" / "forms.db").is_file()

    def test_create_and_get(self, store: FormStore) -> None:
        store.create_form("visit", "Household visit", kind=FormKind.ENROLLMENT)
        form = store.get_form("visit")
        assert form["title"] == "Household visit"
        assert form["kind"] == "enrollment"
        assert form["revision"] == 0

    def test_duplicate_form(self, store: FormStore) -> None:
        store.create_form("visit", "A")
        with pytest.raises(StoreError) as info:
            store.create_form("visit", "B")
        assert info.value.code == "FORM_EXISTS"

    def test_unknown_form(self, store: FormStore) -> None:
        with pytest.raises(StoreError) as info:
            store.revision("nope")
        assert info.value.code == "FORM_NOT_FOUND"
        assert info.value.detail == {"form_id": "nope"}

    def test_list_forms(self, store: FormStore) -> None:
        store.create_form("b", "Second")
        store.create_form("a", "First")
        assert [f["id"] for f in store.list_forms()] == ["a", "b"]


class TestSectionsAndFields:
    def test_load_sections_in_position_order(self, store: FormStore) -> None:
        build_form(store)
        store.add_section("visit", "s0", label="Intro", position=-1)
        _revision, sections = store.load_sections("visit")
        assert [s.section_uid for s in sections] == ["s0", "s1", "s2"]
        assert [f.uid for f in sections[1].fields] == ["f1", "f2"]
        assert sections[1].field("f1").mandatory is True

    def test_duplicate_section(self, store: FormStore) -> None:
        build_form(store)
        with pytest.raises(StoreError) as info:
            store.add_section("visit", "s1")
        assert info.value.code == "SECTION_EXISTS"

    def test_field_needs_section(self, store: FormStore) -> None:
        build_form(store)
        with pytest.raises(StoreError) as info:
            store.add_field("visit", "f9", "s9")
        assert info.value.code == "SECTION_NOT_FOUND"

    def test_duplicate_field(self, store: FormStore) -> None:
        build_form(store)
        with pytest.raises(StoreError) as info:
            store.add_field("visit", "f1", "s2")
        assert info.value.code == "FIELD_EXISTS"

    def test_rejected_write_keeps_revision(self, store: FormStore) -> None:
        build_form(store)
        before = store.revision("visit")
        with pytest.raises(StoreError):
            store.add_section("visit", "s1")
        assert store.revision("visit") == before


class TestValues:
    def test_set_value_upserts(self, store: FormStore) -> None:
        build_form(store)
        store.set_value("visit", "f1", "Alice")
        store.set_value("visit", "f1", "Bob")
        assert store.field_values("visit") == {"f1": "Bob"}
        _revision, sections = store.load_sections("visit")
        assert sections[0].field("f1").value == "Bob"

    def test_unknown_field(self, store: FormStore) -> None:
        build_form(store)
        with pytest.raises(StoreError) as info:
            store.set_value("visit", "zz", "x")
        assert info.value.code == "FIELD_NOT_FOUND"

    def test_writes_bump_revision(self, store: FormStore) -> None:
        build_form(store)
        before = store.revision("visit")
        store.set_value("visit", "f1", "x")
        assert store.revision("visit") == before + 1


class TestRepository:
    def test_dates_and_rules(self, store: FormStore) -> None:
        rules = DateRules(display_incident_date=True, allow_future_incident_dates=True)
        store.create_form("visit", "V", report_date="2024-03-01", date_rules=rules)
        assert store.title("visit") == "V"
        assert store.report_date("visit") == "2024-03-01"
        assert store.incident_date("visit") is None
        assert store.date_rules("visit") == rules

    def test_write_through(self, store: FormStore) -> None:
        store.create_form("visit", "V")
        store.store_report_date("visit", "2024-01-02")
        store.store_incident_date("visit", "2024-01-01")
        store.store_coordinates("visit", 1.5, 2.5)
        store.store_status("visit", "completed")
        form = store.get_form("visit")
        assert form["report_date"] == "2024-01-02"
        assert form["incident_date"] == "2024-01-01"
        assert (form["latitude"], form["longitude"]) == (1.5, 2.5)
        assert form["status"] == "completed"
        assert form["revision"] == 4
