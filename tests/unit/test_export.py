"""Unit tests for export and import."""

from __future__ import annotations

import json
import re
from datetime import datetime

import pytest

from landingstats.core.lifecycle import create_page
from landingstats.core.models import PageEnvironment, PageHooks, ScrollMetrics
from landingstats.core.scroll import ManualScheduler
from landingstats.export import DataExporter, build_export, import_export
from landingstats.storage.store import JsonFileBackend, MemoryBackend, PersistenceStore


@pytest.fixture
def populated_store() -> PersistenceStore:
    """A store with one full page load and two subscribers."""
    store = PersistenceStore(MemoryBackend())
    scheduler = ManualScheduler()
    page = create_page(
        PageEnvironment(url="https://example.com/", referrer="https://t.co/x", viewport_width=1200),
        store,
        hooks=PageHooks(signup_form=True, email_input=True),
        scheduler=scheduler,
        clock=scheduler.time,
    )
    page.load()
    page.scroll(ScrollMetrics(900, 1800, 800))
    scheduler.advance(1.0)
    page.form_submit()
    page.unload()
    store.replace(
        store.subscribers_key,
        [{"email": "a@example.com"}, {"email": "b@example.com"}],
    )
    return store


class TestBuildExport:
    """Tests for build_export."""

    def test_sections(self, populated_store: PersistenceStore):
        document = build_export(populated_store)
        assert set(document) == {"visitors", "subscribers", "events", "sessions"}
        assert len(document["visitors"]) == 1
        assert len(document["subscribers"]) == 2
        assert len(document["sessions"]) == 1
        assert document["events"][0]["type"] == "page_view"
        assert document["events"][-1]["type"] == "page_exit"

    def test_raw_projection(self, populated_store: PersistenceStore):
        """Export returns the stored records unchanged."""
        document = build_export(populated_store)
        assert document["events"] == populated_store.read(populated_store.events_key)

    def test_empty_store(self):
        assert build_export(PersistenceStore()) == {
            "visitors": [],
            "subscribers": [],
            "events": [],
            "sessions": [],
        }


class TestImportExport:
    """Tests for import_export."""

    def test_round_trip_is_byte_identical(self, populated_store: PersistenceStore):
        document = build_export(populated_store)
        target = PersistenceStore(MemoryBackend())

        counts = import_export(target, document)

        assert counts == {"visitors": 1, "subscribers": 2, "events": len(document["events"]), "sessions": 1}
        for key in (*populated_store.analytics_keys, populated_store.subscribers_key):
            assert target.backend.data[key] == populated_store.backend.data[key]
        assert build_export(target) == document

    def test_replaces_existing_data(self, populated_store: PersistenceStore):
        import_export(
            populated_store,
            {"visitors": [], "subscribers": [], "events": [{"type": "x"}], "sessions": []},
        )
        assert populated_store.read(populated_store.visitors_key) == []
        assert populated_store.read(populated_store.events_key) == [{"type": "x"}]

    @pytest.mark.parametrize(
        "document",
        [
            [],
            {"visitors": [], "events": [], "sessions": []},
            {"visitors": {}, "subscribers": [], "events": [], "sessions": []},
        ],
    )
    def test_rejects_malformed_documents(self, document):
        with pytest.raises(ValueError):
            import_export(PersistenceStore(), document)


class TestDataExporter:
    """Tests for DataExporter."""

    def test_filename(self):
        exporter = DataExporter()
        store = PersistenceStore(namespace="meetyourbaby")
        assert (
            exporter.filename_for(store, datetime(2024, 1, 15))
            == "meetyourbaby-analytics-2024-01-15.json"
        )

    def test_export_file(self, tmp_path, populated_store: PersistenceStore):
        exporter = DataExporter(tmp_path / "exports")
        path = exporter.export(populated_store)

        assert path.parent == tmp_path / "exports"
        assert re.fullmatch(r"landing-analytics-\d{4}-\d{2}-\d{2}\.json", path.name)
        assert json.loads(path.read_text(encoding="utf-8")) == build_export(populated_store)

    def test_file_round_trip(self, tmp_path, populated_store: PersistenceStore):
        """Export to disk, import into a file-backed store, export again."""
        exporter = DataExporter(tmp_path)
        first = exporter.export(populated_store)

        target = PersistenceStore(JsonFileBackend(tmp_path / "data"))
        import_export(target, exporter.load(first))

        assert build_export(target) == build_export(populated_store)
