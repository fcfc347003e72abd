"""Unit tests for the event recorder."""

from __future__ import annotations

import logging
import re

import pytest

from landingstats.core.models import Event, PageEnvironment, generate_session_id
from landingstats.core.recorder import EventRecorder
from landingstats.storage.store import JsonFileBackend, MemoryBackend, PersistenceStore, StorageError


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingBackend(MemoryBackend):
    """Backend whose writes always fail, like a full browser storage."""

    def set(self, key: str, value: str) -> None:
        raise StorageError("quota exceeded", key=key)


@pytest.fixture
def environment() -> PageEnvironment:
    return PageEnvironment(
        url="https://example.com/?utm_source=newsletter",
        referrer="",
        user_agent="Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0 Safari/537.36",
        platform="Win32",
        language="ko-KR",
        screen_width=1920,
        screen_height=1080,
        viewport_width=1280,
        viewport_height=900,
        timezone="Asia/Seoul",
    )


@pytest.fixture
def store() -> PersistenceStore:
    return PersistenceStore(MemoryBackend())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorder(store: PersistenceStore, environment: PageEnvironment, clock: FakeClock) -> EventRecorder:
    return EventRecorder(store, environment, session_id="sess-1", clock=clock)


class TestSessionId:
    """Tests for session id generation."""

    def test_format(self):
        session_id = generate_session_id()
        assert re.fullmatch(r"[0-9a-z]+", session_id)
        assert len(session_id) > 11

    def test_unique(self):
        assert len({generate_session_id() for _ in range(200)}) == 200

    def test_recorder_generates_id(self, store, environment):
        recorder = EventRecorder(store, environment)
        assert recorder.session_id
        assert recorder.session_id != EventRecorder(store, environment).session_id


class TestRecordVisit:
    """Tests for record_visit."""

    def test_visitor_record_fields(self, recorder: EventRecorder):
        visitor = recorder.record_visit()
        assert visitor.session_id == "sess-1"
        assert visitor.url == "https://example.com/?utm_source=newsletter"
        assert visitor.referrer == "direct"
        assert visitor.language == "ko-KR"
        assert visitor.screen == "1920x1080"
        assert visitor.viewport == "1280x900"
        assert visitor.timezone == "Asia/Seoul"
        assert visitor.device == "desktop"
        assert visitor.browser == "Chrome"
        assert visitor.os == "Windows"

    def test_persists_visitor_and_page_view(self, recorder: EventRecorder, store: PersistenceStore):
        visitor = recorder.record_visit()

        assert store.read(store.visitors_key) == [visitor.to_dict()]
        events = store.read(store.events_key)
        assert len(events) == 1
        assert events[0]["type"] == "page_view"
        assert events[0]["session_id"] == "sess-1"
        assert events[0]["data"] == visitor.to_dict()

    def test_only_once(self, recorder: EventRecorder, store: PersistenceStore):
        """A second call returns the first record without writing again."""
        first = recorder.record_visit()
        second = recorder.record_visit()
        assert second is first
        assert len(store.read(store.visitors_key)) == 1
        assert len(recorder.events) == 1

    def test_keeps_referrer(self, store, environment, clock):
        env = PageEnvironment(url=environment.url, referrer="https://www.google.com/")
        visitor = EventRecorder(store, env, clock=clock).record_visit()
        assert visitor.referrer == "https://www.google.com/"


class TestRecordEvent:
    """Tests for record_event."""

    def test_event_fields(self, recorder: EventRecorder):
        event = recorder.record_event("form_click", {"element": "email_form"})
        assert isinstance(event, Event)
        assert event.type == "form_click"
        assert event.session_id == "sess-1"
        assert event.data == {"element": "email_form"}
        assert "T" in event.timestamp

    def test_buffer_mirrors_store(self, recorder: EventRecorder, store: PersistenceStore):
        recorder.record_event("a")
        recorder.record_event("b", {"x": 1})
        assert [e.type for e in recorder.events] == ["a", "b"]
        assert store.read(store.events_key) == [e.to_dict() for e in recorder.events]

    def test_payload_defaults_to_empty(self, recorder: EventRecorder):
        assert recorder.record_event("ping").data == {}

    def test_storage_failure_is_logged(self, environment, clock, caplog):
        """A failing store loses the record but never raises."""
        recorder = EventRecorder(PersistenceStore(FailingBackend()), environment, clock=clock)
        with caplog.at_level(logging.WARNING):
            recorder.record_visit()
            event = recorder.record_event("form_submit")
        assert event.type == "form_submit"
        assert len(recorder.events) == 2
        assert "Dropped record" in caplog.text

    def test_corrupt_file_does_not_raise(self, environment, clock, tmp_path):
        """A collection file with invalid UTF-8 is replaced, not propagated."""
        store = PersistenceStore(JsonFileBackend(tmp_path))
        (tmp_path / "landing_events.json").write_bytes(b"\xff\xfe[garbage")
        recorder = EventRecorder(store, environment, clock=clock)

        recorder.record_event("form_click", {})

        assert [e["type"] for e in store.read(store.events_key)] == ["form_click"]


class TestElapsedAndVisibility:
    """Tests for elapsed time and visibility events."""

    def test_elapsed_ms(self, recorder: EventRecorder, clock: FakeClock):
        assert recorder.elapsed_ms() == 0
        clock.advance(1.25)
        assert recorder.elapsed_ms() == 1250

    def test_elapsed_never_negative(self, recorder: EventRecorder, clock: FakeClock):
        clock.advance(-5)
        assert recorder.elapsed_ms() == 0

    def test_visibility_events(self, recorder: EventRecorder, clock: FakeClock):
        clock.advance(3)
        hidden = recorder.record_visibility(hidden=True)
        clock.advance(2)
        visible = recorder.record_visibility(hidden=False)
        assert hidden.type == "page_hidden"
        assert hidden.data == {"time_on_page": 3000}
        assert visible.type == "page_visible"
        assert visible.data == {"time_on_page": 5000}


class TestRecordSessionEnd:
    """Tests for record_session_end."""

    def test_session_record(self, recorder: EventRecorder, clock: FakeClock, store: PersistenceStore):
        recorder.record_visit()
        recorder.record_event("form_click")
        clock.advance(2.5)

        session = recorder.record_session_end()

        assert session is not None
        assert session.session_id == "sess-1"
        assert session.duration == 2500
        assert session.event_count == 2
        assert store.read(store.sessions_key) == [session.to_dict()]

    def test_page_exit_event(self, recorder: EventRecorder, store: PersistenceStore):
        recorder.record_visit()
        session = recorder.record_session_end()

        last = store.read(store.events_key)[-1]
        assert last["type"] == "page_exit"
        assert last["data"] == session.to_dict()
        assert len(recorder.events) == 2

    def test_only_once(self, recorder: EventRecorder, store: PersistenceStore):
        assert recorder.record_session_end() is not None
        assert recorder.record_session_end() is None
        assert len(store.read(store.sessions_key)) == 1
        assert [e.type for e in recorder.events] == ["page_exit"]
