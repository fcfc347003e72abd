"""Event recording for one page load.

The recorder owns the session id and start time for a single page load and
writes visitors, events and the final session summary through the
persistence store. Storage failures never escape: a lost analytics record
is logged and the page carries on.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from landingstats.core.fingerprint import Fingerprint, resolve_fingerprint
from landingstats.core.models import (
    Event,
    PageEnvironment,
    SessionRecord,
    VisitorRecord,
    generate_session_id,
    utc_now_iso,
)
from landingstats.storage.store import PersistenceStore, StorageError

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class EventRecorder:
    """Records visitor, event and session data for one page load.

    Usage:
        recorder = EventRecorder(store, environment)
        recorder.record_visit()
        recorder.record_event("form_click", {"element": "email_form"})
        ...
        recorder.record_session_end()
    """

    def __init__(
        self,
        store: PersistenceStore,
        environment: PageEnvironment,
        session_id: str | None = None,
        clock: Clock = time.monotonic,
    ):
        """Initialize the recorder.

        Args:
            store: Where records are persisted
            environment: Environment signals for this page load
            session_id: Explicit session id. Generated if not provided.
            clock: Monotonic clock in seconds, used for elapsed times
        """
        self.store = store
        self.environment = environment
        self._session_id = session_id or generate_session_id()
        self._clock = clock
        self._start = clock()
        self.events: list[Event] = []
        self._fingerprint: Fingerprint | None = None
        self._visitor: VisitorRecord | None = None
        self._session: SessionRecord | None = None

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def fingerprint(self) -> Fingerprint:
        """Device, browser and OS, resolved once per page load."""
        if self._fingerprint is None:
            self._fingerprint = resolve_fingerprint(self.environment)
        return self._fingerprint

    @property
    def visitor(self) -> VisitorRecord | None:
        return self._visitor

    @property
    def session(self) -> SessionRecord | None:
        return self._session

    def elapsed_ms(self) -> int:
        """Milliseconds since the page loaded."""
        return max(0, int((self._clock() - self._start) * 1000))

    def record_visit(self) -> VisitorRecord:
        """Record the page view. Only the first call writes anything."""
        if self._visitor is not None:
            logger.warning("Visit already recorded for session %s", self._session_id)
            return self._visitor

        env = self.environment
        fp = self.fingerprint
        visitor = VisitorRecord(
            session_id=self._session_id,
            timestamp=utc_now_iso(),
            url=env.url,
            referrer=env.referrer or "direct",
            user_agent=env.user_agent,
            language=env.language,
            screen=env.screen,
            viewport=env.viewport,
            timezone=env.timezone,
            device=fp.device,
            browser=fp.browser,
            os=fp.os,
        )
        self._visitor = visitor

        self._persist(self.store.visitors_key, visitor.to_dict())
        self.record_event("page_view", visitor.to_dict())
        logger.info(
            "New visitor: session=%s, device=%s, browser=%s, os=%s",
            self._session_id,
            fp.device,
            fp.browser,
            fp.os,
        )
        return visitor

    def record_event(self, event_type: str, payload: dict[str, Any] | None = None) -> Event:
        """Record an interaction event.

        Args:
            event_type: Event tag, e.g. "form_submit"
            payload: Event-specific data

        Returns:
            The recorded event
        """
        event = Event(
            type=event_type,
            timestamp=utc_now_iso(),
            session_id=self._session_id,
            data=dict(payload or {}),
        )
        self.events.append(event)
        self._persist(self.store.events_key, event.to_dict())
        logger.debug("Event %s: %s", event_type, event.data)
        return event

    def record_visibility(self, hidden: bool) -> Event:
        """Record the page becoming hidden or visible again."""
        return self.record_event(
            "page_hidden" if hidden else "page_visible",
            {"time_on_page": self.elapsed_ms()},
        )

    def record_session_end(self) -> SessionRecord | None:
        """Write the session summary and the exit event.

        Returns:
            The session record, or None if the session already ended
        """
        if self._session is not None:
            logger.debug("Session %s already ended", self._session_id)
            return None

        session = SessionRecord(
            session_id=self._session_id,
            duration=self.elapsed_ms(),
            event_count=len(self.events),
            timestamp=utc_now_iso(),
        )
        self._session = session

        self._persist(self.store.sessions_key, session.to_dict())
        self.record_event("page_exit", session.to_dict())
        logger.info(
            "Session ended: session=%s, duration=%dms, events=%d",
            self._session_id,
            session.duration,
            session.event_count,
        )
        return session

    def _persist(self, key: str, record: dict[str, Any]) -> bool:
        try:
            self.store.append(key, record)
        except StorageError as e:
            logger.warning("Dropped record for %s: %s", key, e)
            return False
        return True
