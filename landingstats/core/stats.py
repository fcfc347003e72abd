"""Statistics derived from the stored collections.

The aggregator is a read-only reduction: it never writes, and two calls
with no writes in between produce equal snapshots (given the same ``now``).
Visitors and events are read through their record types, so missing fields
fall back to "Unknown" (and "direct" for the referrer).
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from landingstats.core.models import Event, VisitorRecord
from landingstats.core.scroll import round_half_up
from landingstats.storage.store import PersistenceStore

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 5
DEFAULT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

UNKNOWN = "Unknown"


@dataclass(frozen=True)
class RecentVisitor:
    """Projection of a visitor for the recent-visitors list."""

    time: str
    device: str
    referrer: str

    def to_dict(self) -> dict[str, Any]:
        return {"time": self.time, "device": self.device, "referrer": self.referrer}


@dataclass(frozen=True)
class StatsSnapshot:
    """Aggregate statistics at one point in time.

    Attributes:
        total_visitors: Number of visitor records, counting entries that
            aren't objects (their tags count as Unknown)
        today_visitors: Visitors whose local calendar date is today
        total_subscribers: Size of the subscriber collection
        conversion_rate: Subscribers per visitor in percent, one decimal,
            or "0" when there are no visitors
        avg_session_time_seconds: Mean session duration, rounded
        total_events: Number of stored events (after retention)
        device_breakdown: Visitor count per device tag
        browser_breakdown: Visitor count per browser tag
        os_breakdown: Visitor count per OS tag
        event_breakdown: Stored event count per event type
        recent_visitors: Last visitors in insertion order, most recent last
    """

    total_visitors: int
    today_visitors: int
    total_subscribers: int
    conversion_rate: str
    avg_session_time_seconds: int
    total_events: int
    device_breakdown: dict[str, int] = field(default_factory=dict)
    browser_breakdown: dict[str, int] = field(default_factory=dict)
    os_breakdown: dict[str, int] = field(default_factory=dict)
    event_breakdown: dict[str, int] = field(default_factory=dict)
    recent_visitors: list[RecentVisitor] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "total_visitors": self.total_visitors,
            "today_visitors": self.today_visitors,
            "total_subscribers": self.total_subscribers,
            "conversion_rate": self.conversion_rate,
            "avg_session_time_seconds": self.avg_session_time_seconds,
            "total_events": self.total_events,
            "device_breakdown": dict(self.device_breakdown),
            "browser_breakdown": dict(self.browser_breakdown),
            "os_breakdown": dict(self.os_breakdown),
            "event_breakdown": dict(self.event_breakdown),
            "recent_visitors": [v.to_dict() for v in self.recent_visitors],
        }


def conversion_rate(visitors: int, subscribers: int) -> str:
    """Subscribers as a percentage of visitors, formatted to one decimal.

    Ties round up (6.25 gives "6.3"), matching a browser's toFixed(1).
    """
    if visitors <= 0:
        return "0"
    rate = Decimal(subscribers / visitors * 100).quantize(Decimal("0.1"), ROUND_HALF_UP)
    return str(rate)


def average_session_seconds(durations_ms: list[float]) -> int:
    """Mean of the durations in whole seconds; 0 for no sessions."""
    if not durations_ms:
        return 0
    return round_half_up(sum(durations_ms) / len(durations_ms) / 1000)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a stored ISO-8601 timestamp into local time."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    # Naive timestamps are taken as already local
    return parsed.astimezone() if parsed.tzinfo else parsed


def _breakdown(records: list[Any], attribute: str) -> dict[str, int]:
    counts: Counter[str] = Counter()
    for record in records:
        counts[getattr(record, attribute) or UNKNOWN] += 1
    return dict(counts)


def _as_dict(record: Any) -> dict[str, Any]:
    if isinstance(record, dict):
        return record
    logger.debug("Reading non-object record as empty: %r", record)
    return {}


class StatisticsAggregator:
    """Computes StatsSnapshot instances from a persistence store."""

    def __init__(
        self,
        store: PersistenceStore,
        recent_limit: int = DEFAULT_RECENT_LIMIT,
        time_format: str = DEFAULT_TIME_FORMAT,
    ):
        self.store = store
        self.recent_limit = recent_limit
        self.time_format = time_format

    def compute_stats(self, now: datetime | None = None) -> StatsSnapshot:
        """Reduce the stored collections into a snapshot.

        Args:
            now: Reference time for "today". Defaults to the current local time.

        Raises:
            StorageError: If a collection can't be read
        """
        visitors = [
            VisitorRecord.from_dict(_as_dict(v))
            for v in self.store.read(self.store.visitors_key)
        ]
        events = [Event.from_dict(_as_dict(e)) for e in self.store.read(self.store.events_key)]
        sessions = self.store.read(self.store.sessions_key)
        subscribers = self.store.read(self.store.subscribers_key)

        today = (now or datetime.now()).date()

        return StatsSnapshot(
            total_visitors=len(visitors),
            today_visitors=self._count_on_day(visitors, today),
            total_subscribers=len(subscribers),
            conversion_rate=conversion_rate(len(visitors), len(subscribers)),
            avg_session_time_seconds=average_session_seconds(self._durations(sessions)),
            total_events=len(events),
            device_breakdown=_breakdown(visitors, "device"),
            browser_breakdown=_breakdown(visitors, "browser"),
            os_breakdown=_breakdown(visitors, "os"),
            event_breakdown=_breakdown(events, "type"),
            recent_visitors=self._recent(visitors),
        )

    def _count_on_day(self, visitors: list[VisitorRecord], day: date) -> int:
        count = 0
        for visitor in visitors:
            parsed = parse_timestamp(visitor.timestamp)
            if parsed is not None and parsed.date() == day:
                count += 1
        return count

    def _durations(self, sessions: list[Any]) -> list[float]:
        durations = []
        for session in sessions:
            duration = session.get("duration") if isinstance(session, dict) else None
            if isinstance(duration, (int, float)) and not isinstance(duration, bool):
                durations.append(max(0.0, float(duration)))
            else:
                logger.debug("Skipping session without a numeric duration: %r", session)
        return durations

    def _recent(self, visitors: list[VisitorRecord]) -> list[RecentVisitor]:
        if self.recent_limit <= 0:
            return []
        recent = []
        for visitor in visitors[-self.recent_limit:]:
            parsed = parse_timestamp(visitor.timestamp)
            recent.append(
                RecentVisitor(
                    time=parsed.strftime(self.time_format) if parsed else UNKNOWN,
                    device=visitor.device,
                    referrer=visitor.referrer,
                )
            )
        return recent


def compute_stats(store: PersistenceStore, now: datetime | None = None) -> StatsSnapshot:
    """Convenience wrapper using default aggregator settings."""
    return StatisticsAggregator(store).compute_stats(now=now)
