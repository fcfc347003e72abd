"""Scroll depth tracking.

Two independent subscribers listen to the same scroll signal:

- ScrollDepthTracker sees every signal and records each milestone
  (25/50/75/90/100 percent) the first time it is crossed. It is never
  debounced, so fast scrolling cannot skip a milestone.
- ScrollPositionSampler waits for a quiet period (150 ms by default) after
  the last signal and then records where the reader settled. This bounds
  the number of store writes during continuous scrolling.

Debouncing needs a scheduler with an asyncio-style ``call_later``. The
running event loop is used by default; ManualScheduler drives virtual time
for replays and tests.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import math
from typing import Any, Callable, Protocol

from landingstats.core.models import ScrollMetrics
from landingstats.core.recorder import EventRecorder

logger = logging.getLogger(__name__)

DEFAULT_MILESTONES: tuple[int, ...] = (25, 50, 75, 90, 100)
DEFAULT_DEBOUNCE_SECONDS = 0.150
DEFAULT_POSITION_THRESHOLD = 25


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything with asyncio's ``call_later`` signature."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Cancellable: ...


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values, like a browser's Math.round."""
    return math.floor(value + 0.5)


def scroll_percent(metrics: ScrollMetrics) -> int | None:
    """Percentage of the scrollable distance covered.

    Returns:
        The rounded percentage, or None when the page can't scroll
        (document no taller than the viewport)
    """
    scrollable = metrics.scroll_height - metrics.viewport_height
    if scrollable <= 0:
        return None
    return round_half_up(metrics.scroll_top / scrollable * 100)


class ScrollDepthTracker:
    """Records each scroll milestone at most once per page load."""

    def __init__(
        self,
        recorder: EventRecorder,
        milestones: tuple[int, ...] = DEFAULT_MILESTONES,
    ):
        self.recorder = recorder
        self.milestones = tuple(sorted(milestones))
        self.reached: list[int] = []
        self.max_depth = 0

    def observe(self, metrics: ScrollMetrics) -> list[int]:
        """Check a scroll signal against the milestones.

        Returns:
            Milestones newly recorded by this signal
        """
        percent = scroll_percent(metrics)
        if percent is None:
            return []

        if percent > self.max_depth:
            self.max_depth = percent

        newly_reached = []
        for milestone in self.milestones:
            if percent >= milestone and milestone not in self.reached:
                self.reached.append(milestone)
                newly_reached.append(milestone)
                self.recorder.record_event(
                    "scroll_depth",
                    {"depth": milestone, "time_to_reach": self.recorder.elapsed_ms()},
                )
        return newly_reached


class Debouncer:
    """Delays a callback until signals stop arriving for ``delay`` seconds.

    Only the arguments of the last signal are delivered.
    """

    def __init__(
        self,
        callback: Callable[..., Any],
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
        scheduler: Scheduler | None = None,
    ):
        self.callback = callback
        self.delay = delay
        self._scheduler = scheduler
        self._pending: Cancellable | None = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def _get_scheduler(self) -> Scheduler:
        if self._scheduler is None:
            # Bound lazily so the debouncer can be built outside a running loop
            self._scheduler = asyncio.get_running_loop()
        return self._scheduler

    def signal(self, *args: Any) -> None:
        self.cancel()
        self._pending = self._get_scheduler().call_later(self.delay, self._fire, *args)

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _fire(self, *args: Any) -> None:
        self._pending = None
        self.callback(*args)


class ScrollPositionSampler:
    """Records where the reader settles once scrolling pauses."""

    def __init__(
        self,
        recorder: EventRecorder,
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
        threshold: int = DEFAULT_POSITION_THRESHOLD,
        scheduler: Scheduler | None = None,
    ):
        self.recorder = recorder
        self.threshold = threshold
        self._debouncer = Debouncer(self._sample, delay=delay, scheduler=scheduler)

    def signal(self, metrics: ScrollMetrics) -> None:
        self._debouncer.signal(metrics)

    def cancel(self) -> None:
        self._debouncer.cancel()

    def _sample(self, metrics: ScrollMetrics) -> None:
        percent = scroll_percent(metrics)
        if percent is None or percent < self.threshold:
            return
        self.recorder.record_event("scroll_position", {"position": percent})


class ScheduledCall:
    """Handle returned by ManualScheduler.call_later."""

    def __init__(self, when: float, callback: Callable[..., Any], args: tuple[Any, ...]):
        self.when = when
        self.callback = callback
        self.args = args
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Virtual-time scheduler.

    Time only moves when ``advance`` is called; due callbacks run in
    deadline order. ``time`` doubles as the recorder clock so that replayed
    sessions get consistent durations.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: list[tuple[float, int, ScheduledCall]] = []
        self._counter = itertools.count()

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ScheduledCall:
        handle = ScheduledCall(self._now + max(0.0, delay), callback, args)
        heapq.heappush(self._queue, (handle.when, next(self._counter), handle))
        return handle

    def advance(self, seconds: float) -> int:
        """Move time forward, running every callback that falls due.

        Returns:
            Number of callbacks run
        """
        target = self._now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled():
                continue
            self._now = when
            handle.callback(*handle.args)
            ran += 1
        self._now = target
        return ran
