"""Page lifecycle wiring.

PageLifecycle is the one context object built per page load. The host
forwards its signals (load, clicks, focus, submit, scroll, visibility
changes, unload) to the matching method and the lifecycle turns them into
recorder calls. Hooks the page doesn't provide are skipped silently.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from landingstats.core.models import PageEnvironment, PageHooks, ScrollMetrics
from landingstats.core.recorder import Clock, EventRecorder
from landingstats.core.scroll import (
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_MILESTONES,
    DEFAULT_POSITION_THRESHOLD,
    Scheduler,
    ScrollDepthTracker,
    ScrollPositionSampler,
)
from landingstats.storage.store import PersistenceStore

logger = logging.getLogger(__name__)

ScrollSubscriber = Callable[[ScrollMetrics], object]


class PageLifecycle:
    """Dispatches host page signals to the recorder."""

    def __init__(
        self,
        recorder: EventRecorder,
        hooks: PageHooks | None = None,
        scheduler: Scheduler | None = None,
        milestones: tuple[int, ...] = DEFAULT_MILESTONES,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        position_threshold: int = DEFAULT_POSITION_THRESHOLD,
    ):
        self.recorder = recorder
        self.hooks = hooks or PageHooks()
        if scheduler is None:
            try:
                scheduler = asyncio.get_running_loop()
            except RuntimeError:
                raise ValueError(
                    "No running asyncio event loop: pass a scheduler such as ManualScheduler"
                ) from None
        self.depth_tracker = ScrollDepthTracker(recorder, milestones=milestones)
        self.position_sampler = ScrollPositionSampler(
            recorder,
            delay=debounce_seconds,
            threshold=position_threshold,
            scheduler=scheduler,
        )
        self._scroll_subscribers: list[ScrollSubscriber] = [
            self.depth_tracker.observe,
            self.position_sampler.signal,
        ]
        self._loaded = False
        self._unloaded = False

    def load(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        self.recorder.record_visit()

    def scroll(self, metrics: ScrollMetrics) -> None:
        if self._unloaded:
            return
        for subscriber in self._scroll_subscribers:
            subscriber(metrics)

    def visibility_change(self, hidden: bool) -> None:
        if self._unloaded:
            return
        self.recorder.record_visibility(hidden)

    def unload(self) -> None:
        """Final flush. Safe to call more than once."""
        if self._unloaded:
            return
        self._unloaded = True
        self.position_sampler.cancel()
        self.recorder.record_session_end()

    def form_click(self) -> None:
        if not self.hooks.signup_form:
            logger.debug("No signup form on page, ignoring form click")
            return
        self.recorder.record_event("form_click", {"element": "email_form"})

    def email_focus(self) -> None:
        if not (self.hooks.signup_form and self.hooks.email_input):
            logger.debug("No email input on page, ignoring focus")
            return
        self.recorder.record_event("input_focus", {"field": "email"})

    def form_submit(self) -> None:
        if not self.hooks.signup_form:
            logger.debug("No signup form on page, ignoring submit")
            return
        self.recorder.record_event(
            "form_submit",
            {"form": "email_signup", "time_on_page": self.recorder.elapsed_ms()},
        )

    def feature_card_click(self, index: int) -> None:
        cards = self.hooks.feature_cards
        if not 0 <= index < len(cards):
            logger.debug("No feature card at index %d, ignoring click", index)
            return
        self.recorder.record_event(
            "feature_card_click",
            {"card_index": index, "card_title": cards[index]},
        )


def create_page(
    environment: PageEnvironment,
    store: PersistenceStore,
    hooks: PageHooks | None = None,
    scheduler: Scheduler | None = None,
    clock: Clock = time.monotonic,
    **kwargs,
) -> PageLifecycle:
    """Build the recorder and lifecycle for a fresh page load.

    Extra keyword arguments are passed to PageLifecycle (milestones,
    debounce_seconds, position_threshold). Call ``load()`` on the result
    to record the visit.

    Raises:
        ValueError: If no scheduler is given and no asyncio loop is running
    """
    recorder = EventRecorder(store, environment, clock=clock)
    return PageLifecycle(recorder, hooks=hooks, scheduler=scheduler, **kwargs)
