"""Synthetic page loads for trying out the collector.

Each simulated visitor gets a random environment and a short journey
(scrolling, focusing the email field, clicking feature cards, tabbing away)
replayed through the real lifecycle on a virtual clock, so scroll
debouncing and session durations behave as they would on a live page.
"""

from __future__ import annotations

import logging
import random

from landingstats.core.lifecycle import PageLifecycle, create_page
from landingstats.core.models import PageEnvironment, PageHooks, ScrollMetrics
from landingstats.core.scroll import ManualScheduler
from landingstats.storage.store import PersistenceStore

logger = logging.getLogger(__name__)

PAGE_URL = "https://example.com/"

REFERRERS = [
    "https://www.google.com/",
    "https://www.bing.com/",
    "https://twitter.com/",
    "",
]

# (user agent, platform)
USER_AGENTS = [
    (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "MacIntel",
    ),
    (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
        "Win32",
    ),
    (
        "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0",
        "Linux x86_64",
    ),
    (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1",
        "iPhone",
    ),
]

# (screen, viewport)
SCREENS = [
    ((1920, 1080), (1920, 969)),
    ((1366, 768), (1366, 657)),
    ((820, 1180), (820, 1112)),
    ((390, 844), (390, 664)),
]

FEATURE_CARDS = ("Weekly updates", "Growth tracker", "Expert tips")

DOCUMENT_HEIGHT = 4000


def random_environment(rng: random.Random) -> PageEnvironment:
    user_agent, platform = rng.choice(USER_AGENTS)
    (screen_w, screen_h), (view_w, view_h) = rng.choice(SCREENS)
    return PageEnvironment(
        url=PAGE_URL,
        referrer=rng.choice(REFERRERS),
        user_agent=user_agent,
        platform=platform,
        language=rng.choice(["en-US", "ko-KR", "de-DE"]),
        screen_width=screen_w,
        screen_height=screen_h,
        viewport_width=view_w,
        viewport_height=view_h,
        timezone=rng.choice(["UTC", "Asia/Seoul", "Europe/Berlin"]),
    )


def _journey(page: PageLifecycle, scheduler: ManualScheduler, rng: random.Random) -> None:
    viewport_height = page.recorder.environment.viewport_height
    scrollable = DOCUMENT_HEIGHT - viewport_height
    position = 0.0
    target = scrollable * rng.uniform(0.1, 1.0)

    # Bursts of scroll signals, pausing between bursts
    while position < target:
        for _ in range(rng.randint(3, 10)):
            position = min(target, position + rng.uniform(40, 200))
            page.scroll(ScrollMetrics(position, DOCUMENT_HEIGHT, viewport_height))
            scheduler.advance(rng.uniform(0.01, 0.05))
        scheduler.advance(rng.uniform(0.2, 3.0))

    if rng.random() < 0.4:
        page.feature_card_click(rng.randrange(len(FEATURE_CARDS)))
        scheduler.advance(rng.uniform(0.5, 5.0))

    if rng.random() < 0.3:
        page.visibility_change(hidden=True)
        scheduler.advance(rng.uniform(5.0, 60.0))
        page.visibility_change(hidden=False)

    if rng.random() < 0.5:
        page.form_click()
        page.email_focus()
        scheduler.advance(rng.uniform(2.0, 15.0))
        if rng.random() < 0.5:
            page.form_submit()

    scheduler.advance(rng.uniform(1.0, 20.0))


def simulate_visits(
    store: PersistenceStore,
    visitors: int = 10,
    seed: int | None = None,
    **page_options,
) -> int:
    """Replay synthetic page loads into the store.

    Extra keyword arguments (milestones, debounce_seconds, position_threshold)
    are passed through to each simulated page.

    Returns:
        Number of events recorded across all simulated page loads
    """
    rng = random.Random(seed)
    hooks = PageHooks(signup_form=True, email_input=True, feature_cards=FEATURE_CARDS)
    total_events = 0

    for _ in range(visitors):
        scheduler = ManualScheduler()
        page = create_page(
            random_environment(rng),
            store,
            hooks=hooks,
            scheduler=scheduler,
            clock=scheduler.time,
            **page_options,
        )
        page.load()
        _journey(page, scheduler, rng)
        page.unload()
        total_events += len(page.recorder.events)

    logger.info("Simulated %d visits (%d events)", visitors, total_events)
    return total_events
