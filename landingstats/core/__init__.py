"""Event collection and aggregation core."""

from landingstats.core.fingerprint import (
    Fingerprint,
    classify_browser,
    classify_device,
    classify_os,
    resolve_fingerprint,
)
from landingstats.core.lifecycle import PageLifecycle, create_page
from landingstats.core.models import (
    Event,
    PageEnvironment,
    PageHooks,
    ScrollMetrics,
    SessionRecord,
    VisitorRecord,
    generate_session_id,
)
from landingstats.core.recorder import EventRecorder
from landingstats.core.scroll import (
    Debouncer,
    ManualScheduler,
    ScrollDepthTracker,
    ScrollPositionSampler,
    scroll_percent,
)
from landingstats.core.stats import (
    RecentVisitor,
    StatisticsAggregator,
    StatsSnapshot,
    compute_stats,
)

__all__ = [
    # Fingerprint
    "Fingerprint",
    "classify_browser",
    "classify_device",
    "classify_os",
    "resolve_fingerprint",
    # Models
    "Event",
    "PageEnvironment",
    "PageHooks",
    "ScrollMetrics",
    "SessionRecord",
    "VisitorRecord",
    "generate_session_id",
    # Recording
    "EventRecorder",
    "PageLifecycle",
    "create_page",
    # Scroll
    "Debouncer",
    "ManualScheduler",
    "ScrollDepthTracker",
    "ScrollPositionSampler",
    "scroll_percent",
    # Statistics
    "RecentVisitor",
    "StatisticsAggregator",
    "StatsSnapshot",
    "compute_stats",
]
