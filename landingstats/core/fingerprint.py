"""Device, browser and OS classification from environment signals.

Classification is plain substring sniffing and the evaluation order is part
of the contract: stored statistics depend on exactly where the boundaries
fall. An Edge user agent also carries "Chrome" and "Safari" tokens and is
therefore classified as Chrome; a Chrome user agent carries "Safari" and is
classified as Chrome because Chrome is tested first.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from landingstats.core.models import PageEnvironment

MOBILE_MAX_WIDTH = 768
TABLET_MAX_WIDTH = 1024

UNKNOWN = "Unknown"

# (substring, tag) in evaluation order
_BROWSER_TOKENS: tuple[tuple[str, str], ...] = (
    ("Chrome", "Chrome"),
    ("Firefox", "Firefox"),
    ("Safari", "Safari"),
    ("Edge", "Edge"),
)

_PLATFORM_TOKENS: tuple[tuple[str, str], ...] = (
    ("Win", "Windows"),
    ("Mac", "macOS"),
    ("Linux", "Linux"),
)

_UA_OS_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"Android"), "Android"),
    (re.compile(r"iPhone|iPad"), "iOS"),
)


@dataclass(frozen=True)
class Fingerprint:
    """Derived visitor attributes."""

    device: str
    browser: str
    os: str


def classify_device(viewport_width: int | float | None) -> str:
    """Classify a viewport width as mobile, tablet or desktop.

    Upper bounds are inclusive: 768 is mobile, 1024 is tablet. A missing or
    non-numeric width counts as a zero-width viewport.
    """
    try:
        width = float(viewport_width) if viewport_width is not None else 0.0
    except (TypeError, ValueError):
        width = 0.0
    if width <= MOBILE_MAX_WIDTH:
        return "mobile"
    if width <= TABLET_MAX_WIDTH:
        return "tablet"
    return "desktop"


def classify_browser(user_agent: str | None) -> str:
    """Return the first browser whose token appears in the user agent."""
    if not user_agent:
        return UNKNOWN
    for token, tag in _BROWSER_TOKENS:
        if token in user_agent:
            return tag
    return UNKNOWN


def classify_os(platform: str | None, user_agent: str | None) -> str:
    """Classify the operating system.

    The platform string wins when it names a desktop OS; otherwise the user
    agent is checked for Android, then iPhone/iPad.
    """
    if platform:
        for token, tag in _PLATFORM_TOKENS:
            if token in platform:
                return tag
    if user_agent:
        for pattern, tag in _UA_OS_PATTERNS:
            if pattern.search(user_agent):
                return tag
    return UNKNOWN


def resolve_fingerprint(environment: PageEnvironment) -> Fingerprint:
    """Derive all three attributes for a page load."""
    return Fingerprint(
        device=classify_device(environment.viewport_width),
        browser=classify_browser(environment.user_agent),
        os=classify_os(environment.platform, environment.user_agent),
    )
