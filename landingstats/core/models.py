"""Records produced by the collector and the signals it consumes."""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_session_id() -> str:
    """Create a per-page-load session id.

    Base-36 load time in milliseconds followed by eleven random base-36
    characters.
    """
    millis = int(time.time() * 1000)
    return _to_base36(millis) + _to_base36(secrets.randbelow(36**11)).rjust(11, "0")


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


@dataclass(frozen=True)
class PageEnvironment:
    """Environment signals available to the collector at page load.

    Attributes:
        url: Full page URL
        referrer: Referring URL, empty when the visit is direct
        user_agent: Raw user-agent string
        platform: Raw platform string (e.g. "Win32", "MacIntel")
        language: Preferred language tag
        screen_width: Physical screen width in CSS pixels
        screen_height: Physical screen height in CSS pixels
        viewport_width: Window inner width
        viewport_height: Window inner height
        timezone: IANA timezone name
    """

    url: str
    referrer: str = ""
    user_agent: str = ""
    platform: str = ""
    language: str = ""
    screen_width: int = 0
    screen_height: int = 0
    viewport_width: int = 0
    viewport_height: int = 0
    timezone: str = ""

    @property
    def screen(self) -> str:
        return f"{self.screen_width}x{self.screen_height}"

    @property
    def viewport(self) -> str:
        return f"{self.viewport_width}x{self.viewport_height}"


@dataclass(frozen=True)
class ScrollMetrics:
    """Document scroll position at the time of a scroll signal."""

    scroll_top: float
    scroll_height: float
    viewport_height: float


@dataclass(frozen=True)
class PageHooks:
    """Optional host page elements the collector can listen to.

    Attributes:
        signup_form: The page has an email signup form
        email_input: The signup form contains an email input
        feature_cards: Heading text of each feature card, in page order
    """

    signup_form: bool = False
    email_input: bool = False
    feature_cards: tuple[str, ...] = ()


@dataclass(frozen=True)
class VisitorRecord:
    """One page load, with the derived fingerprint."""

    session_id: str
    timestamp: str
    url: str
    referrer: str
    user_agent: str
    language: str
    screen: str
    viewport: str
    timezone: str
    device: str
    browser: str
    os: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "session_id": self.session_id,
            "timestamp": self.timestamp,
            "url": self.url,
            "referrer": self.referrer,
            "user_agent": self.user_agent,
            "language": self.language,
            "screen": self.screen,
            "viewport": self.viewport,
            "timezone": self.timezone,
            "device": self.device,
            "browser": self.browser,
            "os": self.os,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VisitorRecord:
        """Create from a stored dictionary, filling gaps with Unknown."""
        return cls(
            session_id=data.get("session_id", ""),
            timestamp=data.get("timestamp", ""),
            url=data.get("url", ""),
            referrer=data.get("referrer") or "direct",
            user_agent=data.get("user_agent", ""),
            language=data.get("language", ""),
            screen=data.get("screen", ""),
            viewport=data.get("viewport", ""),
            timezone=data.get("timezone", ""),
            device=data.get("device") or "Unknown",
            browser=data.get("browser") or "Unknown",
            os=data.get("os") or "Unknown",
        )


@dataclass(frozen=True)
class Event:
    """A single tracked interaction."""

    type: str
    timestamp: str
    session_id: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "type": self.type,
            "timestamp": self.timestamp,
            "session_id": self.session_id,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        """Create from a stored dictionary."""
        return cls(
            type=data.get("type") or "Unknown",
            timestamp=data.get("timestamp", ""),
            session_id=data.get("session_id", ""),
            data=data.get("data") or {},
        )


@dataclass(frozen=True)
class SessionRecord:
    """Summary written once when the page unloads.

    Attributes:
        session_id: Page load this session belongs to
        duration: Time on page in milliseconds
        event_count: Events recorded before the session ended
        timestamp: ISO-8601 time of the session end
    """

    session_id: str
    duration: int
    event_count: int
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "session_id": self.session_id,
            "duration": self.duration,
            "event_count": self.event_count,
            "timestamp": self.timestamp,
        }
