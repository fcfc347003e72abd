"""Unit tests for device, browser and OS classification."""

from __future__ import annotations

import pytest

from landingstats.core.fingerprint import (
    Fingerprint,
    classify_browser,
    classify_device,
    classify_os,
    resolve_fingerprint,
)
from landingstats.core.models import PageEnvironment

CHROME_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
FIREFOX_LINUX = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1"
)
EDGE_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0"
)
LEGACY_EDGE = "Mozilla/5.0 (Windows NT 10.0) AppleWebKit/537.36 Edge/18.19041"
ANDROID_CHROME = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)


class TestClassifyDevice:
    """Tests for viewport width classification."""

    @pytest.mark.parametrize(
        "width,expected",
        [
            (320, "mobile"),
            (768, "mobile"),
            (769, "tablet"),
            (1024, "tablet"),
            (1025, "desktop"),
            (1920, "desktop"),
        ],
    )
    def test_boundaries(self, width: int, expected: str):
        """Upper bounds belong to the smaller device class."""
        assert classify_device(width) == expected

    def test_fractional_width(self):
        """Fractional widths just past a boundary move up a class."""
        assert classify_device(768.5) == "tablet"

    def test_missing_width_is_zero(self):
        """Missing or garbage widths read as a zero-width viewport."""
        assert classify_device(None) == "mobile"
        assert classify_device("wide") == "mobile"


class TestClassifyBrowser:
    """Tests for browser sniffing order."""

    def test_chrome(self):
        assert classify_browser(CHROME_MAC) == "Chrome"

    def test_firefox(self):
        assert classify_browser(FIREFOX_LINUX) == "Firefox"

    def test_safari(self):
        assert classify_browser(SAFARI_IPHONE) == "Safari"

    def test_chromium_edge_reports_chrome(self):
        """Chromium Edge carries a Chrome token, which is checked first."""
        assert classify_browser(EDGE_WINDOWS) == "Chrome"

    def test_legacy_edge(self):
        """Edge is only reported when no earlier token matches."""
        assert classify_browser(LEGACY_EDGE) == "Edge"

    def test_unknown(self):
        assert classify_browser("curl/8.4.0") == "Unknown"
        assert classify_browser("") == "Unknown"
        assert classify_browser(None) == "Unknown"


class TestClassifyOS:
    """Tests for OS detection."""

    def test_platform_wins(self):
        """A desktop platform string takes priority over the user agent."""
        assert classify_os("Win32", SAFARI_IPHONE) == "Windows"
        assert classify_os("MacIntel", CHROME_MAC) == "macOS"
        assert classify_os("Linux x86_64", FIREFOX_LINUX) == "Linux"

    def test_android_platform_reports_linux(self):
        """Android devices usually report a Linux platform string."""
        assert classify_os("Linux armv8l", ANDROID_CHROME) == "Linux"

    def test_user_agent_fallback(self):
        """Without a recognised platform the user agent decides."""
        assert classify_os("", ANDROID_CHROME) == "Android"
        assert classify_os("iPhone", SAFARI_IPHONE) == "iOS"
        assert classify_os(None, "Mozilla/5.0 (iPad; CPU OS 17_1 like Mac OS X)") == "iOS"

    def test_unknown(self):
        assert classify_os("", "") == "Unknown"
        assert classify_os(None, None) == "Unknown"


class TestResolveFingerprint:
    """Tests for resolve_fingerprint."""

    def test_combines_all_three(self):
        env = PageEnvironment(
            url="https://example.com/",
            user_agent=SAFARI_IPHONE,
            platform="iPhone",
            viewport_width=390,
        )
        assert resolve_fingerprint(env) == Fingerprint(
            device="mobile", browser="Safari", os="iOS"
        )
