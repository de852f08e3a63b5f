"""Tests for request context parsing in blogstats.services.user_agent."""

import pytest

from blogstats.services.user_agent import (
    classify_source,
    client_ip,
    detect_browser,
    detect_device,
    detect_os,
    hash_ip,
)

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)
EDGE_WINDOWS = CHROME_WINDOWS + " Edg/121.0.2277.83"
FIREFOX_LINUX = "Mozilla/5.0 (X11; Linux x86_64; rv:122.0) Gecko/20100101 Firefox/122.0"
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_2 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2 Mobile/15E148 Safari/604.1"
)
SAFARI_IPAD = (
    "Mozilla/5.0 (iPad; CPU OS 17_2 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2 Mobile/15E148 Safari/604.1"
)
CHROME_ANDROID_PHONE = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Mobile Safari/537.36"
)
CHROME_ANDROID_TABLET = (
    "Mozilla/5.0 (Linux; Android 13; SM-X700) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)
SAMSUNG_BROWSER = (
    "Mozilla/5.0 (Linux; Android 14; SM-S911B) AppleWebKit/537.36 (KHTML, like Gecko) "
    "SamsungBrowser/23.0 Chrome/115.0.0.0 Mobile Safari/537.36"
)
OPERA_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 OPR/106.0.0.0"
)


# ---------------------------------------------------------------------------
# Device
# ---------------------------------------------------------------------------


class TestDetectDevice:
    @pytest.mark.parametrize(
        "user_agent,expected",
        [
            (CHROME_WINDOWS, "desktop"),
            (FIREFOX_LINUX, "desktop"),
            (SAFARI_IPHONE, "mobile"),
            (CHROME_ANDROID_PHONE, "mobile"),
            (SAFARI_IPAD, "tablet"),
            (CHROME_ANDROID_TABLET, "tablet"),
        ],
    )
    def test_device_classes(self, user_agent, expected):
        assert detect_device(user_agent) == expected

    def test_missing_user_agent_is_desktop(self):
        assert detect_device(None) == "desktop"
        assert detect_device("") == "desktop"


# ---------------------------------------------------------------------------
# Browser / OS
# ---------------------------------------------------------------------------


class TestDetectBrowser:
    @pytest.mark.parametrize(
        "user_agent,expected",
        [
            (CHROME_WINDOWS, "Chrome"),
            (EDGE_WINDOWS, "Edge"),
            (FIREFOX_LINUX, "Firefox"),
            (SAFARI_IPHONE, "Safari"),
            (SAMSUNG_BROWSER, "Samsung Browser"),
            (OPERA_MAC, "Opera"),
            ("Mozilla/5.0 (Windows NT 10.0; Trident/7.0; rv:11.0) like Gecko", "Internet Explorer"),
        ],
    )
    def test_browsers(self, user_agent, expected):
        assert detect_browser(user_agent) == expected

    def test_unknown_browser(self):
        assert detect_browser("curl/8.5.0") == "Unknown"
        assert detect_browser(None) == "Unknown"


class TestDetectOS:
    @pytest.mark.parametrize(
        "user_agent,expected",
        [
            (CHROME_WINDOWS, "Windows"),
            (FIREFOX_LINUX, "Linux"),
            (SAFARI_IPHONE, "iOS"),
            (SAFARI_IPAD, "iOS"),
            (OPERA_MAC, "macOS"),
            (CHROME_ANDROID_PHONE, "Android"),
        ],
    )
    def test_operating_systems(self, user_agent, expected):
        assert detect_os(user_agent) == expected

    def test_unknown_os(self):
        assert detect_os("curl/8.5.0") == "Unknown"
        assert detect_os(None) == "Unknown"


# ---------------------------------------------------------------------------
# Traffic source
# ---------------------------------------------------------------------------


class TestClassifySource:
    def test_no_referrer_is_direct(self):
        assert classify_source(None, None) == "direct"
        assert classify_source("", None) == "direct"

    @pytest.mark.parametrize(
        "referrer,expected",
        [
            ("https://www.google.com/search?q=python", "organic"),
            ("https://www.bing.com/", "organic"),
            ("https://duckduckgo.com/", "organic"),
            ("https://www.facebook.com/", "social"),
            ("https://t.co/abc123", "social"),
            ("https://www.linkedin.com/feed/", "social"),
            ("https://news.ycombinator.com/item?id=1", "referral"),
        ],
    )
    def test_referrer(self, referrer, expected):
        assert classify_source(referrer, None) == expected

    @pytest.mark.parametrize(
        "utm_source,expected",
        [
            ("google", "organic"),
            ("Facebook", "social"),
            ("weekly-newsletter", "email"),
            ("email", "email"),
            ("google-cpc", "organic"),
            ("adwords-ppc", "paid"),
            ("partner-site", "referral"),
        ],
    )
    def test_utm_source(self, utm_source, expected):
        assert classify_source(None, utm_source) == expected

    def test_utm_source_wins_over_referrer(self):
        assert classify_source("https://www.google.com/", "newsletter") == "email"


# ---------------------------------------------------------------------------
# Client IP
# ---------------------------------------------------------------------------


class TestClientIP:
    def test_first_forwarded_hop(self):
        assert client_ip("198.51.100.7, 10.0.0.1", "127.0.0.1") == "198.51.100.7"

    def test_falls_back_to_remote_host(self):
        assert client_ip(None, "127.0.0.1") == "127.0.0.1"
        assert client_ip("  ", "127.0.0.1") == "127.0.0.1"

    def test_no_address(self):
        assert client_ip(None, None) is None


class TestHashIP:
    def test_stable_for_same_secret(self):
        assert hash_ip("203.0.113.9", "k1") == hash_ip("203.0.113.9", "k1")

    def test_differs_across_secrets(self):
        assert hash_ip("203.0.113.9", "k1") != hash_ip("203.0.113.9", "k2")

    def test_truncated_hex(self):
        digest = hash_ip("203.0.113.9", "k1")
        assert len(digest) == 32
        int(digest, 16)
