"""Unit tests for client IP resolution and User-Agent classification."""

import pytest
from starlette.datastructures import Headers

from campaign_hub.core.models.domain import DeviceType, OsType
from campaign_hub.serving.client_info import get_client_ip, normalize_ip, parse_user_agent

IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
IPAD = "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Mobile/15E148"
ANDROID_PHONE = "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 (KHTML, like Gecko) Mobile Safari/537.36"
ANDROID_TABLET = "Mozilla/5.0 (Linux; Android 13; SM-X700) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36"
WINDOWS = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36"
MAC = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Safari/605.1.15"
APPLE_TV = "AppleTV11,1/11.1"
SMART_TV = "Mozilla/5.0 (SMART-TV; Linux; Tizen 6.0) AppleWebKit/537.36 (KHTML, like Gecko)"


class TestGetClientIp:
    """Test client IP resolution behind proxies."""

    def test_direct_header_priority(self):
        headers = Headers({"X-Real-IP": "10.0.0.2", "CF-Connecting-IP": "203.0.113.7"})

        assert get_client_ip(headers, "127.0.0.1") == "203.0.113.7"

    def test_first_forwarded_for_entry(self):
        headers = Headers({"X-Forwarded-For": "198.51.100.4, 10.0.0.1, 10.0.0.2"})

        assert get_client_ip(headers) == "198.51.100.4"

    @pytest.mark.parametrize(
        "forwarded,expected",
        [
            ("for=192.0.2.60;proto=http;by=203.0.113.43", "192.0.2.60"),
            ('for="[2001:db8:cafe::17]:4711"', "2001:db8:cafe::17"),
        ],
    )
    def test_forwarded_header(self, forwarded, expected):
        assert get_client_ip(Headers({"Forwarded": forwarded})) == expected

    def test_falls_back_to_peer(self):
        assert get_client_ip(Headers({}), "::1") == "127.0.0.1"
        assert get_client_ip(Headers({})) is None

    def test_normalize_ipv4_mapped(self):
        assert normalize_ip("::ffff:10.1.2.3") == "10.1.2.3"
        assert normalize_ip("") == ""


class TestParseUserAgent:
    """Test User-Agent classification."""

    @pytest.mark.parametrize(
        "user_agent,expected",
        [
            (IPHONE, (OsType.ios, DeviceType.mobile)),
            (IPAD, (OsType.ios, DeviceType.tablet)),
            (ANDROID_PHONE, (OsType.android, DeviceType.mobile)),
            (ANDROID_TABLET, (OsType.android, DeviceType.tablet)),
            (WINDOWS, (OsType.windows, DeviceType.desktop)),
            (MAC, (OsType.macos, DeviceType.desktop)),
            (APPLE_TV, (OsType.tvos, DeviceType.tv)),
            (SMART_TV, (OsType.linux, DeviceType.tv)),
        ],
    )
    def test_known_agents(self, user_agent, expected):
        assert parse_user_agent(user_agent) == expected

    @pytest.mark.parametrize("user_agent", [None, "", "   "])
    def test_empty_agent(self, user_agent):
        assert parse_user_agent(user_agent) == (OsType.unknown, DeviceType.unknown)
