"""
Client fingerprinting for impressions.

Resolves the viewer IP behind proxies and CDNs, and classifies the
User-Agent into an operating system and a device type.
"""

from __future__ import annotations

import re
from typing import Mapping, Optional, Tuple

from campaign_hub.core.models.domain import DeviceType, OsType

# Single-value client IP headers set by common proxies and CDNs, in priority order.
DIRECT_IP_HEADERS = (
    "cf-connecting-ip",  # Cloudflare
    "x-real-ip",  # Nginx
    "true-client-ip",  # Akamai, Cloudflare Enterprise
    "x-client-ip",  # Apache
    "fastly-client-ip",  # Fastly
    "fly-client-ip",  # Fly.io
)

_FORWARDED_FOR = re.compile(r'for="?\[?([a-fA-F0-9:.]+)\]?"?')


def normalize_ip(ip: Optional[str]) -> Optional[str]:
    if not ip:
        return ip
    if ip == "::1":
        return "127.0.0.1"
    if ip.startswith("::ffff:"):
        return ip[len("::ffff:") :]
    return ip


def get_client_ip(headers: Mapping[str, str], peer: Optional[str] = None) -> Optional[str]:
    """Resolve the originating client IP.

    Args:
        headers: Request headers (case-insensitive mapping, e.g. Starlette ``Headers``)
        peer: Socket peer address used when no proxy header is present

    Returns:
        Normalized IP address, or None when nothing is known
    """
    for name in DIRECT_IP_HEADERS:
        value = headers.get(name)
        if value and value.strip():
            return normalize_ip(value.strip())

    xff = headers.get("x-forwarded-for")
    if xff:
        first = xff.split(",")[0].strip()
        if first:
            return normalize_ip(first)

    forwarded = headers.get("forwarded")
    if forwarded:
        match = _FORWARDED_FOR.search(forwarded)
        if match:
            return normalize_ip(match.group(1))

    return normalize_ip(peer)


def parse_user_agent(user_agent: Optional[str]) -> Tuple[OsType, DeviceType]:
    """Classify a User-Agent string.

    iOS is checked before macOS because iOS agents contain "like Mac OS X".

    Args:
        user_agent: Raw User-Agent header

    Returns:
        ``(os, device_type)``; both ``unknown`` for an empty agent
    """
    if not user_agent or not user_agent.strip():
        return OsType.unknown, DeviceType.unknown
    ua = user_agent.lower()

    if "windows" in ua:
        os_type = OsType.windows
    elif "android" in ua:
        os_type = OsType.android
    elif "iphone" in ua or "ipad" in ua or "cpu os" in ua:
        os_type = OsType.ios
    elif "appletv" in ua or "tvos" in ua:
        os_type = OsType.tvos
    elif "mac os" in ua or "macintosh" in ua:
        os_type = OsType.macos
    elif "linux" in ua:
        os_type = OsType.linux
    else:
        os_type = OsType.unknown

    if any(marker in ua for marker in ("smart-tv", "smarttv", "appletv", "tvos", "googletv")):
        device = DeviceType.tv
    elif "ipad" in ua or "tablet" in ua:
        device = DeviceType.tablet
    elif "mobi" in ua or "iphone" in ua:
        device = DeviceType.mobile
    elif "android" in ua:
        device = DeviceType.tablet
    else:
        device = DeviceType.desktop

    return os_type, device
