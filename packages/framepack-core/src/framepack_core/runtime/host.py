"""Host platform detection."""

from __future__ import annotations

import sys

LINUX = "linux"
ANDROID = "android"
WINDOWS = "windows"
MACOS = "macos"
IOS = "ios"


def detect_host(platform: str | None = None) -> str:
    """Normalize ``sys.platform`` into a host name.

    Android reports ``linux`` on interpreters older than 3.13; it is
    recognized by ``sys.getandroidapilevel``.

    Args:
        platform: Override for ``sys.platform`` (tests, cross-checks).

    Returns:
        One of linux, android, windows, macos, ios, or the raw platform
        string for anything else.
    """
    raw = platform if platform is not None else sys.platform

    if raw == "android" or (platform is None and hasattr(sys, "getandroidapilevel")):
        return ANDROID
    if raw.startswith("linux"):
        return LINUX
    if raw in ("win32", "cygwin"):
        return WINDOWS
    if raw == "darwin":
        return MACOS
    if raw == "ios":
        return IOS
    return raw
