"""Runtime version metadata for the member count runtime.

This module is import-safe and exposes authoritative version identifiers for
other runtime modules without executing side effects on import.
"""

from __future__ import annotations

PROJECT_NAME = "Guild Member Count Runtime"
VERSION = "v0.1.0"
BUILD = "2026.10"
OWNER = "Daniel Clancy"
COPYRIGHT = "© 2026 Brainstream Media Group"
LICENSE = "Proprietary"

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "BUILD",
    "OWNER",
    "COPYRIGHT",
    "LICENSE",
    "as_string",
]


def as_string() -> str:
    """Return a concise version string."""

    return f"{PROJECT_NAME} {VERSION} (Build {BUILD})"
