"""
Update Cycle Lifecycle Utilities

This module tracks the milestones of a single member count update cycle.

Purpose:
- Centralize lifecycle concepts (start, connect, rename, presence, stop)
- Provide a snapshot for the final diagnostics log line
- Avoid embedding timing bookkeeping inside the updater itself

This module does NOT:
- Start asyncio tasks
- Own the Discord client
- Perform network I/O
- Persist state
"""

from __future__ import annotations

from typing import Optional, Dict, Any
from datetime import datetime, timezone

from shared.logging.logger import get_logger

log = get_logger("discord.runtime.lifecycle")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class UpdateCycleLifecycle:
    """
    Passive milestone tracker for one update cycle.

    Owned by MemberCountUpdater; one instance per run().
    """

    def __init__(self):
        self._started_at: Optional[datetime] = None
        self._connected_at: Optional[datetime] = None
        self._renamed_at: Optional[datetime] = None
        self._rename_skipped: bool = False
        self._presence_at: Optional[datetime] = None
        self._stopped_at: Optional[datetime] = None

    # --------------------------------------------------
    # Lifecycle Transitions (STATE ONLY)
    # --------------------------------------------------

    def mark_started(self):
        if self._started_at is None:
            self._started_at = _now()
            log.debug("Update cycle marked as started")

    def mark_connected(self):
        if self._connected_at is None:
            self._connected_at = _now()
            log.debug("Update cycle marked as connected")

    def mark_renamed(self):
        self._renamed_at = _now()
        self._rename_skipped = False

    def mark_rename_skipped(self):
        self._renamed_at = None
        self._rename_skipped = True

    def mark_presence_updated(self):
        self._presence_at = _now()

    def mark_stopped(self):
        """
        Mark the cycle as torn down (success or failure).
        """
        self._stopped_at = _now()
        log.debug("Update cycle marked as stopped")

    # --------------------------------------------------
    # Introspection
    # --------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """
        Return a structured snapshot of lifecycle state.
        """
        return {
            "started_at": _iso(self._started_at),
            "connected_at": _iso(self._connected_at),
            "renamed_at": _iso(self._renamed_at),
            "rename_skipped": self._rename_skipped,
            "presence_at": _iso(self._presence_at),
            "stopped_at": _iso(self._stopped_at),
        }

    @property
    def connected(self) -> bool:
        return self._connected_at is not None

    @property
    def renamed(self) -> bool:
        return self._renamed_at is not None

    @property
    def rename_skipped(self) -> bool:
        return self._rename_skipped

    @property
    def presence_updated(self) -> bool:
        return self._presence_at is not None

    @property
    def stopped(self) -> bool:
        return self._stopped_at is not None
