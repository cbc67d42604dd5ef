"""
Discord Runtime Package

Lifecycle bookkeeping for the member count update cycle.

IMPORTANT:
- Importing this package MUST NOT start the Discord client
- Importing this package MUST NOT create asyncio tasks
- All runtime execution is owned by MemberCountUpdater
"""

from services.discord.runtime.lifecycle import UpdateCycleLifecycle

__all__ = [
    "UpdateCycleLifecycle",
]
