"""
Discord Status Module

Responsibilities:
- Build the "Watching N Members" presence for the bot account
- Apply it to a connected Discord client
- Emit structured logs for diagnostics

IMPORTANT:
- This module does NOT own the Discord client
- This module does NOT persist presence (each run sets it fresh)
- Failures propagate to the caller; nothing is retried here
"""

from __future__ import annotations

import discord

from shared.logging.logger import get_logger

log = get_logger("discord.status")


PRESENCE_STATUS = discord.Status.dnd
PRESENCE_ACTIVITY_TYPE = discord.ActivityType.watching


def build_member_activity(text: str) -> discord.Activity:
    """
    Activity shown as "Watching <text>" on the bot's profile.
    """
    return discord.Activity(type=PRESENCE_ACTIVITY_TYPE, name=text)


async def apply_member_presence(bot: discord.Client, text: str):
    """
    Replace the bot's presence with the member count activity.

    Presence is only broadcast while the gateway session stays open,
    so callers are expected to keep the connection alive afterwards.
    """
    activity = build_member_activity(text)

    log.info(f"Updating presence to: Watching {text}")
    await bot.change_presence(activity=activity, status=PRESENCE_STATUS)
    log.info(
        f"Discord presence updated: "
        f"activity={text!r} "
        f"status={PRESENCE_STATUS}"
    )
