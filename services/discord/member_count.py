"""
Member Count Updater

Runs one update cycle against a single guild:

    connect -> resolve guild -> resolve channel -> read count
    -> rename channel (only if the name changed) -> set presence
    -> dwell with the session open -> disconnect

The dwell exists because presence is only shown to other clients while
the gateway session is open.

IMPORTANT:
- One cycle per process; scheduling is external (cron, CI schedule, ...)
- Every failure is logged and re-raised; nothing is retried
- The gateway is torn down exactly once on every path
"""

from __future__ import annotations

import asyncio
import locale
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from shared.config.member_count import MemberCountConfig
from shared.logging.logger import get_logger

from services.discord.errors import MemberCountUnavailableError
from services.discord.runtime.lifecycle import UpdateCycleLifecycle

CHANNEL_NAME_PREFIX = "Total Members: "
PRESENCE_SUFFIX = " Members"


def format_member_count(count: int, separator: Optional[str] = None) -> str:
    """
    Render `count` with thousands grouping, e.g. 12345 -> "12,345".

    The separator defaults to the active LC_NUMERIC locale, falling
    back to "," when the locale defines none (C / POSIX).
    """
    if count < 0:
        raise ValueError(f"member count must not be negative (got {count})")

    if separator is None:
        separator = locale.localeconv().get("thousands_sep") or ","

    return f"{int(count):,}".replace(",", separator)


@dataclass(frozen=True)
class UpdateCycle:
    guild_id: int
    channel_id: int
    member_count: int
    formatted_count: str

    @classmethod
    def from_count(
        cls,
        *,
        guild_id: int,
        channel_id: int,
        member_count: int,
        separator: Optional[str] = None,
    ) -> "UpdateCycle":
        return cls(
            guild_id=guild_id,
            channel_id=channel_id,
            member_count=member_count,
            formatted_count=format_member_count(member_count, separator),
        )

    @property
    def desired_channel_name(self) -> str:
        return f"{CHANNEL_NAME_PREFIX}{self.formatted_count}"

    @property
    def desired_presence_text(self) -> str:
        return f"{self.formatted_count}{PRESENCE_SUFFIX}"


def read_member_count(guild) -> int:
    """
    Gateway guilds carry member_count; REST-fetched guilds only carry
    approximate_member_count.
    """
    count = getattr(guild, "member_count", None)
    if count is None:
        count = getattr(guild, "approximate_member_count", None)
    if count is None:
        raise MemberCountUnavailableError(guild.id)
    return int(count)


class MemberCountUpdater:
    """
    Drives a single update cycle over a gateway client.

    The gateway is anything exposing the DiscordGatewayClient contract:
    connect(), resolve_guild(), resolve_channel(), rename_channel(),
    set_presence(), shutdown().
    """

    def __init__(
        self,
        config: MemberCountConfig,
        gateway,
        *,
        log: Optional[logging.Logger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        separator: Optional[str] = None,
    ):
        self._config = config
        self._gateway = gateway
        self._log = log or get_logger("discord.member_count")
        self._sleep = sleep
        self._separator = separator
        self.lifecycle = UpdateCycleLifecycle()

    # --------------------------------------------------

    async def run(self) -> UpdateCycle:
        """
        Run the full cycle and return it.

        Any failure before or during the dwell is logged, the gateway is
        torn down, and the original exception propagates.
        """
        config = self._config
        lifecycle = self.lifecycle
        lifecycle.mark_started()

        try:
            await self._gateway.connect()
            lifecycle.mark_connected()
            self._log.info(f"Connected as {self._gateway.user}")

            self._log.info("Fetching guild and channel...")
            guild = await self._gateway.resolve_guild(config.guild_id)
            channel = await self._gateway.resolve_channel(guild, config.channel_id)

            cycle = UpdateCycle.from_count(
                guild_id=config.guild_id,
                channel_id=config.channel_id,
                member_count=read_member_count(guild),
                separator=self._separator,
            )
            self._log.info(
                f"Guild {config.guild_id} has {cycle.formatted_count} members"
            )

            await self._sync_channel_name(channel, cycle)

            await self._gateway.set_presence(cycle.desired_presence_text)
            lifecycle.mark_presence_updated()
            self._log.info("Presence updated successfully")

            self._log.info(
                f"Waiting {config.wait_seconds:g} seconds before disconnecting..."
            )
            await self._sleep(config.wait_seconds)

        except asyncio.CancelledError:
            self._log.warning("Member count update cancelled")
            raise
        except Exception as e:
            self._log.error(f"Error in member count update: {e}", exc_info=True)
            raise
        finally:
            await self._teardown()

        self._log.info("Update cycle completed")
        return cycle

    # --------------------------------------------------

    async def _sync_channel_name(self, channel, cycle: UpdateCycle):
        desired = cycle.desired_channel_name

        if channel.name == desired:
            self.lifecycle.mark_rename_skipped()
            self._log.info("Member count unchanged, skipping channel name update")
            return

        self._log.info(f"Updating channel name to: {desired}")
        await self._gateway.rename_channel(channel, desired)
        self.lifecycle.mark_renamed()
        self._log.info("Successfully updated member count channel name")

    async def _teardown(self):
        try:
            await self._gateway.shutdown()
        except Exception as e:
            self._log.warning(f"Gateway shutdown error ignored: {e}")

        self.lifecycle.mark_stopped()
        self._log.debug(f"Update cycle snapshot: {self.lifecycle.snapshot()}")
