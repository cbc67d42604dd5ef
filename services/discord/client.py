"""
Discord Client (Gateway Runtime)

This module owns the Discord connection itself.
It is intentionally minimal and lifecycle-focused.

Responsibilities:
- log in and open the gateway session
- resolve the target guild / channel
- rename a channel and set presence
- expose a clean async connect() / shutdown() contract
- emit structured logs for gateway lifecycle events

IMPORTANT:
- This client MUST be driven by MemberCountUpdater
- This client MUST NOT create its own event loop
- This client MUST NOT read the environment (token is passed in)
"""

from __future__ import annotations

import asyncio
from typing import Optional

import discord

from shared.logging.logger import get_logger

from services.discord.errors import (
    ChannelNotFoundError,
    ChannelTypeError,
    GatewayConnectionError,
    GuildNotFoundError,
)
from services.discord.status import apply_member_presence

log = get_logger("discord.client")


class DiscordGatewayClient:
    """
    Thin wrapper around a discord.py Client.

    This class provides:
    - async connect() that returns once the session is READY
    - guild / channel resolution with cache-then-REST lookup
    - async shutdown() that is safe to call on any path
    - lifecycle event logging
    """

    def __init__(self, token: str, *, bot: Optional[discord.Client] = None):
        if not token:
            raise GatewayConnectionError("Discord bot token is empty")

        self._token: str = token
        self._bot: Optional[discord.Client] = bot
        self._gateway_task: Optional[asyncio.Task] = None
        self._closed: bool = False

    # --------------------------------------------------

    def _build_bot(self) -> discord.Client:
        """
        Construct the discord.py Client instance.

        NOTE:
        - guild.member_count is delivered without the privileged
          members intent, so only the guilds intent is requested
        """

        intents = discord.Intents.default()
        intents.guilds = True
        intents.members = False
        intents.message_content = False

        bot = discord.Client(intents=intents)

        # --------------------------------------------------
        # Lifecycle Events
        # --------------------------------------------------

        @bot.event
        async def on_ready():
            log.info(
                f"Logged in as {bot.user} "
                f"(id={bot.user.id}) "
                f"guilds={len(bot.guilds)}"
            )

        @bot.event
        async def on_resumed():
            log.info("Discord connection resumed")

        @bot.event
        async def on_disconnect():
            log.warning("Discord connection lost")

        return bot

    def _require_bot(self) -> discord.Client:
        if self._bot is None or self._gateway_task is None:
            raise RuntimeError("Discord client is not connected")
        return self._bot

    # --------------------------------------------------

    async def connect(self):
        """
        Log in and block until the gateway session is READY.

        Raises GatewayConnectionError if the token is rejected, the
        network fails, or the gateway closes before READY. There is
        no retry: reconnect is disabled for the session.
        """
        if self._gateway_task is not None:
            raise RuntimeError("Discord client already connected")

        if self._bot is None:
            self._bot = self._build_bot()
        bot = self._bot

        log.info("Attempting to login...")

        try:
            await bot.login(self._token)
        except (discord.DiscordException, OSError) as e:
            raise GatewayConnectionError(f"Discord login failed: {e}") from e

        self._gateway_task = asyncio.create_task(
            bot.connect(reconnect=False),
            name="discord-gateway",
        )
        ready = asyncio.create_task(bot.wait_until_ready())

        try:
            done, _ = await asyncio.wait(
                {self._gateway_task, ready},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            if not ready.done():
                ready.cancel()
                await asyncio.gather(ready, return_exceptions=True)

        if ready in done:
            log.info("Discord gateway session ready")
            return

        if self._gateway_task.cancelled():
            raise GatewayConnectionError("Discord gateway task cancelled before READY")

        cause = self._gateway_task.exception()
        if cause is not None:
            raise GatewayConnectionError(
                f"Discord gateway connection failed: {cause}"
            ) from cause

        raise GatewayConnectionError("Discord gateway closed before READY")

    # --------------------------------------------------

    async def resolve_guild(self, guild_id: int) -> discord.Guild:
        bot = self._require_bot()

        guild = bot.get_guild(guild_id)
        if guild is not None:
            return guild

        log.debug(f"Guild {guild_id} not cached; fetching over REST")
        try:
            return await bot.fetch_guild(guild_id, with_counts=True)
        except discord.NotFound as e:
            raise GuildNotFoundError(guild_id) from e

    async def resolve_channel(self, guild: discord.Guild, channel_id: int):
        """
        Resolve a text-capable channel inside `guild`.

        Raises ChannelNotFoundError when the lookup comes back empty
        (or the id belongs to another guild) and ChannelTypeError when
        the channel cannot carry text, e.g. a category or forum.
        """
        channel = guild.get_channel(channel_id)

        if channel is None:
            log.debug(f"Channel {channel_id} not cached; fetching over REST")
            try:
                channel = await guild.fetch_channel(channel_id)
            except (discord.NotFound, discord.InvalidData) as e:
                raise ChannelNotFoundError(channel_id) from e

        if channel is None:
            raise ChannelNotFoundError(channel_id)

        if not isinstance(channel, discord.abc.Messageable):
            kind = getattr(channel, "type", type(channel).__name__)
            raise ChannelTypeError(channel_id, str(kind))

        return channel

    # --------------------------------------------------

    async def rename_channel(self, channel, name: str):
        await channel.edit(name=name)

    async def set_presence(self, text: str):
        await apply_member_presence(self._require_bot(), text)

    # --------------------------------------------------

    async def shutdown(self):
        """
        Close the Discord connection and join the gateway task.

        Safe on every path, including a failed login; repeated calls
        are no-ops. Close errors are logged, never raised.
        """
        if self._bot is None or self._closed:
            return

        self._closed = True

        log.info("Disconnecting client...")

        try:
            await self._bot.close()
        except Exception as e:
            log.warning(f"Discord close error ignored: {e}")
            if self._gateway_task is not None:
                self._gateway_task.cancel()

        if self._gateway_task is not None:
            (outcome,) = await asyncio.gather(
                self._gateway_task, return_exceptions=True
            )
            if isinstance(outcome, BaseException):
                log.debug(f"Gateway task ended with {outcome!r}")

        log.info("Client disconnected successfully")

    # --------------------------------------------------

    @property
    def user(self) -> Optional[discord.ClientUser]:
        return self._bot.user if self._bot else None

    @property
    def closed(self) -> bool:
        return self._closed
