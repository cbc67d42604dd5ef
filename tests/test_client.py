import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from services.discord.client import DiscordGatewayClient
from services.discord.errors import (
    ChannelNotFoundError,
    ChannelTypeError,
    GatewayConnectionError,
    GuildNotFoundError,
)
from services.discord.status import PRESENCE_STATUS

from conftest import CHANNEL_ID, GUILD_ID


def _http_error(cls, status, reason, message):
    return cls(SimpleNamespace(status=status, reason=reason), message)


def make_bot():
    """
    discord.Client stand-in whose gateway session stays open until
    close() is awaited.
    """
    closed = asyncio.Event()

    async def connect(*, reconnect=True):
        await closed.wait()

    async def close():
        closed.set()

    bot = MagicMock()
    bot.login = AsyncMock()
    bot.connect = MagicMock(side_effect=connect)
    bot.wait_until_ready = AsyncMock()
    bot.close = AsyncMock(side_effect=close)
    bot.change_presence = AsyncMock()
    bot.get_guild = MagicMock(return_value=None)
    bot.fetch_guild = AsyncMock()
    return bot


async def _connected(bot):
    client = DiscordGatewayClient("token", bot=bot)
    await client.connect()
    return client


# --------------------------------------------------
# connect / shutdown
# --------------------------------------------------

def test_empty_token_is_rejected():
    with pytest.raises(GatewayConnectionError):
        DiscordGatewayClient("")


async def test_connect_logs_in_and_waits_for_ready():
    bot = make_bot()
    client = await _connected(bot)

    bot.login.assert_awaited_once_with("token")
    bot.connect.assert_called_once_with(reconnect=False)
    bot.wait_until_ready.assert_awaited_once()

    await client.shutdown()
    bot.close.assert_awaited_once()
    assert client.closed


async def test_connect_twice_is_an_error():
    client = await _connected(make_bot())

    with pytest.raises(RuntimeError):
        await client.connect()

    await client.shutdown()


async def test_login_failure_is_wrapped():
    bot = make_bot()
    bot.login.side_effect = discord.LoginFailure("Improper token has been passed.")
    client = DiscordGatewayClient("token", bot=bot)

    with pytest.raises(GatewayConnectionError) as excinfo:
        await client.connect()

    assert isinstance(excinfo.value.__cause__, discord.LoginFailure)
    bot.connect.assert_not_called()

    await client.shutdown()
    bot.close.assert_awaited_once()


async def test_network_failure_during_login_is_wrapped():
    bot = make_bot()
    bot.login.side_effect = OSError("Connection refused")

    with pytest.raises(GatewayConnectionError):
        await DiscordGatewayClient("token", bot=bot).connect()


async def test_gateway_error_before_ready_is_wrapped():
    bot = make_bot()

    async def failing_connect(*, reconnect=True):
        raise OSError("gateway unreachable")

    async def never_ready():
        await asyncio.Event().wait()

    bot.connect.side_effect = failing_connect
    bot.wait_until_ready.side_effect = never_ready
    client = DiscordGatewayClient("token", bot=bot)

    with pytest.raises(GatewayConnectionError) as excinfo:
        await client.connect()

    assert isinstance(excinfo.value.__cause__, OSError)
    await client.shutdown()


async def test_gateway_closing_before_ready_is_an_error():
    bot = make_bot()

    async def quiet_connect(*, reconnect=True):
        return None

    async def never_ready():
        await asyncio.Event().wait()

    bot.connect.side_effect = quiet_connect
    bot.wait_until_ready.side_effect = never_ready

    with pytest.raises(GatewayConnectionError, match="before READY"):
        await DiscordGatewayClient("token", bot=bot).connect()


async def test_shutdown_is_idempotent():
    bot = make_bot()
    client = await _connected(bot)

    await client.shutdown()
    await client.shutdown()

    bot.close.assert_awaited_once()


async def test_shutdown_without_bot_is_a_noop():
    client = DiscordGatewayClient("token")
    await client.shutdown()
    assert not client.closed


async def test_shutdown_swallows_close_errors():
    bot = make_bot()
    client = await _connected(bot)
    bot.close.side_effect = RuntimeError("already closed")

    await client.shutdown()

    assert client.closed


def test_build_bot_requests_guild_intent_only():
    bot = DiscordGatewayClient("token")._build_bot()

    assert isinstance(bot, discord.Client)
    assert bot.intents.guilds
    assert not bot.intents.members
    assert not bot.intents.message_content


# --------------------------------------------------
# guild / channel resolution
# --------------------------------------------------

async def test_lookups_require_connection():
    client = DiscordGatewayClient("token", bot=make_bot())

    with pytest.raises(RuntimeError):
        await client.resolve_guild(GUILD_ID)
    with pytest.raises(RuntimeError):
        await client.set_presence("1 Members")


async def test_resolve_guild_prefers_cache():
    bot = make_bot()
    guild = SimpleNamespace(id=GUILD_ID, member_count=3)
    bot.get_guild.return_value = guild
    client = await _connected(bot)

    assert await client.resolve_guild(GUILD_ID) is guild
    bot.fetch_guild.assert_not_awaited()

    await client.shutdown()


async def test_resolve_guild_fetches_with_counts():
    bot = make_bot()
    guild = SimpleNamespace(id=GUILD_ID, member_count=None, approximate_member_count=9)
    bot.fetch_guild.return_value = guild
    client = await _connected(bot)

    assert await client.resolve_guild(GUILD_ID) is guild
    bot.fetch_guild.assert_awaited_once_with(GUILD_ID, with_counts=True)

    await client.shutdown()


async def test_resolve_guild_not_found():
    bot = make_bot()
    bot.fetch_guild.side_effect = _http_error(
        discord.NotFound, 404, "Not Found", "Unknown Guild"
    )
    client = await _connected(bot)

    with pytest.raises(GuildNotFoundError):
        await client.resolve_guild(GUILD_ID)

    await client.shutdown()


async def test_resolve_guild_forbidden_propagates():
    bot = make_bot()
    bot.fetch_guild.side_effect = _http_error(
        discord.Forbidden, 403, "Forbidden", "Missing Access"
    )
    client = await _connected(bot)

    with pytest.raises(discord.Forbidden):
        await client.resolve_guild(GUILD_ID)

    await client.shutdown()


def _guild_with(channel=None, fetch_error=None):
    guild = MagicMock()
    guild.get_channel.return_value = None
    guild.fetch_channel = AsyncMock(return_value=channel, side_effect=fetch_error)
    return guild


async def test_resolve_channel_returns_text_channel():
    channel = MagicMock(spec=discord.TextChannel)
    client = await _connected(make_bot())
    guild = _guild_with(channel)

    assert await client.resolve_channel(guild, CHANNEL_ID) is channel
    guild.fetch_channel.assert_awaited_once_with(CHANNEL_ID)

    await client.shutdown()


async def test_resolve_channel_prefers_cache():
    channel = MagicMock(spec=discord.TextChannel)
    client = await _connected(make_bot())
    guild = _guild_with()
    guild.get_channel.return_value = channel

    assert await client.resolve_channel(guild, CHANNEL_ID) is channel
    guild.fetch_channel.assert_not_awaited()

    await client.shutdown()


async def test_resolve_channel_not_found():
    client = await _connected(make_bot())
    guild = _guild_with(
        fetch_error=_http_error(discord.NotFound, 404, "Not Found", "Unknown Channel")
    )

    with pytest.raises(ChannelNotFoundError, match=str(CHANNEL_ID)):
        await client.resolve_channel(guild, CHANNEL_ID)

    await client.shutdown()


async def test_resolve_channel_empty_lookup():
    client = await _connected(make_bot())

    with pytest.raises(ChannelNotFoundError):
        await client.resolve_channel(_guild_with(None), CHANNEL_ID)

    await client.shutdown()


async def test_resolve_channel_rejects_category():
    client = await _connected(make_bot())
    guild = _guild_with(MagicMock(spec=discord.CategoryChannel))

    with pytest.raises(ChannelTypeError):
        await client.resolve_channel(guild, CHANNEL_ID)

    await client.shutdown()


# --------------------------------------------------
# mutations
# --------------------------------------------------

async def test_rename_channel_edits_name():
    channel = MagicMock(spec=discord.TextChannel)
    channel.edit = AsyncMock()
    client = await _connected(make_bot())

    await client.rename_channel(channel, "Total Members: 1,000")

    channel.edit.assert_awaited_once_with(name="Total Members: 1,000")
    await client.shutdown()


async def test_set_presence_watching_dnd():
    bot = make_bot()
    client = await _connected(bot)

    await client.set_presence("1,000 Members")

    bot.change_presence.assert_awaited_once()
    kwargs = bot.change_presence.await_args.kwargs
    assert kwargs["status"] is PRESENCE_STATUS
    assert kwargs["activity"].type is discord.ActivityType.watching
    assert kwargs["activity"].name == "1,000 Members"

    await client.shutdown()


async def test_set_presence_errors_propagate():
    bot = make_bot()
    bot.change_presence.side_effect = RuntimeError("rate limited")
    client = await _connected(bot)

    with pytest.raises(RuntimeError):
        await client.set_presence("1,000 Members")

    await client.shutdown()


async def test_user_reflects_bot_account():
    bot = make_bot()
    bot.user = "MemberCount#0001"

    assert DiscordGatewayClient("token").user is None
    assert DiscordGatewayClient("token", bot=bot).user == "MemberCount#0001"
