import logging
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from shared.config.member_count import MemberCountConfig
from shared.logging import logger as app_logging

GUILD_ID = 111111111111111111
CHANNEL_ID = 222222222222222222


class FakeGateway:
    """Stands in for DiscordGatewayClient; every call is an AsyncMock."""

    def __init__(self, *, guild=None, channel=None):
        self.guild = guild
        self.channel = channel
        self.user = "MemberCount#0001"
        self.connect = AsyncMock()
        self.resolve_guild = AsyncMock(return_value=guild)
        self.resolve_channel = AsyncMock(return_value=channel)
        self.rename_channel = AsyncMock()
        self.set_presence = AsyncMock()
        self.shutdown = AsyncMock()


def make_guild(member_count=1000, approximate_member_count=None):
    return SimpleNamespace(
        id=GUILD_ID,
        member_count=member_count,
        approximate_member_count=approximate_member_count,
    )


def make_channel(name):
    return SimpleNamespace(id=CHANNEL_ID, name=name)


@pytest.fixture
def config(tmp_path):
    return MemberCountConfig(
        token="test-token",
        guild_id=GUILD_ID,
        channel_id=CHANNEL_ID,
        wait_time_ms=150000,
        log_level="debug",
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def test_log():
    return logging.getLogger("tests.member_count")


@pytest.fixture(autouse=True)
def _reset_app_logging():
    yield
    app_logging._reset_handlers()
    for name in (app_logging.APP_LOGGER, "discord"):
        logging.getLogger(name).propagate = True
