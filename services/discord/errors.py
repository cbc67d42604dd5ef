"""
Failure taxonomy for a member count update cycle.

Remote mutation failures (rate limits, missing permissions) are NOT
wrapped: discord.HTTPException / discord.Forbidden propagate as-is.
"""

from __future__ import annotations


class MemberCountError(RuntimeError):
    """Base class for cycle failures raised by this runtime."""


class GatewayConnectionError(MemberCountError):
    """Login rejected, network failure, or gateway closed before READY."""


class GuildNotFoundError(MemberCountError):
    def __init__(self, guild_id: int):
        self.guild_id = guild_id
        super().__init__(f"Guild with ID {guild_id} not found")


class ChannelNotFoundError(MemberCountError):
    def __init__(self, channel_id: int):
        self.channel_id = channel_id
        super().__init__(f"Channel with ID {channel_id} not found")


class ChannelTypeError(MemberCountError):
    def __init__(self, channel_id: int, kind: str):
        self.channel_id = channel_id
        self.kind = kind
        super().__init__(
            f"Channel with ID {channel_id} is not a text channel (got {kind})"
        )


class MemberCountUnavailableError(MemberCountError):
    def __init__(self, guild_id: int):
        self.guild_id = guild_id
        super().__init__(f"Guild with ID {guild_id} did not report a member count")
