"""
Member count runtime configuration.

Design rules:
- Import-safe (no side effects)
- Read once at the entrypoint, then passed by value
- Every missing / invalid variable is reported at once
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

from shared.logging.logger import LOG_DIR, parse_level

DEFAULT_WAIT_TIME_MS = 150000
DEFAULT_LOG_LEVEL = "info"

TOKEN_ENV = "APP"
GUILD_ENV = "GUILD_ID"
CHANNEL_ENV = "CHANNEL_ID"
WAIT_TIME_ENV = "WAIT_TIME"
LOG_LEVEL_ENV = "LOG_LEVEL"
LOG_DIR_ENV = "LOG_DIR"


class ConfigError(ValueError):
    """Raised when the environment does not describe a runnable cycle."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


@dataclass(frozen=True)
class MemberCountConfig:
    token: str
    guild_id: int
    channel_id: int
    wait_time_ms: int = DEFAULT_WAIT_TIME_MS
    log_level: str = DEFAULT_LOG_LEVEL
    log_dir: Path = LOG_DIR

    @property
    def wait_seconds(self) -> float:
        return self.wait_time_ms / 1000

    def __repr__(self) -> str:
        return (
            f"MemberCountConfig(token='***', guild_id={self.guild_id}, "
            f"channel_id={self.channel_id}, wait_time_ms={self.wait_time_ms}, "
            f"log_level={self.log_level!r}, log_dir={str(self.log_dir)!r})"
        )


def _snowflake(name: str, raw: Optional[str], problems: List[str]) -> int:
    value = (raw or "").strip()
    if not value:
        problems.append(f"{name} is required")
        return 0
    if not (value.isascii() and value.isdigit()) or int(value) <= 0:
        problems.append(f"{name} must be a numeric Discord id (got {value!r})")
        return 0
    return int(value)


def _wait_time(raw: Optional[str], problems: List[str]) -> int:
    value = (raw or "").strip()
    if not value:
        return DEFAULT_WAIT_TIME_MS
    try:
        wait_ms = int(value)
    except ValueError:
        problems.append(f"{WAIT_TIME_ENV} must be an integer number of milliseconds (got {value!r})")
        return DEFAULT_WAIT_TIME_MS
    if wait_ms < 0:
        problems.append(f"{WAIT_TIME_ENV} must not be negative (got {wait_ms})")
        return DEFAULT_WAIT_TIME_MS
    return wait_ms


def _log_level(raw: Optional[str], problems: List[str]) -> str:
    value = (raw or "").strip().lower() or DEFAULT_LOG_LEVEL
    try:
        parse_level(value)
    except ValueError as e:
        problems.append(f"{LOG_LEVEL_ENV}: {e}")
        return DEFAULT_LOG_LEVEL
    return value


def load_member_count_config(
    environ: Optional[Mapping[str, str]] = None,
) -> MemberCountConfig:
    """
    Build the runtime configuration from an environment mapping.

    Defaults to os.environ. Raises ConfigError listing every problem found.
    The token value is never included in error messages.
    """
    env = os.environ if environ is None else environ
    problems: List[str] = []

    token = (env.get(TOKEN_ENV) or "").strip()
    if not token:
        problems.append(f"{TOKEN_ENV} (bot token) is required")

    guild_id = _snowflake(GUILD_ENV, env.get(GUILD_ENV), problems)
    channel_id = _snowflake(CHANNEL_ENV, env.get(CHANNEL_ENV), problems)
    wait_time_ms = _wait_time(env.get(WAIT_TIME_ENV), problems)
    log_level = _log_level(env.get(LOG_LEVEL_ENV), problems)

    log_dir_raw = (env.get(LOG_DIR_ENV) or "").strip()
    log_dir = Path(log_dir_raw) if log_dir_raw else LOG_DIR

    if problems:
        raise ConfigError(problems)

    return MemberCountConfig(
        token=token,
        guild_id=guild_id,
        channel_id=channel_id,
        wait_time_ms=wait_time_ms,
        log_level=log_level,
        log_dir=log_dir,
    )
