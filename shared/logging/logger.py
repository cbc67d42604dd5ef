import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Union

LOG_DIR = Path("logs")

APP_LOGGER = "membercount"
EXCEPTIONS_LOGGER = "membercount.exceptions"

ERROR_LOG = "app-error.log"
COMBINED_LOG = "app-combined.log"
EXCEPTIONS_LOG = "exceptions.log"

MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Accepts the winston-style names operators already use in LOG_LEVEL.
LEVELS = {
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "http": logging.DEBUG,
    "verbose": logging.DEBUG,
    "debug": logging.DEBUG,
    "silly": logging.DEBUG,
}

_HANDLERS = []


def parse_level(name: str) -> int:
    """
    Translate a LOG_LEVEL value into a stdlib logging level.

    Raises ValueError for unknown names.
    """
    key = (name or "").strip().lower()
    if key not in LEVELS:
        raise ValueError(
            f"unknown log level {name!r} "
            f"(expected one of: {', '.join(sorted(LEVELS))})"
        )
    return LEVELS[key]


def _reset_handlers():
    for logger_name in (APP_LOGGER, EXCEPTIONS_LOGGER, "discord"):
        target = logging.getLogger(logger_name)
        for handler in list(target.handlers):
            if handler in _HANDLERS:
                target.removeHandler(handler)

    for handler in _HANDLERS:
        handler.close()
    _HANDLERS.clear()


def _rotating(path: Path, level: int, formatter: logging.Formatter):
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    _HANDLERS.append(handler)
    return handler


def configure_logging(
    level: Union[str, int] = "info",
    *,
    log_dir: Optional[Union[str, Path]] = None,
    console: bool = True,
) -> logging.Logger:
    """
    Install the process-wide log handlers and return the app logger.

    Handlers:
    - console (optional)
    - app-error.log     ERROR and above, size-capped with rotation
    - app-combined.log  everything at `level`, size-capped with rotation
    - exceptions.log    uncaught exceptions only (see get_exception_logger)

    discord.py's own "discord" logger shares the console and rotating
    handlers so gateway warnings land in the same files.

    Calling this again replaces the handlers from the previous call.
    """
    numeric_level = level if isinstance(level, int) else parse_level(level)

    directory = Path(log_dir) if log_dir is not None else LOG_DIR
    directory.mkdir(parents=True, exist_ok=True)

    _reset_handlers()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    shared = [
        _rotating(directory / ERROR_LOG, logging.ERROR, formatter),
        _rotating(directory / COMBINED_LOG, numeric_level, formatter),
    ]

    if console:
        stream = logging.StreamHandler()
        stream.setLevel(numeric_level)
        stream.setFormatter(formatter)
        _HANDLERS.append(stream)
        shared.append(stream)

    for logger_name in (APP_LOGGER, "discord"):
        target = logging.getLogger(logger_name)
        target.setLevel(numeric_level)
        for handler in shared:
            target.addHandler(handler)
        target.propagate = False

    # ------------------------------
    # Uncaught exception sink
    # ------------------------------
    exceptions = logging.getLogger(EXCEPTIONS_LOGGER)
    exceptions.addHandler(
        _rotating(directory / EXCEPTIONS_LOG, logging.ERROR, formatter)
    )
    # Propagates to the app logger so the final line also reaches the
    # combined and error logs.
    exceptions.propagate = True

    app_logger = logging.getLogger(APP_LOGGER)
    app_logger.debug(
        f"Logging configured: level={logging.getLevelName(numeric_level)} "
        f"dir={directory}"
    )
    return app_logger


def get_logger(name: str) -> logging.Logger:
    """
    Return a named child of the application logger.

    Parameters:
    - name: logger namespace (e.g. discord.client, core.member_count_app)
    """
    return logging.getLogger(f"{APP_LOGGER}.{name}")


def get_exception_logger() -> logging.Logger:
    return logging.getLogger(EXCEPTIONS_LOGGER)
