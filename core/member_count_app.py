"""
======================================================================
 Guild Member Count Runtime — Version v0.1.0 (Build 2026.10)
Owner: Daniel Clancy
 Copyright © 2026 Brainstream Media Group
======================================================================
"""

"""
Member count runtime entrypoint.

This module runs exactly one update cycle and exits. It owns:

- environment loading (.env + process env)
- logging setup
- event loop creation
- the top-level error boundary and exit status

Exit status:
- 0  the cycle completed (including the dwell)
- 1  configuration error, cycle failure, uncaught exception,
     unhandled asyncio error, or interrupt

IMPORTANT:
- This runtime MUST NOT schedule itself; an external scheduler
  (cron, CI schedule, systemd timer) invokes it periodically
- Nothing is retried; the next scheduled run is the retry
"""

import asyncio
import locale
import logging
import os
import signal
import sys
from typing import Callable, List, Mapping, Optional

from dotenv import load_dotenv

from runtime.version import as_string
from shared.config.member_count import (
    DEFAULT_LOG_LEVEL,
    LOG_DIR_ENV,
    ConfigError,
    MemberCountConfig,
    load_member_count_config,
)
from shared.logging.logger import (
    configure_logging,
    get_exception_logger,
    get_logger,
)
from services.discord.client import DiscordGatewayClient
from services.discord.member_count import MemberCountUpdater, UpdateCycle

log = get_logger("core.member_count_app")


# ----------------------------------------------------------------------
# MAIN ASYNC ENTRYPOINT
# ----------------------------------------------------------------------

async def main(
    config: MemberCountConfig,
    *,
    app_log: logging.Logger,
    gateway_factory: Callable = DiscordGatewayClient,
    sleep: Callable = asyncio.sleep,
) -> UpdateCycle:
    gateway = gateway_factory(config.token)

    updater = MemberCountUpdater(
        config,
        gateway,
        log=app_log.getChild("discord.member_count"),
        sleep=sleep,
    )
    return await updater.run()


# ----------------------------------------------------------------------
# PROCESS-WIDE HOOKS
# ----------------------------------------------------------------------

def _install_excepthook():
    """
    Route uncaught exceptions into exceptions.log before the
    interpreter exits with status 1.
    """
    exc_log = get_exception_logger()

    def _hook(exc_type, exc, tb):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc, tb)
            return
        exc_log.error("Uncaught exception", exc_info=(exc_type, exc, tb))

    sys.excepthook = _hook


def _loop_exception_handler(main_task: asyncio.Task, failures: List[dict]):
    """
    Unhandled asyncio errors abort the cycle: log, record, and cancel
    the main task so teardown still runs.
    """
    exc_log = get_exception_logger()

    def _handler(loop: asyncio.AbstractEventLoop, context: dict):
        message = context.get("message", "Unhandled asyncio loop exception")
        exception = context.get("exception")
        exc_log.error(f"Unhandled asyncio error: {message}", exc_info=exception)

        failures.append(context)
        if not main_task.done():
            main_task.cancel()

    return _handler


def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    main_task: asyncio.Task,
) -> dict:
    """
    Windows-safe SIGINT / SIGTERM handling.
    Cancels the main task so the gateway is still torn down.

    Returns the previous handlers for restoration.
    """

    def _handler(signum, frame):
        log.warning(f"Signal {signum} received; cancelling update cycle")
        loop.call_soon_threadsafe(main_task.cancel)

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[signum] = signal.signal(signum, _handler)
        except (ValueError, OSError) as e:
            # Not on the main thread, or unsupported on this platform.
            log.debug(f"Signal handler for {signum} not installed: {e}")
    return previous


def _restore_signal_handlers(previous: dict):
    for signum, handler in previous.items():
        if handler is not None:
            signal.signal(signum, handler)


def _apply_runtime_locale(app_log: logging.Logger):
    try:
        locale.setlocale(locale.LC_NUMERIC, "")
    except locale.Error as e:
        app_log.warning(f"Runtime locale unavailable, using C grouping: {e}")


def _close_loop(loop: asyncio.AbstractEventLoop):
    # --------------------------------------------------
    # CANCEL REMAINING TASKS (CLEANLY)
    # --------------------------------------------------
    pending = [t for t in asyncio.all_tasks(loop) if not t.done()]
    for task in pending:
        task.cancel()

    if pending:
        loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))

    # --------------------------------------------------
    # FINAL LOOP CLEANUP
    # --------------------------------------------------
    loop.run_until_complete(loop.shutdown_asyncgens())

    asyncio.set_event_loop(None)
    loop.close()


# ----------------------------------------------------------------------
# ENTRYPOINT
# ----------------------------------------------------------------------

def run(
    environ: Optional[Mapping[str, str]] = None,
    *,
    gateway_factory: Callable = DiscordGatewayClient,
    sleep: Callable = asyncio.sleep,
) -> int:
    """
    Run one update cycle and return the process exit status.
    """
    load_dotenv()

    try:
        config = load_member_count_config(environ)
    except ConfigError as e:
        source = environ if environ is not None else os.environ
        app_log = configure_logging(
            DEFAULT_LOG_LEVEL,
            log_dir=source.get(LOG_DIR_ENV) or None,
        )
        for problem in e.problems:
            app_log.error(f"Invalid configuration: {problem}")
        app_log.error("Update failed: configuration invalid")
        return 1

    app_log = configure_logging(config.log_level, log_dir=config.log_dir)
    _install_excepthook()
    _apply_runtime_locale(app_log)

    app_log.info(f"{as_string()} booting")
    app_log.debug(f"Loaded {config!r}")

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    failures: List[dict] = []
    main_task = loop.create_task(
        main(
            config,
            app_log=app_log,
            gateway_factory=gateway_factory,
            sleep=sleep,
        )
    )
    loop.set_exception_handler(_loop_exception_handler(main_task, failures))
    previous_handlers = _install_signal_handlers(loop, main_task)

    try:
        loop.run_until_complete(main_task)

    except asyncio.CancelledError:
        app_log.error("Update failed: cycle cancelled")
        return 1

    except KeyboardInterrupt:
        app_log.error("Update failed: KeyboardInterrupt received")
        return 1

    except Exception as e:
        app_log.error(f"Update failed: {e}")
        return 1

    finally:
        _restore_signal_handlers(previous_handlers)
        _close_loop(loop)

    if failures:
        app_log.error(
            f"Update failed: {len(failures)} unhandled asyncio error(s)"
        )
        return 1

    app_log.info("Update completed successfully")
    return 0


def cli():
    sys.exit(run())


if __name__ == "__main__":
    cli()
