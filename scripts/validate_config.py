"""
======================================================================
 Guild Member Count Runtime — Version v0.1.0 (Build 2026.10)
Owner: Daniel Clancy
 Copyright © 2026 Brainstream Media Group
======================================================================
"""

"""
Configuration validation script.

This script validates the runtime environment (.env + process env)
without connecting to Discord.

Design rules:
- No side effects on import
- No runtime startup
- Validation only (no mutation)
- The bot token is never printed
"""

import sys
from pathlib import Path
from typing import Mapping, Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dotenv import load_dotenv  # noqa: E402

from shared.config.member_count import (  # noqa: E402
    ConfigError,
    load_member_count_config,
)


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------

def _error(msg: str):
    print(f"[CONFIG ERROR] {msg}", file=sys.stderr)


# ------------------------------------------------------------
# Validators
# ------------------------------------------------------------

def validate_environment(environ: Optional[Mapping[str, str]] = None) -> bool:
    """
    Validate the member count environment variables.

    Required: APP, GUILD_ID, CHANNEL_ID
    Optional: WAIT_TIME, LOG_LEVEL, LOG_DIR

    Every problem is reported, not just the first.
    """
    try:
        config = load_member_count_config(environ)
    except ConfigError as e:
        for problem in e.problems:
            _error(problem)
        return False

    print(
        f"[CONFIG OK] guild={config.guild_id} channel={config.channel_id} "
        f"wait={config.wait_seconds:g}s log_level={config.log_level} "
        f"log_dir={config.log_dir}"
    )
    return True


# ------------------------------------------------------------
# Entrypoint
# ------------------------------------------------------------

def main(environ: Optional[Mapping[str, str]] = None) -> int:
    if environ is None:
        load_dotenv()
    return 0 if validate_environment(environ) else 1


if __name__ == "__main__":
    sys.exit(main())
