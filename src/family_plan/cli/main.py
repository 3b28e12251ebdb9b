# src/family_plan/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then either:
- runs one command given on the command line (`family-plan sync`, `family-plan list alice`), or
- starts the interactive console loop when no arguments are given.
"""

from __future__ import annotations

import logging
import sys

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging
from .commands import registry as command_registry

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)
    state = create_initial_state(settings=settings)

    try:
        if not args:
            run_console_loop(state)
            return 0

        line = " ".join(args)
        if not line.startswith("/"):
            line = "/" + line
        reply = command_registry.handle(state, line, emit=print)
        if reply is not None:
            print(reply)
        failed = reply is None or reply.startswith(
            ("Unknown command", "Invalid input", "Not found", "Store error", "Error")
        )
        return 1 if failed else 0
    finally:
        state.store.close()
        logger.info("Bye.")


if __name__ == "__main__":
    sys.exit(main())
