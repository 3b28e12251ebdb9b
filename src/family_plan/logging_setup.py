# src/family_plan/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Loggers that report per document / per row; console shows only their problems.
_CHATTY_LOGGERS = frozenset({"family_plan.todos.markdown_parser", "family_plan.todos.todo_store"})


class _ConsoleNoiseFilter(logging.Filter):
    """Console shows family_plan logs (minus parser/store chatter) and only errors from elsewhere."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith("family_plan."):
            if name in _CHATTY_LOGGERS:
                return record.levelno >= logging.WARNING
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/family_plan",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Install a filtered stderr handler and a full-detail `family_plan.log` in log_dir.

    Call once from the entry point, before the first sync.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    logfile = logging.FileHandler(str(log_dir / "family_plan.log"), encoding="utf-8")
    logfile.setLevel(file_level)
    logfile.setFormatter(fmt)
    root.addHandler(logfile)

    logging.captureWarnings(True)
