"""Logging setup for the command line entry point."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# httpx logs every request line at INFO, including account ids in the path.
QUIET_LOGGERS = ("httpx", "httpcore", "httpx_retries")


def resolve_level(default: int = logging.INFO) -> int:
    """Level from ``FOLIOSYNC_LOG_LEVEL`` (a level name), else ``default``."""

    raw = os.getenv("FOLIOSYNC_LOG_LEVEL", "").strip().upper()
    if not raw:
        return default
    level = logging.getLevelNamesMapping().get(raw)
    return default if level is None else level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Configure the root logger once; ``force=True`` replaces existing handlers."""

    logging.basicConfig(
        level=resolve_level() if level is None else level,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
