"""Shared logging helpers for sitepatch."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger for CLI runs.

    ``level`` applies to sitepatch loggers; httpx and hishel are capped at WARNING
    so per-request lines do not bury batch progress. ``force=True`` replaces any
    handlers installed earlier (tests, embedding applications).
    """

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    for noisy in ("httpx", "hishel"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))
