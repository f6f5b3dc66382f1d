"""Logging set-up for the service process."""

from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Attach a single stream handler to the package logger.

    Safe to call more than once; later calls only adjust the level.
    """
    logger = logging.getLogger("campus_schedule")
    logger.setLevel(level.upper())
    if not any(getattr(h, "_campus_schedule", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._campus_schedule = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
