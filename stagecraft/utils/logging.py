"""Logging configuration for play sessions and the CLI."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

# Loggers that explain why individual rules did or did not match. They are
# very chatty at DEBUG, so they stay at WARNING unless rule tracing is asked for.
RULE_TRACE_LOGGERS = (
    "stagecraft.engine.matcher",
    "stagecraft.engine.applier",
    "stagecraft.actions",
)


def setup_logging(level: str = "INFO", *, trace_rules: bool = False, stream: TextIO | None = None) -> None:
    """Configure the root logger with the engine's line format."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(logging.DEBUG if trace_rules else numeric_level)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5s] %(name)-28s | %(message)s",
            datefmt="%H:%M:%S",
        )
    )

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in RULE_TRACE_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if trace_rules else max(numeric_level, logging.WARNING))
