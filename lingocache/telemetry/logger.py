"""Structured translation logging utilities.

Responsibilities:
- Emit concise, deterministic component/event log lines through `loguru`.
- Keep secrets and prompt bodies out of log context.
"""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger as _loguru_logger


def configure_logging(sink: TextIO | None = None, level: str = "INFO") -> None:
    """Install one plain-text loguru sink for lingocache log lines."""

    _loguru_logger.remove()
    _loguru_logger.add(sink or sys.stderr, format="{message}", level=level, colorize=False)


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


class TranslationLogger:
    """Emit deterministic event logs for one lingocache component."""

    def __init__(self, component: str = "orchestrator") -> None:
        """Initialize logger with the component label attached to each line."""

        self._component = component

    def child(self, component: str) -> TranslationLogger:
        """Return a logger for another component."""

        return TranslationLogger(component=component)

    def _emit(self, level: str, event: str, **context: object) -> None:
        """Emit one structured log line."""

        line = (
            f"[lingocache] level={level} component={self._component} "
            f"event={event}{_format_context(context)}"
        )
        _loguru_logger.log(level, line)

    def log_event(self, event: str, **context: object) -> None:
        """Emit an informational event."""

        self._emit("INFO", event, **context)

    def log_warning(self, event: str, **context: object) -> None:
        """Emit a degraded-path event."""

        self._emit("WARNING", event, **context)

    def log_failure(self, event: str, error_type: str, **context: object) -> None:
        """Emit a failure event without sensitive payload details."""

        self._emit("ERROR", event, error_type=error_type, **context)
