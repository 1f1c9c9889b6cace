"""Telemetry and observability helpers."""

from .logger import TranslationLogger, configure_logging

__all__ = ["TranslationLogger", "configure_logging"]
