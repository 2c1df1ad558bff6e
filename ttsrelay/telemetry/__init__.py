"""Telemetry helpers.

This package emits structured relay events without exposing credentials.
"""

from .logger import EventLogger, default_event_logger

__all__ = ["EventLogger", "default_event_logger"]
