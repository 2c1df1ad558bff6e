"""Structured event logging utilities.

Responsibilities:
- Emit concise, deterministic component-level log lines through `loguru`.
- Keep secrets out of log output by sanitizing and filtering context values.
"""

from __future__ import annotations

from typing import TextIO

from loguru import logger as _loguru_logger


_SECRET_CONTEXT_KEYS = frozenset({"password", "credential", "cookie", "token_value", "api_token"})


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
        f"{key}={'[redacted]' if key in _SECRET_CONTEXT_KEYS else _sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


class EventLogger:
    """Emit one structured line per relay event.

    Passing a `sink` reconfigures loguru to write bare messages there, which is
    what the CLI does. Without a sink, loguru's current handlers are used and
    events below `level` are dropped before they reach them.
    """

    def __init__(self, sink: TextIO | None = None, level: str = "INFO") -> None:
        self._sink = sink
        self._level_no = _loguru_logger.level(level).no
        if sink is not None:
            _loguru_logger.remove()
            _loguru_logger.add(sink, format="{message}", level=level, colorize=False)

    def _emit(self, level: str, component: str, event: str, **context: object) -> None:
        if _loguru_logger.level(level).no < self._level_no:
            return
        line = f"[relay] level={level} component={component} event={event}{_format_context(context)}"
        _loguru_logger.log(level, line)

    def debug(self, component: str, event: str, **context: object) -> None:
        self._emit("DEBUG", component, event, **context)

    def info(self, component: str, event: str, **context: object) -> None:
        self._emit("INFO", component, event, **context)

    def warning(self, component: str, event: str, **context: object) -> None:
        self._emit("WARNING", component, event, **context)

    def failure(self, component: str, event: str, error: Exception, **context: object) -> None:
        """Emit a failure event carrying the error type but no payload details."""

        self._emit(
            "ERROR",
            component,
            event,
            error_type=type(error).__name__,
            error_kind=getattr(error, "kind", "unknown"),
            **context,
        )


default_event_logger = EventLogger()
