"""Fixed-delay retry utility for single provider operations.

Responsibilities:
- Retry one operation while it fails with `TransientError`.
- Surface exhaustion as `RetryExhaustedError` carrying the attempt count.

Retries loop over attempts at one operation; polling (see `ttsrelay.jobs.poller`)
loops over time until a job is terminal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import threading
import time
from typing import Callable, TypeVar

from ..errors import RetryExhaustedError, TransientError
from ..telemetry.logger import EventLogger, default_event_logger

_Result = TypeVar("_Result")


@dataclass(slots=True)
class RetryPolicy:
    """Retry transient failures up to `max_attempts` total attempts.

    Attributes:
        max_attempts: Total attempts including the first call.
        delay_seconds: Fixed sleep between attempts.
        sleeper: Injectable sleep function.
        event_logger: Structured logger for retry events.
    """

    max_attempts: int = 3
    delay_seconds: float = 2.0
    sleeper: Callable[[float], None] = time.sleep
    event_logger: EventLogger = field(default_factory=lambda: default_event_logger)
    _retry_attempt_count: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("`max_attempts` must be at least 1.")
        if self.delay_seconds < 0:
            raise ValueError("`delay_seconds` must not be negative.")

    @property
    def retry_attempt_count(self) -> int:
        """Return how many retries (attempts after the first) this policy performed."""

        return self._retry_attempt_count

    def call(self, operation: Callable[[], _Result], description: str = "operation") -> _Result:
        """Run `operation`, retrying on `TransientError` with a fixed delay."""

        attempt = 0
        while True:
            attempt += 1
            try:
                return operation()
            except TransientError as exc:
                if attempt >= self.max_attempts:
                    self.event_logger.failure(
                        "retry", "exhausted", exc, operation=description, attempts=attempt
                    )
                    raise RetryExhaustedError(description, attempt, exc) from exc
                self.event_logger.warning(
                    "retry",
                    "transient_failure",
                    operation=description,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    delay_seconds=self.delay_seconds,
                )
                with self._lock:
                    self._retry_attempt_count += 1
                self.sleeper(self.delay_seconds)
