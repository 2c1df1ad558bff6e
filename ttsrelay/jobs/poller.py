"""Job status checks and the bounded polling loop.

Responsibilities:
- Issue single status queries and map provider documents onto `Job`.
- Poll until a terminal status, an attempt/deadline limit, or cancellation.
- Escalate persistent identical transient failures instead of looping silently.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Mapping, Protocol

from ..audio.urls import audio_location_from_payload
from ..errors import (
    AuthError,
    JobTimeoutError,
    PollingCancelledError,
    ProviderUnavailableError,
    TransientError,
    ValidationError,
)
from ..models.datatypes import Credential, Job, JobStatus
from ..parsing import normalize_optional_string
from ..session import SessionStore
from ..telemetry.logger import EventLogger, default_event_logger


class JobStatusClient(Protocol):
    """Provider surface needed for status checks."""

    def get_job(self, job_token: str, credential: Credential) -> dict[str, Any]:
        """Return the raw status document for one job."""


def job_from_status_document(job_token: str, body: Mapping[str, Any]) -> Job:
    """Map one provider status document onto a `Job`.

    `success: false` and malformed documents are treated as transient provider
    hiccups so the polling loop can retry them.
    """

    if not body.get("success"):
        message = normalize_optional_string(body.get("error_message") or body.get("error_reason"))
        raise TransientError("Failed to check conversion status.", provider_message=message)
    state = body.get("state")
    if not isinstance(state, Mapping):
        raise TransientError("Provider status response is missing its `state` object.")
    provider_status = normalize_optional_string(state.get("status"))
    audio = audio_location_from_payload(state)
    return Job(
        token=job_token,
        status=JobStatus.from_provider(provider_status),
        provider_status=provider_status,
        audio=None if audio.is_empty else audio,
    )


class StatusPoller:
    """Check job status once or poll until the job is terminal."""

    def __init__(
        self,
        client: JobStatusClient,
        session_store: SessionStore,
        *,
        interval_seconds: float = 3.0,
        max_attempts: int = 60,
        max_consecutive_errors: int = 5,
        clock: Callable[[], float] = time.monotonic,
        sleeper: Callable[[float], None] = time.sleep,
        event_logger: EventLogger | None = None,
    ) -> None:
        if max_consecutive_errors < 1:
            raise ValueError("`max_consecutive_errors` must be at least 1.")
        self._client = client
        self._session_store = session_store
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts
        self.max_consecutive_errors = max_consecutive_errors
        self._clock = clock
        self._sleeper = sleeper
        self._event_logger = event_logger or default_event_logger

    def check_status(self, job_token: str) -> Job:
        """Issue one status query and return the updated job."""

        token = normalize_optional_string(job_token)
        if token is None:
            raise ValidationError("Inference job token is required.")
        credential = self._session_store.get_credential()
        try:
            body = self._client.get_job(token, credential)
        except AuthError:
            self._session_store.invalidate(credential)
            raise
        job = job_from_status_document(token, body)
        self._event_logger.debug(
            "poller", "status", job=token, status=job.status.value, provider_status=job.provider_status
        )
        return job

    def poll_until_terminal(
        self,
        job_token: str,
        interval_seconds: float | None = None,
        max_attempts: int | None = None,
        *,
        deadline: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Job:
        """Poll `job_token` until it is terminal.

        Args:
            job_token: Provider job token.
            interval_seconds: Sleep between polls; defaults to the poller setting.
            max_attempts: Status queries allowed; defaults to the poller setting.
            deadline: Optional absolute time on the poller clock after which
                polling stops with `JobTimeoutError`.
            cancel_event: Optional event; once set, polling stops with
                `PollingCancelledError`.

        Raises:
            JobTimeoutError: Attempts or deadline exhausted before a terminal status.
            ProviderUnavailableError: Too many consecutive identical transient errors.
            AuthError, NotFoundError, ValidationError: Propagated without retry.
        """

        interval = self.interval_seconds if interval_seconds is None else interval_seconds
        attempts_allowed = self.max_attempts if max_attempts is None else max_attempts
        if attempts_allowed < 1:
            raise ValidationError("`max_attempts` must be at least 1.")
        if interval < 0:
            raise ValidationError("`interval_seconds` must not be negative.")

        last_signature: tuple[str, int | None, str] | None = None
        consecutive_errors = 0
        attempt = 0
        while attempt < attempts_allowed:
            self._raise_if_stopped(job_token, attempt, deadline, cancel_event)
            attempt += 1
            try:
                job = self.check_status(job_token)
            except TransientError as exc:
                signature = (type(exc).__name__, exc.status_code, exc.detail)
                consecutive_errors = consecutive_errors + 1 if signature == last_signature else 1
                last_signature = signature
                self._event_logger.warning(
                    "poller",
                    "transient_failure",
                    job=job_token,
                    attempt=attempt,
                    consecutive=consecutive_errors,
                )
                if consecutive_errors >= self.max_consecutive_errors:
                    raise ProviderUnavailableError(
                        f"Status checks for job `{job_token}` failed {consecutive_errors} "
                        f"times in a row: {exc.detail}",
                        provider_message=exc.provider_message,
                        status_code=exc.status_code,
                        hint="The provider looks unavailable; check the job again later.",
                    ) from exc
            else:
                consecutive_errors = 0
                last_signature = None
                if job.is_terminal:
                    self._event_logger.info(
                        "poller", "terminal", job=job_token, status=job.status.value, attempts=attempt
                    )
                    return job

            if attempt < attempts_allowed:
                self._wait(interval, job_token, deadline, cancel_event)

        raise JobTimeoutError(job_token, attempt)

    def _raise_if_stopped(
        self,
        job_token: str,
        attempt: int,
        deadline: float | None,
        cancel_event: threading.Event | None,
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise PollingCancelledError(f"Polling for job `{job_token}` was cancelled.")
        if deadline is not None and self._clock() >= deadline:
            raise JobTimeoutError(job_token, attempt)

    def _wait(
        self,
        interval: float,
        job_token: str,
        deadline: float | None,
        cancel_event: threading.Event | None,
    ) -> None:
        """Sleep between polls, waking early for the deadline or cancellation."""

        delay = interval
        if deadline is not None:
            delay = max(0.0, min(delay, deadline - self._clock()))
        if cancel_event is not None:
            if cancel_event.wait(delay):
                raise PollingCancelledError(f"Polling for job `{job_token}` was cancelled.")
            return
        if delay > 0:
            self._sleeper(delay)
