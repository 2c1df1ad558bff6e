"""Domain exceptions for provider calls, sessions, and job polling.

Every error raised by the core derives from `RelayError`. The `kind` attribute
is a stable identifier that transport layers map onto their own error codes.
"""

from __future__ import annotations


class RelayError(RuntimeError):
    """Base class for every failure surfaced by the relay core."""

    kind = "internal"

    def __init__(
        self,
        detail: str,
        *,
        provider_message: str | None = None,
        status_code: int | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize error metadata for diagnostics and transport mapping."""

        super().__init__(detail)
        self.detail = detail
        self.provider_message = provider_message
        self.status_code = status_code
        self.hint = hint


class ValidationError(RelayError):
    """Raised when a required input is missing or blank. Never retried."""

    kind = "validation"


class AuthError(RelayError):
    """Raised when a credential is missing, invalid, or rejected by the provider."""

    kind = "auth"


class NoSessionError(AuthError):
    """Raised when neither memory nor durable storage holds a credential."""

    def __init__(self, detail: str = "No active session found. Please login first.") -> None:
        super().__init__(
            detail,
            hint="Run `ttsrelay login` (or `ttsrelay token`) before submitting jobs.",
        )


class NotFoundError(RelayError):
    """Raised for unknown job or model tokens."""

    kind = "not_found"


class SubmissionError(RelayError):
    """Raised when the provider rejects a request at the application level."""

    kind = "submission"


class SessionStorageError(RelayError):
    """Raised when the durable session store cannot be read or written."""

    kind = "storage"


class TransientError(RelayError):
    """Raised for network failures, timeouts, throttling, and provider 5xx responses."""

    kind = "transient"


class ProviderUnavailableError(RelayError):
    """Raised when transient failures persist beyond the local retry limit."""

    kind = "unavailable"


class RetryExhaustedError(ProviderUnavailableError):
    """Raised by the retry utility after its last attempt failed."""

    def __init__(self, description: str, attempts: int, last_error: RelayError) -> None:
        super().__init__(
            f"{description} failed after {attempts} attempt(s): {last_error.detail}",
            provider_message=last_error.provider_message,
            status_code=last_error.status_code,
            hint="The provider looks unavailable; retry later.",
        )
        self.attempts = attempts
        self.last_error = last_error


class JobTimeoutError(RelayError):
    """Raised when polling runs out of attempts or time before a terminal status."""

    kind = "timeout"

    def __init__(self, job_token: str, attempts: int) -> None:
        super().__init__(
            f"Job `{job_token}` did not reach a terminal status after {attempts} poll(s).",
            hint="Check the job again later with `ttsrelay status`.",
        )
        self.job_token = job_token
        self.attempts = attempts


class PollingCancelledError(RelayError):
    """Raised when the caller cancels an in-flight polling loop."""

    kind = "cancelled"
