"""Core operations exposed to transport shims and the CLI.

Responsibilities:
- Wire session, resolver, submitter, poller, and URL normalizer from one config.
- Expose JSON-shaped `authenticate`, `submit`, and `check_status` operations.
- Map relay errors onto transport error codes for callable-style endpoints.
"""

from __future__ import annotations

from pathlib import Path
import threading
from typing import Any, Callable, Mapping

from .audio.download import AudioDownloader
from .audio.urls import AudioUrlNormalizer
from .config import RelayConfig
from .credentials import SessionBackend, create_session_backend
from .errors import (
    AuthError,
    JobTimeoutError,
    NotFoundError,
    PollingCancelledError,
    ProviderUnavailableError,
    RelayError,
    SessionStorageError,
    SubmissionError,
    TransientError,
    ValidationError,
)
from .jobs.poller import StatusPoller
from .jobs.submitter import JobSubmitter
from .models.datatypes import Job, VoiceModel
from .parsing import normalize_optional_string
from .provider.http_client import ProviderClient
from .provider.rate_limiter import RateLimiter
from .provider.retry import RetryPolicy
from .session import SessionStore
from .telemetry.logger import EventLogger, default_event_logger
from .voices.cache import ModelCache
from .voices.resolver import ModelResolver


_TRANSPORT_ERROR_CODES: tuple[tuple[type[RelayError], str], ...] = (
    (ValidationError, "invalid-argument"),
    (AuthError, "unauthenticated"),
    (NotFoundError, "not-found"),
    (SubmissionError, "failed-precondition"),
    (SessionStorageError, "failed-precondition"),
    (JobTimeoutError, "deadline-exceeded"),
    (PollingCancelledError, "cancelled"),
    (ProviderUnavailableError, "unavailable"),
    (TransientError, "unavailable"),
)


def transport_error_code(exc: BaseException) -> str:
    """Return the callable-endpoint error code for an exception."""

    for error_type, code in _TRANSPORT_ERROR_CODES:
        if isinstance(exc, error_type):
            return code
    return "internal"


def _require_field(payload: Mapping[str, Any], *names: str) -> str:
    """Return the first non-blank field among `names` or raise `ValidationError`."""

    for name in names:
        value = normalize_optional_string(payload.get(name))
        if value is not None:
            return value
    raise ValidationError(f"`{names[0]}` is required.")


class RelayService:
    """One capability interface over every core operation."""

    def __init__(
        self,
        session_store: SessionStore,
        resolver: ModelResolver,
        submitter: JobSubmitter,
        poller: StatusPoller,
        normalizer: AudioUrlNormalizer,
        downloader: AudioDownloader,
        event_logger: EventLogger | None = None,
    ) -> None:
        self.session_store = session_store
        self.resolver = resolver
        self.submitter = submitter
        self.poller = poller
        self.normalizer = normalizer
        self.downloader = downloader
        self._event_logger = event_logger or default_event_logger
        self._handlers: dict[str, Callable[[Mapping[str, Any]], dict[str, Any]]] = {
            "authenticate": lambda payload: self.authenticate(
                _require_field(payload, "username"), _require_field(payload, "password")
            ),
            "authenticateWithToken": lambda payload: self.authenticate_with_token(
                _require_field(payload, "token")
            ),
            "submit": lambda payload: self.submit(
                _require_field(payload, "text"),
                _require_field(payload, "modelToken", "modelName"),
            ),
            "checkStatus": lambda payload: self.check_status(
                _require_field(payload, "jobToken", "inferenceToken")
            ),
            "searchModels": lambda payload: self.search_models(
                normalize_optional_string(payload.get("term"))
            ),
        }

    @classmethod
    def from_config(
        cls,
        config: RelayConfig,
        backend: SessionBackend | None = None,
        event_logger: EventLogger | None = None,
    ) -> RelayService:
        """Build a fully wired service from a validated config."""

        event_logger = event_logger or default_event_logger
        client = ProviderClient(
            base_url=config.api_base_url,
            timeout_seconds=config.timeout_seconds,
            user_agent=config.user_agent,
            rate_limiter=RateLimiter(min_interval_seconds=config.request_min_interval_seconds),
            event_logger=event_logger,
        )
        session_store = SessionStore(
            client,
            backend or create_session_backend(config.session_backend, config.session_file),
            event_logger=event_logger,
        )
        resolver = ModelResolver(
            client,
            cache=ModelCache(
                ttl_seconds=config.model_cache_ttl_seconds,
                max_entries=config.model_cache_max_entries,
            ),
            default_search_term=config.default_search_term,
            event_logger=event_logger,
        )
        submitter = JobSubmitter(
            client,
            session_store,
            retry_policy=RetryPolicy(
                max_attempts=config.retry_max_attempts,
                delay_seconds=config.retry_delay_seconds,
                event_logger=event_logger,
            ),
            event_logger=event_logger,
        )
        poller = StatusPoller(
            client,
            session_store,
            interval_seconds=config.poll_interval_seconds,
            max_attempts=config.poll_max_attempts,
            max_consecutive_errors=config.poll_max_consecutive_errors,
            event_logger=event_logger,
        )
        normalizer = AudioUrlNormalizer(
            cdn_origin=config.cdn_origin,
            legacy_storage_origin=config.legacy_storage_origin,
        )
        return cls(
            session_store=session_store,
            resolver=resolver,
            submitter=submitter,
            poller=poller,
            normalizer=normalizer,
            downloader=AudioDownloader(client, normalizer, event_logger=event_logger),
            event_logger=event_logger,
        )

    def authenticate(self, username: str, password: str) -> dict[str, Any]:
        self.session_store.authenticate(username, password)
        return {"success": True, "message": "Login successful"}

    def authenticate_with_token(self, token: str) -> dict[str, Any]:
        self.session_store.authenticate_with_token(token)
        return {"success": True, "message": "Token stored"}

    def submit(self, text: str, model_token: str) -> dict[str, Any]:
        job = self.submitter.submit(model_token, text)
        return {"success": True, "jobToken": job.token, "status": job.status.value}

    def check_status(self, job_token: str) -> dict[str, Any]:
        job = self.poller.check_status(job_token)
        return self._job_payload(job)

    def search_models(self, term: str | None) -> dict[str, Any]:
        models = self.resolver.search(term)
        return {"success": True, "models": [model.as_payload() for model in models]}

    def resolve_model(self, model: str) -> VoiceModel:
        """Resolve a token or a name into a voice model."""

        by_token = self.resolver.get_by_token(model)
        if by_token is not None:
            return by_token
        by_name = self.resolver.find_by_name(model)
        if by_name is None:
            raise NotFoundError(f"No voice model matches `{model}`.")
        return by_name

    def speak(
        self,
        text: str,
        model_token: str,
        destination: Path | None = None,
        *,
        deadline: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> tuple[Job, str | None]:
        """Submit with retry, poll until terminal, and optionally download the audio."""

        submitted = self.submitter.submit_with_retry(model_token, text)
        job = self.poller.poll_until_terminal(
            submitted.token, deadline=deadline, cancel_event=cancel_event
        )
        audio_url = self.normalizer.normalize(job)
        if destination is not None and audio_url is not None:
            self.downloader.download(audio_url, destination)
        return job, audio_url

    def handle(self, operation: str, payload: Mapping[str, Any] | None) -> dict[str, Any]:
        """Dispatch one JSON-shaped call and convert failures into error payloads."""

        handler = self._handlers.get(operation)
        try:
            if handler is None:
                raise ValidationError(f"Unknown operation `{operation}`.")
            return handler(payload or {})
        except RelayError as exc:
            self._event_logger.failure("service", "operation_failure", exc, operation=operation)
            return {
                "success": False,
                "error": {
                    "code": transport_error_code(exc),
                    "message": exc.detail,
                    "providerMessage": exc.provider_message,
                },
            }

    def _job_payload(self, job: Job) -> dict[str, Any]:
        return {
            "success": True,
            "status": job.status.value,
            "audioUrl": self.normalizer.normalize(job),
        }
