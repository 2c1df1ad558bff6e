"""Generation job submission.

Responsibilities:
- Validate submission input and attach one idempotency key per logical request.
- Submit through the session credential and map provider replies onto `Job`.
- Offer a retrying variant that reuses the same key for every attempt.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from ..errors import AuthError, SubmissionError, ValidationError
from ..models.datatypes import Credential, Job, JobRequest, JobStatus
from ..parsing import normalize_optional_string
from ..provider.retry import RetryPolicy
from ..session import SessionStore
from ..telemetry.logger import EventLogger, default_event_logger


class InferenceClient(Protocol):
    """Provider surface needed for job submission."""

    def create_inference(self, payload: Mapping[str, str], credential: Credential) -> dict[str, Any]:
        """Submit one inference request and return the decoded body."""


class JobSubmitter:
    """Submit text-to-speech jobs on behalf of the current session."""

    def __init__(
        self,
        client: InferenceClient,
        session_store: SessionStore,
        retry_policy: RetryPolicy | None = None,
        event_logger: EventLogger | None = None,
    ) -> None:
        self._client = client
        self._session_store = session_store
        self.retry_policy = retry_policy if retry_policy is not None else RetryPolicy()
        self._event_logger = event_logger or default_event_logger

    @staticmethod
    def build_request(model_token: str, text: str) -> JobRequest:
        """Validate inputs and create a request with a fresh idempotency key."""

        normalized_token = normalize_optional_string(model_token)
        if normalized_token is None:
            raise ValidationError("A voice model token is required.")
        if normalize_optional_string(text) is None:
            raise ValidationError("Text to synthesize is required.")
        return JobRequest.create(model_token=normalized_token, text=text.strip())

    def submit(self, model_token: str, text: str) -> Job:
        """Submit one job with a fresh idempotency key and no local retries."""

        return self.submit_request(self.build_request(model_token, text))

    def submit_with_retry(
        self,
        model_token: str,
        text: str,
        retry_policy: RetryPolicy | None = None,
    ) -> Job:
        """Submit one job, retrying transient failures with the same idempotency key."""

        request = self.build_request(model_token, text)
        policy = retry_policy if retry_policy is not None else self.retry_policy
        return policy.call(lambda: self.submit_request(request), description="job submission")

    def submit_request(self, request: JobRequest) -> Job:
        """Submit a prebuilt request; safe to call again for the same logical request."""

        credential = self._session_store.get_credential()
        self._event_logger.info(
            "submitter", "submit_start", model=request.model_token, text_chars=len(request.text)
        )
        try:
            body = self._client.create_inference(request.as_payload(), credential)
        except AuthError as exc:
            self._session_store.invalidate(credential)
            self._event_logger.failure("submitter", "submit_failure", exc)
            raise

        if not body.get("success"):
            message = normalize_optional_string(
                body.get("error_message") or body.get("error_reason") or body.get("error_type")
            )
            raise SubmissionError(
                "Failed to initiate text-to-speech conversion.",
                provider_message=message,
            )
        job_token = normalize_optional_string(body.get("inference_job_token"))
        if job_token is None:
            raise SubmissionError(
                "Provider accepted the request but returned no job token."
            )
        self._event_logger.info("submitter", "submit_complete", job=job_token)
        return Job(token=job_token, status=JobStatus.PENDING, request=request)
