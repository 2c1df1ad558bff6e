"""FakeYou HTTP client utilities for session, model, and job endpoints.

Responsibilities:
- Send the few JSON requests the core needs to the provider REST API.
- Classify HTTP and transport failures into the relay error taxonomy.
- Keep credentials and passwords out of every surfaced error message.
"""

from __future__ import annotations

import json
from pathlib import Path
import re
import socket
from typing import Any, Mapping

import requests

from ..errors import (
    AuthError,
    NotFoundError,
    RelayError,
    SubmissionError,
    TransientError,
)
from ..models.datatypes import Credential
from ..telemetry.logger import EventLogger, default_event_logger
from .rate_limiter import RateLimiter


DEFAULT_API_BASE_URL = "https://api.fakeyou.com"
DEFAULT_USER_AGENT = "ttsrelay/0.3"
_TRANSIENT_STATUS_CODES = frozenset({408, 425, 429})
_DOWNLOAD_CHUNK_BYTES = 64 * 1024


class ProviderClient:
    """Minimal requests-based client for the FakeYou REST API."""

    _MAX_PROVIDER_MESSAGE_CHARS = 180

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout_seconds: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        rate_limiter: RateLimiter | None = None,
        event_logger: EventLogger | None = None,
    ) -> None:
        """Initialize provider HTTP settings."""

        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter()
        self.event_logger = event_logger or default_event_logger

    def login(self, username: str, password: str) -> str:
        """Log in with account credentials and return the session cookie value."""

        response = self._send(
            "POST",
            "/login",
            limiter_key="login",
            payload={"username_or_email": username, "password": password},
            not_found_message="Login endpoint not found.",
            auth_message="Provider rejected the login credentials",
        )
        body = self._decode_json(response, "login")
        if body.get("success") is False:
            raise AuthError(
                "Provider rejected the login credentials.",
                provider_message=self._extract_body_message(body),
            )
        cookie = self._extract_session_cookie(response)
        if cookie is None:
            raise AuthError("Failed to obtain session from provider: no session cookie returned.")
        return cookie

    def search_models(self, search_term: str) -> list[dict[str, Any]]:
        """Return raw model records whose metadata matches `search_term`."""

        response = self._send(
            "POST",
            "/v1/weights/search",
            limiter_key="search",
            payload={"search_term": search_term, "weight_category": "text_to_speech"},
            not_found_message="Model search endpoint not found.",
        )
        body = self._decode_json(response, "search")
        if body.get("success") is False:
            raise TransientError(
                "Provider model search reported failure.",
                provider_message=self._extract_body_message(body),
            )
        results = body.get("results", body.get("models", []))
        if not isinstance(results, list):
            raise TransientError("Provider model search returned a malformed `results` list.")
        return [item for item in results if isinstance(item, dict)]

    def create_inference(self, payload: Mapping[str, str], credential: Credential) -> dict[str, Any]:
        """Submit one inference request and return the decoded response body."""

        response = self._send(
            "POST",
            "/tts/inference",
            limiter_key="inference",
            payload=dict(payload),
            credential=credential,
            not_found_message=f"Unknown voice model `{payload.get('tts_model_token')}`.",
        )
        return self._decode_json(response, "inference")

    def get_job(self, job_token: str, credential: Credential) -> dict[str, Any]:
        """Fetch the raw status document for one inference job."""

        response = self._send(
            "GET",
            f"/tts/job/{job_token}",
            limiter_key="job",
            credential=credential,
            not_found_message=f"Unknown job `{job_token}`.",
        )
        return self._decode_json(response, "job")

    def download(self, url: str, destination: Path) -> int:
        """Stream `url` into `destination` and return the number of bytes written."""

        partial = destination.with_name(f"{destination.name}.part")
        try:
            response = requests.get(
                url,
                headers={"User-Agent": self.user_agent},
                stream=True,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise self._transport_error(exc, "audio download") from exc
        try:
            response.raise_for_status()
            destination.parent.mkdir(parents=True, exist_ok=True)
            written = 0
            with partial.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=_DOWNLOAD_CHUNK_BYTES):
                    if chunk:
                        handle.write(chunk)
                        written += len(chunk)
            partial.replace(destination)
        except requests.HTTPError as exc:
            raise self._http_error_to_relay_error(
                exc,
                not_found_message=f"Audio file not found at `{url}`.",
                auth_message="Audio storage refused the download",
                auth_hint="Audio URLs need no session; check the URL or retry the job.",
            ) from exc
        except requests.RequestException as exc:
            raise self._transport_error(exc, "audio download") from exc
        finally:
            response.close()
            partial.unlink(missing_ok=True)
        return written

    def _send(
        self,
        method: str,
        endpoint_path: str,
        *,
        limiter_key: str,
        payload: dict[str, Any] | None = None,
        credential: Credential | None = None,
        not_found_message: str = "Provider resource not found.",
        auth_message: str = "Provider rejected the session credential",
    ) -> requests.Response:
        """Execute one provider request and map failures consistently."""

        endpoint = f"{self.base_url}{endpoint_path}"
        headers = {"Accept": "application/json", "User-Agent": self.user_agent}
        if payload is not None:
            headers["Content-Type"] = "application/json"
        if credential is not None:
            headers.update(credential.request_headers())

        self.rate_limiter.acquire(f"fakeyou:{limiter_key}")
        self.event_logger.debug("provider", "request", method=method, endpoint=limiter_key)
        try:
            if method == "POST":
                response = requests.post(
                    endpoint, headers=headers, json=payload, timeout=self.timeout_seconds
                )
            else:
                response = requests.get(endpoint, headers=headers, timeout=self.timeout_seconds)
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise self._http_error_to_relay_error(
                exc, not_found_message=not_found_message, auth_message=auth_message
            ) from exc
        except requests.RequestException as exc:
            raise self._transport_error(exc, limiter_key) from exc
        except TimeoutError as exc:
            raise TransientError(f"Provider {limiter_key} request timed out.") from exc
        return response

    @classmethod
    def _decode_json(cls, response: requests.Response, operation: str) -> dict[str, Any]:
        """Decode a JSON object body, treating malformed payloads as transient."""

        try:
            payload = json.loads(bytes(response.content).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise TransientError(f"Provider returned invalid JSON for {operation}.") from exc
        if not isinstance(payload, dict):
            raise TransientError(f"Provider {operation} response is not a JSON object.")
        return payload

    @staticmethod
    def _extract_session_cookie(response: requests.Response) -> str | None:
        """Return a `Cookie` header value built from the login response."""

        jar = getattr(response, "cookies", None)
        if jar:
            pairs = [f"{name}={value}" for name, value in jar.items() if value]
            if pairs:
                return "; ".join(pairs)

        headers = getattr(response, "headers", None) or {}
        raw_header = headers.get("Set-Cookie") or headers.get("set-cookie")
        if not raw_header:
            return None
        first_pair = raw_header.split(";", 1)[0].strip()
        name, separator, value = first_pair.partition("=")
        if not separator or not name.strip() or not value.strip():
            return None
        return first_pair

    @classmethod
    def _redact_sensitive_tokens(cls, text: str) -> str:
        """Redact cookie values, bearer tokens, and passwords from provider content."""

        redacted = re.sub(r"(?i)\bsession=[^;,\s]+", "session=[redacted]", text)
        redacted = re.sub(
            r"(?i)bearer\s+[A-Za-z0-9._:-]{8,}",
            "Bearer [redacted-token]",
            redacted,
        )
        redacted = re.sub(
            r'(?i)("?password"?\s*[:=]\s*)"?[^",}\s]+"?',
            r"\1[redacted]",
            redacted,
        )
        return redacted

    @classmethod
    def _short_message(cls, text: str) -> str:
        """Normalize and cap user-facing provider message length."""

        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_PROVIDER_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_PROVIDER_MESSAGE_CHARS - 1]}..."

    @classmethod
    def _extract_body_message(cls, body: Mapping[str, Any]) -> str | None:
        """Pick the most specific provider error message from a decoded body."""

        for key in ("error_message", "error_reason", "message", "error_type", "error"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return cls._short_message(cls._redact_sensitive_tokens(value.strip()))
        return None

    @classmethod
    def _extract_provider_message(cls, raw_body: bytes) -> str | None:
        """Extract a concise provider message from an error response body."""

        text = raw_body.decode("utf-8", errors="replace").strip()
        if not text:
            return None
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            return cls._short_message(cls._redact_sensitive_tokens(text))
        if isinstance(payload, dict):
            message = cls._extract_body_message(payload)
            if message:
                return message
        return cls._short_message(cls._redact_sensitive_tokens(text))

    @classmethod
    def _http_error_to_relay_error(
        cls,
        exc: requests.HTTPError,
        *,
        not_found_message: str,
        auth_message: str = "Provider rejected the session credential",
        auth_hint: str = "Authenticate again with `ttsrelay login`.",
    ) -> RelayError:
        """Convert HTTP errors into relay exceptions with provider context."""

        response = exc.response
        status_code = response.status_code if response is not None else 0
        raw_body = bytes(response.content) if response is not None and response.content else b""
        provider_message = cls._extract_provider_message(raw_body)

        def _detail(headline: str) -> str:
            if provider_message:
                return f"{headline} (HTTP {status_code}): {provider_message}"
            return f"{headline} (HTTP {status_code})."

        if status_code in {401, 403}:
            return AuthError(
                _detail(auth_message),
                provider_message=provider_message,
                status_code=status_code,
                hint=auth_hint,
            )
        if status_code == 404:
            return NotFoundError(
                not_found_message,
                provider_message=provider_message,
                status_code=status_code,
            )
        if status_code in _TRANSIENT_STATUS_CODES or status_code >= 500 or status_code == 0:
            return TransientError(
                _detail("Provider is temporarily unavailable"),
                provider_message=provider_message,
                status_code=status_code,
            )
        return SubmissionError(
            _detail("Provider rejected the request"),
            provider_message=provider_message,
            status_code=status_code,
        )

    @classmethod
    def _transport_error(cls, exc: BaseException, operation: str) -> TransientError:
        """Classify network-layer failures as transient errors."""

        if isinstance(exc, TimeoutError | socket.timeout | requests.Timeout):
            return TransientError(f"Provider {operation} request timed out.")
        return TransientError(
            f"Provider {operation} transport error: "
            f"{cls._short_message(cls._redact_sensitive_tokens(str(exc)))}"
        )
