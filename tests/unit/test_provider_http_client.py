"""Unit tests for the FakeYou HTTP client and its error classification."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from ttsrelay.errors import AuthError, NotFoundError, SubmissionError, TransientError
from ttsrelay.models.datatypes import CREDENTIAL_KIND_BEARER, Credential
from ttsrelay.provider import http_client
from ttsrelay.provider.http_client import ProviderClient


class _MockRequestsResponse:
    """Minimal requests response mock for HTTP transport patching."""

    def __init__(
        self,
        *,
        payload: bytes = b"{}",
        status_code: int = 200,
        headers: dict[str, str] | None = None,
        cookies: dict[str, str] | None = None,
        chunks: list[bytes] | None = None,
    ) -> None:
        """Initialize response with raw payload bytes and HTTP status."""

        self.content = payload
        self.status_code = status_code
        self.headers = headers or {}
        self.cookies = cookies or {}
        self._chunks = chunks or []
        self.closed = False

    def raise_for_status(self) -> None:
        """Raise HTTPError when the response status represents a failure."""

        if self.status_code >= 400:
            raise http_client.requests.HTTPError(f"HTTP {self.status_code} error", response=self)

    def iter_content(self, chunk_size: int) -> list[bytes]:
        _ = chunk_size
        return list(self._chunks)

    def close(self) -> None:
        self.closed = True


class _RecordingRateLimiter:
    """Rate limiter test double that records acquire keys."""

    def __init__(self) -> None:
        self.keys: list[str] = []

    def acquire(self, key: str) -> None:
        self.keys.append(key)


def _json_response(body: dict[str, Any], **kwargs: Any) -> _MockRequestsResponse:
    return _MockRequestsResponse(payload=json.dumps(body).encode("utf-8"), **kwargs)


def _client(limiter: _RecordingRateLimiter | None = None) -> ProviderClient:
    return ProviderClient(
        base_url="https://api.example.test/",
        timeout_seconds=5.0,
        rate_limiter=limiter,  # type: ignore[arg-type]
    )


def test_login_returns_cookie_from_response_jar(monkeypatch: pytest.MonkeyPatch) -> None:
    """Login posts account credentials and returns a `Cookie` header value."""

    captured: dict[str, Any] = {}

    def _fake_post(url: str, **kwargs: Any) -> _MockRequestsResponse:
        captured["url"] = url
        captured.update(kwargs)
        return _json_response({"success": True}, cookies={"session": "abc123"})

    monkeypatch.setattr(http_client.requests, "post", _fake_post)
    limiter = _RecordingRateLimiter()

    cookie = _client(limiter).login("user@example.com", "hunter2")

    assert cookie == "session=abc123"
    assert captured["url"] == "https://api.example.test/login"
    assert captured["json"] == {"username_or_email": "user@example.com", "password": "hunter2"}
    assert captured["timeout"] == 5.0
    assert "Cookie" not in captured["headers"]
    assert limiter.keys == ["fakeyou:login"]


def test_login_falls_back_to_set_cookie_header(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        http_client.requests,
        "post",
        lambda url, **kwargs: _json_response(
            {"success": True},
            headers={"set-cookie": "session=xyz; Path=/; HttpOnly"},
        ),
    )

    assert _client().login("user", "pw") == "session=xyz"


@pytest.mark.parametrize(
    ("response", "message"),
    [
        (_json_response({"success": False, "error_type": "InvalidCredentials"}), "rejected the login"),
        (_json_response({"success": True}), "no session cookie"),
        (_MockRequestsResponse(payload=b"", status_code=401), "rejected the login credentials"),
    ],
)
def test_login_failures_raise_auth_error(
    monkeypatch: pytest.MonkeyPatch, response: _MockRequestsResponse, message: str
) -> None:
    monkeypatch.setattr(http_client.requests, "post", lambda url, **kwargs: response)

    with pytest.raises(AuthError, match=message):
        _client().login("user", "pw")


def test_create_inference_sends_credential_and_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, Any] = {}

    def _fake_post(url: str, **kwargs: Any) -> _MockRequestsResponse:
        captured["url"] = url
        captured.update(kwargs)
        return _json_response({"success": True, "inference_job_token": "JTINF:1"})

    monkeypatch.setattr(http_client.requests, "post", _fake_post)
    payload = {
        "tts_model_token": "weight_x",
        "inference_text": "Hello",
        "uuid_idempotency_token": "key-1",
    }

    body = _client().create_inference(payload, Credential(value="tok", kind=CREDENTIAL_KIND_BEARER))

    assert body["inference_job_token"] == "JTINF:1"
    assert captured["url"] == "https://api.example.test/tts/inference"
    assert captured["json"] == payload
    assert captured["headers"]["Authorization"] == "Bearer tok"
    assert captured["headers"]["Content-Type"] == "application/json"


def test_get_job_uses_job_endpoint(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, Any] = {}

    def _fake_get(url: str, **kwargs: Any) -> _MockRequestsResponse:
        captured["url"] = url
        captured.update(kwargs)
        return _json_response({"success": True, "state": {"status": "pending"}})

    monkeypatch.setattr(http_client.requests, "get", _fake_get)
    limiter = _RecordingRateLimiter()

    body = _client(limiter).get_job("JTINF:1", Credential(value="session=abc"))

    assert body["state"]["status"] == "pending"
    assert captured["url"] == "https://api.example.test/tts/job/JTINF:1"
    assert captured["headers"]["Cookie"] == "session=abc"
    assert limiter.keys == ["fakeyou:job"]


def test_search_models_reads_results(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, Any] = {}

    def _fake_post(url: str, **kwargs: Any) -> _MockRequestsResponse:
        captured.update(kwargs)
        return _json_response(
            {"success": True, "results": [{"weight_token": "weight_a", "title": "A"}, "junk"]}
        )

    monkeypatch.setattr(http_client.requests, "post", _fake_post)

    assert _client().search_models("mario") == [{"weight_token": "weight_a", "title": "A"}]
    assert captured["json"] == {"search_term": "mario", "weight_category": "text_to_speech"}


@pytest.mark.parametrize(
    ("status_code", "error_type"),
    [
        (400, SubmissionError),
        (401, AuthError),
        (403, AuthError),
        (404, NotFoundError),
        (408, TransientError),
        (429, TransientError),
        (500, TransientError),
        (503, TransientError),
    ],
)
def test_http_errors_are_classified(
    monkeypatch: pytest.MonkeyPatch, status_code: int, error_type: type[Exception]
) -> None:
    """HTTP status codes map onto the relay error taxonomy."""

    response = _json_response({"error_reason": "nope"}, status_code=status_code)
    monkeypatch.setattr(http_client.requests, "get", lambda url, **kwargs: response)

    with pytest.raises(error_type) as exc_info:
        _client().get_job("JTINF:1", Credential(value="session=abc"))

    assert exc_info.value.status_code == status_code  # type: ignore[attr-defined]
    assert exc_info.value.provider_message == "nope"  # type: ignore[attr-defined]


def test_transport_failures_are_transient(monkeypatch: pytest.MonkeyPatch) -> None:
    def _raise_timeout(url: str, **kwargs: Any) -> _MockRequestsResponse:
        raise http_client.requests.Timeout("read timed out")

    def _raise_connection(url: str, **kwargs: Any) -> _MockRequestsResponse:
        raise http_client.requests.ConnectionError("connection refused")

    monkeypatch.setattr(http_client.requests, "get", _raise_timeout)
    with pytest.raises(TransientError, match="Provider job request timed out."):
        _client().get_job("JTINF:1", Credential(value="session=abc"))

    monkeypatch.setattr(http_client.requests, "get", _raise_connection)
    with pytest.raises(TransientError, match="transport error: connection refused"):
        _client().get_job("JTINF:1", Credential(value="session=abc"))


def test_invalid_json_is_transient(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        http_client.requests,
        "get",
        lambda url, **kwargs: _MockRequestsResponse(payload=b"<html>oops</html>"),
    )

    with pytest.raises(TransientError, match="invalid JSON for job"):
        _client().get_job("JTINF:1", Credential(value="session=abc"))


def test_provider_messages_are_redacted_and_capped() -> None:
    """Cookies, bearer tokens, and passwords never leak into error messages."""

    message = ProviderClient._extract_provider_message(
        b'{"error_message": "bad session=abc123; Bearer abcdefghijkl password=hunter2"}'
    )

    assert message is not None
    assert "abc123" not in message
    assert "abcdefghijkl" not in message
    assert "hunter2" not in message
    long_message = ProviderClient._extract_provider_message(b"x" * 500)
    assert long_message is not None
    assert len(long_message) == 182
    assert long_message.endswith("...")


def test_download_streams_to_destination(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    response = _MockRequestsResponse(chunks=[b"RIFF", b"", b"data"])
    monkeypatch.setattr(http_client.requests, "get", lambda url, **kwargs: response)
    destination = tmp_path / "audio" / "out.wav"

    written = _client().download("https://cdn.example.test/media/x.wav", destination)

    assert written == 8
    assert destination.read_bytes() == b"RIFFdata"
    assert not (tmp_path / "audio" / "out.wav.part").exists()
    assert response.closed is True


def test_download_missing_file_is_not_found(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    response = _MockRequestsResponse(payload=b"", status_code=404)
    monkeypatch.setattr(http_client.requests, "get", lambda url, **kwargs: response)
    destination = tmp_path / "out.wav"

    with pytest.raises(NotFoundError, match="Audio file not found"):
        _client().download("https://cdn.example.test/media/x.wav", destination)

    assert not destination.exists()
    assert response.closed is True


def test_download_refusal_does_not_suggest_logging_in(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    response = _MockRequestsResponse(payload=b"AccessDenied", status_code=403)
    monkeypatch.setattr(http_client.requests, "get", lambda url, **kwargs: response)

    with pytest.raises(AuthError, match="Audio storage refused the download") as exc_info:
        _client().download("https://cdn.example.test/media/x.wav", tmp_path / "out.wav")

    assert exc_info.value.status_code == 403
    assert "login" not in (exc_info.value.hint or "")
    assert not (tmp_path / "out.wav").exists()
