"""Core datatypes shared across ttsrelay modules.

Responsibilities:
- Represent immutable records exchanged between session, resolver, and job components.
- Map raw provider job statuses onto the three statuses the core reasons about.

Key types:
- `Credential`, `VoiceModel`, `JobStatus`, `JobRequest`, `AudioLocation`, and `Job`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping
import uuid


CREDENTIAL_KIND_COOKIE = "cookie"
CREDENTIAL_KIND_BEARER = "bearer"

_FAILED_PROVIDER_STATUSES = frozenset({"complete_failure", "dead"})


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Credential:
    """Opaque provider authentication token plus acquisition timestamp.

    Attributes:
        value: Cookie header value or bearer token. Masked in `repr`.
        kind: `cookie` for password logins, `bearer` for pre-issued tokens.
        acquired_at: UTC timestamp of the login that produced the credential.
    """

    value: str = field(repr=False)
    kind: str = CREDENTIAL_KIND_COOKIE
    acquired_at: datetime = field(default_factory=_utc_now)

    def request_headers(self) -> dict[str, str]:
        """Return HTTP headers that present this credential to the provider."""

        if self.kind == CREDENTIAL_KIND_BEARER:
            return {"Authorization": f"Bearer {self.value}"}
        return {"Cookie": self.value}

    def to_record(self) -> dict[str, str]:
        """Serialize the credential for a durable key-value backend."""

        return {
            "value": self.value,
            "kind": self.kind,
            "acquired_at": self.acquired_at.isoformat(),
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Credential:
        """Rebuild a credential from a durable record, rejecting malformed payloads."""

        value = record.get("value")
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Stored session record has no credential value.")
        kind = record.get("kind") or CREDENTIAL_KIND_COOKIE
        if kind not in {CREDENTIAL_KIND_COOKIE, CREDENTIAL_KIND_BEARER}:
            raise ValueError(f"Stored session record has unknown kind `{kind}`.")
        raw_acquired_at = record.get("acquired_at")
        acquired_at = (
            datetime.fromisoformat(raw_acquired_at)
            if isinstance(raw_acquired_at, str) and raw_acquired_at
            else _utc_now()
        )
        return cls(value=value.strip(), kind=kind, acquired_at=acquired_at)


@dataclass(frozen=True, slots=True)
class VoiceModel:
    """A provider voice model returned by a search.

    Attributes:
        token: Stable provider identifier used for job submission.
        title: Human-readable display title.
        search_text: Lower-cased text the provider matched against.
        language: Optional IETF language subtag.
        creator: Optional creator display name.
    """

    token: str
    title: str
    search_text: str = ""
    language: str | None = None
    creator: str | None = None

    def as_payload(self) -> dict[str, str | None]:
        """Return a JSON-shaped view for transport responses."""

        return {
            "modelToken": self.token,
            "title": self.title,
            "language": self.language,
            "creator": self.creator,
        }


class JobStatus(str, Enum):
    """Status of a generation job as seen by the core."""

    PENDING = "pending"
    COMPLETE_SUCCESS = "complete_success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PENDING

    @classmethod
    def from_provider(cls, raw_status: str | None) -> JobStatus:
        """Map a raw provider status onto the core status enum."""

        normalized = (raw_status or "").strip().lower()
        if normalized == "complete_success":
            return cls.COMPLETE_SUCCESS
        if normalized in _FAILED_PROVIDER_STATUSES:
            return cls.FAILED
        return cls.PENDING


@dataclass(frozen=True, slots=True)
class JobRequest:
    """One logical generation request with its idempotency key.

    The key is generated once at creation and reused by every retry.
    """

    model_token: str
    text: str
    idempotency_key: str

    @classmethod
    def create(cls, model_token: str, text: str) -> JobRequest:
        return cls(model_token=model_token, text=text, idempotency_key=str(uuid.uuid4()))

    def as_payload(self) -> dict[str, str]:
        """Return the provider inference request body."""

        return {
            "tts_model_token": self.model_token,
            "inference_text": self.text,
            "uuid_idempotency_token": self.idempotency_key,
        }


@dataclass(frozen=True, slots=True)
class AudioLocation:
    """Raw provider audio path fields before URL normalization.

    Attributes:
        cdn_path: New-style CDN path or URL. Authoritative when present.
        legacy_path: Old storage-bucket relative path or absolute URL.
    """

    cdn_path: str | None = None
    legacy_path: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.cdn_path or self.legacy_path)


@dataclass(frozen=True, slots=True)
class Job:
    """A provider generation job tracked by its token.

    Attributes:
        token: Provider-issued inference job token.
        status: Core job status.
        request: Originating request, when the job was submitted by this process.
        provider_status: Raw status string reported by the provider.
        audio: Result path fields, populated once the provider reports them.
    """

    token: str
    status: JobStatus = JobStatus.PENDING
    request: JobRequest | None = None
    provider_status: str | None = None
    audio: AudioLocation | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal
