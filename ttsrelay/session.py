"""Session store supplying provider credentials to every outbound call.

Responsibilities:
- Acquire credentials through one of two strategies (password login or a
  pre-issued bearer token) and persist them durably.
- Cache the current credential in memory behind a lock that is never held
  across a network call or a durable-storage round trip.
- Discard a credential after the provider rejects it; re-authentication is
  always an explicit caller action.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import threading
from typing import Protocol

from .credentials import KEYRING_FALLBACK_HINT, SessionBackend
from .errors import AuthError, NoSessionError, SessionStorageError, ValidationError
from .models.datatypes import CREDENTIAL_KIND_BEARER, CREDENTIAL_KIND_COOKIE, Credential
from .parsing import normalize_optional_string
from .telemetry.logger import EventLogger, default_event_logger


class LoginClient(Protocol):
    """Provider surface needed for password logins."""

    def login(self, username: str, password: str) -> str:
        """Return a session cookie value for valid account credentials."""


class CredentialStrategy(Protocol):
    """Strategy that produces a fresh credential."""

    def acquire(self, client: LoginClient) -> Credential:
        """Return a new credential, raising `AuthError` on failure."""


@dataclass(frozen=True, slots=True)
class PasswordLogin:
    """Acquire a session cookie by logging in with account credentials."""

    username: str
    password: str = field(repr=False)

    def acquire(self, client: LoginClient) -> Credential:
        username = normalize_optional_string(self.username)
        if username is None or not self.password:
            raise ValidationError("Username and password are required.")
        cookie = client.login(username, self.password)
        if not normalize_optional_string(cookie):
            raise AuthError("Failed to obtain session from provider.")
        return Credential(value=cookie, kind=CREDENTIAL_KIND_COOKIE)


@dataclass(frozen=True, slots=True)
class PreIssuedToken:
    """Use a bearer token issued out of band; no provider call is made."""

    token: str = field(repr=False)

    def acquire(self, client: LoginClient) -> Credential:
        _ = client
        token = normalize_optional_string(self.token)
        if token is None:
            raise ValidationError("A non-empty API token is required.")
        return Credential(value=token, kind=CREDENTIAL_KIND_BEARER)


class SessionStore:
    """Durable-backed, thread-safe holder of the current provider credential."""

    def __init__(
        self,
        client: LoginClient,
        backend: SessionBackend,
        event_logger: EventLogger | None = None,
    ) -> None:
        self._client = client
        self._backend = backend
        self._event_logger = event_logger or default_event_logger
        self._lock = threading.Lock()
        self._cached: Credential | None = None

    def authenticate(self, username: str, password: str) -> Credential:
        """Log in with account credentials, persist, and cache the session."""

        return self.acquire(PasswordLogin(username=username, password=password))

    def authenticate_with_token(self, token: str) -> Credential:
        """Adopt a pre-issued bearer token as the current session."""

        return self.acquire(PreIssuedToken(token=token))

    def acquire(self, strategy: CredentialStrategy) -> Credential:
        """Run a credential strategy, then persist and cache its result."""

        strategy_name = type(strategy).__name__
        self._event_logger.info("session", "authenticate_start", strategy=strategy_name)
        if not self._backend.is_available():
            error = SessionStorageError(
                "Durable session storage is unavailable on this host.",
                hint=KEYRING_FALLBACK_HINT,
            )
            self._event_logger.failure("session", "authenticate_failure", error, strategy=strategy_name)
            raise error
        try:
            credential = strategy.acquire(self._client)
        except Exception as exc:
            self._event_logger.failure("session", "authenticate_failure", exc, strategy=strategy_name)
            raise
        self._backend.save(credential)
        with self._lock:
            self._cached = credential
        self._event_logger.info(
            "session", "authenticate_complete", strategy=strategy_name, kind=credential.kind
        )
        return credential

    def get_credential(self) -> Credential:
        """Return the cached credential, falling back to durable storage."""

        with self._lock:
            cached = self._cached
        if cached is not None:
            return cached

        loaded = self._backend.load()
        if loaded is None:
            raise NoSessionError()
        with self._lock:
            if self._cached is None:
                self._cached = loaded
            current = self._cached
        self._event_logger.debug("session", "loaded_from_durable_storage", kind=current.kind)
        return current

    def invalidate(self, credential: Credential | None = None) -> bool:
        """Discard the current credential after an authentication rejection.

        When `credential` is given, nothing happens unless it is still the
        current one, so a credential refreshed by a concurrent caller survives.
        """

        with self._lock:
            if credential is not None and self._cached is not None and self._cached != credential:
                return False
            had_cached = self._cached is not None
            self._cached = None

        if credential is not None:
            stored = self._backend.load()
            if stored is not None and stored.value != credential.value:
                return had_cached
        removed = self._backend.clear()
        self._event_logger.warning("session", "invalidated", durable_record_removed=removed)
        return had_cached or removed

    def has_session(self) -> bool:
        """Return whether a credential is available without raising."""

        try:
            self.get_credential()
        except NoSessionError:
            return False
        return True
