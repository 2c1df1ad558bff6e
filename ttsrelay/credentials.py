"""Durable session-credential backends.

Responsibilities:
- Persist exactly one provider credential record in a durable key-value store.
- Provide deterministic load/save/clear operations for the session store.
- Avoid logging or exposing secret values in diagnostics.

Key types:
- `SessionBackend`: interface for durable credential persistence.
- `KeyringSessionBackend`: OS keyring-backed storage (default).
- `JsonFileSessionBackend`: single JSON file for hosts without a keyring.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
import tempfile

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from .errors import SessionStorageError
from .models.datatypes import Credential


_DEFAULT_SERVICE_NAME = "ttsrelay"
_DEFAULT_ACCOUNT_NAME = "fakeyou_session"
KEYRING_FALLBACK_HINT = (
    "Set `session_backend: file` in the config (or `TTSRELAY_SESSION_BACKEND=file`) "
    "on hosts without an OS keyring."
)


def _storage_error(detail: str, exc: BaseException, hint: str | None = None) -> SessionStorageError:
    """Wrap a backend failure, naming the exception type but not its message."""

    return SessionStorageError(f"{detail} ({type(exc).__name__})", hint=hint)


class SessionBackend:
    """Interface for durable credential operations."""

    def is_available(self) -> bool:
        """Return whether durable storage can be used in this environment."""

        raise NotImplementedError

    def load(self) -> Credential | None:
        """Load the stored credential, when one exists."""

        raise NotImplementedError

    def save(self, credential: Credential) -> None:
        """Persist a credential, replacing any previous record."""

        raise NotImplementedError

    def clear(self) -> bool:
        """Delete the stored credential and return whether one existed."""

        raise NotImplementedError


@dataclass(slots=True)
class KeyringSessionBackend(SessionBackend):
    """Credential backend storing one JSON record in the OS keyring.

    Keyring failures, including `NoKeyringError` on headless hosts, surface as
    `SessionStorageError` with a hint pointing at the file backend.
    """

    service_name: str = _DEFAULT_SERVICE_NAME
    account_name: str = _DEFAULT_ACCOUNT_NAME

    def _load_keyring_module(self):
        """Return the keyring module; isolated so tests can swap the backend."""

        return keyring

    def is_available(self) -> bool:
        """Return `True` unless keyring resolved to its fail-safe backend."""

        backend = self._load_keyring_module().get_keyring()
        return getattr(backend, "priority", 1) > 0

    def _read_raw(self) -> str | None:
        try:
            return self._load_keyring_module().get_password(self.service_name, self.account_name)
        except KeyringError as exc:
            raise _storage_error(
                "Secure session storage could not be read.", exc, KEYRING_FALLBACK_HINT
            ) from exc

    def load(self) -> Credential | None:
        """Read and decode the stored record, returning `None` when missing or blank."""

        raw = self._read_raw()
        if raw is None or not raw.strip():
            return None
        try:
            return Credential.from_record(json.loads(raw))
        except (json.JSONDecodeError, ValueError, AttributeError):
            return None

    def save(self, credential: Credential) -> None:
        try:
            self._load_keyring_module().set_password(
                self.service_name,
                self.account_name,
                json.dumps(credential.to_record(), sort_keys=True),
            )
        except KeyringError as exc:
            raise _storage_error(
                "Secure session storage is unavailable; the session was not saved.",
                exc,
                KEYRING_FALLBACK_HINT,
            ) from exc

    def clear(self) -> bool:
        """Remove the stored record and report whether one was present."""

        if self._read_raw() is None:
            return False
        try:
            self._load_keyring_module().delete_password(self.service_name, self.account_name)
        except PasswordDeleteError:
            return False
        except KeyringError as exc:
            raise _storage_error(
                "Secure session storage could not be cleared.", exc, KEYRING_FALLBACK_HINT
            ) from exc
        return True


@dataclass(slots=True)
class JsonFileSessionBackend(SessionBackend):
    """Credential backend storing one JSON record in a user-only file."""

    path: Path

    def is_available(self) -> bool:
        return True

    def load(self) -> Credential | None:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            return Credential.from_record(payload)
        except (OSError, json.JSONDecodeError, ValueError, AttributeError):
            return None

    def save(self, credential: Credential) -> None:
        """Write the record atomically with owner-only permissions.

        Every call stages its own temporary file, which `tempfile` creates with
        mode 0600, so concurrent saves never share a staging path.
        """

        temporary: Path | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                temporary = Path(handle.name)
                json.dump(credential.to_record(), handle, indent=2, sort_keys=True)
            temporary.replace(self.path)
            temporary = None
        except OSError as exc:
            raise _storage_error(f"Failed to write session file `{self.path}`.", exc) from exc
        finally:
            if temporary is not None:
                temporary.unlink(missing_ok=True)

    def clear(self) -> bool:
        if not self.path.exists():
            return False
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise _storage_error(f"Failed to remove session file `{self.path}`.", exc) from exc
        return True


def create_session_backend(kind: str = "keyring", path: Path | None = None) -> SessionBackend:
    """Create the configured durable session backend."""

    if kind == "keyring":
        return KeyringSessionBackend()
    if kind == "file":
        if path is None:
            raise ValueError("A session file path is required for the `file` backend.")
        return JsonFileSessionBackend(path=path)
    raise ValueError(f"Unsupported session backend `{kind}`.")
