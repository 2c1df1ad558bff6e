"""Configuration model and loaders for ttsrelay.

Responsibilities:
- Define runtime configuration as a typed dataclass.
- Provide loader entry points for YAML- and environment-based configuration.

Key types:
- `RelayConfig`: normalized provider, polling, retry, cache, and session settings.
- `ConfigLoader`: static construction helpers for `RelayConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .audio.urls import DEFAULT_CDN_ORIGIN, DEFAULT_LEGACY_STORAGE_ORIGIN
from .parsing import normalize_optional_string, parse_positive_number
from .provider.http_client import DEFAULT_API_BASE_URL, DEFAULT_USER_AGENT
from .voices.resolver import DEFAULT_SEARCH_TERM


_SUPPORTED_SESSION_BACKENDS = frozenset({"keyring", "file"})
_DEFAULT_SESSION_FILE = Path.home() / ".config" / "ttsrelay" / "session.json"
_ENV_PREFIX = "TTSRELAY_"


@dataclass(slots=True)
class RelayConfig:
    """Runtime configuration for the relay core.

    Attributes:
        api_base_url: Provider REST API origin.
        cdn_origin: Origin for new-style CDN audio URLs.
        legacy_storage_origin: Origin of the old storage bucket.
        timeout_seconds: Per-request HTTP timeout.
        poll_interval_seconds: Sleep between status polls.
        poll_max_attempts: Status queries allowed per polling loop.
        poll_max_consecutive_errors: Identical transient errors before polling escalates.
        retry_max_attempts: Total attempts for retried operations (job submission).
        retry_delay_seconds: Fixed delay between retry attempts.
        request_min_interval_seconds: Minimum spacing between calls to one endpoint.
        default_search_term: Broad query used for blank searches and token scans.
        model_cache_ttl_seconds: Optional lifetime of cached search results.
        model_cache_max_entries: Optional bound on cached search terms.
        session_backend: Durable credential backend (`keyring` or `file`).
        session_file: Credential file path for the `file` backend.
        user_agent: User-Agent header sent with provider requests.
    """

    api_base_url: str = DEFAULT_API_BASE_URL
    cdn_origin: str = DEFAULT_CDN_ORIGIN
    legacy_storage_origin: str = DEFAULT_LEGACY_STORAGE_ORIGIN
    timeout_seconds: float = 30.0
    poll_interval_seconds: float = 3.0
    poll_max_attempts: int = 60
    poll_max_consecutive_errors: int = 5
    retry_max_attempts: int = 3
    retry_delay_seconds: float = 2.0
    request_min_interval_seconds: float = 0.0
    default_search_term: str = DEFAULT_SEARCH_TERM
    model_cache_ttl_seconds: float | None = None
    model_cache_max_entries: int | None = None
    session_backend: str = "keyring"
    session_file: Path = _DEFAULT_SESSION_FILE
    user_agent: str = DEFAULT_USER_AGENT

    def validate(self) -> None:
        """Validate configuration values before components are built."""

        for field_name in ("api_base_url", "cdn_origin", "legacy_storage_origin"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.startswith(("https://", "http://")):
                raise ValueError(f"`{field_name}` must be an absolute http(s) URL.")
        for field_name in ("timeout_seconds", "poll_interval_seconds"):
            if getattr(self, field_name) <= 0:
                raise ValueError(f"`{field_name}` must be a positive number.")
        for field_name in ("poll_max_attempts", "poll_max_consecutive_errors", "retry_max_attempts"):
            if getattr(self, field_name) < 1:
                raise ValueError(f"`{field_name}` must be a positive integer.")
        if self.retry_delay_seconds < 0 or self.request_min_interval_seconds < 0:
            raise ValueError("Delays and intervals must not be negative.")
        if self.model_cache_ttl_seconds is not None and self.model_cache_ttl_seconds <= 0:
            raise ValueError("`model_cache_ttl_seconds` must be a positive number.")
        if self.model_cache_max_entries is not None and self.model_cache_max_entries < 1:
            raise ValueError("`model_cache_max_entries` must be a positive integer.")
        if self.session_backend not in _SUPPORTED_SESSION_BACKENDS:
            supported = ", ".join(sorted(_SUPPORTED_SESSION_BACKENDS))
            raise ValueError(
                f"Unsupported session backend `{self.session_backend}` (expected one of: {supported})."
            )
        if normalize_optional_string(self.default_search_term) is None:
            raise ValueError("`default_search_term` must be a non-empty string.")


_FLOAT_KEYS = frozenset(
    {
        "timeout_seconds",
        "poll_interval_seconds",
        "model_cache_ttl_seconds",
    }
)
_NON_NEGATIVE_FLOAT_KEYS = frozenset({"retry_delay_seconds", "request_min_interval_seconds"})
_INT_KEYS = frozenset(
    {
        "poll_max_attempts",
        "poll_max_consecutive_errors",
        "retry_max_attempts",
        "model_cache_max_entries",
    }
)
_PATH_KEYS = frozenset({"session_file"})


class ConfigLoader:
    """Factory methods for creating `RelayConfig` from external sources."""

    _SUPPORTED_KEYS = frozenset(item.name for item in fields(RelayConfig))

    @staticmethod
    def from_yaml(path: Path) -> RelayConfig:
        """Create a validated config from a YAML file."""

        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return ConfigLoader.from_mapping(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> RelayConfig:
        """Create a validated config from `TTSRELAY_*` environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        payload = {
            key[len(_ENV_PREFIX):].lower(): value
            for key, value in env_map.items()
            if key.startswith(_ENV_PREFIX)
            and key[len(_ENV_PREFIX):].lower() in ConfigLoader._SUPPORTED_KEYS
            and normalize_optional_string(value) is not None
        }
        return ConfigLoader.from_mapping(payload, source_label="environment")

    @staticmethod
    def load(path: Path | None = None, env: Mapping[str, str] | None = None) -> RelayConfig:
        """Load YAML values when a path is given, then apply environment overrides."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        payload: dict[str, Any] = {}
        if path is not None:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            if not isinstance(raw, Mapping):
                raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
            ConfigLoader._validate_keys(raw, f"YAML `{path}`")
            payload.update(raw)
        for key, value in env_map.items():
            name = key[len(_ENV_PREFIX):].lower() if key.startswith(_ENV_PREFIX) else None
            if name in ConfigLoader._SUPPORTED_KEYS and normalize_optional_string(value) is not None:
                payload[name] = value
        return ConfigLoader.from_mapping(payload, source_label="configuration")

    @staticmethod
    def from_mapping(payload: Mapping[str, Any], source_label: str = "mapping") -> RelayConfig:
        """Build a validated config from a normalized mapping payload."""

        ConfigLoader._validate_keys(payload, source_label)
        values: dict[str, Any] = {}
        for key, raw_value in payload.items():
            if raw_value is None or normalize_optional_string(raw_value) is None:
                continue
            values[key] = ConfigLoader._coerce(key, raw_value, source_label)
        config = RelayConfig(**values)
        config.validate()
        return config

    @staticmethod
    def _validate_keys(payload: Mapping[str, Any], source_label: str) -> None:
        unknown = sorted(str(key) for key in set(payload).difference(ConfigLoader._SUPPORTED_KEYS))
        if unknown:
            key_list = ", ".join(unknown)
            raise ValueError(f"{source_label} includes unsupported key(s): {key_list}.")

    @staticmethod
    def _coerce(key: str, raw_value: Any, source_label: str) -> Any:
        """Convert one raw value into the type of its config field."""

        try:
            if key in _FLOAT_KEYS:
                return float(parse_positive_number(raw_value, key))
            if key in _INT_KEYS:
                return int(parse_positive_number(raw_value, key, integer=True))
            if key in _NON_NEGATIVE_FLOAT_KEYS:
                if isinstance(raw_value, bool):
                    raise ValueError(f"`{key}` must be a non-negative number.")
                parsed = float(str(raw_value).strip())
                if parsed < 0:
                    raise ValueError(f"`{key}` must be a non-negative number.")
                return parsed
        except ValueError as exc:
            raise ValueError(f"{source_label}: {exc}") from exc
        normalized = normalize_optional_string(raw_value)
        if key in _PATH_KEYS:
            return Path(normalized).expanduser()
        if key == "session_backend":
            return normalized.lower()
        return normalized
