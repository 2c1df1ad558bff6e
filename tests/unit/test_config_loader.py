"""Unit tests for YAML and environment configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from ttsrelay.config import ConfigLoader, RelayConfig


def test_defaults_point_at_provider_origins() -> None:
    """Default config should validate and target the public provider hosts."""

    config = RelayConfig()
    config.validate()

    assert config.api_base_url == "https://api.fakeyou.com"
    assert config.cdn_origin == "https://cdn-2.fakeyou.com"
    assert config.legacy_storage_origin == "https://storage.googleapis.com/vocodes-public"
    assert config.poll_max_consecutive_errors == 5
    assert config.model_cache_ttl_seconds is None
    assert config.session_backend == "keyring"


def test_from_yaml_coerces_typed_values(tmp_path: Path) -> None:
    """YAML values should be converted into the field types of `RelayConfig`."""

    config_path = tmp_path / "relay.yaml"
    config_path.write_text(
        "\n".join(
            [
                "poll_interval_seconds: '0.5'",
                "poll_max_attempts: 12",
                "retry_delay_seconds: 0",
                "model_cache_max_entries: 4",
                "session_backend: FILE",
                f"session_file: {tmp_path / 'session.json'}",
                "default_search_term: mario",
            ]
        ),
        encoding="utf-8",
    )

    config = ConfigLoader.from_yaml(config_path)

    assert config.poll_interval_seconds == 0.5
    assert config.poll_max_attempts == 12
    assert config.retry_delay_seconds == 0.0
    assert config.model_cache_max_entries == 4
    assert config.session_backend == "file"
    assert config.session_file == tmp_path / "session.json"
    assert config.default_search_term == "mario"


def test_from_yaml_accepts_empty_file(tmp_path: Path) -> None:
    config_path = tmp_path / "empty.yaml"
    config_path.write_text("", encoding="utf-8")

    assert ConfigLoader.from_yaml(config_path) == RelayConfig()


def test_from_yaml_rejects_unknown_keys(tmp_path: Path) -> None:
    """Unknown keys should fail loudly instead of being ignored."""

    config_path = tmp_path / "relay.yaml"
    config_path.write_text("poll_interval: 3\nvoice: mario\n", encoding="utf-8")

    with pytest.raises(ValueError, match="unsupported key\\(s\\): poll_interval, voice"):
        ConfigLoader.from_yaml(config_path)


def test_from_yaml_rejects_non_mapping_document(tmp_path: Path) -> None:
    config_path = tmp_path / "relay.yaml"
    config_path.write_text("- one\n- two\n", encoding="utf-8")

    with pytest.raises(ValueError, match="top-level mapping"):
        ConfigLoader.from_yaml(config_path)


def test_from_env_reads_prefixed_variables_only() -> None:
    """Only `TTSRELAY_*` variables naming known fields are considered."""

    config = ConfigLoader.from_env(
        {
            "TTSRELAY_RETRY_MAX_ATTEMPTS": "5",
            "TTSRELAY_API_BASE_URL": "http://localhost:8080",
            "TTSRELAY_UNKNOWN": "ignored",
            "TTSRELAY_MODEL_CACHE_TTL_SECONDS": "   ",
            "OTHER_RETRY_MAX_ATTEMPTS": "9",
        }
    )

    assert config.retry_max_attempts == 5
    assert config.api_base_url == "http://localhost:8080"
    assert config.model_cache_ttl_seconds is None


def test_load_applies_env_overrides_on_top_of_yaml(tmp_path: Path) -> None:
    """Environment variables override YAML values for the same key."""

    config_path = tmp_path / "relay.yaml"
    config_path.write_text("poll_max_attempts: 10\ntimeout_seconds: 12\n", encoding="utf-8")

    config = ConfigLoader.load(config_path, env={"TTSRELAY_POLL_MAX_ATTEMPTS": "20"})

    assert config.poll_max_attempts == 20
    assert config.timeout_seconds == 12.0


def test_load_without_path_uses_env_only() -> None:
    config = ConfigLoader.load(env={})

    assert config == RelayConfig()


def test_load_raises_for_missing_yaml_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        ConfigLoader.load(tmp_path / "missing.yaml", env={})


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({"poll_max_attempts": "0"}, "`poll_max_attempts` must be a positive integer"),
        ({"timeout_seconds": "soon"}, "`timeout_seconds` must be a positive number"),
        ({"retry_delay_seconds": "-1"}, "`retry_delay_seconds` must be a non-negative number"),
        ({"session_backend": "vault"}, "Unsupported session backend `vault`"),
        ({"cdn_origin": "cdn.example.com"}, "`cdn_origin` must be an absolute http\\(s\\) URL"),
    ],
)
def test_from_mapping_rejects_invalid_values(payload: dict[str, str], message: str) -> None:
    """Invalid values should fail with field-specific messages."""

    with pytest.raises(ValueError, match=message):
        ConfigLoader.from_mapping(payload, source_label="test")
