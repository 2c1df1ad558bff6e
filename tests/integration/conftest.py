"""Integration-test fixtures for deterministic provider behavior."""

from __future__ import annotations

from typing import Any

import pytest

from tests.provider_doubles import FakeProvider, InMemorySessionBackend
from ttsrelay.audio.download import AudioDownloader
from ttsrelay.audio.urls import AudioUrlNormalizer
from ttsrelay.jobs.poller import StatusPoller
from ttsrelay.jobs.submitter import JobSubmitter
from ttsrelay.provider import http_client
from ttsrelay.provider.retry import RetryPolicy
from ttsrelay.service import RelayService
from ttsrelay.session import SessionStore
from ttsrelay.voices.resolver import ModelResolver


@pytest.fixture(autouse=True)
def _block_network(monkeypatch: pytest.MonkeyPatch) -> None:
    """Fail loudly if an integration test reaches the real HTTP transport."""

    def _refuse(*_: object, **__: object) -> None:
        raise AssertionError("integration tests must not perform real HTTP requests")

    monkeypatch.setattr(http_client.requests, "get", _refuse)
    monkeypatch.setattr(http_client.requests, "post", _refuse)


@pytest.fixture
def relay_service(
    fake_provider: FakeProvider, session_backend: InMemorySessionBackend
) -> RelayService:
    """Build a relay service over the in-memory provider with instant retries and polls."""

    store = SessionStore(fake_provider, session_backend)
    normalizer = AudioUrlNormalizer()
    return RelayService(
        session_store=store,
        resolver=ModelResolver(fake_provider),
        submitter=JobSubmitter(
            fake_provider,
            store,
            retry_policy=RetryPolicy(max_attempts=3, delay_seconds=0.0, sleeper=lambda _: None),
        ),
        poller=StatusPoller(
            fake_provider,
            store,
            interval_seconds=0.0,
            max_attempts=5,
            max_consecutive_errors=3,
        ),
        normalizer=normalizer,
        downloader=AudioDownloader(fake_provider, normalizer),
    )


@pytest.fixture
def cli_service(monkeypatch: pytest.MonkeyPatch, relay_service: RelayService) -> RelayService:
    """Route every CLI command to `relay_service` while keeping config loading real."""

    def _from_config(config: object, **kwargs: Any) -> RelayService:
        _ = config
        _ = kwargs
        return relay_service

    monkeypatch.setattr("ttsrelay.cli.RelayService.from_config", _from_config)
    return relay_service
