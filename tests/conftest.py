"""Shared pytest fixtures for the full ttsrelay test suite."""

from __future__ import annotations

from typing import Iterator

import keyring
from keyring.backends import fail
from loguru import logger
import pytest

from tests.provider_doubles import FakeProvider, InMemorySessionBackend
from ttsrelay.session import SessionStore


@pytest.fixture(autouse=True)
def _reset_loguru_handlers() -> Iterator[None]:
    """Drop loguru handlers added during a test so closed streams are never reused."""

    yield
    logger.remove()


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def session_backend() -> InMemorySessionBackend:
    return InMemorySessionBackend()


@pytest.fixture
def session_store(fake_provider: FakeProvider, session_backend: InMemorySessionBackend) -> SessionStore:
    """Provide a session store that has already logged in."""

    store = SessionStore(fake_provider, session_backend)
    store.authenticate("user@example.com", "secret")
    return store


@pytest.fixture
def failing_keyring() -> Iterator[None]:
    """Install keyring's fail-safe backend, as found on hosts without an OS keyring."""

    previous = keyring.get_keyring()
    keyring.set_keyring(fail.Keyring())
    yield
    keyring.set_keyring(previous)
