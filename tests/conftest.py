from __future__ import annotations

import pytest

from adapters.memory_state import InMemoryRequestStore, InMemoryStateManager, RecordingAccountEvents
from core.config import AppSettings
from core.services.keyring import CustodialKeyring
from tests.fakes import CapturingRenderer, FakeClientFactory


@pytest.fixture
def state() -> InMemoryStateManager:
    return InMemoryStateManager()


@pytest.fixture
def request_store() -> InMemoryRequestStore:
    return InMemoryRequestStore()


@pytest.fixture
def notifier() -> RecordingAccountEvents:
    return RecordingAccountEvents()


@pytest.fixture
def renderer() -> CapturingRenderer:
    return CapturingRenderer()


@pytest.fixture
def factory() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(_env_file=None, dev_mode=False, http_timeout_seconds=5)


@pytest.fixture
def dev_settings() -> AppSettings:
    return AppSettings(_env_file=None, dev_mode=True, http_timeout_seconds=5)


@pytest.fixture
def keyring(state, request_store, notifier, renderer, factory, settings) -> CustodialKeyring:
    return CustodialKeyring(
        state,
        request_store,
        notifier,
        renderer,
        settings=settings,
        client_factory=factory,
        clock_ms=lambda: 1_700_000_000_000,
    )


@pytest.fixture
def dev_keyring(state, request_store, notifier, renderer, factory, dev_settings) -> CustodialKeyring:
    return CustodialKeyring(
        state,
        request_store,
        notifier,
        renderer,
        settings=dev_settings,
        client_factory=factory,
        clock_ms=lambda: 1_700_000_000_000,
    )
