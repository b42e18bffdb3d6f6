"""Pytest configuration shared across the suite."""

from __future__ import annotations

import functools
from typing import Callable

import pytest

from config import ConfigStore, CredentialResolver
from oauth import OAuthCallbackServer, OAuthManager
from utils.storage import TokenRecord, TokenStorage
from fakes import FakeBrowser, FakeCallbackServer, FakeClock, RecordingEvents, TokenEndpoint


@pytest.fixture(autouse=True)
def hubspot_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate tests from credentials in the developer's environment."""
    monkeypatch.delenv("HUBSPOT_CLIENT_ID", raising=False)
    monkeypatch.delenv("HUBSPOT_CLIENT_SECRET", raising=False)
    monkeypatch.setenv("HUBSPOT_CONTACT_EVENT_TEMPLATE_ID", "contact-template")
    monkeypatch.setenv("HUBSPOT_COMPANY_EVENT_TEMPLATE_ID", "company-template")
    FakeCallbackServer.instances = []


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token_file(tmp_path) -> str:
    return str(tmp_path / "data" / "hubspot_tokens.json")


@pytest.fixture
def storage(token_file: str, clock: FakeClock) -> TokenStorage:
    return TokenStorage(token_file, clock=clock)


@pytest.fixture
def stored_tokens(storage: TokenStorage, clock: FakeClock) -> TokenRecord:
    record = TokenRecord(
        access_token="access-1",
        refresh_token="refresh-1",
        expires_in=1800,
        created_at=clock.now,
    )
    storage.save_tokens(record)
    return record


@pytest.fixture
def config_store(tmp_path) -> ConfigStore:
    return ConfigStore(str(tmp_path / "config.json"))


@pytest.fixture
def credentials(config_store: ConfigStore, monkeypatch: pytest.MonkeyPatch) -> CredentialResolver:
    monkeypatch.setenv("HUBSPOT_CLIENT_ID", "client-id")
    monkeypatch.setenv("HUBSPOT_CLIENT_SECRET", "client-secret")
    return CredentialResolver(config_store)


@pytest.fixture
def unconfigured_credentials(config_store: ConfigStore) -> CredentialResolver:
    return CredentialResolver(config_store)


@pytest.fixture
def browser() -> FakeBrowser:
    return FakeBrowser()


@pytest.fixture
def events() -> RecordingEvents:
    return RecordingEvents()


@pytest.fixture
def token_endpoint() -> TokenEndpoint:
    return TokenEndpoint()


@pytest.fixture
def make_manager(storage, credentials, events, browser, token_endpoint) -> Callable[..., OAuthManager]:
    def factory(**overrides) -> OAuthManager:
        kwargs = dict(
            storage=storage,
            credentials=credentials,
            events=events,
            browser=browser,
            transport=token_endpoint.transport,
            server_factory=FakeCallbackServer,
        )
        kwargs.update(overrides)
        return OAuthManager(**kwargs)

    return factory


@pytest.fixture
def real_server_factory() -> Callable[..., OAuthCallbackServer]:
    return functools.partial(OAuthCallbackServer, host="127.0.0.1", port=0, idle_timeout=None)
