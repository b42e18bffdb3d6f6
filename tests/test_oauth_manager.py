from __future__ import annotations

import asyncio
from pathlib import Path
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from oauth import ConfigurationError, OAuthManager, OAuthState
from utils.events import AUTH_SUCCESS_EVENT, DISCONNECTED_EVENT
from utils.storage import TokenRecord
from fakes import FakeBrowser, FakeCallbackServer, TokenEndpoint


def query_of(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


# Authorization flow


@pytest.mark.asyncio
async def test_start_without_client_id_raises_before_listening(
    storage, unconfigured_credentials, events, browser
) -> None:
    manager = OAuthManager(
        storage=storage,
        credentials=unconfigured_credentials,
        events=events,
        browser=browser,
        server_factory=FakeCallbackServer,
    )

    with pytest.raises(ConfigurationError, match="HUBSPOT_CLIENT_ID"):
        await manager.start()

    assert FakeCallbackServer.instances == []
    assert browser.opened == []
    assert manager.state is OAuthState.IDLE


@pytest.mark.asyncio
async def test_start_opens_consent_page(make_manager, browser) -> None:
    manager = make_manager()

    await manager.start()

    assert len(FakeCallbackServer.instances) == 1
    assert FakeCallbackServer.instances[0].running
    assert manager.state is OAuthState.AWAITING_CONSENT
    assert manager.is_listening

    (url,) = browser.opened
    assert url.startswith("https://app.hubspot.com/oauth/authorize?")
    params = query_of(url)
    assert params["client_id"] == "client-id"
    assert params["redirect_uri"] == "http://localhost:8642/hubspot/callback"
    assert params["response_type"] == "code"
    assert params["scope"].split(" ") == [
        "crm.objects.contacts.read",
        "crm.objects.contacts.write",
        "settings.users.read",
        "oauth",
        "timeline",
    ]


@pytest.mark.asyncio
async def test_repeat_start_reopens_closed_browser_without_second_server(make_manager, browser) -> None:
    manager = make_manager()

    await manager.start()
    await manager.start()

    assert len(FakeCallbackServer.instances) == 1
    assert len(browser.opened) == 2


@pytest.mark.asyncio
async def test_repeat_start_leaves_open_browser_alone(make_manager) -> None:
    browser = FakeBrowser(stays_open=True)
    manager = make_manager(browser=browser)

    await manager.start()
    await manager.start()

    assert len(FakeCallbackServer.instances) == 1
    assert len(browser.opened) == 1


@pytest.mark.asyncio
async def test_bind_failure_propagates_and_stays_idle(make_manager, browser) -> None:
    class BusyPortServer(FakeCallbackServer):
        async def start(self) -> None:
            raise OSError(98, "Address already in use")

    manager = make_manager(server_factory=BusyPortServer)

    with pytest.raises(OSError):
        await manager.start()

    assert manager.state is OAuthState.IDLE
    assert manager.server is None
    assert browser.opened == []


@pytest.mark.asyncio
async def test_successful_redirect_connects(make_manager, storage, events, browser, token_endpoint, clock) -> None:
    manager = make_manager()
    await manager.start()
    server = FakeCallbackServer.instances[0]

    result = await server.deliver("auth-code")

    assert result.status == 200
    assert result.message == "HubSpot Auth successful! You may close this window."
    assert token_endpoint.requests == [
        {
            "grant_type": "authorization_code",
            "client_id": "client-id",
            "client_secret": "client-secret",
            "redirect_uri": "http://localhost:8642/hubspot/callback",
            "code": "auth-code",
        }
    ]
    tokens = storage.get_tokens()
    assert tokens.access_token == "new-access"
    assert tokens.refresh_token == "new-refresh"
    assert tokens.expires_in == 1800
    assert tokens.created_at is not None
    assert Path(storage.token_file).exists()
    assert manager.api_client is not None
    assert manager.is_connected
    assert events.events == [(AUTH_SUCCESS_EVENT, True)]
    assert browser.closed == 1
    assert manager.state is OAuthState.IDLE
    assert manager.server is None


@pytest.mark.asyncio
async def test_redirect_without_client_secret_fails(storage, config_store, events, browser, token_endpoint, monkeypatch) -> None:
    from config import CredentialResolver

    monkeypatch.setenv("HUBSPOT_CLIENT_ID", "client-id")
    manager = OAuthManager(
        storage=storage,
        credentials=CredentialResolver(config_store),
        events=events,
        browser=browser,
        transport=token_endpoint.transport,
        server_factory=FakeCallbackServer,
    )
    await manager.start()

    result = await FakeCallbackServer.instances[0].deliver("auth-code")

    assert result.status == 500
    assert "HUBSPOT_CLIENT_ID" in result.message and "HUBSPOT_CLIENT_SECRET" in result.message
    assert token_endpoint.requests == []
    assert storage.get_tokens() is None
    assert events.events == []
    assert manager.state is OAuthState.IDLE


@pytest.mark.asyncio
async def test_rejected_code_stores_nothing(make_manager, storage, events) -> None:
    endpoint = TokenEndpoint(status=400, body={"status": "BAD_AUTH_CODE", "message": "missing or invalid auth code"})
    manager = make_manager(transport=endpoint.transport)
    await manager.start()

    result = await FakeCallbackServer.instances[0].deliver("expired-code")

    assert result.status == 500
    assert result.message == "OAuth token exchange failed."
    assert storage.get_tokens() is None
    assert manager.api_client is None
    assert events.events == []


@pytest.mark.asyncio
async def test_unreachable_token_endpoint_stores_nothing(make_manager, storage) -> None:
    def offline(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    manager = make_manager(transport=httpx.MockTransport(offline))
    await manager.start()

    result = await FakeCallbackServer.instances[0].deliver("auth-code")

    assert result.status == 500
    assert storage.get_tokens() is None


@pytest.mark.asyncio
async def test_malformed_token_response_stores_nothing(make_manager, storage) -> None:
    endpoint = TokenEndpoint(body={"token_type": "bearer"})
    manager = make_manager(transport=endpoint.transport)
    await manager.start()

    result = await FakeCallbackServer.instances[0].deliver("auth-code")

    assert result.status == 500
    assert storage.get_tokens() is None


@pytest.mark.asyncio
async def test_stop_is_safe_when_idle(make_manager) -> None:
    manager = make_manager()

    await manager.stop()
    await manager.start()
    await manager.stop()
    await manager.stop()

    assert manager.state is OAuthState.IDLE
    assert FakeCallbackServer.instances[0].running is False


@pytest.mark.asyncio
async def test_full_flow_over_real_listener(make_manager, real_server_factory, storage, browser) -> None:
    manager = make_manager(server_factory=real_server_factory)
    await manager.start()
    port = manager.server.bound_port

    async with httpx.AsyncClient(trust_env=False) as client:
        response = await client.get(f"http://127.0.0.1:{port}/hubspot/callback", params={"code": "real-code"})

    assert response.status_code == 200
    assert await manager.wait_for_authorization(timeout=5) is True
    assert manager.state is OAuthState.IDLE
    assert storage.get_access_token() == "new-access"


@pytest.mark.asyncio
async def test_wait_for_authorization_times_out_and_stops(make_manager) -> None:
    class SlowServer(FakeCallbackServer):
        async def wait_closed(self, timeout=None) -> bool:
            await asyncio.sleep(0)
            return False

    manager = make_manager(server_factory=SlowServer)
    await manager.start()

    assert await manager.wait_for_authorization(timeout=0.01) is False
    assert manager.state is OAuthState.IDLE


# Refresh


@pytest.mark.asyncio
async def test_refresh_replaces_tokens(make_manager, storage, stored_tokens, token_endpoint) -> None:
    manager = make_manager()

    assert await manager.refresh_token() is True

    assert token_endpoint.requests == [
        {
            "grant_type": "refresh_token",
            "client_id": "client-id",
            "client_secret": "client-secret",
            "refresh_token": "refresh-1",
        }
    ]
    assert storage.get_access_token() == "new-access"
    assert storage.get_refresh_token() == "new-refresh"


@pytest.mark.asyncio
async def test_refresh_keeps_old_refresh_token_when_omitted(make_manager, storage, stored_tokens) -> None:
    endpoint = TokenEndpoint(body={"access_token": "new-access", "expires_in": 1800})
    manager = make_manager(transport=endpoint.transport)

    assert await manager.refresh_token() is True

    assert storage.get_access_token() == "new-access"
    assert storage.get_refresh_token() == "refresh-1"


@pytest.mark.asyncio
async def test_rejected_refresh_clears_store(make_manager, storage, stored_tokens) -> None:
    endpoint = TokenEndpoint(status=400, body={"status": "BAD_REFRESH_TOKEN", "message": "invalid refresh token"})
    manager = make_manager(transport=endpoint.transport)

    assert await manager.refresh_token() is False

    assert storage.get_tokens() is None
    assert not Path(storage.token_file).exists()


@pytest.mark.asyncio
async def test_refresh_without_refresh_token_makes_no_request(make_manager, storage, token_endpoint, clock) -> None:
    storage.save_tokens(TokenRecord(access_token="access-1", refresh_token="", expires_in=1800, created_at=clock.now))
    manager = make_manager()

    assert await manager.refresh_token() is False
    assert token_endpoint.requests == []


@pytest.mark.asyncio
async def test_refresh_without_credentials_makes_no_request(
    storage, stored_tokens, unconfigured_credentials, token_endpoint
) -> None:
    manager = OAuthManager(
        storage=storage,
        credentials=unconfigured_credentials,
        transport=token_endpoint.transport,
        server_factory=FakeCallbackServer,
        browser=FakeBrowser(),
    )

    assert await manager.refresh_token() is False
    assert token_endpoint.requests == []
    assert storage.get_access_token() == "access-1"


@pytest.mark.asyncio
async def test_refresh_if_needed_skips_fresh_token(make_manager, stored_tokens, token_endpoint, clock) -> None:
    manager = make_manager()
    clock.advance(60)

    assert await manager.refresh_token_if_needed() is True
    assert token_endpoint.requests == []


@pytest.mark.asyncio
async def test_refresh_if_needed_refreshes_expiring_token(make_manager, storage, stored_tokens, token_endpoint, clock) -> None:
    manager = make_manager()
    clock.advance(1600)

    assert await manager.refresh_token_if_needed() is True
    assert len(token_endpoint.requests) == 1
    assert storage.get_access_token() == "new-access"


@pytest.mark.asyncio
async def test_concurrent_refreshes_hit_endpoint_once(make_manager, stored_tokens, token_endpoint, clock) -> None:
    manager = make_manager()
    clock.advance(1600)

    results = await asyncio.gather(*(manager.refresh_token_if_needed() for _ in range(3)))

    assert results == [True, True, True]
    assert len(token_endpoint.requests) == 1


@pytest.mark.asyncio
async def test_refresh_if_needed_reports_failure(make_manager, storage, stored_tokens, clock) -> None:
    endpoint = TokenEndpoint(status=401, body={"message": "unauthorized"})
    manager = make_manager(transport=endpoint.transport)
    clock.advance(1790)

    assert await manager.refresh_token_if_needed() is False
    assert storage.get_tokens() is None


# Connection state


def test_manager_with_stored_tokens_is_connected(make_manager, stored_tokens) -> None:
    manager = make_manager()

    assert manager.api_client is not None
    assert manager.is_connected
    assert manager.has_valid_tokens()


def test_manager_without_tokens_is_disconnected(make_manager) -> None:
    manager = make_manager()

    assert manager.api_client is None
    assert not manager.is_connected
    assert manager.get_tokens() is None


def test_disconnect_clears_everything(make_manager, storage, stored_tokens, events) -> None:
    manager = make_manager()

    manager.disconnect()

    assert storage.get_tokens() is None
    assert not Path(storage.token_file).exists()
    assert manager.api_client is None
    assert events.events == [(DISCONNECTED_EVENT, None)]


def test_disconnect_when_not_connected(make_manager, events) -> None:
    manager = make_manager()

    manager.disconnect()
    manager.disconnect()

    assert events.events == [(DISCONNECTED_EVENT, None), (DISCONNECTED_EVENT, None)]


@pytest.mark.asyncio
async def test_non_numeric_lifetime_from_token_endpoint_stores_nothing(make_manager, storage) -> None:
    endpoint = TokenEndpoint(body={"access_token": "a", "refresh_token": "r", "expires_in": "soon"})
    manager = make_manager(transport=endpoint.transport)
    await manager.start()

    result = await FakeCallbackServer.instances[0].deliver("auth-code")

    assert result.status == 500
    assert storage.get_tokens() is None
    assert manager.has_valid_tokens() is False
