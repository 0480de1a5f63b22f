"""Tests for the token refreshers in tokenwheel."""

import asyncio
import gc
import json

import httpx
import pytest
import pytest_asyncio

from fakes import BASE_URL, FakeRefresher
from tokenwheel.auth import (
    RefreshTokenRefresher,
    SingleFlightRefresher,
    TokenRefresher,
    WritableTokenStore,
)
from tokenwheel.exceptions import ConfigurationError, TokenRefreshError
from tokenwheel.models import LoginMethod
from tokenwheel.tokens import InMemoryTokenStore

REFRESH_URL = f"{BASE_URL}/auth/refresh"


@pytest_asyncio.fixture
async def refresher(token_store, settings):
    refresher = RefreshTokenRefresher(token_store, REFRESH_URL, settings=settings)
    yield refresher
    await refresher.aclose()


def record(event):
    calls = []
    event.subscribe(lambda: calls.append(True))
    return calls


def test_refresher_requires_refresh_url(token_store):
    with pytest.raises(ConfigurationError, match="requires a 'refresh_url'"):
        RefreshTokenRefresher(token_store, None)


def test_implementations_satisfy_protocols(token_store):
    assert isinstance(token_store, WritableTokenStore)
    assert isinstance(RefreshTokenRefresher(token_store, REFRESH_URL), TokenRefresher)
    assert isinstance(SingleFlightRefresher(FakeRefresher()), TokenRefresher)


@pytest.mark.asyncio
async def test_refresh_success_saves_tokens(refresher, token_store, httpx_mock):
    httpx_mock.add_response(
        method="POST",
        url=REFRESH_URL,
        json={"accessToken": "access-2", "refreshToken": "refresh-2", "provider": "google"},
    )

    await refresher.refresh()

    sent = httpx_mock.get_requests()
    assert len(sent) == 1
    assert json.loads(sent[0].content) == {"refreshToken": "refresh-1"}
    assert token_store.access_token == "access-2"
    assert token_store.refresh_token == "refresh-2"
    assert token_store.last_login_provider is LoginMethod.GOOGLE


@pytest.mark.parametrize("status_code", [400, 401, 403])
@pytest.mark.asyncio
async def test_refresh_rejected_wipes_tokens(refresher, token_store, httpx_mock, status_code):
    httpx_mock.add_response(method="POST", url=REFRESH_URL, status_code=status_code)
    failures = record(refresher.refresh_failed)
    wipes = record(token_store.tokens_wiped)

    with pytest.raises(TokenRefreshError, match=f"status {status_code}"):
        await refresher.refresh()

    assert failures == [True]
    assert wipes == [True]
    assert token_store.access_token is None


@pytest.mark.asyncio
async def test_refresh_server_error_keeps_tokens(refresher, token_store, httpx_mock):
    httpx_mock.add_response(method="POST", url=REFRESH_URL, status_code=503)
    failures = record(refresher.refresh_failed)

    with pytest.raises(TokenRefreshError):
        await refresher.refresh()

    assert failures == [True]
    assert token_store.access_token == "access-1"


@pytest.mark.asyncio
async def test_refresh_invalid_body(refresher, token_store, httpx_mock):
    httpx_mock.add_response(method="POST", url=REFRESH_URL, json={"token": "x"})

    with pytest.raises(TokenRefreshError, match="invalid body"):
        await refresher.refresh()

    assert token_store.access_token == "access-1"


@pytest.mark.asyncio
async def test_refresh_network_error(refresher, token_store, httpx_mock):
    httpx_mock.add_exception(httpx.ConnectError("connection refused"))
    failures = record(refresher.refresh_failed)

    with pytest.raises(TokenRefreshError, match="request failed"):
        await refresher.refresh()

    assert failures == [True]
    assert token_store.refresh_token == "refresh-1"


@pytest.mark.asyncio
async def test_refresh_without_refresh_token_fails_without_request(settings, httpx_mock):
    store = InMemoryTokenStore(access_token="access-1")
    refresher = RefreshTokenRefresher(store, REFRESH_URL, settings=settings)
    failures = record(refresher.refresh_failed)

    with pytest.raises(TokenRefreshError, match="no refresh token"):
        await refresher.refresh()

    assert failures == [True]
    assert httpx_mock.get_requests() == []
    assert store.access_token is None


@pytest.mark.asyncio
async def test_injected_client_is_not_closed(token_store, settings):
    client = httpx.AsyncClient()
    refresher = RefreshTokenRefresher(
        token_store, REFRESH_URL, http_client=client, settings=settings
    )

    await refresher.aclose()

    assert not client.is_closed
    await client.aclose()


@pytest.mark.asyncio
async def test_single_flight_coalesces_concurrent_refreshes():
    inner = FakeRefresher(delay=0.01)
    refresher = SingleFlightRefresher(inner)

    await asyncio.gather(*(refresher.refresh() for _ in range(5)))
    assert inner.calls == 1

    # A refresh after the first settled starts a new exchange
    await refresher.refresh()
    assert inner.calls == 2


@pytest.mark.asyncio
async def test_single_flight_shares_failure_with_all_callers():
    inner = FakeRefresher(error=TokenRefreshError("rejected"), delay=0.01)
    refresher = SingleFlightRefresher(inner)

    results = await asyncio.gather(
        refresher.refresh(), refresher.refresh(), return_exceptions=True
    )

    assert inner.calls == 1
    assert all(isinstance(r, TokenRefreshError) for r in results)
    assert refresher.refresh_failed is inner.refresh_failed


@pytest.mark.asyncio
async def test_single_flight_failure_after_all_callers_cancelled_is_retrieved():
    loop = asyncio.get_running_loop()
    unhandled = []
    loop.set_exception_handler(lambda _loop, context: unhandled.append(context))
    inner = FakeRefresher(error=TokenRefreshError("rejected"), delay=0.01)
    refresher = SingleFlightRefresher(inner)

    try:
        waiter = asyncio.ensure_future(refresher.refresh())
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        # The shared exchange keeps running and fails on its own
        await asyncio.sleep(0.05)
        gc.collect()
    finally:
        loop.set_exception_handler(None)

    assert inner.calls == 1
    assert unhandled == []
