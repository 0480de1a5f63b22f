import asyncio
from typing import Protocol, runtime_checkable

import httpx
from pydantic import ValidationError

from .config import ExecutorSettings
from .events import Event
from .exceptions import ConfigurationError, TokenRefreshError
from .log_config import logger
from .models import AuthenticationResponse
from .tokens import TokenStore


@runtime_checkable
class TokenRefresher(Protocol):
    """Protocol for the component that performs the refresh-token exchange.

    On success the token store holds a new token pair. On failure ``refresh()``
    raises and ``refresh_failed`` is emitted.
    """

    @property
    def refresh_failed(self) -> Event:
        """Emitted every time a refresh attempt fails."""
        ...

    async def refresh(self) -> None:
        """
        Exchanges the stored refresh token for a new token pair.

        Raises:
            Exception: Any failure; the executor propagates it unchanged.
        """
        ...


@runtime_checkable
class WritableTokenStore(TokenStore, Protocol):
    """A TokenStore that can also persist a new token pair."""

    def save_tokens(self, token_response: AuthenticationResponse) -> None: ...


class RefreshTokenRefresher:
    """Implements TokenRefresher by POSTing the refresh token to a token endpoint.

    The request body is ``{"refreshToken": "<token>"}`` and the response must
    be an ``AuthenticationResponse``. A rejection by the endpoint (4xx) wipes
    the token store, since the session cannot be recovered; transient network
    failures leave the stored tokens alone.

    Attributes:
        refresh_failed: Event emitted on every failed refresh.
        _token_store: Store read for the refresh token and written on success.
        _refresh_url: Absolute URL of the refresh endpoint.
        _token_client: Lazily created httpx.AsyncClient for refresh calls.
    """

    def __init__(
        self,
        token_store: WritableTokenStore,
        refresh_url: str | None,
        *,
        http_client: httpx.AsyncClient | None = None,
        settings: ExecutorSettings | None = None,
    ):
        if not refresh_url:
            raise ConfigurationError("RefreshTokenRefresher requires a 'refresh_url'.")
        self._token_store = token_store
        self._refresh_url: str = refresh_url
        self._settings = settings or ExecutorSettings()
        self._should_close_client = http_client is None
        self._token_client: httpx.AsyncClient | None = http_client
        self.refresh_failed = Event("refresh_failed")
        logger.debug("RefreshTokenRefresher initialized.")

    def _get_token_client(self) -> httpx.AsyncClient:
        if self._token_client is None:
            self._token_client = httpx.AsyncClient(
                timeout=self._settings.refresh_timeout,
                headers={"User-Agent": self._settings.user_agent},
            )
        return self._token_client

    def _fail(self, message: str, *, wipe: bool) -> TokenRefreshError:
        logger.error(message)
        if wipe:
            self._token_store.wipe_tokens()
        self.refresh_failed.emit()
        return TokenRefreshError(message)

    async def refresh(self) -> None:
        refresh_token = self._token_store.refresh_token
        if not refresh_token:
            raise self._fail("Cannot refresh: no refresh token stored.", wipe=True)

        logger.info(f"Refreshing access token at {self._refresh_url}")
        client = self._get_token_client()
        try:
            response = await client.post(
                self._refresh_url,
                json={"refreshToken": refresh_token},
                headers={"Cache-Control": "no-cache"},
            )
            response.raise_for_status()
            token_response = AuthenticationResponse.model_validate_json(
                response.content
            )
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            raise self._fail(
                f"Token refresh rejected with status {status_code}.",
                wipe=status_code < 500,
            ) from e
        except ValidationError as e:
            raise self._fail(
                f"Token refresh returned an invalid body: {e}", wipe=False
            ) from e
        except httpx.RequestError as e:
            raise self._fail(f"Token refresh request failed: {e}", wipe=False) from e

        self._token_store.save_tokens(token_response)
        logger.info("Successfully refreshed access token.")

    async def aclose(self) -> None:
        """Closes the internal HTTP client used for refresh calls."""
        if self._should_close_client and self._token_client is not None:
            await self._token_client.aclose()
            self._token_client = None
            logger.debug("RefreshTokenRefresher internal client closed.")


def _retrieve_exception(task: asyncio.Task[None]) -> None:
    # Every waiter may have been cancelled before the shared task failed
    if not task.cancelled():
        task.exception()


class SingleFlightRefresher:
    """Wraps a TokenRefresher so concurrent ``refresh()`` calls share one exchange.

    Every caller that arrives while a refresh is in flight awaits the same
    task and receives its result or exception. Once it settles, the next call
    starts a new exchange. The executor never adds this wrapper on its own;
    pass it in explicitly when many requests may hit 401 at the same time.
    """

    def __init__(self, inner: TokenRefresher):
        self._inner = inner
        self._in_flight: asyncio.Task[None] | None = None

    @property
    def refresh_failed(self) -> Event:
        return self._inner.refresh_failed

    async def refresh(self) -> None:
        if self._in_flight is None:
            self._in_flight = asyncio.ensure_future(self._run())
            self._in_flight.add_done_callback(_retrieve_exception)
        else:
            logger.debug("Joining in-flight token refresh.")
        # shield: one cancelled caller must not cancel the exchange for the rest
        await asyncio.shield(self._in_flight)

    async def _run(self) -> None:
        try:
            await self._inner.refresh()
        finally:
            self._in_flight = None

    async def aclose(self) -> None:
        aclose = getattr(self._inner, "aclose", None)
        if callable(aclose):
            await aclose()
