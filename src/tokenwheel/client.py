"""Authenticated request execution for the tokenwheel library.

This module provides the RequestExecutor, which turns request descriptors into
HTTP requests, authenticates them with the current bearer token, classifies
the responses and, when the server answers 401, refreshes the tokens and
retries exactly once.
"""

from typing import Any, Self, TypeVar

import httpx
import tenacity
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_none,
)

from .auth import TokenRefresher
from .config import ExecutorSettings, get_settings
from .exceptions import MissingCredentialsError, UnauthorizedError
from .log_config import logger
from .request import RequestConvertible
from .responses import classify_response
from .tokens import TokenStore
from .transport import HttpxTransport, Transport
from .types import EmptyResponse

T = TypeVar("T")

MAX_ATTEMPTS = 2
"""Initial attempt plus the single retry after a token refresh."""


def _is_server_unauthorized(exc: BaseException) -> bool:
    # Missing local credentials cannot be fixed by a refresh.
    return isinstance(exc, UnauthorizedError) and not isinstance(
        exc, MissingCredentialsError
    )


class RequestExecutor:
    """Executes request descriptors with bearer authentication and one refresh retry.

    Every call runs the same linear pipeline: build the request, add the
    Authorization header (when authenticated), add the fixed and common
    headers, send it, and classify the response. A 401 from the server
    triggers one ``token_refresher.refresh()`` followed by a rebuilt request
    that reads the tokens again. Whatever the second attempt yields is final.

    The executor keeps no state between calls, so concurrent calls are safe.
    Concurrent 401s each trigger their own refresh unless the refresher is
    wrapped in ``SingleFlightRefresher``.

    Attributes:
        _token_refresher: Collaborator performing the refresh exchange.
        _token_store: Collaborator holding the current tokens.
        _common_headers: Headers added to every request after the fixed ones.
        _transport: Transport used to send requests.
        _should_close_transport: Whether this executor created, and so owns, the transport.
    """

    FIXED_HEADERS: dict[str, str] = {
        "Content-Type": "application/json",
        "Cache-Control": "no-cache",
    }
    """Headers set on every request, before the common headers."""

    def __init__(
        self,
        token_refresher: TokenRefresher,
        token_store: TokenStore,
        *,
        common_headers: dict[str, str] | None = None,
        transport: Transport | None = None,
        settings: ExecutorSettings | None = None,
    ):
        """Initialize the RequestExecutor.

        Args:
            token_refresher: Performs the refresh exchange after a 401. The
                executor takes ownership: ``aclose()`` also closes it when it
                defines an ``aclose()`` of its own.
            token_store: Provides the access and refresh tokens.
            common_headers: Headers added to every request. Merged over the
                ``common_headers`` setting.
            transport: Optional transport. If None, an HttpxTransport is
                created from the settings and closed by ``aclose()``.
            settings: Optional settings. If None, the cached settings are used.
        """
        self._settings = settings or get_settings()
        self._token_refresher = token_refresher
        self._token_store = token_store
        self._common_headers: dict[str, str] = {
            **self._settings.common_headers,
            **(common_headers or {}),
        }

        self._should_close_transport = transport is None
        self._transport: Transport = transport or HttpxTransport(self._settings)

        logger.debug(
            f"RequestExecutor initialized with {len(self._common_headers)} common header(s) "
            f"and transport {type(self._transport).__name__}."
        )

    @property
    def common_headers(self) -> dict[str, str]:
        return dict(self._common_headers)

    def _add_authentication_header(self, request: httpx.Request) -> None:
        access_token = self._token_store.access_token
        if access_token is None or self._token_store.refresh_token is None:
            logger.warning(
                f"Missing access or refresh token for {request.method} {request.url}; wiping tokens."
            )
            self._token_store.wipe_tokens()
            raise MissingCredentialsError(
                "Authenticated request without stored tokens.", request=request
            )
        request.headers["Authorization"] = f"Bearer {access_token}"

    def _build_request(
        self, descriptor: RequestConvertible, authenticated: bool
    ) -> httpx.Request:
        """Builds a fresh, fully-headed request for one attempt.

        Raises:
            RequestConstructionError: If the descriptor has an invalid URL.
            MissingCredentialsError: If authenticated and tokens are missing.
        """
        request = descriptor.as_request()
        if authenticated:
            self._add_authentication_header(request)

        for name, value in self.FIXED_HEADERS.items():
            request.headers[name] = value
        for name, value in self._common_headers.items():
            request.headers[name] = value
        return request

    async def _attempt(
        self,
        descriptor: RequestConvertible,
        authenticated: bool,
        response_model: type[T],
    ) -> T:
        request = self._build_request(descriptor, authenticated)
        logger.trace(f"Request Headers: {request.headers.keys()}")
        response = await self._transport.send(request)
        return classify_response(response, response_model)

    async def _refresh_before_retry(self, retry_state: tenacity.RetryCallState) -> None:
        """Refreshes the tokens between the first attempt and the retry.

        An exception raised here propagates to the caller of ``request()``
        instead of the original UnauthorizedError.
        """
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.info(
            f"Unauthorized after attempt {retry_state.attempt_number} ({exc}); "
            "refreshing tokens and retrying once."
        )
        try:
            await self._token_refresher.refresh()
        except Exception as e:
            logger.error(f"Token refresh failed, giving up on request: {e}")
            raise

    async def _execute(
        self,
        descriptor: RequestConvertible,
        response_model: type[T],
        authenticated: bool,
    ) -> T:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(MAX_ATTEMPTS),
            wait=wait_none(),
            retry=retry_if_exception(_is_server_unauthorized),
            before_sleep=self._refresh_before_retry,
            reraise=True,
        )
        try:
            result = await retrying(
                self._attempt, descriptor, authenticated, response_model
            )
        except Exception as e:
            logger.debug(
                f"Request {descriptor.method} {descriptor.path} failed after "
                f"{retrying.statistics.get('attempt_number', 1)} attempt(s): {type(e).__name__}"
            )
            raise
        logger.debug(
            f"Request {descriptor.method} {descriptor.path} succeeded after "
            f"{retrying.statistics.get('attempt_number', 1)} attempt(s)."
        )
        return result

    async def request(
        self,
        descriptor: RequestConvertible,
        response_model: type[T],
        *,
        authenticated: bool = True,
    ) -> T:
        """Execute a request and decode the response body into ``response_model``.

        Args:
            descriptor: The endpoint call to execute.
            response_model: Any type pydantic can validate JSON into (a
                BaseModel subclass, ``dict[str, Any]``, ``list[Model]``, ...).
                ``EmptyResponse`` skips decoding and returns ``EMPTY``.
            authenticated: Whether to send the bearer token.

        Returns:
            The decoded response body.

        Raises:
            MissingCredentialsError: Authenticated and a token is missing; no
                request is sent.
            UnauthorizedError: The server answered 401 again after a refresh.
            SerializationError: A 2xx body did not match ``response_model``.
            ApiError: A 4xx/5xx with a domain error body.
            InvalidErrorBodyError: A 4xx/5xx without a domain error body.
            UnknownStatusError: A status outside the 2xx/4xx/5xx bands.
            NoResponseError: The transport gave no usable response.
            RequestConstructionError: The descriptor's URL is invalid.
            TransportError: Propagated unchanged from the transport.
            Exception: Whatever the token refresher raised, unchanged.
        """
        return await self._execute(descriptor, response_model, authenticated)

    async def request_empty(
        self, descriptor: RequestConvertible, *, authenticated: bool = True
    ) -> None:
        """Execute a request whose response body is discarded.

        Raises the same errors as ``request()`` except SerializationError.
        """
        await self._execute(descriptor, EmptyResponse, authenticated)

    async def aclose(self) -> None:
        """Close the owned transport and the refresher.

        An injected transport is left open. The refresher is always closed,
        since the executor owns it; share one refresher between executors
        only if it tolerates repeated ``aclose()`` calls.
        """
        if self._should_close_transport:
            await self._transport.aclose()
        aclose = getattr(self._token_refresher, "aclose", None)
        if callable(aclose):
            await aclose()
        logger.debug("RequestExecutor closed.")

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.aclose()
