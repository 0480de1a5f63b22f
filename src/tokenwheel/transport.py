"""Transport interface and the default httpx-backed implementation."""

import ssl
from typing import Protocol, runtime_checkable

import certifi
import httpx

from .config import ExecutorSettings
from .exceptions import NetworkError, TimeoutError, TransportError
from .log_config import logger


@runtime_checkable
class Transport(Protocol):
    """Protocol for the network facility that executes built requests.

    A transport sends exactly one request per call and never retries on its
    own. Network, DNS and TLS failures surface as exceptions, distinct from
    the status-based errors raised during response classification.
    """

    async def send(self, request: httpx.Request) -> httpx.Response:
        """Sends the request and returns the complete response.

        Raises:
            TransportError: If no response could be obtained.
        """
        ...

    async def aclose(self) -> None:
        """Releases any connections held by the transport. Idempotent."""
        ...


def create_http_client(settings: ExecutorSettings) -> httpx.AsyncClient:
    """Create an httpx.AsyncClient with configured settings.

    Returns:
        httpx.AsyncClient: Configured HTTP client with SSL verification,
            timeout settings, and user agent header.
    """
    verify: ssl.SSLContext | bool = settings.verify_ssl
    if settings.verify_ssl:
        try:
            verify = ssl.create_default_context(cafile=certifi.where())
            logger.debug("Using certifi SSL context.")
        except (OSError, ssl.SSLError):
            verify = True
            logger.warning(
                "certifi bundle failed to load. Using default SSL verification."
            )

    return httpx.AsyncClient(
        timeout=settings.request_timeout,
        verify=verify,
        headers={"User-Agent": settings.user_agent},
    )


class HttpxTransport:
    """Implements the Transport protocol on top of httpx.AsyncClient.

    Attributes:
        _http_client: The underlying httpx.AsyncClient.
        _should_close_client: Whether this transport created, and so owns, the client.
        _user_agent: User-Agent set on requests that do not carry one.
    """

    def __init__(
        self,
        settings: ExecutorSettings | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ):
        settings = settings or ExecutorSettings()
        self._should_close_client = http_client is None
        self._http_client = http_client or create_http_client(settings)
        self._user_agent = settings.user_agent
        logger.debug("HttpxTransport initialized.")

    async def send(self, request: httpx.Request) -> httpx.Response:
        # Client default headers are only merged by build_request(), not send()
        if not request.headers.get("User-Agent"):
            request.headers["User-Agent"] = self._user_agent

        logger.debug(f"Sending request: {request.method} {request.url}")
        try:
            response = await self._http_client.send(request)
        except httpx.TimeoutException as e:
            logger.error(f"Request timed out: {request.url}")
            raise TimeoutError("Request timed out", request=request) from e
        except httpx.NetworkError as e:
            logger.error(f"Network error occurred for {request.url}: {e}")
            raise NetworkError(
                f"Network error for {request.url}: {e}", request=request
            ) from e
        except httpx.RequestError as e:
            logger.error(f"HTTP request error for {request.url}: {e}")
            raise TransportError(
                f"HTTP request error for {request.url}: {e}", request=request
            ) from e

        logger.debug(f"Received response: {response.status_code} for {request.url}")
        return response

    async def aclose(self) -> None:
        if self._should_close_client and not self._http_client.is_closed:
            await self._http_client.aclose()
            logger.debug("HttpxTransport internal HTTP client closed.")
