"""Custom exception classes for the tokenwheel library."""

from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from .models import DomainErrorCode


class TokenwheelError(Exception):
    """Base exception class for all tokenwheel errors."""

    def __init__(
        self,
        message: str,
        *,
        response: httpx.Response | None = None,
        request: httpx.Request | None = None,
    ):
        """Initializes the base exception.

        Args:
            message: The error message.
            response: Optional httpx.Response object associated with the error.
            request: Optional httpx.Request object associated with the error.
        """
        super().__init__(message)
        self.message = message
        self.response = response
        self.request = request

    def __str__(self) -> str:
        if self.response is not None:
            url_info = "N/A"
            try:
                url_info = str(self.response.request.url)
            except RuntimeError:
                # httpx raises when a response was built without a request
                if self.request is not None:
                    url_info = str(self.request.url)
            return (
                f"{self.message} (Status: {self.response.status_code}, URL: {url_info})"
            )
        if isinstance(self.request, httpx.Request):
            return f"{self.message} (URL: {self.request.url})"
        return self.message


class NoResponseError(TokenwheelError):
    """The transport returned nothing with a usable status code."""


class UnauthorizedError(TokenwheelError):
    """The server answered 401, or the request could not be authenticated.

    A server-issued UnauthorizedError triggers the single refresh-and-retry
    pass of the RequestExecutor. Seen a second time it is terminal.
    """


class MissingCredentialsError(UnauthorizedError):
    """Raised locally when the token store lacks an access or refresh token.

    No request is dispatched and the token store is wiped before raising.
    """


class SerializationError(TokenwheelError):
    """A successful response whose body does not match the expected shape."""

    def __init__(
        self,
        message: str,
        *,
        underlying: Exception,
        response: httpx.Response | None = None,
        request: httpx.Request | None = None,
    ):
        super().__init__(message, response=response, request=request)
        self.underlying = underlying


class InvalidErrorBodyError(TokenwheelError):
    """A failure status whose body is not a recognizable domain error."""


class ApiError(TokenwheelError):
    """A failure status (4xx/5xx, except 401) with a domain error body.

    Attributes:
        message: The message sent by the server.
        status_code: The HTTP status code of the response.
        domain_code: The domain error code, or None when absent or unknown.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        domain_code: "DomainErrorCode | None" = None,
        response: httpx.Response | None = None,
        request: httpx.Request | None = None,
    ):
        super().__init__(message, response=response, request=request)
        self.status_code = status_code
        self.domain_code = domain_code


class UnknownStatusError(TokenwheelError):
    """The response status is outside every recognized band (1xx, 3xx, ...)."""


class RequestConstructionError(TokenwheelError):
    """The base URL and path could not be combined into an absolute URL."""


class ConfigurationError(TokenwheelError):
    """Represents an error in the library's configuration."""

    def __init__(self, message: str):
        super().__init__(message, response=None)


class TokenRefreshError(TokenwheelError):
    """Raised when the refresh-token exchange fails."""


class TransportError(TokenwheelError):
    """A transport-level failure (connection, DNS, TLS, protocol).

    Transport errors are never retried by the executor.
    """

    def __init__(self, message: str, *, request: httpx.Request | None = None):
        super().__init__(message, request=request, response=None)


class TimeoutError(TransportError):
    """Represents a request timeout error.

    Raised when an HTTP request does not complete within the transport timeout.
    """


class NetworkError(TransportError):
    """Represents a network connection error (e.g., DNS resolution failure, connection refused)."""
