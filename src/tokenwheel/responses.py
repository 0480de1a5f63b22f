"""Classification of raw responses into decoded results or typed errors."""

from functools import lru_cache
from http import HTTPStatus
from typing import Any, TypeVar, cast

import httpx
from pydantic import TypeAdapter, ValidationError

from .exceptions import (
    ApiError,
    InvalidErrorBodyError,
    NoResponseError,
    SerializationError,
    UnauthorizedError,
    UnknownStatusError,
)
from .log_config import logger
from .models import ErrorResponseBody
from .types import EMPTY, EmptyResponse

T = TypeVar("T")


@lru_cache(maxsize=256)
def _adapter_for(response_model: Any) -> TypeAdapter[Any]:
    return TypeAdapter(response_model)


def _request_of(response: httpx.Response) -> httpx.Request | None:
    try:
        return response.request
    except RuntimeError:
        return None


def classify_response(response: httpx.Response | None, response_model: type[T]) -> T:
    """Map a response to a decoded ``response_model`` instance or raise.

    Args:
        response: The response returned by the transport.
        response_model: Target type for 2xx bodies. ``EmptyResponse`` skips
            decoding entirely.

    Returns:
        The decoded body, or ``EMPTY`` when ``response_model`` is ``EmptyResponse``.

    Raises:
        NoResponseError: No response, or no integer status code.
        SerializationError: 2xx body does not validate against ``response_model``.
        UnauthorizedError: Status 401.
        ApiError: Other 4xx/5xx with a domain error body.
        InvalidErrorBodyError: Other 4xx/5xx without a domain error body.
        UnknownStatusError: Any other status.
    """
    status_code = getattr(response, "status_code", None)
    if response is None or not isinstance(status_code, int):
        raise NoResponseError("No usable response received.")

    request = _request_of(response)

    if HTTPStatus.OK <= status_code < HTTPStatus.MULTIPLE_CHOICES:
        if response_model is EmptyResponse:
            return cast(T, EMPTY)
        try:
            return _adapter_for(response_model).validate_json(response.content)
        except ValidationError as e:
            logger.warning(
                f"Response body does not match {getattr(response_model, '__name__', response_model)}: {e}"
            )
            raise SerializationError(
                "Failed to decode response body.",
                underlying=e,
                response=response,
                request=request,
            ) from e

    if HTTPStatus.BAD_REQUEST <= status_code < 600:
        if status_code == HTTPStatus.UNAUTHORIZED:
            raise UnauthorizedError(
                "Request was not authorized.", response=response, request=request
            )

        try:
            error_body = ErrorResponseBody.model_validate_json(response.content)
        except ValidationError as e:
            logger.debug(f"Error response body is not a domain error: {e}")
            raise InvalidErrorBodyError(
                f"API request failed with status {status_code} and an unrecognized error body.",
                response=response,
                request=request,
            ) from e

        raise ApiError(
            error_body.error,
            status_code=status_code,
            domain_code=error_body.domain_code,
            response=response,
            request=request,
        )

    raise UnknownStatusError(
        f"Unexpected response status {status_code}.",
        response=response,
        request=request,
    )
