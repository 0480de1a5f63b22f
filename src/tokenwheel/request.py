"""Request descriptors and their conversion into transport-ready requests.

A descriptor is an immutable description of one endpoint call: base URL,
path, method, parameters and optional headers. Anything that satisfies
``RequestConvertible`` can be executed; implementers that are not
``RequestDescriptor`` subclasses delegate to ``build_transport_request``.
"""

import json
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .exceptions import RequestConstructionError
from .log_config import logger
from .types import HTTPMethod, render_query_value


@runtime_checkable
class RequestConvertible(Protocol):
    """Protocol for objects that describe an endpoint call."""

    @property
    def base_url(self) -> str: ...

    @property
    def path(self) -> str: ...

    @property
    def method(self) -> HTTPMethod: ...

    @property
    def parameters(self) -> Mapping[str, Any]: ...

    @property
    def headers(self) -> Mapping[str, str] | None: ...

    def as_request(self) -> httpx.Request:
        """Builds the transport-ready request for this call.

        Raises:
            RequestConstructionError: If base URL and path do not form an
                absolute URL.
        """
        ...


class RequestDescriptor(BaseModel):
    """Immutable description of an endpoint call.

    Example:
    ```python
    descriptor = RequestDescriptor(
        base_url="https://api.example.com/v1",
        path="users/42",
        method=HTTPMethod.GET,
        parameters={"expand": True},
    )
    request = descriptor.as_request()
    # GET https://api.example.com/v1/users/42?expand=true
    ```
    """

    model_config = ConfigDict(frozen=True)

    base_url: str
    path: str = ""
    method: HTTPMethod = HTTPMethod.GET
    parameters: dict[str, Any] = Field(default_factory=dict)
    headers: dict[str, str] | None = None

    def as_request(self) -> httpx.Request:
        return build_transport_request(self)


_PATH_SAFE = "/%:@!$&'()*+,;="
"""Path characters kept as-is; ``%`` so already-encoded segments are not double-encoded."""


def join_url(base_url: str, path: str) -> httpx.URL:
    """Appends ``path`` to ``base_url`` as path segments.

    Slashes at the seam collapse to exactly one, and the path never replaces
    the base URL's scheme, host or existing path. Characters that are not
    valid in a path, such as ``?`` and ``#``, are percent-encoded.

    Raises:
        RequestConstructionError: If the result is not an absolute http(s) URL.
    """
    try:
        base = httpx.URL(base_url)
    except httpx.InvalidURL as e:
        raise RequestConstructionError(f"Invalid base URL '{base_url}': {e}") from e

    if not base.scheme or not base.host:
        raise RequestConstructionError(
            f"Base URL '{base_url}' must be absolute (scheme and host required)."
        )

    segment = quote(path.strip("/"), safe=_PATH_SAFE)
    joined_path = base.path.rstrip("/")
    if segment:
        joined_path = f"{joined_path}/{segment}"
    if path.endswith("/") and segment:
        joined_path += "/"

    try:
        return base.copy_with(path=joined_path or "/")
    except (httpx.InvalidURL, TypeError) as e:
        raise RequestConstructionError(
            f"Cannot append path '{path}' to '{base_url}': {e}"
        ) from e


def encode_json_body(parameters: Mapping[str, Any]) -> bytes:
    """Serializes the parameter mapping as a single JSON object.

    Unserializable parameters, including NaN and infinite floats, yield an
    empty body instead of an error.
    """
    try:
        return json.dumps(dict(parameters), allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not serialize request parameters as JSON, sending empty body: {e}")
        return b""


def build_transport_request(descriptor: RequestConvertible) -> httpx.Request:
    """Converts a descriptor into an ``httpx.Request``.

    GET and DELETE put every parameter into the query string; POST, PUT and
    PATCH send the whole mapping as a JSON body. Caller headers are set here,
    before the executor adds its own.

    Args:
        descriptor: Any object satisfying ``RequestConvertible``.

    Returns:
        httpx.Request: A fresh request; the descriptor is not modified.

    Raises:
        RequestConstructionError: If base URL and path do not form an absolute URL.
    """
    method = HTTPMethod(descriptor.method)
    url = join_url(descriptor.base_url, descriptor.path)

    params: list[tuple[str, str]] | None = None
    content: bytes | None = None
    if method.encodes_query:
        params = [
            (key, render_query_value(value))
            for key, value in descriptor.parameters.items()
        ]
    else:
        content = encode_json_body(descriptor.parameters)

    request = httpx.Request(
        method=method.value,
        url=url,
        params=params or None,
        content=content,
    )
    for name, value in (descriptor.headers or {}).items():
        request.headers[name] = value

    logger.trace(f"Built request {request.method} {request.url}")
    return request
