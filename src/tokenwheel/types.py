# tokenwheel/types.py
"""Core type definitions for the tokenwheel library.

This module defines the HTTP method enumeration, the parameter value kinds a
request descriptor accepts, and the empty-result sentinel used by requests
whose response body is discarded.
"""

from enum import StrEnum
from typing import Any, Final

ParamScalar = str | int | float | bool
"""Scalar parameter kinds with a defined query-string rendering."""

ParamValue = ParamScalar | None | list[Any] | dict[str, Any]
"""Any parameter value a descriptor accepts.

Only ``ParamScalar`` values have a defined query rendering; lists, dicts and
None are meant for JSON bodies and fall back to ``str()`` in a query string.
"""


class HTTPMethod(StrEnum):
    """HTTP methods supported by request descriptors."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"

    @property
    def encodes_query(self) -> bool:
        """True when parameters travel in the query string rather than the body."""
        return self in (HTTPMethod.GET, HTTPMethod.DELETE)


def render_query_value(value: ParamValue) -> str:
    """Render a parameter value as a query-string value.

    Booleans become ``"true"``/``"false"``; numbers and everything else use
    ``str()``; strings pass through unchanged.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    return str(value)


class EmptyResponse:
    """Sentinel result type for requests whose response body is ignored."""

    _instance: "EmptyResponse | None" = None

    def __new__(cls) -> "EmptyResponse":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "EMPTY"


EMPTY: Final = EmptyResponse()
