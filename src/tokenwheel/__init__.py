"""Tokenwheel: authenticated HTTP request execution with one refresh-and-retry pass.

This package turns declarative request descriptors into httpx requests,
attaches bearer tokens from a token store, classifies responses into decoded
models or typed errors, and on a 401 refreshes the tokens and retries once.

Token storage, token refresh and the transport are pluggable protocols; the
package ships in-memory and httpx-backed implementations of each.
"""

__version__ = "0.1.0"

from . import (
    auth,
    client,
    config,
    events,
    exceptions,
    log_config,
    models,
    request,
    responses,
    tokens,
    transport,
    types,
)
from .client import RequestExecutor
from .request import RequestDescriptor
from .types import EMPTY, EmptyResponse, HTTPMethod

__all__ = [
    "__version__",
    "EMPTY",
    "EmptyResponse",
    "HTTPMethod",
    "RequestDescriptor",
    "RequestExecutor",
    "auth",
    "client",
    "config",
    "events",
    "exceptions",
    "log_config",
    "models",
    "request",
    "responses",
    "tokens",
    "transport",
    "types",
]
