# tokenwheel/models.py
"""Pydantic models for payloads exchanged with the remote service.

These cover the structured error body returned with 4xx/5xx responses and the
token pair returned by login and refresh exchanges.
"""

from enum import IntEnum, StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DomainErrorCode(IntEnum):
    """Service-specific error codes carried in error bodies as ``domainCode``."""

    TRIAL_EXPIRED = 1
    NOT_SUBSCRIBED = 2
    APP_REQUIRES_UPDATE = 3
    DAILY_FREE_USAGE_EXCEEDED = 4
    RATE_LIMIT_EXCEEDED = 5


class ErrorResponseBody(BaseModel):
    """Domain error body, e.g. ``{"error": "server error", "domainCode": 3}``.

    An absent or unrecognized ``domainCode`` integer yields ``domain_code=None``
    instead of a validation failure. Any other JSON type (bool, float, string)
    makes the body invalid.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    error: str
    domain_code: DomainErrorCode | None = Field(default=None, alias="domainCode")

    @field_validator("domain_code", mode="before")
    @classmethod
    def _drop_unknown_domain_code(cls, value: Any) -> DomainErrorCode | None:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"domainCode must be an integer, got {type(value).__name__}")
        if value not in DomainErrorCode._value2member_map_:
            return None
        return DomainErrorCode(value)


class LoginMethod(StrEnum):
    """How the current session was established."""

    GOOGLE = "google"
    EMAIL = "email"


class AuthenticationResponse(BaseModel):
    """Token pair returned by a login or refresh exchange."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    access_token: str = Field(alias="accessToken")
    refresh_token: str = Field(alias="refreshToken")
    provider: LoginMethod
