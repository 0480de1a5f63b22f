"""Shared fixtures for tokenwheel tests."""

import pytest

from fakes import BASE_URL
from tokenwheel.config import ExecutorSettings
from tokenwheel.models import LoginMethod
from tokenwheel.request import RequestDescriptor
from tokenwheel.tokens import InMemoryTokenStore
from tokenwheel.types import HTTPMethod


@pytest.fixture
def settings():
    """Settings independent of the environment and any .env file."""
    return ExecutorSettings(_env_file=None)


@pytest.fixture
def token_store():
    """Token store holding a valid token pair."""
    return InMemoryTokenStore(
        access_token="access-1", refresh_token="refresh-1", provider=LoginMethod.EMAIL
    )


@pytest.fixture
def get_descriptor():
    """GET descriptor with one boolean query parameter."""
    return RequestDescriptor(
        base_url=BASE_URL,
        path="users/42",
        method=HTTPMethod.GET,
        parameters={"expand": True},
    )
