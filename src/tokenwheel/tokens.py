"""Token store interface and an in-memory reference implementation."""

from typing import Protocol, runtime_checkable

from .events import Event
from .log_config import logger
from .models import AuthenticationResponse, LoginMethod


@runtime_checkable
class TokenStore(Protocol):
    """Protocol for the store holding the current access and refresh tokens.

    The executor only reads the tokens and, when either is missing, calls
    ``wipe_tokens()``. Writing new tokens is left to the refresher and to the
    application's login flow.
    """

    @property
    def access_token(self) -> str | None: ...

    @property
    def refresh_token(self) -> str | None: ...

    @property
    def tokens_wiped(self) -> Event:
        """Emitted every time ``wipe_tokens()`` runs."""
        ...

    def wipe_tokens(self) -> None: ...


class InMemoryTokenStore:
    """Implements the TokenStore protocol by keeping tokens in process memory.

    Besides the protocol this store remembers which login method produced the
    tokens and announces login state changes, which is what UI layers
    usually subscribe to.

    Attributes:
        tokens_wiped: Event emitted after the tokens are wiped.
        login_state_changed: Event emitted whenever ``is_logged_in`` flips.
    """

    def __init__(
        self,
        access_token: str | None = None,
        refresh_token: str | None = None,
        provider: LoginMethod | None = None,
    ):
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._provider = provider
        self.tokens_wiped = Event("tokens_wiped")
        self.login_state_changed = Event("login_state_changed")
        logger.debug("InMemoryTokenStore initialized.")

    @property
    def access_token(self) -> str | None:
        return self._access_token

    @property
    def refresh_token(self) -> str | None:
        return self._refresh_token

    @property
    def last_login_provider(self) -> LoginMethod | None:
        return self._provider

    @property
    def is_logged_in(self) -> bool:
        return bool(self._access_token and self._refresh_token)

    def save_tokens(self, token_response: AuthenticationResponse) -> None:
        """Stores the token pair and provider from a login or refresh exchange."""
        was_logged_in = self.is_logged_in
        self._access_token = token_response.access_token
        self._refresh_token = token_response.refresh_token
        self._provider = token_response.provider
        logger.debug(f"Tokens saved for provider '{token_response.provider.value}'.")
        if not was_logged_in:
            self.login_state_changed.emit()

    def wipe_tokens(self) -> None:
        """Forgets both tokens and the provider, then emits ``tokens_wiped``."""
        was_logged_in = self.is_logged_in
        self._access_token = None
        self._refresh_token = None
        self._provider = None
        logger.info("Tokens wiped.")
        self.tokens_wiped.emit()
        if was_logged_in:
            self.login_state_changed.emit()
