"""Tests for the in-memory token store and events."""

from tokenwheel.events import Event
from tokenwheel.models import AuthenticationResponse, LoginMethod
from tokenwheel.tokens import InMemoryTokenStore, TokenStore


def make_response(access="a", refresh="r", provider=LoginMethod.EMAIL):
    return AuthenticationResponse(
        access_token=access, refresh_token=refresh, provider=provider
    )


def test_store_satisfies_protocol():
    assert isinstance(InMemoryTokenStore(), TokenStore)


def test_empty_store_is_logged_out():
    store = InMemoryTokenStore()

    assert store.access_token is None
    assert store.refresh_token is None
    assert store.last_login_provider is None
    assert not store.is_logged_in


def test_save_tokens_logs_in_and_announces_once():
    store = InMemoryTokenStore()
    changes = []
    store.login_state_changed.subscribe(lambda: changes.append(store.is_logged_in))

    store.save_tokens(make_response(provider=LoginMethod.GOOGLE))
    store.save_tokens(make_response(access="a2", refresh="r2"))

    assert store.access_token == "a2"
    assert store.refresh_token == "r2"
    assert store.last_login_provider is LoginMethod.EMAIL
    assert changes == [True]


def test_wipe_tokens_clears_and_emits():
    store = InMemoryTokenStore("a", "r", LoginMethod.EMAIL)
    wiped = []
    changes = []
    store.tokens_wiped.subscribe(lambda: wiped.append(True))
    store.login_state_changed.subscribe(lambda: changes.append(store.is_logged_in))

    store.wipe_tokens()
    store.wipe_tokens()

    assert store.access_token is None
    assert store.refresh_token is None
    assert store.last_login_provider is None
    assert wiped == [True, True]
    assert changes == [False]


def test_event_unsubscribe():
    event = Event("test")
    calls = []
    unsubscribe = event.subscribe(lambda: calls.append(1))

    event.emit()
    unsubscribe()
    unsubscribe()
    event.emit()

    assert calls == [1]
    assert event.listener_count == 0


def test_event_listener_errors_do_not_stop_other_listeners():
    event = Event("test")
    calls = []

    def broken():
        raise RuntimeError("listener failed")

    event.subscribe(broken)
    event.subscribe(lambda: calls.append("second"))

    event.emit()

    assert calls == ["second"]
