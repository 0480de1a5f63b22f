"""Payload-free notifications used by token stores and refreshers."""

from collections.abc import Callable

from .log_config import logger

Listener = Callable[[], None]


class Event:
    """A fire-and-forget notification with no payload.

    Listeners are called synchronously in subscription order. A listener that
    raises is logged and skipped; emitting never fails.
    """

    def __init__(self, name: str):
        self.name = name
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registers a listener and returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self) -> None:
        logger.debug(f"Emitting '{self.name}' to {len(self._listeners)} listener(s)")
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(
                    f"Error in '{self.name}' listener {getattr(listener, '__name__', str(listener))}: {e}"
                )

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
