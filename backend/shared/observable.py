"""
Observable value holder.

Session and profile state are each owned by exactly one controller. The
controller keeps its value in an ``Observable`` and the rest of the flow
subscribes to it instead of reaching into the controller's internals.

Values handed out are immutable snapshots (frozen pydantic models or None),
and a holder distinguishes "not loaded yet" from "loaded, and empty".
"""

import logging
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[Optional[T]], None]


class Observable(Generic[T]):
    """
    A single value plus a readiness flag, with subscribe/notify semantics.

    Listeners are called synchronously, in subscription order, every time
    the value is set or readiness changes. A listener that raises is logged
    and skipped so one bad subscriber cannot starve the others.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._value: Optional[T] = None
        self._ready = False
        self._listeners: list[Listener] = []

    @property
    def value(self) -> Optional[T]:
        """Current snapshot (None when empty or not loaded)."""
        return self._value

    @property
    def ready(self) -> bool:
        """True once a value (possibly None) has been loaded."""
        return self._ready

    def set(self, value: Optional[T]) -> None:
        """Replace the value and mark the holder ready."""
        self._value = value
        self._ready = True
        self._notify()

    def mark_loading(self) -> None:
        """Return to the unknown state while a new value is fetched."""
        if not self._ready:
            return
        self._ready = False
        self._notify()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            A function that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._value)
            except Exception:
                logger.exception(f"Listener on {self._name} failed")
