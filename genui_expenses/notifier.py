"""
Change notification shared by the ledger, the surface registry and services.

Listeners are plain callables that receive the object that changed.
They are called synchronously, in registration order, after a mutation
has been fully applied.
"""

from typing import Callable


Listener = Callable[[object], None]


class ChangeNotifier:
    """Minimal observable: register listeners, notify them after each change."""

    def __init__(self):
        self._listeners: list[Listener] = []

    def add_listener(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify_listeners(self) -> None:
        # Copy so a listener may unsubscribe itself while being notified
        for listener in list(self._listeners):
            listener(self)
