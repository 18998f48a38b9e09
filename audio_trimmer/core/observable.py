"""Minimal subscribe/notify support for the session state containers."""
from __future__ import annotations

from typing import Any, Callable, List

Listener = Callable[[str, Any], None]


class Observable:
    """Keeps a list of listeners called as ``listener(event, source)``."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            listener(event, self)
