"""Observer registration for node and resource notifications."""

from __future__ import annotations

from typing import Any, Callable


class Signal:
    """A named list of callbacks invoked in connection order.

    Connecting the same callback twice is a no-op, so nodes can safely
    reconnect in ``_enter_tree`` after a detach/attach cycle.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._callbacks: list[Callable[..., Any]] = []

    def connect(self, callback: Callable[..., Any]) -> None:
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def disconnect(self, callback: Callable[..., Any]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def is_connected(self, callback: Callable[..., Any]) -> bool:
        return callback in self._callbacks

    def emit(self, *args: Any) -> None:
        # Callbacks may disconnect themselves while running
        for callback in list(self._callbacks):
            callback(*args)

    def __len__(self) -> int:
        return len(self._callbacks)

    def __deepcopy__(self, memo: dict) -> Signal:
        # Copies of a resource start with no listeners
        return Signal(self.name)

    def __repr__(self) -> str:
        return f"Signal({self.name!r}, {len(self._callbacks)} connections)"
