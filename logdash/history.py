from __future__ import annotations

from collections.abc import Callable


class LocationHistory:
    """Browser-style history of query strings.

    ``replace`` rewrites the current entry, ``push`` adds one and drops any
    forward entries. Listeners run after every location change.
    """

    def __init__(self, query: str = ""):
        self._entries: list[str] = [query.lstrip("?")]
        self._index = 0
        self._listeners: list[Callable[[str], None]] = []

    @property
    def query(self) -> str:
        return self._entries[self._index]

    @property
    def length(self) -> int:
        return len(self._entries)

    @property
    def can_go_back(self) -> bool:
        return self._index > 0

    @property
    def can_go_forward(self) -> bool:
        return self._index < len(self._entries) - 1

    def subscribe(self, listener: Callable[[str], None]) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[str], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def replace(self, query: str) -> None:
        self._entries[self._index] = query.lstrip("?")
        self._notify()

    def push(self, query: str) -> None:
        del self._entries[self._index + 1 :]
        self._entries.append(query.lstrip("?"))
        self._index += 1
        self._notify()

    def back(self) -> bool:
        if not self.can_go_back:
            return False
        self._index -= 1
        self._notify()
        return True

    def forward(self) -> bool:
        if not self.can_go_forward:
            return False
        self._index += 1
        self._notify()
        return True

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.query)
