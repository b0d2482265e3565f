"""Bookkeeping for system message subscriptions made by one plugin."""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from typing import Any, Callable

from core.observable import event_key

Handle = Callable[..., Any]


class SubscriptionRegistry:
    """Map signal -> handler key -> the exact callable subscribed to the bus.

    Keeping the original callable is what makes unsubscription possible:
    a freshly bound wrapper of the same method is a different object.
    """

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, Handle]] = {}

    def add(self, signal: str | Enum, key: str, handle: Handle) -> Handle | None:
        """Store ``handle`` under ``(signal, key)``.

        Returns:
            The handle previously stored for that pair, if any.
        """
        scope = self._entries.setdefault(event_key(signal), {})
        previous = scope.get(key)
        scope[key] = handle
        return previous

    def get(self, signal: str | Enum, key: str) -> Handle | None:
        """Return the handle stored for ``(signal, key)``."""
        return self._entries.get(event_key(signal), {}).get(key)

    def remove(self, signal: str | Enum, key: str) -> Handle:
        """Drop and return the handle stored for ``(signal, key)``.

        Raises:
            KeyError: If the pair is not registered.
        """
        name = event_key(signal)
        scope = self._entries.get(name)
        if scope is None or key not in scope:
            raise KeyError((name, key))

        handle = scope.pop(key)
        if not scope:
            del self._entries[name]
        return handle

    def signals(self) -> list[str]:
        """Return signals with at least one binding."""
        return list(self._entries)

    def keys(self, signal: str | Enum) -> list[str]:
        """Return handler keys bound to ``signal``."""
        return list(self._entries.get(event_key(signal), {}))

    def entries(self) -> Iterator[tuple[str, str, Handle]]:
        """Yield ``(signal, key, handle)`` for every binding."""
        for signal, scope in list(self._entries.items()):
            for key, handle in list(scope.items()):
                yield signal, key, handle

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, tuple) or len(item) != 2:
            return False
        signal, key = item
        return self.get(signal, key) is not None

    def __len__(self) -> int:
        return sum(len(scope) for scope in self._entries.values())

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __repr__(self) -> str:
        bindings = {signal: list(scope) for signal, scope in self._entries.items()}
        return f"SubscriptionRegistry({bindings!r})"
