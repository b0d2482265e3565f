"""Local publish/subscribe capability.

``Observable`` is the publisher every plugin inherits from. The coordinator's
message bus builds on the same dispatch code.
"""

from __future__ import annotations

import logging
import traceback
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


def event_key(event: str | Enum) -> str:
    """Normalize an event name, accepting ``str`` valued enums."""
    if isinstance(event, Enum):
        return str(event.value)
    return event


@dataclass
class ListenerInfo:
    """Registered listener and its ordering data."""

    handler: Listener
    priority: int = 0
    order: int = 0

    def sort_key(self) -> tuple[int, int]:
        return (-self.priority, self.order)


class Observable:
    """Publisher with named events.

    Listeners run in descending priority, then registration order. Dispatch
    works on a snapshot, so listeners can unsubscribe while being dispatched.

    Example:
        source = Observable()
        source.on("executed", lambda: print("done"))
        source.fire("executed")
    """

    isolate_errors: bool = False

    def __init__(self) -> None:
        self._listeners: dict[str, list[ListenerInfo]] = defaultdict(list)
        self._listener_counter = 0
        self._fire_count = 0
        self._error_count = 0

    def on(self, event: str | Enum, handler: Listener, priority: int = 0) -> None:
        """Register a listener.

        Args:
            event: Event name.
            handler: Callable invoked with the fired arguments.
            priority: Higher values run earlier.

        Raises:
            ValueError: If ``handler`` is not callable.
        """
        if not callable(handler):
            raise ValueError(f"Handler must be callable, got {type(handler)}")

        info = ListenerInfo(handler=handler, priority=priority, order=self._listener_counter)
        self._listener_counter += 1

        listeners = self._listeners[event_key(event)]
        listeners.append(info)
        listeners.sort(key=ListenerInfo.sort_key)

    def un(self, event: str | Enum, handler: Listener) -> bool:
        """Remove a listener.

        Returns:
            Whether a matching listener was removed.
        """
        key = event_key(event)
        listeners = self._listeners.get(key, [])
        for index, info in enumerate(listeners):
            if info.handler == handler:
                listeners.pop(index)
                if not listeners:
                    del self._listeners[key]
                return True
        return False

    def fire(self, event: str | Enum, *args: Any, **kwargs: Any) -> int:
        """Call every listener of ``event``.

        Returns:
            Number of listeners invoked.
        """
        key = event_key(event)
        self._fire_count += 1

        snapshot = list(self._listeners.get(key, []))
        for info in snapshot:
            if not self.isolate_errors:
                info.handler(*args, **kwargs)
                continue
            try:
                info.handler(*args, **kwargs)
            except Exception as e:
                self._error_count += 1
                logger.error(
                    f"Listener error for {key}: {e}\n"
                    f"{traceback.format_exc()}"
                )
        return len(snapshot)

    def has_listeners(self, event: str | Enum) -> bool:
        """Return whether ``event`` has at least one listener."""
        return bool(self._listeners.get(event_key(event)))

    def listener_count(self, event: str | Enum) -> int:
        """Return number of listeners registered for ``event``."""
        return len(self._listeners.get(event_key(event), []))
