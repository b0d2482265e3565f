"""
Message bus - the coordinator plugins subscribe to.

Core design:
- named signals with any positional/keyword payload
- priority ordering (higher first, then registration order)
- error isolation: one failing subscriber does not stop the others
- handler identity is compared with ``==`` on unsubscribe
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from core.observable import Listener, Observable, event_key

logger = logging.getLogger(__name__)


class MessageBus(Observable):
    """
    Global message bus shared by all plugins of a system.

    Example:
        bus = MessageBus()

        def on_ready():
            print("ready")

        bus.subscribe("ready", on_ready)
        bus.publish("ready")
        bus.unsubscribe("ready", on_ready)
    """

    def __init__(self, isolate_errors: bool = True) -> None:
        super().__init__()
        self.isolate_errors = isolate_errors

        logger.debug("MessageBus initialized")

    def subscribe(
        self,
        signal: str | Enum,
        handler: Listener,
        priority: int = 0,
    ) -> None:
        """
        Subscribe a handler to a signal.

        Args:
            signal: Signal name
            handler: Handler callable
            priority: Priority, higher runs first
        """
        self.on(signal, handler, priority)
        logger.debug(f"Subscribed handler to {event_key(signal)} with priority {priority}")

    def unsubscribe(self, signal: str | Enum, handler: Listener) -> bool:
        """
        Unsubscribe a handler from a signal.

        Returns:
            Whether the handler was subscribed
        """
        removed = self.un(signal, handler)
        if removed:
            logger.debug(f"Unsubscribed handler from {event_key(signal)}")
        return removed

    def publish(self, signal: str | Enum, *args: Any, **kwargs: Any) -> int:
        """
        Publish a signal to all current subscribers.

        Returns:
            Number of subscribers invoked
        """
        delivered = self.fire(signal, *args, **kwargs)
        if delivered == 0:
            logger.debug(f"Signal {event_key(signal)} published without subscribers")
        return delivered

    def get_stats(self) -> dict[str, Any]:
        """Return bus statistics."""
        return {
            "published_count": self._fire_count,
            "error_count": self._error_count,
            "subscribers": {
                signal: len(listeners)
                for signal, listeners in self._listeners.items()
            },
        }


def create_bus(isolate_errors: bool = True) -> MessageBus:
    """Create a message bus instance."""
    return MessageBus(isolate_errors=isolate_errors)
