"""Protocol definitions for the collaborators a plugin depends on."""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol, runtime_checkable


@runtime_checkable
class Coordinator(Protocol):
    """Contract for the system message bus plugins subscribe to."""

    def subscribe(self, signal: Any, handler: Callable[..., Any]) -> Any:
        """Register ``handler`` for ``signal``."""

    def unsubscribe(self, signal: Any, handler: Callable[..., Any]) -> Any:
        """Remove a handler previously passed to :meth:`subscribe`."""

    def publish(self, signal: Any, *args: Any, **kwargs: Any) -> Any:
        """Deliver ``signal`` with its payload to all subscribers."""


@runtime_checkable
class ElementQuery(Protocol):
    """Contract for scoped element lookup utilities."""

    def __call__(self, selector: str, context: Any) -> list[Any]:
        """Return elements under ``context`` matching ``selector``."""


@runtime_checkable
class LoggerProvider(Protocol):
    """Contract for logger factories."""

    def __call__(self, name: str) -> logging.Logger:
        """Return the logger for a component name."""
