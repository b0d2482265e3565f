"""System bus delegates.

A plugin talks to the coordinator only through a delegate chosen once at
construction: ``UnattachedDelegate`` when no coordinator was supplied,
``AttachedDelegate`` otherwise.
"""

from __future__ import annotations

from typing import Any, Callable

from .protocols import Coordinator


class UnattachedDelegate:
    """Delegate for plugins without a coordinator; every call is a no-op."""

    attached = False
    coordinator: Coordinator | None = None

    def subscribe(self, *args: Any, **kwargs: Any) -> None:
        _ = (args, kwargs)

    def unsubscribe(self, *args: Any, **kwargs: Any) -> bool:
        _ = (args, kwargs)
        return False

    def publish(self, *args: Any, **kwargs: Any) -> int:
        _ = (args, kwargs)
        return 0


class AttachedDelegate:
    """Forward bus calls verbatim to a coordinator.

    The coordinator's bound methods are captured once, so later attribute
    changes on the coordinator do not affect this delegate.
    """

    attached = True

    def __init__(self, coordinator: Coordinator) -> None:
        self.coordinator = coordinator
        self._subscribe: Callable[..., Any] = coordinator.subscribe
        self._unsubscribe: Callable[..., Any] = coordinator.unsubscribe
        self._publish: Callable[..., Any] = coordinator.publish

    def subscribe(self, *args: Any, **kwargs: Any) -> Any:
        return self._subscribe(*args, **kwargs)

    def unsubscribe(self, *args: Any, **kwargs: Any) -> Any:
        return self._unsubscribe(*args, **kwargs)

    def publish(self, *args: Any, **kwargs: Any) -> Any:
        return self._publish(*args, **kwargs)


SystemDelegate = UnattachedDelegate | AttachedDelegate


def create_delegate(coordinator: Coordinator | None) -> SystemDelegate:
    """Return the delegate matching the given coordinator.

    Raises:
        TypeError: If ``coordinator`` lacks subscribe/unsubscribe/publish.
    """
    if coordinator is None:
        return UnattachedDelegate()
    if not isinstance(coordinator, Coordinator):
        raise TypeError(
            f"Coordinator must provide subscribe/unsubscribe/publish, got {type(coordinator)!r}"
        )
    return AttachedDelegate(coordinator)
