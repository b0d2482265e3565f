"""Completion tokens for asynchronous plugin execution.

A completion token is a single-assignment :class:`concurrent.futures.Future`.
It needs no event loop: callbacks registered on an already settled token run
immediately in the registering thread, otherwise in the thread that settles
it.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future
from typing import Any

Deferred = Future


def create_deferred() -> Future[Any]:
    """Return a fresh, pending completion token."""
    return Future()


def resolved(value: Any = None) -> Future[Any]:
    """Return a completion token that already holds ``value``."""
    token: Future[Any] = Future()
    token.set_result(value)
    return token


def is_thenable(obj: Any) -> bool:
    """Return whether ``obj`` can notify completion through callbacks."""
    return callable(getattr(obj, "add_done_callback", None))


def when_settled(token: Any, callback: Callable[[Any], None]) -> None:
    """Run ``callback(token)`` once ``token`` settles.

    Settling covers a result, an exception and a cancellation alike.

    Args:
        token: Any thenable object.
        callback: Function receiving the settled token.

    Raises:
        TypeError: If ``token`` is not thenable.
    """
    if not is_thenable(token):
        raise TypeError(f"Expected a thenable completion token, got {type(token)!r}")
    token.add_done_callback(callback)


def settled_error(token: Any) -> BaseException | None:
    """Return the failure a settled token carries, if any."""
    cancelled = getattr(token, "cancelled", None)
    if callable(cancelled) and cancelled():
        return None
    exception = getattr(token, "exception", None)
    if not callable(exception):
        return None
    return exception()


def when_all(tokens: Iterable[Any]) -> Future[list[Any]]:
    """Compose several tokens into one.

    The composite resolves with the list of results in input order once all
    inputs resolved, or fails with the first failure observed.
    """
    pending = list(tokens)
    combined: Future[list[Any]] = Future()
    if not pending:
        combined.set_result([])
        return combined

    results: list[Any] = [None] * len(pending)
    remaining = [len(pending)]
    lock = threading.Lock()

    def _settle(index: int, token: Any) -> None:
        error = settled_error(token)
        with lock:
            if combined.done():
                return
            if error is not None:
                combined.set_exception(error)
                return
            results[index] = None if token.cancelled() else token.result()
            remaining[0] -= 1
            if remaining[0] == 0:
                combined.set_result(results)

    for index, token in enumerate(pending):
        when_settled(token, lambda settled, index=index: _settle(index, settled))

    return combined


__all__ = [
    "Deferred",
    "create_deferred",
    "resolved",
    "is_thenable",
    "when_settled",
    "settled_error",
    "when_all",
]
