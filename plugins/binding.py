"""Function binding helpers."""

from __future__ import annotations

import functools
from collections.abc import Sequence
from typing import Any, Callable


def bind_callable(
    fn: Callable[..., Any],
    extra_args: Sequence[Any] | None = None,
    append_args: bool = False,
) -> Callable[..., Any]:
    """Return a new wrapper around ``fn`` with argument handling applied.

    Args:
        fn: Callable to wrap. Bound methods keep their instance.
        extra_args: Positional arguments to add to each call.
        append_args: Append ``extra_args`` after the call-time positional
            arguments instead of replacing them.

    Returns:
        A wrapper whose identity is distinct from ``fn`` and from every other
        wrapper returned by this function.
    """
    fixed = tuple(extra_args) if extra_args is not None else None

    @functools.wraps(fn)
    def bound(*args: Any, **kwargs: Any) -> Any:
        if fixed is None:
            return fn(*args, **kwargs)
        if append_args:
            return fn(*args, *fixed, **kwargs)
        return fn(*fixed, **kwargs)

    return bound
