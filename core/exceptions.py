"""Exception hierarchy and helpers for pluginkit.

- ``PluginError`` is the base class with error code, context and root cause.
- ``InvalidBindingError`` / ``NotBoundError`` report misuse of the system
  message binding helpers.
- ``ConfigError`` reports malformed plugin or system configuration.
- ``LifecycleError`` reports host-level lifecycle misuse.
"""

from __future__ import annotations

from typing import Any, Mapping, TypeVar

TPluginError = TypeVar("TPluginError", bound="PluginError")


class PluginError(Exception):
    """Base exception for all framework-level errors.

    Attributes:
        message: Human-readable error message.
        code: Stable error code for programmatic processing.
        context: Extra metadata useful for debugging and logging.
        cause: Original exception that triggered this error.
    """

    default_code = "PLUGIN_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: Mapping[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.message: str = message
        self.code: str = code or self.default_code
        self.context: dict[str, Any] = dict(context) if context is not None else {}
        self.cause: Exception | None = cause

        super().__init__(message)

        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return format_exception(self)


class InvalidBindingError(PluginError):
    """A system message was bound to something that is not a callable method."""

    default_code = "INVALID_BINDING"


class NotBoundError(PluginError):
    """A (signal, handler key) pair has no live registration."""

    default_code = "NOT_BOUND"


class ConfigError(PluginError):
    """Configuration related error."""

    default_code = "CONFIG_ERROR"


class LifecycleError(PluginError):
    """Plugin system used outside its lifecycle order."""

    default_code = "LIFECYCLE_ERROR"


def wrap_exception(
    exc: Exception,
    error_class: type[TPluginError],
    message: str,
    *,
    code: str | None = None,
    context: Mapping[str, Any] | None = None,
) -> TPluginError:
    """Wrap an external exception with a framework exception class.

    Args:
        exc: Original exception raised by a lower layer.
        error_class: Target ``PluginError`` subclass to construct.
        message: Message for the wrapped exception.
        code: Optional explicit error code overriding class default.
        context: Optional context payload.

    Returns:
        An instance of ``error_class`` that chains ``exc`` as its cause.
    """
    return error_class(message, code=code, context=context, cause=exc)


def format_exception(exc: BaseException) -> str:
    """Format exception into a readable one-line text.

    For ``PluginError`` it includes code, message, context and cause.
    For generic exceptions, it returns ``<Type>: <message>``.
    """
    if isinstance(exc, PluginError):
        base = f"[{exc.code}] {exc.message}"
        context_part = ""
        if exc.context:
            context_items = ", ".join(
                f"{key}={value!r}" for key, value in sorted(exc.context.items())
            )
            context_part = f" | context: {context_items}"

        cause_part = ""
        if exc.cause is not None:
            cause_part = f" | cause: {type(exc.cause).__name__}: {exc.cause}"

        return f"{base}{context_part}{cause_part}"

    return f"{type(exc).__name__}: {exc}"


__all__ = [
    "PluginError",
    "InvalidBindingError",
    "NotBoundError",
    "ConfigError",
    "LifecycleError",
    "wrap_exception",
    "format_exception",
]
