"""Plugin base class.

A plugin subscribes to three system signals when it is constructed with a
coordinator and reacts to each of them exactly once:

- ``prepared`` -> :meth:`Plugin.init`, then local ``initialized``
- ``ready`` -> :meth:`Plugin.execute`, then local ``executed``
- ``pluginsexecuted`` -> :meth:`Plugin.on_finished`

Failures of ``init`` and ``execute`` are logged and do not stop the
lifecycle. Subscriptions made through :meth:`Plugin.bind_system_message` are
tracked and released by :meth:`Plugin.destroy`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar

from pydantic import BaseModel, ValidationError

from core.deferred import create_deferred, is_thenable, settled_error, when_settled
from core.events import (
    EXECUTED,
    INITIALIZED,
    LIFECYCLE_SIGNALS,
    PLUGINS_EXECUTED,
    PREPARED,
    READY,
    LifecyclePhase,
    SystemSignal,
)
from core.exceptions import ConfigError, InvalidBindingError, NotBoundError, wrap_exception
from core.logger import get_logger, get_null_logger
from core.observable import Observable, event_key

from .binding import bind_callable
from .delegate import SystemDelegate, create_delegate
from .element import ElementContext, wrap_element
from .protocols import Coordinator, ElementQuery, LoggerProvider
from .registry import SubscriptionRegistry


@dataclass(slots=True)
class HookOutcome:
    """Result of a guarded hook call."""

    value: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def call_hook(hook: Callable[..., Any], *args: Any) -> HookOutcome:
    """Call ``hook`` and capture either its return value or its exception."""
    try:
        return HookOutcome(value=hook(*args))
    except Exception as e:
        return HookOutcome(error=e)


class Plugin(Observable):
    """Base class for all plugins.

    Subclasses override :meth:`init`, :meth:`execute` and :meth:`on_finished`.
    Set ``options_model`` to a pydantic model to validate configuration.

    Example:
        class Greeter(Plugin):
            name = "Greeter"

            def init(self):
                self.bind_system_message("greet", "say_hello")

            def say_hello(self, who):
                self.send_system_message("greeted", who)
    """

    name: str = "Plugin"
    options_model: ClassVar[type[BaseModel] | None] = None

    def __init__(
        self,
        configuration: Mapping[str, Any] | None = None,
        element: Any = None,
        coordinator: Coordinator | None = None,
        *,
        query: ElementQuery | None = None,
        logger_provider: LoggerProvider | None = None,
    ) -> None:
        """Build the plugin.

        Args:
            configuration: Options applied through :meth:`reconfigure`.
            element: Element handle (or markup) this plugin is attached to.
            coordinator: System message bus; without one the plugin stays
                dormant until its lifecycle handlers are called manually.
            query: Element query utility replacing the ElementPath default.
            logger_provider: Logger factory replacing ``core.logger.get_logger``.
        """
        self.subscription_registry = SubscriptionRegistry()
        self.config: dict[str, Any] = {}
        self.options: BaseModel | None = None
        self.element: ElementContext | None = None
        self.destroyed = False
        self._pending_signals: set[str] = {event_key(signal) for signal in LIFECYCLE_SIGNALS}

        provider = logger_provider or get_logger
        self.logger: logging.Logger = provider(f"{self.name}(Plugin)")

        if element is not None:
            self.apply_element(element, query)

        self._delegate: SystemDelegate = create_delegate(coordinator)
        if coordinator is not None:
            self._attach_system_listeners()

        super().__init__()

        if configuration is not None:
            try:
                self.reconfigure(configuration)
            except Exception:
                # a half-built plugin must not stay subscribed to the bus
                self.destroy()
                raise

    # ------------------------------------------------------------------
    # System bus delegates
    # ------------------------------------------------------------------

    @property
    def coordinator(self) -> Coordinator | None:
        """The coordinator this plugin is attached to, if any."""
        return self._delegate.coordinator

    def on_system_message(self, *args: Any, **kwargs: Any) -> Any:
        """Subscribe to a system message: ``(signal, handler)``."""
        return self._delegate.subscribe(*args, **kwargs)

    def un_system_message(self, *args: Any, **kwargs: Any) -> Any:
        """Unsubscribe from a system message: ``(signal, handler)``."""
        return self._delegate.unsubscribe(*args, **kwargs)

    def send_system_message(self, *args: Any, **kwargs: Any) -> Any:
        """Publish a system message: ``(signal, *payload)``."""
        return self._delegate.publish(*args, **kwargs)

    def _attach_system_listeners(self) -> None:
        self.on_system_message(PREPARED, self.on_prepared)
        self.on_system_message(READY, self.on_ready)
        self.on_system_message(PLUGINS_EXECUTED, self.on_plugins_executed)

    # ------------------------------------------------------------------
    # Element
    # ------------------------------------------------------------------

    def apply_element(self, element: Any, query: ElementQuery | None = None) -> None:
        """Attach the element this plugin works on."""
        if element is not None:
            self.element = wrap_element(element, query)

    def child(self, selector: str) -> list[Any]:
        """Return child elements of this plugin's element matching ``selector``."""
        if self.element is None:
            return []
        return self.element.query(selector)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def reconfigure(self, options: Mapping[str, Any]) -> None:
        """Merge ``options`` into the plugin configuration.

        Raises:
            ConfigError: If ``options`` is not a mapping or fails validation
                against ``options_model``.
        """
        if not isinstance(options, Mapping):
            raise ConfigError(
                f"Plugin {self.name} expects a mapping as configuration",
                context={"plugin": self.name, "type": type(options).__name__},
            )

        merged = {**self.config, **options}
        if self.options_model is not None:
            try:
                self.options = self.options_model.model_validate(merged)
            except ValidationError as e:
                raise wrap_exception(
                    e,
                    ConfigError,
                    f"Invalid configuration for Plugin {self.name}",
                    context={"plugin": self.name},
                ) from e
        self.config = merged

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def phase(self) -> LifecyclePhase:
        """Current lifecycle phase, derived from the signals still pending."""
        if self.destroyed:
            return LifecyclePhase.DESTROYED
        if PREPARED.value in self._pending_signals:
            return LifecyclePhase.CONSTRUCTED
        if READY.value in self._pending_signals:
            return LifecyclePhase.PREPARED
        if PLUGINS_EXECUTED.value in self._pending_signals:
            return LifecyclePhase.EXECUTED
        return LifecyclePhase.FINISHED

    def _leave_signal(self, signal: SystemSignal, handler: Callable[..., Any]) -> bool:
        """Stop listening to a lifecycle signal.

        Returns:
            Whether the signal was still pending for this instance.
        """
        if signal.value not in self._pending_signals:
            return False
        self._pending_signals.discard(signal.value)
        self.un_system_message(signal, handler)
        return True

    def on_prepared(self, *args: Any, **kwargs: Any) -> None:
        """Handle the system's ``prepared`` signal by initializing the plugin."""
        _ = (args, kwargs)
        if not self._leave_signal(PREPARED, self.on_prepared):
            return

        outcome = call_hook(self.init)
        if not outcome.ok:
            self._log_hook_error("initializing", outcome.error)

        # fired even after a failure so the rest of the system keeps running
        self.fire(INITIALIZED)

    def on_ready(self, *args: Any, **kwargs: Any) -> None:
        """Handle the system's ``ready`` signal by executing the plugin."""
        _ = (args, kwargs)
        if not self._leave_signal(READY, self.on_ready):
            return

        deferred = create_deferred()
        outcome = call_hook(self.execute, deferred)
        result = outcome.value

        if not outcome.ok:
            self._log_hook_error("executing", outcome.error)
            if not deferred.done():
                deferred.set_exception(outcome.error)
            result = deferred

        if not result or not is_thenable(result):
            self.fire(EXECUTED)
            return

        def _complete(token: Any) -> None:
            if self.destroyed:
                return
            error = settled_error(token)
            if error is not None and error is not outcome.error:
                self._log_hook_error("executing", error)
            # the settling future would only log a listener failure
            try:
                self.fire(EXECUTED)
            except Exception as e:
                self.logger.error(f"Error while notifying execution of Plugin {self.name}: {e}")

        when_settled(result, _complete)

    def on_plugins_executed(self, *args: Any, **kwargs: Any) -> None:
        """Handle the system's ``pluginsexecuted`` signal."""
        _ = (args, kwargs)
        if not self._leave_signal(PLUGINS_EXECUTED, self.on_plugins_executed):
            return
        self.on_finished()

    def _log_hook_error(self, stage: str, error: BaseException | None) -> None:
        self.logger.error(f"Error while {stage} Plugin {self.name}: {error}")

    def init(self) -> None:
        """Initialize the plugin / prepare it for execution."""

    def execute(self, deferred: Any) -> Any:
        """Execute the plugin.

        Return nothing to report completion right away. To finish later,
        keep ``deferred`` (or any other future), return it and resolve it
        once done; ``executed`` fires when it settles, unless the plugin was
        destroyed in the meantime. Listener errors raised from that late
        ``executed`` are logged through :attr:`logger` instead of propagating.

        Args:
            deferred: Pending completion token created for this execution.
        """
        if deferred is not None and not deferred.done():
            deferred.set_result(None)
        return deferred

    def on_finished(self) -> None:
        """Called once every plugin of the system has been executed."""

    # ------------------------------------------------------------------
    # System message bindings
    # ------------------------------------------------------------------

    def bind(
        self,
        fn: str | Callable[..., Any],
        extra_args: Sequence[Any] | None = None,
        append_args: bool = False,
    ) -> Callable[..., Any]:
        """Return a new callable bound to ``fn``.

        Args:
            fn: Name of a method of this plugin, or any callable.
            extra_args: Additional positional arguments for each call.
            append_args: Append ``extra_args`` instead of replacing the
                call-time arguments.

        Raises:
            InvalidBindingError: If ``fn`` does not resolve to a callable.
        """
        target: Any = fn
        if isinstance(fn, str):
            target = getattr(self, fn, None)
            if not callable(target):
                raise InvalidBindingError(
                    f"Given local function does neither exist nor is a function. "
                    f"Could not bind local function {self.name}.{fn}",
                    context={"plugin": self.name, "function": fn},
                )
        elif not callable(fn):
            raise InvalidBindingError(
                f"Given function is not callable. Could not bind to function in Plugin {self.name}",
                context={"plugin": self.name, "type": type(fn).__name__},
            )

        return bind_callable(target, extra_args, append_args)

    def bind_system_message(
        self,
        signal: str | Enum,
        handler: str | Callable[..., Any],
        extra_args: Sequence[Any] | None = None,
        append_args: bool = False,
        *,
        key: str | None = None,
    ) -> Callable[..., Any]:
        """Subscribe one of this plugin's handlers to a system message.

        The subscription is tracked under ``(signal, key)`` so it can be
        released with :meth:`unbind_system_message` or :meth:`destroy`.
        Binding an already bound pair replaces the old subscription.

        Args:
            signal: System message name.
            handler: Method name, or a callable together with ``key``.
            extra_args: Additional positional arguments for each call.
            append_args: Append ``extra_args`` instead of replacing the
                call-time arguments.
            key: Registry key; defaults to the method name or the
                callable's ``__name__``.

        Returns:
            The callable subscribed to the bus.

        Raises:
            InvalidBindingError: If ``handler`` is not callable or no key can
                be derived for it.
        """
        if key is None:
            key = handler if isinstance(handler, str) else getattr(handler, "__name__", None)
        if not isinstance(key, str) or not key:
            raise InvalidBindingError(
                f"Could not derive a binding key for system message "
                f'"{event_key(signal)}" in Plugin {self.name}; pass key=...',
                context={"plugin": self.name, "signal": event_key(signal)},
            )

        callable_ = self.bind(handler, extra_args, append_args)

        previous = self.subscription_registry.add(signal, key, callable_)
        if previous is not None:
            self.un_system_message(signal, previous)
        self.on_system_message(signal, callable_)
        return callable_

    def unbind_system_message(
        self,
        signal: str | Enum | None = None,
        key: str | None = None,
    ) -> None:
        """Release system message bindings.

        - no arguments: every binding of this plugin
        - ``signal`` only: every binding of that signal
        - ``signal`` and ``key``: exactly that binding

        Raises:
            NotBoundError: If ``(signal, key)`` is not bound.
        """
        registry = self.subscription_registry

        if signal is None:
            for name in registry.signals():
                self.unbind_system_message(name)
            return

        if key is None:
            for bound_key in registry.keys(signal):
                self.unbind_system_message(signal, bound_key)
            return

        try:
            callable_ = registry.remove(signal, key)
        except KeyError:
            raise NotBoundError(
                f"Could not unbind function {self.name}.{key} from system message "
                f'"{event_key(signal)}" because this combination does not exist',
                context={"plugin": self.name, "signal": event_key(signal), "function": key},
            ) from None

        self.un_system_message(signal, callable_)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def destroy(self) -> None:
        """Detach the plugin from the system bus.

        Releases every tracked binding and any lifecycle subscription that
        has not fired yet. The plugin is unusable afterwards.
        """
        if self.destroyed:
            return

        self.unbind_system_message()
        self._leave_signal(PREPARED, self.on_prepared)
        self._leave_signal(READY, self.on_ready)
        self._leave_signal(PLUGINS_EXECUTED, self.on_plugins_executed)

        self.destroyed = True
        self.logger = get_null_logger()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} phase={self.phase.value}>"
