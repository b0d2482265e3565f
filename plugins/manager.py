"""Plugin system implementation.

The plugin system is the coordinator plugins are constructed with. It owns
the message bus, constructs plugins, broadcasts the lifecycle signals and
waits for every plugin to report execution before announcing
``pluginsexecuted``.
"""

from __future__ import annotations

import functools
import importlib
import logging
import threading
from collections.abc import Callable, Mapping
from concurrent.futures import Future
from typing import Any

from core.bus import MessageBus
from core.config import SystemConfig
from core.events import EXECUTED, PLUGINS_EXECUTED, PREPARED, READY
from core.exceptions import LifecycleError, wrap_exception

from .base import Plugin

logger = logging.getLogger(__name__)


def load_target(target: str) -> type[Plugin]:
    """Import a plugin class from a ``package.module:ClassName`` target.

    Raises:
        LifecycleError: If the target cannot be imported or is not a
            :class:`Plugin` subclass.
    """
    module_name, _, attr = target.partition(":")
    try:
        module = importlib.import_module(module_name)
        plugin_cls = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise wrap_exception(
            e,
            LifecycleError,
            f"Could not load plugin target {target!r}",
            context={"target": target},
        ) from e

    if not isinstance(plugin_cls, type) or not issubclass(plugin_cls, Plugin):
        raise LifecycleError(
            f"Plugin target {target!r} is not a Plugin subclass",
            context={"target": target},
        )
    return plugin_cls


class PluginSystem(MessageBus):
    """Construct plugins and drive them through their lifecycle."""

    def __init__(self, isolate_errors: bool = True) -> None:
        """Initialize an empty plugin system."""
        super().__init__(isolate_errors=isolate_errors)
        self._plugins: list[Plugin] = []
        self._pending: list[Plugin] = []
        self._started: bool = False
        self._dispatching_ready: bool = False
        self._finished: Future[list[Plugin]] = Future()
        self._executed_listeners: dict[int, Callable[[], None]] = {}
        self._completing: bool = False
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: SystemConfig) -> PluginSystem:
        """Build a system and register every configured plugin."""
        system = cls(isolate_errors=config.bus.isolate_errors)
        for entry in config.plugins:
            plugin_cls = load_target(entry.target)
            system.register(plugin_cls, entry.options, entry.element)
        return system

    @property
    def plugins(self) -> list[Plugin]:
        """Return all plugins in registration order."""
        return list(self._plugins)

    @property
    def pending(self) -> list[Plugin]:
        """Return plugins that have not reported execution yet."""
        with self._lock:
            return list(self._pending)

    @property
    def started(self) -> bool:
        return self._started

    @property
    def finished(self) -> Future[list[Plugin]]:
        """Future resolved once ``pluginsexecuted`` was published."""
        return self._finished

    def register(
        self,
        plugin_cls: type[Plugin],
        options: Mapping[str, Any] | None = None,
        element: Any = None,
    ) -> Plugin:
        """Construct a plugin attached to this system.

        Args:
            plugin_cls: Plugin class.
            options: Plugin configuration.
            element: Optional element handle.

        Returns:
            The constructed plugin.

        Raises:
            LifecycleError: If the system already started or ``plugin_cls``
                is not a :class:`Plugin` subclass.
        """
        if not isinstance(plugin_cls, type) or not issubclass(plugin_cls, Plugin):
            raise LifecycleError(
                f"Expected a Plugin subclass, got {plugin_cls!r}",
                context={"type": type(plugin_cls).__name__},
            )
        self._ensure_not_started()
        plugin = plugin_cls(options, element, self)
        self._track(plugin)
        return plugin

    def add(self, plugin: Plugin) -> None:
        """Adopt a plugin already constructed with this system as coordinator.

        Raises:
            LifecycleError: If the system already started, or the plugin is
                attached to another coordinator.
        """
        self._ensure_not_started()
        if plugin.coordinator is not self:
            raise LifecycleError(
                f"Plugin {plugin.name} is not attached to this system",
                context={"plugin": plugin.name},
            )
        if any(existing is plugin for existing in self._plugins):
            return
        self._track(plugin)

    def get(self, name: str) -> Plugin | None:
        """Return the first plugin with the given name."""
        for plugin in self._plugins:
            if plugin.name == name:
                return plugin
        return None

    def has(self, name: str) -> bool:
        """Return whether a plugin with the given name is registered."""
        return self.get(name) is not None

    def run(self) -> Future[list[Plugin]]:
        """Broadcast ``prepared`` and ``ready``.

        ``pluginsexecuted`` follows once every plugin fired ``executed``,
        which may happen later for plugins completing asynchronously.

        Returns:
            The :attr:`finished` future.

        Raises:
            LifecycleError: If the system was already started.
        """
        self._ensure_not_started()
        self._started = True

        logger.info(f"Starting plugin system with {len(self._plugins)} plugin(s)")
        self.publish(PREPARED)

        with self._lock:
            self._dispatching_ready = True
        try:
            self.publish(READY)
        finally:
            with self._lock:
                self._dispatching_ready = False

        self._check_all_executed()
        return self._finished

    def shutdown(self) -> None:
        """Destroy all plugins in reverse registration order."""
        for plugin in reversed(self._plugins):
            listener = self._executed_listeners.pop(id(plugin), None)
            if listener is not None:
                plugin.un(EXECUTED, listener)
            plugin.destroy()

        logger.info(f"Plugin system shut down, {len(self._plugins)} plugin(s) destroyed")
        self._plugins = []
        with self._lock:
            self._pending = []

    def _track(self, plugin: Plugin) -> None:
        listener = functools.partial(self._on_plugin_executed, plugin)
        self._executed_listeners[id(plugin)] = listener
        self._plugins.append(plugin)
        self._pending.append(plugin)
        plugin.on(EXECUTED, listener)

    def _ensure_not_started(self) -> None:
        if self._started:
            raise LifecycleError("Plugin system already started")

    def _on_plugin_executed(self, plugin: Plugin) -> None:
        # may be called from the thread that settled the plugin's token
        with self._lock:
            self._pending = [other for other in self._pending if other is not plugin]
            remaining = len(self._pending)
            dispatching = self._dispatching_ready
        logger.debug(f"Plugin {plugin.name} executed, {remaining} pending")
        if not dispatching:
            self._check_all_executed()

    def _check_all_executed(self) -> None:
        with self._lock:
            if self._pending or self._completing:
                return
            self._completing = True
        logger.info("All plugins executed")
        self.publish(PLUGINS_EXECUTED)
        self._finished.set_result(list(self._plugins))
