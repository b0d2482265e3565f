"""Signal names and lifecycle phase definitions."""

from __future__ import annotations

from enum import Enum


class SystemSignal(str, Enum):
    """Signals broadcast by the coordinator to every plugin."""

    PREPARED = "prepared"
    READY = "ready"
    PLUGINS_EXECUTED = "pluginsexecuted"


class PluginEvent(str, Enum):
    """Events a plugin fires on its own local publisher."""

    INITIALIZED = "initialized"
    EXECUTED = "executed"


class LifecyclePhase(str, Enum):
    """Ordered lifecycle stages of one plugin instance."""

    CONSTRUCTED = "constructed"
    PREPARED = "prepared"
    EXECUTED = "executed"
    FINISHED = "finished"
    DESTROYED = "destroyed"


# Convenient aliases for readability.
PREPARED = SystemSignal.PREPARED
READY = SystemSignal.READY
PLUGINS_EXECUTED = SystemSignal.PLUGINS_EXECUTED
INITIALIZED = PluginEvent.INITIALIZED
EXECUTED = PluginEvent.EXECUTED

LIFECYCLE_SIGNALS: tuple[SystemSignal, ...] = (PREPARED, READY, PLUGINS_EXECUTED)
