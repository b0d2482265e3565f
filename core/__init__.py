"""
pluginkit - plugin lifecycle framework core
"""

__version__ = "0.1.0"

from core.bus import MessageBus, create_bus
from core.events import LifecyclePhase, PluginEvent, SystemSignal
from core.observable import Observable

__all__ = [
    "MessageBus",
    "Observable",
    "SystemSignal",
    "PluginEvent",
    "LifecyclePhase",
    "create_bus",
]
