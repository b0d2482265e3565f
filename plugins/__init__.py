"""Plugin abstractions for pluginkit."""

from .base import HookOutcome, Plugin, call_hook
from .delegate import AttachedDelegate, UnattachedDelegate, create_delegate
from .element import ElementContext, etree_query, wrap_element
from .manager import PluginSystem, load_target
from .protocols import Coordinator, ElementQuery, LoggerProvider
from .registry import SubscriptionRegistry

__all__ = [
    "Plugin",
    "PluginSystem",
    "HookOutcome",
    "call_hook",
    "load_target",
    "SubscriptionRegistry",
    "AttachedDelegate",
    "UnattachedDelegate",
    "create_delegate",
    "ElementContext",
    "etree_query",
    "wrap_element",
    "Coordinator",
    "ElementQuery",
    "LoggerProvider",
]
