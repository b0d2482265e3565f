"""Tests for the delayed plugin."""

from __future__ import annotations

import threading

import pytest

from core.exceptions import ConfigError
from plugins.manager import PluginSystem


def test_delayed_plugin_completes_asynchronously() -> None:
    from contrib.timing.delayed_plugin import DelayedOptions, DelayedPlugin

    system = PluginSystem()
    plugin = system.register(DelayedPlugin, {"delay": 0.01})
    executed = threading.Event()
    plugin.on("executed", executed.set)

    finished = system.run()

    assert isinstance(plugin.options, DelayedOptions)
    assert plugin.options.delay == pytest.approx(0.01)
    assert executed.wait(timeout=5) is True
    assert finished.result(timeout=5) == [plugin]
    system.shutdown()


def test_delayed_plugin_defaults() -> None:
    from contrib.timing.delayed_plugin import DelayedPlugin

    plugin = DelayedPlugin()

    assert plugin.options is None
    assert plugin.name == "Delayed"


def test_delayed_plugin_rejects_negative_delay() -> None:
    from contrib.timing.delayed_plugin import DelayedPlugin

    with pytest.raises(ConfigError):
        DelayedPlugin({"delay": -1})


def test_destroy_cancels_pending_timer() -> None:
    from contrib.timing.delayed_plugin import DelayedPlugin

    plugin = DelayedPlugin({"delay": 60})
    plugin.on_ready()
    assert plugin.timer is not None

    plugin.destroy()

    plugin.timer.join(timeout=5)
    assert plugin.timer.is_alive() is False
