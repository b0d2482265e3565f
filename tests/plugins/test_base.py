"""Unit tests for the plugin lifecycle."""

from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Any
from unittest.mock import Mock

import pytest
from pydantic import BaseModel, Field

from core.bus import MessageBus
from core.events import LifecyclePhase
from core.exceptions import ConfigError
from plugins.base import Plugin, call_hook


def _logger_provider() -> tuple[Mock, Mock]:
    logger = Mock(spec=logging.Logger)
    return Mock(return_value=logger), logger


class _RecordingPlugin(Plugin):
    """Plugin test double that records hook calls."""

    name = "Sample"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.calls: list[str] = []
        super().__init__(*args, **kwargs)

    def init(self) -> None:
        self.calls.append("init")

    def execute(self, deferred: Any) -> Any:
        self.calls.append("execute")
        return super().execute(deferred)

    def on_finished(self) -> None:
        self.calls.append("finished")


class _FailingPlugin(_RecordingPlugin):
    def init(self) -> None:
        super().init()
        raise RuntimeError("init exploded")

    def execute(self, deferred: Any) -> Any:
        self.calls.append("execute")
        raise ValueError("execute exploded")


def _track_local_events(plugin: Plugin) -> list[str]:
    events: list[str] = []
    plugin.on("initialized", lambda: events.append("initialized"))
    plugin.on("executed", lambda: events.append("executed"))
    return events


def test_sample_scenario() -> None:
    """prepared -> ready -> pluginsexecuted -> destroy on a default plugin."""
    bus = MessageBus()
    provider, logger = _logger_provider()
    plugin = _RecordingPlugin(None, None, bus, logger_provider=provider)
    events = _track_local_events(plugin)

    provider.assert_called_once_with("Sample(Plugin)")
    assert plugin.phase is LifecyclePhase.CONSTRUCTED

    bus.publish("prepared")
    assert plugin.calls == ["init"]
    assert events == ["initialized"]
    assert plugin.phase is LifecyclePhase.PREPARED
    logger.error.assert_not_called()

    bus.publish("ready")
    assert events == ["initialized", "executed"]
    assert plugin.phase is LifecyclePhase.EXECUTED

    bus.publish("pluginsexecuted")
    assert plugin.calls == ["init", "execute", "finished"]
    assert plugin.phase is LifecyclePhase.FINISHED

    plugin.destroy()
    assert len(plugin.subscription_registry) == 0
    assert plugin.phase is LifecyclePhase.DESTROYED
    assert bus.get_stats()["subscribers"] == {}


def test_lifecycle_subscriptions_made_at_construction() -> None:
    bus = MessageBus()

    Plugin(coordinator=bus)

    assert bus.get_stats()["subscribers"] == {
        "prepared": 1,
        "ready": 1,
        "pluginsexecuted": 1,
    }


def test_plugin_without_coordinator_is_dormant() -> None:
    plugin = _RecordingPlugin()

    assert plugin.coordinator is None
    assert plugin.send_system_message("anything", 1) == 0
    assert plugin.un_system_message("anything", print) is False

    # manual invocation still drives the lifecycle once
    plugin.on_prepared()
    plugin.on_prepared()
    plugin.on_ready()
    plugin.on_plugins_executed()

    assert plugin.calls == ["init", "execute", "finished"]


def test_prepared_twice_runs_init_once() -> None:
    bus = MessageBus()
    plugin = _RecordingPlugin(coordinator=bus)
    events = _track_local_events(plugin)

    bus.publish("prepared")
    bus.publish("prepared")

    assert plugin.calls == ["init"]
    assert events == ["initialized"]


def test_each_handler_unsubscribes_itself_first() -> None:
    coordinator = Mock()
    plugin = Plugin(coordinator=coordinator)

    plugin.on_prepared()
    coordinator.unsubscribe.assert_called_once_with("prepared", plugin.on_prepared)

    plugin.on_ready()
    coordinator.unsubscribe.assert_called_with("ready", plugin.on_ready)

    plugin.on_plugins_executed()
    coordinator.unsubscribe.assert_called_with("pluginsexecuted", plugin.on_plugins_executed)
    assert coordinator.unsubscribe.call_count == 3


def test_failing_hooks_still_progress_lifecycle() -> None:
    """init/execute failures are logged once each and the lifecycle continues."""
    bus = MessageBus()
    provider, logger = _logger_provider()
    plugin = _FailingPlugin(coordinator=bus, logger_provider=provider)
    events = _track_local_events(plugin)

    bus.publish("prepared")
    bus.publish("ready")
    bus.publish("pluginsexecuted")

    assert events == ["initialized", "executed"]
    assert plugin.calls == ["init", "execute", "finished"]
    assert logger.error.call_count == 2
    messages = [call.args[0] for call in logger.error.call_args_list]
    assert messages == [
        "Error while initializing Plugin Sample: init exploded",
        "Error while executing Plugin Sample: execute exploded",
    ]


def test_hook_errors_logged_through_logging(caplog: pytest.LogCaptureFixture) -> None:
    plugin = _FailingPlugin()

    with caplog.at_level(logging.ERROR, logger="Sample(Plugin)"):
        plugin.on_prepared()

    assert caplog.messages == ["Error while initializing Plugin Sample: init exploded"]


def test_execute_without_result_fires_executed_synchronously() -> None:
    class SyncPlugin(Plugin):
        def execute(self, deferred: Any) -> None:
            _ = deferred

    plugin = SyncPlugin()
    events = _track_local_events(plugin)

    plugin.on_ready()

    assert events == ["executed"]


def test_execute_with_plain_truthy_result_completes_synchronously() -> None:
    class ValuePlugin(Plugin):
        def execute(self, deferred: Any) -> str:
            _ = deferred
            return "done"

    plugin = ValuePlugin()
    events = _track_local_events(plugin)

    plugin.on_ready()

    assert events == ["executed"]


def test_pending_token_defers_executed_until_resolved() -> None:
    class AsyncPlugin(Plugin):
        token: Future[Any] | None = None

        def execute(self, deferred: Future[Any]) -> Future[Any]:
            self.token = deferred
            return deferred

    plugin = AsyncPlugin()
    events = _track_local_events(plugin)

    plugin.on_ready()
    assert events == []

    assert plugin.token is not None
    plugin.token.set_result(None)
    assert events == ["executed"]

    plugin.on_ready()
    assert events == ["executed"]


def test_execute_may_return_another_future() -> None:
    external: Future[Any] = Future()

    class ComposedPlugin(Plugin):
        def execute(self, deferred: Future[Any]) -> Future[Any]:
            _ = deferred
            return external

    plugin = ComposedPlugin()
    events = _track_local_events(plugin)

    plugin.on_ready()
    assert events == []

    external.set_result("ok")
    assert events == ["executed"]


def test_failed_token_is_logged_and_still_completes() -> None:
    provider, logger = _logger_provider()

    class RejectingPlugin(Plugin):
        name = "Rejecting"
        token: Future[Any] | None = None

        def execute(self, deferred: Future[Any]) -> Future[Any]:
            self.token = deferred
            return deferred

    plugin = RejectingPlugin(logger_provider=provider)
    events = _track_local_events(plugin)
    plugin.on_ready()

    logger.error.assert_not_called()
    assert events == []

    assert plugin.token is not None
    plugin.token.set_exception(RuntimeError("rejected"))

    logger.error.assert_called_once_with("Error while executing Plugin Rejecting: rejected")
    assert events == ["executed"]


def test_execute_raising_after_resolving_deferred() -> None:
    provider, logger = _logger_provider()

    class HalfwayPlugin(Plugin):
        def execute(self, deferred: Future[Any]) -> Any:
            deferred.set_result(None)
            raise RuntimeError("after resolve")

    plugin = HalfwayPlugin(logger_provider=provider)
    events = _track_local_events(plugin)

    plugin.on_ready()

    assert events == ["executed"]
    logger.error.assert_called_once_with("Error while executing Plugin Plugin: after resolve")


def test_token_settling_after_destroy_is_ignored() -> None:
    provider, logger = _logger_provider()

    class AsyncPlugin(Plugin):
        token: Future[Any] | None = None

        def execute(self, deferred: Future[Any]) -> Future[Any]:
            self.token = deferred
            return deferred

    plugin = AsyncPlugin(logger_provider=provider)
    events = _track_local_events(plugin)
    plugin.on_ready()

    plugin.destroy()
    assert plugin.token is not None
    plugin.token.set_exception(RuntimeError("too late"))

    assert events == []
    logger.error.assert_not_called()


def test_executed_listener_error_on_late_completion_is_logged() -> None:
    provider, logger = _logger_provider()

    class AsyncPlugin(Plugin):
        name = "Late"
        token: Future[Any] | None = None

        def execute(self, deferred: Future[Any]) -> Future[Any]:
            self.token = deferred
            return deferred

    plugin = AsyncPlugin(logger_provider=provider)
    plugin.on("executed", Mock(side_effect=RuntimeError("listener exploded")))
    plugin.on_ready()

    assert plugin.token is not None
    plugin.token.set_result(None)

    logger.error.assert_called_once_with(
        "Error while notifying execution of Plugin Late: listener exploded"
    )


def test_on_finished_errors_propagate() -> None:
    class BrokenFinish(Plugin):
        def on_finished(self) -> None:
            raise RuntimeError("finish exploded")

    plugin = BrokenFinish()

    with pytest.raises(RuntimeError, match="finish exploded"):
        plugin.on_plugins_executed()


def test_default_hooks() -> None:
    plugin = Plugin()
    token: Future[Any] = Future()

    assert plugin.init() is None
    assert plugin.on_finished() is None
    assert plugin.execute(token) is token
    assert token.done() is True


def test_call_hook_captures_outcome() -> None:
    ok = call_hook(lambda: 5)
    failed = call_hook(Mock(side_effect=KeyError("missing")))

    assert ok.ok is True
    assert ok.value == 5
    assert failed.ok is False
    assert isinstance(failed.error, KeyError)


def test_destroy_releases_pending_lifecycle_subscriptions() -> None:
    bus = MessageBus()
    plugin = _RecordingPlugin(coordinator=bus)

    plugin.destroy()
    bus.publish("prepared")
    bus.publish("ready")
    bus.publish("pluginsexecuted")
    plugin.on_prepared()

    assert plugin.calls == []
    assert bus.get_stats()["subscribers"] == {}


def test_destroy_replaces_logger_with_null_logger() -> None:
    provider, logger = _logger_provider()
    plugin = Plugin(logger_provider=provider)

    plugin.destroy()
    plugin.destroy()
    plugin.logger.error("ignored")

    assert plugin.logger is not logger
    assert plugin.logger.disabled is True
    logger.error.assert_not_called()


class TestConfiguration:
    """reconfigure and options validation."""

    def test_configuration_applied_last(self) -> None:
        seen: list[Any] = []

        class OrderPlugin(Plugin):
            def reconfigure(self, options: Any) -> None:
                seen.append((self.coordinator, dict(options)))
                super().reconfigure(options)

        bus = MessageBus()
        plugin = OrderPlugin({"a": 1}, None, bus)

        assert seen == [(bus, {"a": 1})]
        assert plugin.config == {"a": 1}

    def test_reconfigure_merges(self) -> None:
        plugin = Plugin({"a": 1, "b": 2})

        plugin.reconfigure({"b": 3, "c": 4})

        assert plugin.config == {"a": 1, "b": 3, "c": 4}

    def test_non_mapping_configuration_rejected(self) -> None:
        with pytest.raises(ConfigError):
            Plugin(["not", "a", "mapping"])  # type: ignore[arg-type]

    def test_options_model_validation(self) -> None:
        class Options(BaseModel):
            retries: int = Field(default=1, ge=0)

        class TypedPlugin(Plugin):
            options_model = Options

        plugin = TypedPlugin({"retries": "3"})
        assert isinstance(plugin.options, Options)
        assert plugin.options.retries == 3

        with pytest.raises(ConfigError) as exc_info:
            plugin.reconfigure({"retries": -1})
        assert exc_info.value.cause is not None
        assert plugin.config == {"retries": "3"}

    def test_failed_configuration_leaves_no_subscriptions(self) -> None:
        bus = MessageBus()

        with pytest.raises(ConfigError):
            Plugin("broken", None, bus)  # type: ignore[arg-type]

        assert bus.get_stats()["subscribers"] == {}
