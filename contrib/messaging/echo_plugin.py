"""Echo plugin: answers ``echo`` system messages with ``echoed``."""

from __future__ import annotations

from typing import Any

from plugins.base import Plugin


class EchoPlugin(Plugin):
    """Reply to every ``echo`` message and record lifecycle progress.

    Options:
        prefix: Text prepended to echoed payloads.
    """

    name = "Echo"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.events: list[str] = []
        self.replies: list[str] = []
        super().__init__(*args, **kwargs)

    def init(self) -> None:
        self.events.append("init")
        self.bind_system_message("echo", "on_echo")

    def execute(self, deferred: Any) -> None:
        _ = deferred
        self.events.append("execute")

    def on_finished(self) -> None:
        self.events.append("finished")

    def on_echo(self, payload: Any) -> None:
        reply = f"{self.config.get('prefix', '')}{payload}"
        self.replies.append(reply)
        self.send_system_message("echoed", reply)
