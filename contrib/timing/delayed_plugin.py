"""Delayed plugin: completes its execute phase from a timer thread."""

from __future__ import annotations

import threading
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from plugins.base import Plugin


class DelayedOptions(BaseModel):
    """Options for :class:`DelayedPlugin`."""

    model_config = ConfigDict(extra="allow")

    delay: float = Field(default=0.1, ge=0)
    result: str = "done"


class DelayedPlugin(Plugin):
    """延迟插件。

    ``execute`` returns its completion token and resolves it after
    ``delay`` seconds, so ``executed`` fires asynchronously.
    """

    name = "Delayed"
    options_model = DelayedOptions

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.timer: threading.Timer | None = None
        super().__init__(*args, **kwargs)

    def execute(self, deferred: Any) -> Any:
        options = self.options if isinstance(self.options, DelayedOptions) else DelayedOptions()
        self.timer = threading.Timer(options.delay, deferred.set_result, args=(options.result,))
        self.timer.daemon = True
        self.timer.start()
        return deferred

    def destroy(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
        super().destroy()
