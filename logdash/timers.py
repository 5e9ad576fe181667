from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], /) -> TimerHandle: ...


def now_ms() -> int:
    return int(time.time() * 1000)


class TimerSlot:
    """A single cancellable delayed call.

    Arming always cancels whatever is pending first, so at most one call is
    ever scheduled. Without an explicit scheduler the running asyncio loop is
    used at arm time.
    """

    def __init__(self, delay_ms: int, *, scheduler: Scheduler | None = None, name: str = "timer"):
        self.delay_ms = delay_ms
        self.name = name
        self._scheduler = scheduler
        self._handle: TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(self, callback: Callable[[], None]) -> None:
        self.cancel()
        scheduler = self._scheduler or asyncio.get_running_loop()

        def _fire() -> None:
            self._handle = None
            logger.debug("%s fired after %sms", self.name, self.delay_ms)
            callback()

        self._handle = scheduler.call_later(self.delay_ms / 1000, _fire)

    def cancel(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()
