"""Search orchestration for the application-logs view.

A fetch is issued only when the trigger key changes. Every fetch gets a new
generation number; a response whose generation is not the latest is dropped,
which keeps the last request authoritative when responses arrive out of
order. The previous in-flight task is also cancelled on supersede.

Two loading flags drive the UI: ``initial_loading`` while nothing has been
rendered yet, and ``refreshing`` which only turns on if a soft refresh is
still running after the indicator delay.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from .api import FETCH_FAILED_MESSAGE, LogsBackend
from .filters import FilterState
from .models import LogRecord, Pagination, SearchResult
from .query import DEFAULT_PAGE_SIZE, SearchRequest, build_search_request
from .timers import Scheduler, TimerSlot, now_ms

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INDICATOR_MS = 300


@dataclass(frozen=True, slots=True)
class TriggerKey:
    project_id: str
    page: int
    levels: str
    environments: str
    hostnames: str
    search_text: str
    time_range: str
    custom_start: int | None
    custom_end: int | None
    refresh_token: str | None


def _canonical(values: Iterable[str]) -> str:
    return ",".join(sorted(values))


def trigger_key(
    project_id: str, state: FilterState, refresh_token: str | None = None
) -> TriggerKey:
    return TriggerKey(
        project_id=project_id,
        page=state.page,
        levels=_canonical(state.levels),
        environments=_canonical(state.environments),
        hostnames=_canonical(state.hostnames),
        search_text=state.search_text,
        time_range=state.time_range,
        custom_start=state.custom_start,
        custom_end=state.custom_end,
        refresh_token=refresh_token,
    )


class SearchOrchestrator:
    def __init__(
        self,
        backend: LogsBackend,
        *,
        token: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        refresh_indicator_ms: int = DEFAULT_REFRESH_INDICATOR_MS,
        scheduler: Scheduler | None = None,
        clock: Callable[[], int] = now_ms,
        scroll_to_top: Callable[[], None] | None = None,
    ):
        self._backend = backend
        self._token = token
        self._clock = clock
        self._scroll_to_top = scroll_to_top
        self.page_size = page_size
        self.initial_loading = False
        self.refreshing = False
        self.error: str | None = None
        self.last_request: SearchRequest | None = None
        self._result: SearchResult | None = None
        self._generation = 0
        self._last_key: TriggerKey | None = None
        self._task: asyncio.Task[None] | None = None
        self._refresh_timer = TimerSlot(
            refresh_indicator_ms, scheduler=scheduler, name="refresh-indicator"
        )
        self._listeners: list[Callable[[SearchOrchestrator], None]] = []

    @property
    def logs(self) -> list[LogRecord]:
        return self._result.logs if self._result else []

    @property
    def pagination(self) -> Pagination:
        if self._result:
            return self._result.pagination
        return Pagination(page_size=self.page_size)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def status(self) -> str:
        if self.initial_loading:
            return "initial_loading"
        if self.error and not self.logs:
            return "error"
        if not self.logs:
            return "empty"
        return "ready"

    def subscribe(self, listener: Callable[[SearchOrchestrator], None]) -> None:
        self._listeners.append(listener)

    def update(
        self, project_id: str, state: FilterState, refresh_token: str | None = None
    ) -> bool:
        """Refetch if any triggering input changed. Returns True when a fetch was issued."""

        key = trigger_key(project_id, state, refresh_token)
        if key == self._last_key:
            return False
        self._last_key = key
        self._issue(project_id, state)
        return True

    def _issue(self, project_id: str, state: FilterState) -> None:
        initial = not self.logs
        if initial:
            self._refresh_timer.cancel()
            self.initial_loading = True
        else:
            self._refresh_timer.arm(self._show_refreshing)

        request = build_search_request(state, self._clock(), page_size=self.page_size)
        self.last_request = request
        self._generation += 1
        generation = self._generation
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.debug(
            "search issued project=%s generation=%s initial=%s", project_id, generation, initial
        )
        self._task = asyncio.get_running_loop().create_task(
            self._run(generation, project_id, request, initial)
        )
        self._notify()

    def _show_refreshing(self) -> None:
        self.refreshing = True
        self._notify()

    async def _run(
        self, generation: int, project_id: str, request: SearchRequest, initial: bool
    ) -> None:
        try:
            result = await self._backend.search(project_id, request, self._token)
        except Exception as exc:
            self._complete(generation, initial, error=exc)
            return
        self._complete(generation, initial, result=result)

    def _complete(
        self,
        generation: int,
        initial: bool,
        *,
        result: SearchResult | None = None,
        error: Exception | None = None,
    ) -> None:
        if generation != self._generation:
            logger.debug(
                "dropping stale response generation=%s latest=%s", generation, self._generation
            )
            return
        self._refresh_timer.cancel()
        if error is None and result is not None:
            self._result = result
            self.error = None
            if initial and self._scroll_to_top is not None:
                self._scroll_to_top()
        else:
            # Rendered logs stay on screen; only the message changes.
            logger.warning("search failed generation=%s: %s", generation, error)
            self.error = str(error or "") or FETCH_FAILED_MESSAGE
        self.initial_loading = False
        self.refreshing = False
        self._notify()

    async def wait_idle(self) -> None:
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    def close(self) -> None:
        self._refresh_timer.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
