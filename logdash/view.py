from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from .api import ENVIRONMENTS_FAILED_MESSAGE, LogsBackend
from .filters import FilterState, parse_filter_state
from .history import LocationHistory
from .models import EnvironmentOption
from .orchestrator import DEFAULT_REFRESH_INDICATOR_MS, SearchOrchestrator
from .pagination import PageLink, pagination_items
from .query import APPLICATION_LOG_TYPE, DEFAULT_PAGE_SIZE
from .timers import Scheduler, TimerSlot, now_ms
from .url_sync import (
    clear_all,
    manual_refresh,
    refresh_token,
    set_custom_range,
    set_page,
    set_search_text,
    set_time_range,
    share_url,
    toggle,
)

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_DEBOUNCE_MS = 500


class LogsView:
    """One application-logs view bound to a project.

    Filter intents rewrite the location; every location change re-derives the
    filter state and hands it to the orchestrator, which decides whether a
    fetch is needed. Must be driven from a running event loop.
    """

    def __init__(
        self,
        project_id: str,
        backend: LogsBackend,
        *,
        token: str | None = None,
        history: LocationHistory | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        search_debounce_ms: int = DEFAULT_SEARCH_DEBOUNCE_MS,
        refresh_indicator_ms: int = DEFAULT_REFRESH_INDICATOR_MS,
        scheduler: Scheduler | None = None,
        clock: Callable[[], int] = now_ms,
        scroll_to_top: Callable[[], None] | None = None,
    ):
        self.project_id = project_id
        self.backend = backend
        self.token = token
        self.history = history or LocationHistory()
        self._clock = clock
        self.orchestrator = SearchOrchestrator(
            backend,
            token=token,
            page_size=page_size,
            refresh_indicator_ms=refresh_indicator_ms,
            scheduler=scheduler,
            clock=clock,
            scroll_to_top=scroll_to_top,
        )
        self._debounce = TimerSlot(search_debounce_ms, scheduler=scheduler, name="search-debounce")
        self.state: FilterState = parse_filter_state(self.history.query)
        self.search_input = self.state.search_text
        self._synced_search = self.state.search_text
        self.environments: list[EnvironmentOption] | None = None
        self.environment_error: str | None = None
        self._environment_task: asyncio.Task[list[EnvironmentOption]] | None = None
        self._started = False
        self._closed = False
        self.history.subscribe(self._on_location_change)

    @property
    def query(self) -> str:
        return self.history.query

    @property
    def loading_environments(self) -> bool:
        return self._environment_task is not None and not self._environment_task.done()

    def start(self) -> None:
        if self._closed:
            raise RuntimeError("view is closed")
        self._started = True
        self._render()

    def close(self) -> None:
        self._closed = True
        self.history.unsubscribe(self._on_location_change)
        self._debounce.cancel()
        self.orchestrator.close()
        task = self._environment_task
        if task is not None and not task.done():
            task.cancel()

    def _on_location_change(self, query: str) -> None:
        if self._started and not self._closed:
            self._render()

    def _render(self) -> None:
        self.state = parse_filter_state(self.query)
        # The input box follows the URL only when the URL's search changed.
        if self.state.search_text != self._synced_search:
            self._synced_search = self.state.search_text
            self.search_input = self.state.search_text
        self.orchestrator.update(self.project_id, self.state, refresh_token(self.query))

    def toggle_level(self, level: str) -> None:
        self.history.replace(toggle(self.query, "level", level))

    def toggle_environment(self, environment: str) -> None:
        self.history.replace(toggle(self.query, "environment", environment))

    def toggle_hostname(self, hostname: str) -> None:
        self.history.replace(toggle(self.query, "hostname", hostname))

    def set_time_range(self, time_range: str) -> None:
        self.history.replace(set_time_range(self.query, time_range))

    def set_custom_range(self, start_ms: int | None, end_ms: int | None) -> None:
        self.history.replace(set_custom_range(self.query, start_ms, end_ms))

    def clear_filters(self) -> None:
        self._debounce.cancel()
        self.search_input = ""
        self.history.replace(clear_all(self.query))

    def go_to_page(self, page: int) -> None:
        if page == self.state.page:
            return
        self.history.push(set_page(self.query, page))

    def reload(self) -> None:
        token = self._clock()
        current = refresh_token(self.query)
        if current is not None and current == str(token):
            token += 1
        self.history.replace(manual_refresh(self.query, token))

    def back(self) -> bool:
        return self.history.back()

    def forward(self) -> bool:
        return self.history.forward()

    def type_search(self, text: str) -> None:
        self.search_input = text
        self._debounce.arm(self._commit_search)

    def clear_search(self) -> None:
        self.type_search("")

    def _commit_search(self) -> None:
        if self.search_input != self.state.search_text:
            self.history.replace(set_search_text(self.query, self.search_input))

    async def open_environment_filter(self) -> list[EnvironmentOption]:
        """Load environment options on first open; later opens reuse the cache.

        A failed load only affects this control: it is logged, recorded in
        ``environment_error``, and retried on the next open.
        """

        if self.environments is not None:
            return self.environments
        if self._environment_task is None or self._environment_task.done():
            self._environment_task = asyncio.get_running_loop().create_task(
                self.backend.list_environments(self.project_id, APPLICATION_LOG_TYPE, self.token)
            )
        task = self._environment_task
        try:
            options = await asyncio.shield(task)
        except Exception as exc:
            logger.warning(
                "environment options load failed for %s", self.project_id, exc_info=exc
            )
            self.environment_error = str(exc) or ENVIRONMENTS_FAILED_MESSAGE
            return []
        self.environments = options
        self.environment_error = None
        return options

    def page_links(self) -> list[PageLink]:
        pagination = self.orchestrator.pagination
        return pagination_items(self.query, pagination.page, pagination.total_pages)

    def share_url(self, dashboard_url: str) -> str:
        return share_url(dashboard_url, self.project_id, self.query)

    async def wait_idle(self) -> None:
        await self.orchestrator.wait_idle()
