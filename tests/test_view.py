from __future__ import annotations

import asyncio

from logdash.api import EnvironmentLoadError
from logdash.history import LocationHistory
from logdash.models import EnvironmentOption
from logdash.url_sync import refresh_token
from logdash.view import LogsView

NOW = 1_700_000_000_000


def _view(backend, scheduler, query: str = "") -> LogsView:
    return LogsView(
        "p1",
        backend,
        token="tok",
        history=LocationHistory(query),
        scheduler=scheduler,
        clock=lambda: NOW,
    )


async def _loaded(view: LogsView, backend, result_factory, settle) -> None:
    view.start()
    await settle()
    backend.resolve(len(backend.calls) - 1, result_factory("first"))
    await settle()


def test_no_fetch_before_start(backend, scheduler, settle) -> None:
    async def scenario() -> None:
        view = _view(backend, scheduler)
        view.toggle_level("ERROR")
        await settle()
        assert backend.calls == []

        view.start()
        await settle()
        assert len(backend.calls) == 1
        assert backend.last.request.level == "ERROR"
        view.close()

    asyncio.run(scenario())


def test_typing_within_debounce_window_issues_one_search(
    backend, scheduler, result_factory, settle
) -> None:
    async def scenario() -> None:
        view = _view(backend, scheduler)
        await _loaded(view, backend, result_factory, settle)

        view.type_search("a")
        scheduler.advance(100)
        view.type_search("ab")
        scheduler.advance(100)
        view.type_search("abc")
        scheduler.advance(499)
        await settle()
        assert len(backend.calls) == 1
        assert "search" not in view.query

        scheduler.advance(1)
        await settle()
        assert len(backend.calls) == 2
        assert backend.last.request.doc_filter == {"phrase": "abc", "matchType": "contains"}
        assert view.search_input == "abc"
        assert view.state.search_text == "abc"
        view.close()

    asyncio.run(scenario())


def test_slow_typing_issues_a_search_per_pause(
    backend, scheduler, result_factory, settle
) -> None:
    async def scenario() -> None:
        view = _view(backend, scheduler)
        await _loaded(view, backend, result_factory, settle)

        view.type_search("a")
        scheduler.advance(600)
        await settle()
        view.type_search("ab")
        scheduler.advance(600)
        await settle()

        assert [call.request.doc_filter for call in backend.calls[1:]] == [
            {"phrase": "a", "matchType": "contains"},
            {"phrase": "ab", "matchType": "contains"},
        ]
        view.close()

    asyncio.run(scenario())


def test_toggle_off_level_on_page_three(backend, scheduler, result_factory, settle) -> None:
    async def scenario() -> None:
        view = _view(backend, scheduler, "level=ERROR&level=INFO&page=3")
        view.start()
        await settle()
        first = backend.last.request
        assert first.page == 3
        assert first.level == ["ERROR", "INFO"]
        backend.resolve(0, result_factory("x", page=3, total_pages=5))
        await settle()

        view.toggle_level("ERROR")
        await settle()
        second = backend.last.request
        assert second.page == 1
        assert second.level == "INFO"
        assert view.history.length == 1
        view.close()

    asyncio.run(scenario())


def test_custom_range_with_start_only(backend, scheduler, result_factory, settle) -> None:
    async def scenario() -> None:
        view = _view(backend, scheduler)
        await _loaded(view, backend, result_factory, settle)

        view.set_custom_range(1_000, None)
        await settle()
        request = backend.last.request
        assert request.start_time == 1_000
        assert request.end_time is None
        assert view.state.time_range == "custom"
        view.close()

    asyncio.run(scenario())


def test_relative_range_uses_clock(backend, scheduler, result_factory, settle) -> None:
    async def scenario() -> None:
        view = _view(backend, scheduler)
        await _loaded(view, backend, result_factory, settle)

        view.set_time_range("1h")
        await settle()
        assert backend.last.request.start_time == NOW - 3_600_000
        assert backend.last.request.end_time == NOW
        view.close()

    asyncio.run(scenario())


def test_pagination_pushes_history_and_back_refetches(
    backend, scheduler, result_factory, settle
) -> None:
    async def scenario() -> None:
        view = _view(backend, scheduler)
        await _loaded(view, backend, result_factory, settle)

        view.go_to_page(2)
        await settle()
        assert view.history.length == 2
        assert backend.last.request.page == 2

        assert view.back() is True
        await settle()
        assert len(backend.calls) == 3
        assert backend.last.request.page == 1

        assert view.forward() is True
        await settle()
        assert len(backend.calls) == 4
        assert backend.last.request.page == 2
        assert view.forward() is False
        view.close()

    asyncio.run(scenario())


def test_back_restores_search_input(backend, scheduler, result_factory, settle) -> None:
    async def scenario() -> None:
        view = _view(backend, scheduler, "search=boom")
        await _loaded(view, backend, result_factory, settle)
        assert view.search_input == "boom"

        view.history.push("search=other")
        assert view.search_input == "other"
        view.back()
        assert view.search_input == "boom"
        view.close()

    asyncio.run(scenario())


def test_clear_filters_drops_pending_search(
    backend, scheduler, result_factory, settle
) -> None:
    async def scenario() -> None:
        view = _view(backend, scheduler, "level=ERROR&search=boom&page=2")
        await _loaded(view, backend, result_factory, settle)

        view.type_search("boo")
        view.clear_filters()
        scheduler.advance(1_000)
        await settle()

        assert view.search_input == ""
        assert view.state.search_text == ""
        assert not view.state.has_filters
        assert view.state.page == 1
        assert backend.last.request.doc_filter is None
        view.close()

    asyncio.run(scenario())


def test_reload_refetches_with_same_filters(
    backend, scheduler, result_factory, settle
) -> None:
    async def scenario() -> None:
        view = _view(backend, scheduler, "level=WARNING")
        await _loaded(view, backend, result_factory, settle)

        view.reload()
        await settle()
        assert len(backend.calls) == 2
        assert refresh_token(view.query) == str(NOW)

        view.reload()
        await settle()
        assert len(backend.calls) == 3
        assert refresh_token(view.query) == str(NOW + 1)
        assert backend.last.request.level == "WARNING"
        view.close()

    asyncio.run(scenario())


def test_environment_options_are_cached(backend, scheduler, settle) -> None:
    backend.environment_result = [EnvironmentOption("prod", 10), EnvironmentOption("dev", 2)]

    async def scenario() -> None:
        view = _view(backend, scheduler)
        first = await view.open_environment_filter()
        second = await view.open_environment_filter()
        assert [option.value for option in first] == ["prod", "dev"]
        assert second == first
        assert backend.environment_calls == 1
        assert view.loading_environments is False

    asyncio.run(scenario())


def test_environment_failure_is_isolated_and_retried(
    backend, scheduler, result_factory, settle
) -> None:
    async def scenario() -> None:
        view = _view(backend, scheduler)
        await _loaded(view, backend, result_factory, settle)

        backend.environment_error = EnvironmentLoadError("Failed to fetch environments")
        assert await view.open_environment_filter() == []
        assert view.environment_error == "Failed to fetch environments"
        assert view.orchestrator.error is None
        assert [log.message for log in view.orchestrator.logs] == ["first"]

        backend.environment_error = None
        backend.environment_result = [EnvironmentOption("prod", 1)]
        options = await view.open_environment_filter()
        assert [option.value for option in options] == ["prod"]
        assert view.environment_error is None
        assert backend.environment_calls == 2
        view.close()

    asyncio.run(scenario())


def test_page_links_and_share_url(backend, scheduler, result_factory, settle) -> None:
    async def scenario() -> None:
        view = _view(backend, scheduler, "level=ERROR")
        view.start()
        await settle()
        backend.resolve(0, result_factory("x", page=1, total_pages=3))
        await settle()

        links = view.page_links()
        assert [link.label for link in links] == ["Previous", "1", "2", "3", "Next"]
        assert view.share_url("https://dash.example.com") == (
            "https://dash.example.com/project/p1?tab=logs&level=ERROR"
        )
        view.close()

    asyncio.run(scenario())


def test_closed_view_ignores_later_location_changes(
    backend, scheduler, result_factory, settle
) -> None:
    async def scenario() -> None:
        history = LocationHistory("")
        view = LogsView("p1", backend, history=history, scheduler=scheduler, clock=lambda: NOW)
        await _loaded(view, backend, result_factory, settle)

        view.close()
        history.replace("level=ERROR")
        await settle()

        assert len(backend.calls) == 1
        assert view.state.levels == ()

    asyncio.run(scenario())


def test_shared_history_only_drives_open_views(
    backend, scheduler, result_factory, settle
) -> None:
    async def scenario() -> None:
        history = LocationHistory("")
        closed = LogsView("p1", backend, history=history, scheduler=scheduler, clock=lambda: NOW)
        closed.start()
        closed.close()
        current = LogsView("p2", backend, history=history, scheduler=scheduler, clock=lambda: NOW)
        current.start()
        await settle()

        history.replace("level=INFO")
        await settle()
        assert [call.project_id for call in backend.calls] == ["p2", "p2"]
        current.close()

    asyncio.run(scenario())


def test_cancelled_opener_leaves_shared_environment_load_running(
    backend, scheduler, settle
) -> None:
    backend.environment_result = [EnvironmentOption("prod", 1)]

    async def scenario() -> None:
        backend.environment_gate = asyncio.Event()
        view = _view(backend, scheduler)
        first = asyncio.create_task(view.open_environment_filter())
        second = asyncio.create_task(view.open_environment_filter())
        await settle()
        assert view.loading_environments is True

        first.cancel()
        await settle()
        backend.environment_gate.set()
        options = await second

        assert first.cancelled()
        assert [option.value for option in options] == ["prod"]
        assert view.environments == options
        assert view.environment_error is None
        assert backend.environment_calls == 1

    asyncio.run(scenario())


def test_going_to_current_page_adds_no_history_entry(
    backend, scheduler, result_factory, settle
) -> None:
    async def scenario() -> None:
        view = _view(backend, scheduler, "page=2")
        await _loaded(view, backend, result_factory, settle)

        view.go_to_page(2)
        await settle()
        assert view.history.length == 1
        assert len(backend.calls) == 1

        view.go_to_page(3)
        await settle()
        assert view.history.length == 2
        assert backend.last.request.page == 3
        view.close()

    asyncio.run(scenario())
