from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

from logdash.config import CONFIG_ENV_OVERRIDES
from logdash.models import EnvironmentOption, LogRecord, Pagination, SearchResult


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LOGDASH_CONFIG", str(tmp_path / "config.json"))
    for env_var in CONFIG_ENV_OVERRIDES.values():
        monkeypatch.delenv(env_var, raising=False)


class _Handle:
    def __init__(self, due_ms: int, callback: Callable[[], Any]) -> None:
        self.due_ms = due_ms
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual-time stand-in for ``loop.call_later``."""

    def __init__(self) -> None:
        self.now_ms = 0
        self._handles: list[_Handle] = []

    def call_later(self, delay: float, callback: Callable[[], Any]) -> _Handle:
        handle = _Handle(self.now_ms + round(delay * 1000), callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for h in self._handles if not h.cancelled and not h.fired)

    def advance(self, ms: int) -> None:
        target = self.now_ms + ms
        while True:
            due = [
                h
                for h in self._handles
                if not h.cancelled and not h.fired and h.due_ms <= target
            ]
            if not due:
                break
            handle = min(due, key=lambda h: h.due_ms)
            self.now_ms = handle.due_ms
            handle.fired = True
            handle.callback()
        self.now_ms = target


class ControlledBackend:
    """Backend whose responses are released by the test.

    With ``abortable=False`` the fake ignores task cancellation, like a
    transport that cannot abort an in-flight request.
    """

    def __init__(self, *, abortable: bool = True) -> None:
        self.abortable = abortable
        self.calls: list[SimpleNamespace] = []
        self.environment_calls = 0
        self.environment_result: list[EnvironmentOption] = []
        self.environment_error: Exception | None = None
        self.environment_gate: asyncio.Event | None = None

    async def search(self, project_id, request, token):
        future = asyncio.get_running_loop().create_future()
        self.calls.append(
            SimpleNamespace(project_id=project_id, request=request, token=token, future=future)
        )
        if self.abortable:
            return await future
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            pass
        return await future

    async def list_environments(self, project_id, log_type, token):
        self.environment_calls += 1
        await asyncio.sleep(0)
        if self.environment_gate is not None:
            await self.environment_gate.wait()
        if self.environment_error is not None:
            raise self.environment_error
        return list(self.environment_result)

    @property
    def last(self) -> SimpleNamespace:
        return self.calls[-1]

    def resolve(self, index: int, result: SearchResult) -> None:
        future = self.calls[index].future
        if not future.done():
            future.set_result(result)

    def fail(self, index: int, exc: Exception) -> None:
        future = self.calls[index].future
        if not future.done():
            future.set_exception(exc)


def make_result(*messages: str, page: int = 1, total_pages: int = 1) -> SearchResult:
    logs = [
        LogRecord(id=f"log-{i}", level="INFO", message=message)
        for i, message in enumerate(messages)
    ]
    return SearchResult(
        logs=logs,
        pagination=Pagination(
            page=page, page_size=50, total=len(logs), total_pages=total_pages
        ),
    )


async def _settle() -> None:
    for _ in range(10):
        await asyncio.sleep(0)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def backend() -> ControlledBackend:
    return ControlledBackend()


@pytest.fixture
def result_factory() -> Callable[..., SearchResult]:
    return make_result


@pytest.fixture
def settle() -> Callable[[], Any]:
    return _settle


@pytest.fixture
def stubborn_backend() -> ControlledBackend:
    return ControlledBackend(abortable=False)
