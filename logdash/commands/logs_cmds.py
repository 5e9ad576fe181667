from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import asdict

import typer
from rich import print
from rich.console import Console
from rich.table import Table
from rich.text import Text

from logdash.api import LogsBackend
from logdash.config import LogdashConfig
from logdash.formatting import (
    format_number,
    format_timestamp,
    level_label,
    level_style,
    time_range_label,
)
from logdash.history import LocationHistory
from logdash.url_sync import share_url
from logdash.view import LogsView

BackendFactory = Callable[[LogdashConfig], LogsBackend]


def _make_view(cfg: LogdashConfig, backend: LogsBackend, project_id: str, query: str) -> LogsView:
    return LogsView(
        project_id,
        backend,
        token=cfg.api_token,
        history=LocationHistory(query),
        page_size=cfg.page_size,
        search_debounce_ms=cfg.search_debounce_ms,
        refresh_indicator_ms=cfg.refresh_indicator_ms,
    )


def _filters_line(view: LogsView) -> str:
    state = view.state
    parts = [time_range_label(state.time_range)]
    if state.levels:
        parts.append("level=" + ",".join(state.levels))
    if state.environments:
        parts.append("env=" + ",".join(state.environments))
    if state.hostnames:
        parts.append("host=" + ",".join(state.hostnames))
    if state.search_text:
        parts.append(f'search="{state.search_text}"')
    return " | ".join(parts)


def _page_bar(view: LogsView) -> str:
    labels = []
    for link in view.page_links():
        if link.active:
            labels.append(f"[bold reverse] {link.label} [/bold reverse]")
        elif link.disabled:
            labels.append(f"[dim]{link.label}[/dim]")
        else:
            labels.append(link.label)
    return " ".join(labels)


def render_logs(view: LogsView, *, console: Console, dashboard_url: str) -> None:
    orchestrator = view.orchestrator
    pagination = orchestrator.pagination
    header = Text("Application Logs", style="bold")
    if pagination.total > 0:
        header.append(f"  {format_number(pagination.total)} total logs", style="dim")
    console.print(header)
    console.print(Text(_filters_line(view), style="dim"))

    status = orchestrator.status
    if status == "error":
        console.print(Text(orchestrator.error or "", style="red"))
        return
    if orchestrator.error:
        console.print(Text(f"Refresh failed: {orchestrator.error}", style="yellow"))
    if status == "empty":
        console.print("No logs found")
        return

    table = Table(show_lines=False)
    table.add_column("Time", no_wrap=True)
    table.add_column("Level", no_wrap=True)
    table.add_column("Environment")
    table.add_column("Host")
    table.add_column("Message")
    for record in orchestrator.logs:
        table.add_row(
            format_timestamp(record.timestamp_ms),
            Text(level_label(record.level), style=level_style(record.level)),
            Text(record.environment or ""),
            Text(record.hostname or ""),
            Text(record.message),
        )
    console.print(table)
    if pagination.total_pages > 1:
        console.print(
            f"Page {pagination.page} of {pagination.total_pages}  {_page_bar(view)}"
        )
    console.print(Text(view.share_url(dashboard_url), style="dim"))


def _json_payload(view: LogsView) -> dict:
    orchestrator = view.orchestrator
    return {
        "query": view.query,
        "status": orchestrator.status,
        "error": orchestrator.error,
        "logs": [record.raw or asdict(record) for record in orchestrator.logs],
        "pagination": asdict(orchestrator.pagination),
    }


def logs_cmd(
    *,
    cfg: LogdashConfig,
    backend_factory: BackendFactory,
    project_id: str,
    query: str,
    as_json: bool,
    watch_s: float | None,
) -> None:
    """Fetch one page of application logs and print it."""

    console = Console()

    def _emit(view: LogsView) -> None:
        if as_json:
            typer.echo(json.dumps(_json_payload(view), ensure_ascii=False, indent=2))
        else:
            render_logs(view, console=console, dashboard_url=cfg.dashboard_url)

    async def _main() -> str:
        view = _make_view(cfg, backend_factory(cfg), project_id, query)
        try:
            view.start()
            await view.wait_idle()
            _emit(view)
            while watch_s:
                await asyncio.sleep(watch_s)
                view.reload()
                await view.wait_idle()
                _emit(view)
            return view.orchestrator.status
        finally:
            view.close()

    try:
        status = asyncio.run(_main())
    except KeyboardInterrupt:
        return
    if status == "error":
        raise typer.Exit(code=1)


def environments_cmd(
    *, cfg: LogdashConfig, backend_factory: BackendFactory, project_id: str
) -> None:
    """List environments reported for a project's application logs."""

    async def _main() -> LogsView:
        view = _make_view(cfg, backend_factory(cfg), project_id, "")
        try:
            await view.open_environment_filter()
        finally:
            view.close()
        return view

    view = asyncio.run(_main())
    if view.environment_error:
        print(f"[red]{view.environment_error}[/red]")
        raise typer.Exit(code=1)
    if not view.environments:
        print("No environments found")
        return
    for option in view.environments:
        print(f"- {option.value} ({option.count:,})")


def link_cmd(*, cfg: LogdashConfig, project_id: str, query: str) -> None:
    """Print the dashboard link for a filtered logs view."""

    typer.echo(share_url(cfg.dashboard_url, project_id, query))
