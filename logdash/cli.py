from __future__ import annotations

import typer
from rich import print

from . import __version__
from .api import AsyncLogsApi, LogsApi, LogsBackend
from .commands.common import configure_logging, filter_query_or_exit
from .commands.config_cmds import config_set_cmd, config_show_cmd
from .commands.logs_cmds import environments_cmd, link_cmd, logs_cmd
from .config import LogdashConfig, load_config

app = typer.Typer(help="logdash: browse and filter application logs")
config_app = typer.Typer(help="Show or change logdash configuration")
app.add_typer(config_app, name="config")


def _backend(cfg: LogdashConfig) -> LogsBackend:
    return AsyncLogsApi(LogsApi(cfg.api_url, timeout_s=cfg.request_timeout_s))


def _version_callback(value: bool) -> None:
    if value:
        print(f"logdash {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    configure_logging(verbose)


@app.command()
def logs(
    project_id: str = typer.Argument(..., help="Project identifier"),
    level: list[str] = typer.Option(None, "--level", "-l", help="Log level (repeatable)"),
    environment: list[str] = typer.Option(None, "--env", "-e", help="Environment (repeatable)"),
    hostname: list[str] = typer.Option(None, "--host", help="Hostname (repeatable)"),
    search: str = typer.Option(None, "--search", "-s", help="Text to search for"),
    time_range: str = typer.Option(
        None, "--range", "-r", help="all, 5m, 30m, 1h, 6h, 12h, 1d or custom"
    ),
    start: str = typer.Option(None, help="Custom range start (epoch ms or ISO 8601)"),
    end: str = typer.Option(None, help="Custom range end (epoch ms or ISO 8601)"),
    page: int = typer.Option(1, min=1, help="Page number"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
    watch: float = typer.Option(None, help="Reload every N seconds"),
) -> None:
    """Show application logs for a project."""

    query = filter_query_or_exit(
        levels=level,
        environments=environment,
        hostnames=hostname,
        search=search,
        time_range=time_range,
        start=start,
        end=end,
        page=page,
    )
    logs_cmd(
        cfg=load_config(),
        backend_factory=_backend,
        project_id=project_id,
        query=query,
        as_json=as_json,
        watch_s=watch,
    )


@app.command()
def environments(project_id: str = typer.Argument(..., help="Project identifier")) -> None:
    """List environments seen in a project's application logs."""

    environments_cmd(cfg=load_config(), backend_factory=_backend, project_id=project_id)


@app.command()
def link(
    project_id: str = typer.Argument(..., help="Project identifier"),
    level: list[str] = typer.Option(None, "--level", "-l", help="Log level (repeatable)"),
    environment: list[str] = typer.Option(None, "--env", "-e", help="Environment (repeatable)"),
    hostname: list[str] = typer.Option(None, "--host", help="Hostname (repeatable)"),
    search: str = typer.Option(None, "--search", "-s", help="Text to search for"),
    time_range: str = typer.Option(None, "--range", "-r", help="Time range"),
    start: str = typer.Option(None, help="Custom range start (epoch ms or ISO 8601)"),
    end: str = typer.Option(None, help="Custom range end (epoch ms or ISO 8601)"),
    page: int = typer.Option(1, min=1, help="Page number"),
) -> None:
    """Print a shareable dashboard link for the given filters."""

    query = filter_query_or_exit(
        levels=level,
        environments=environment,
        hostnames=hostname,
        search=search,
        time_range=time_range,
        start=start,
        end=end,
        page=page,
    )
    link_cmd(cfg=load_config(), project_id=project_id, query=query)


@config_app.command("show")
def config_show(
    show_secrets: bool = typer.Option(False, help="Print the API token unredacted"),
) -> None:
    """Print the effective configuration."""

    config_show_cmd(show_secrets=show_secrets)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Config key"),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    """Persist one configuration value."""

    config_set_cmd(key=key, value=value)
