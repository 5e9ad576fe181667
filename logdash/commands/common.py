from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import typer
from rich import print

from logdash.config import get_config_path, read_config_file, write_config_file
from logdash.filters import normalize_level
from logdash.formatting import parse_time_bound
from logdash.url_sync import (
    set_custom_range,
    set_page,
    set_search_text,
    set_time_range,
    toggle,
)


def update_config_or_exit(key: str, value: object) -> Path:
    """Set one key in the config file, exiting 1 if it cannot be read or written."""

    try:
        data = read_config_file()
    except ValueError as exc:
        print(f"[red]Cannot update config: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    data[key] = value
    try:
        return write_config_file(data)
    except OSError as exc:
        print(f"[red]Cannot write {get_config_path()}: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("logdash").setLevel(level)


def build_filter_query(
    *,
    levels: list[str] | None,
    environments: list[str] | None,
    hostnames: list[str] | None,
    search: str | None,
    time_range: str | None,
    start: str | None,
    end: str | None,
    page: int,
) -> str:
    """Apply CLI filter options through the same intents the view uses."""

    query = ""
    for dimension, values in (
        ("level", levels),
        ("environment", environments),
        ("hostname", hostnames),
    ):
        # Repeating a value on the command line must not toggle it back off.
        seen: set[str] = set()
        for value in values or []:
            key = (normalize_level(value) or value) if dimension == "level" else value.strip()
            if key in seen:
                continue
            seen.add(key)
            query = toggle(query, dimension, value)
    if start or end:
        query = set_custom_range(query, parse_time_bound(start), parse_time_bound(end))
    elif time_range:
        query = set_time_range(query, time_range)
    if search:
        query = set_search_text(query, search)
    if page > 1:
        query = set_page(query, page)
    return query


def filter_query_or_exit(**options: Any) -> str:
    try:
        return build_filter_query(**options)
    except ValueError as exc:
        print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2) from exc
