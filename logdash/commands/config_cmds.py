from __future__ import annotations

import json
from dataclasses import fields

import typer
from rich import print

from logdash.config import LogdashConfig, get_config_path, load_config

from .common import update_config_or_exit

_NUMERIC_KEYS = {
    "page_size": int,
    "search_debounce_ms": int,
    "refresh_indicator_ms": int,
    "request_timeout_s": float,
}


def config_show_cmd(*, show_secrets: bool) -> None:
    """Print the effective configuration."""

    cfg = load_config()
    typer.echo(json.dumps(cfg.to_dict(redact=not show_secrets), indent=2))
    print(f"[dim]config file: {get_config_path()}[/dim]")


def config_set_cmd(*, key: str, value: str) -> None:
    """Persist one configuration value."""

    known = {item.name for item in fields(LogdashConfig)}
    if key not in known:
        print(f"[red]Unknown config key: {key}[/red]")
        raise typer.Exit(code=2)
    parsed: object = value
    caster = _NUMERIC_KEYS.get(key)
    if caster is not None:
        try:
            parsed = caster(value)
        except ValueError as exc:
            print(f"[red]Invalid value for {key}: {value}[/red]")
            raise typer.Exit(code=2) from exc
    path = update_config_or_exit(key, parsed)
    print(f"Set {key} in {path}")
