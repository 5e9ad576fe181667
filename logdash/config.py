from __future__ import annotations

import json
import os
import warnings
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/logdash/config.json").expanduser()

CONFIG_ENV_OVERRIDES = {
    "api_url": "LOGDASH_API_URL",
    "api_token": "LOGDASH_API_TOKEN",
    "dashboard_url": "LOGDASH_DASHBOARD_URL",
    "page_size": "LOGDASH_PAGE_SIZE",
    "search_debounce_ms": "LOGDASH_SEARCH_DEBOUNCE_MS",
    "refresh_indicator_ms": "LOGDASH_REFRESH_INDICATOR_MS",
    "request_timeout_s": "LOGDASH_REQUEST_TIMEOUT_S",
}

_INT_KEYS = {"page_size", "search_debounce_ms", "refresh_indicator_ms"}
_FLOAT_KEYS = {"request_timeout_s"}


def get_config_path(path: Path | None = None) -> Path:
    if path is not None:
        return path.expanduser()
    override = os.getenv("LOGDASH_CONFIG")
    return Path(override).expanduser() if override else DEFAULT_CONFIG_PATH


def _decode_config(raw: str, source: Path) -> dict[str, Any]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid config json in {source} (line {exc.lineno})") from exc
    if not isinstance(data, dict):
        raise ValueError(f"config must be an object, not {type(data).__name__}")
    return data


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    return _decode_config(raw, config_path) if raw.strip() else {}


def write_config_file(data: dict[str, Any], path: Path | None = None) -> Path:
    """Replace the config file in a single rename."""

    config_path = get_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    staging = config_path.with_name(f".{config_path.name}.tmp")
    staging.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    staging.replace(config_path)
    return config_path


def get_env_overrides() -> dict[str, str]:
    return {
        key: os.environ[env_var]
        for key, env_var in CONFIG_ENV_OVERRIDES.items()
        if env_var in os.environ
    }


@dataclass
class LogdashConfig:
    api_url: str = "http://127.0.0.1:3000"
    api_token: str | None = None
    dashboard_url: str = "http://127.0.0.1:5173"
    page_size: int = 50
    search_debounce_ms: int = 500
    refresh_indicator_ms: int = 300
    request_timeout_s: float = 10.0

    def to_dict(self, *, redact: bool = True) -> dict[str, Any]:
        data = asdict(self)
        if redact and data.get("api_token"):
            data["api_token"] = "***"
        return data


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _parse_float(value: object, default: float, *, key: str) -> float:
    if value is None:
        return default
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid float for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _coerce(cfg: LogdashConfig, key: str, value: object) -> object:
    current = getattr(cfg, key)
    if key in _INT_KEYS:
        return _parse_int(value, current, key=key)
    if key in _FLOAT_KEYS:
        return _parse_float(value, current, key=key)
    return value


def load_config(path: Path | None = None) -> LogdashConfig:
    cfg = LogdashConfig()
    try:
        data = read_config_file(path)
    except ValueError as exc:
        warnings.warn(f"Invalid config file: {exc}", RuntimeWarning, stacklevel=2)
        data = {}
    cfg = _apply_dict(cfg, data)
    cfg = _apply_dict(cfg, get_env_overrides())
    return cfg


def _apply_dict(cfg: LogdashConfig, data: dict[str, Any]) -> LogdashConfig:
    for key, value in data.items():
        if not hasattr(cfg, key):
            continue
        setattr(cfg, key, _coerce(cfg, key, value))
    return cfg
