from __future__ import annotations

import datetime as dt
from typing import Final

from .filters import TIME_RANGE_ALL, TIME_RANGE_CUSTOM

SEVERITY_ORDER: Final[tuple[str, ...]] = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")

LEVEL_STYLES: Final[dict[str, str]] = {
    "DEBUG": "grey50",
    "INFO": "blue",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold white on red",
}
DEFAULT_LEVEL_STYLE: Final = "grey50"

TIME_RANGE_LABELS: Final[dict[str, str]] = {
    TIME_RANGE_ALL: "All Time",
    "5m": "Last 5 minutes",
    "30m": "Last 30 minutes",
    "1h": "Last hour",
    "6h": "Last 6 hours",
    "12h": "Last 12 hours",
    "1d": "Last 24 hours",
    TIME_RANGE_CUSTOM: "Custom Range",
}


def _compact(value: float, suffix: str) -> str:
    if value % 1 == 0:
        return f"{int(value)}{suffix}"
    return f"{value:.1f}{suffix}"


def format_number(num: int) -> str:
    if num < 1000:
        return str(num)
    if num < 100_000:
        return f"{num:,}"
    if num < 1_000_000:
        return _compact(num / 1000, "k")
    if num < 1_000_000_000:
        return _compact(num / 1_000_000, "m")
    return _compact(num / 1_000_000_000, "b")


def most_severe_level(levels: list[str]) -> str:
    upper = {level.upper() for level in levels}
    for severity in SEVERITY_ORDER:
        if severity in upper:
            return severity
    return levels[0] if levels else "INFO"


def level_label(level: str | list[str]) -> str:
    if isinstance(level, list):
        return most_severe_level(level)
    return level.upper()


def level_style(level: str | list[str]) -> str:
    return LEVEL_STYLES.get(level_label(level), DEFAULT_LEVEL_STYLE)


def time_range_label(time_range: str) -> str:
    return TIME_RANGE_LABELS.get(time_range, time_range)


def format_timestamp(timestamp_ms: int | None) -> str:
    if timestamp_ms is None:
        return ""
    moment = dt.datetime.fromtimestamp(timestamp_ms / 1000, tz=dt.UTC)
    return moment.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3] + "Z"


def parse_time_bound(value: str | None) -> int | None:
    """Parse a CLI time bound: epoch milliseconds or an ISO 8601 datetime.

    Naive datetimes are read as UTC.
    """

    if value is None or not value.strip():
        return None
    raw = value.strip()
    if raw.lstrip("-").isdigit():
        return int(raw)
    try:
        moment = dt.datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"invalid time bound: {value}") from exc
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=dt.UTC)
    return int(moment.timestamp() * 1000)
