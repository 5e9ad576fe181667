from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Final
from urllib.parse import parse_qs

logger = logging.getLogger(__name__)

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

TIME_RANGE_ALL: Final = "all"
TIME_RANGE_CUSTOM: Final = "custom"
RELATIVE_TIME_RANGES: Final[tuple[str, ...]] = ("5m", "30m", "1h", "6h", "12h", "1d")
TIME_RANGES: Final[tuple[str, ...]] = (
    TIME_RANGE_ALL,
    *RELATIVE_TIME_RANGES,
    TIME_RANGE_CUSTOM,
)

# URL parameter name for each multi-value filter dimension.
MULTI_VALUE_PARAMS: Final[tuple[str, ...]] = ("level", "environment", "hostname")

QueryParams = Mapping[str, Sequence[str]]


@dataclass(frozen=True, slots=True)
class FilterState:
    page: int = 1
    levels: tuple[str, ...] = ()
    environments: tuple[str, ...] = ()
    hostnames: tuple[str, ...] = ()
    search_text: str = ""
    time_range: str = TIME_RANGE_ALL
    custom_start: int | None = None
    custom_end: int | None = None

    def values_for(self, dimension: str) -> tuple[str, ...]:
        if dimension == "level":
            return self.levels
        if dimension == "environment":
            return self.environments
        if dimension == "hostname":
            return self.hostnames
        raise ValueError(f"unknown filter dimension: {dimension}")

    @property
    def has_filters(self) -> bool:
        return bool(
            self.levels
            or self.environments
            or self.hostnames
            or self.search_text
            or self.time_range != TIME_RANGE_ALL
        )


def parse_query(query: str | QueryParams | None) -> dict[str, list[str]]:
    if query is None:
        return {}
    if isinstance(query, str):
        return parse_qs(query.lstrip("?"), keep_blank_values=True)
    return {key: list(values) for key, values in query.items()}


def normalize_level(value: str) -> str | None:
    cleaned = (value or "").strip().upper()
    return cleaned if cleaned in LOG_LEVELS else None


def normalize_time_range(value: str | None) -> str:
    cleaned = (value or "").strip().lower()
    return cleaned if cleaned in TIME_RANGES else TIME_RANGE_ALL


def _first(params: QueryParams, key: str) -> str | None:
    values = params.get(key)
    if not values:
        return None
    return values[0]


def _parse_page(raw: str | None) -> int:
    if raw is None:
        return 1
    try:
        page = int(raw.strip())
    except ValueError:
        return 1
    return page if page >= 1 else 1


def _parse_epoch_ms(raw: str | None) -> int | None:
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning("ignoring non-numeric time bound %r", raw)
        return None


def _unique(values: Iterable[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if not value or value in seen:
            continue
        seen.add(value)
        ordered.append(value)
    return tuple(ordered)


def _levels(raw_values: Iterable[str]) -> tuple[str, ...]:
    levels: list[str] = []
    for raw in raw_values:
        level = normalize_level(raw)
        if level is None:
            if raw:
                logger.warning("ignoring unknown log level %r", raw)
            continue
        levels.append(level)
    return _unique(levels)


def parse_filter_state(query: str | QueryParams | None) -> FilterState:
    """Derive the canonical filter state from a URL query.

    The URL is an external input, so repeated values are deduplicated and
    malformed values fall back to their defaults instead of raising.
    """

    params = parse_query(query)
    time_range = normalize_time_range(_first(params, "timeRange"))
    custom_start: int | None = None
    custom_end: int | None = None
    if time_range == TIME_RANGE_CUSTOM:
        custom_start = _parse_epoch_ms(_first(params, "startTime"))
        custom_end = _parse_epoch_ms(_first(params, "endTime"))
    return FilterState(
        page=_parse_page(_first(params, "page")),
        levels=_levels(params.get("level", [])),
        environments=_unique(params.get("environment", [])),
        hostnames=_unique(params.get("hostname", [])),
        search_text=_first(params, "search") or "",
        time_range=time_range,
        custom_start=custom_start,
        custom_end=custom_end,
    )
