"""Filter intents expressed as query-string rewrites.

The query string is the only long-lived store of filter intent. Each intent
here takes the current query and returns the next one; callers decide whether
to replace or push the history entry. Keys an intent does not touch keep
their values and their position.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, quote, urlencode

from .filters import (
    MULTI_VALUE_PARAMS,
    TIME_RANGE_ALL,
    TIME_RANGE_CUSTOM,
    TIME_RANGES,
    FilterState,
    normalize_level,
)

REFRESH_PARAM = "_refresh"

FILTER_PARAMS = (
    "level",
    "environment",
    "hostname",
    "search",
    "timeRange",
    "startTime",
    "endTime",
)

Pairs = list[tuple[str, str]]


def _pairs(query: str | None) -> Pairs:
    return parse_qsl((query or "").lstrip("?"), keep_blank_values=True)


def _encode(pairs: Pairs) -> str:
    return urlencode(pairs)


def _get_all(pairs: Pairs, key: str) -> list[str]:
    return [value for name, value in pairs if name == key]


def _delete(pairs: Pairs, *keys: str) -> Pairs:
    return [(name, value) for name, value in pairs if name not in keys]


def _set(pairs: Pairs, key: str, value: str) -> Pairs:
    # Same contract as URLSearchParams.set: first slot wins, extras dropped.
    updated: Pairs = []
    placed = False
    for name, current in pairs:
        if name != key:
            updated.append((name, current))
            continue
        if not placed:
            updated.append((name, value))
            placed = True
    if not placed:
        updated.append((key, value))
    return updated


def _reset_page(pairs: Pairs) -> Pairs:
    return _set(pairs, "page", "1")


def _normalize_dimension_value(dimension: str, value: str) -> str:
    if dimension not in MULTI_VALUE_PARAMS:
        raise ValueError(f"unknown filter dimension: {dimension}")
    if dimension == "level":
        level = normalize_level(value)
        if level is None:
            raise ValueError(f"unknown log level: {value}")
        return level
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValueError(f"empty {dimension} value")
    return cleaned


def toggle(query: str | None, dimension: str, value: str) -> str:
    normalized = _normalize_dimension_value(dimension, value)
    pairs = _pairs(query)
    current: list[str] = []
    for raw in _get_all(pairs, dimension):
        item = normalize_level(raw) if dimension == "level" else raw
        if item and item not in current:
            current.append(item)
    if normalized in current:
        current.remove(normalized)
    else:
        current.append(normalized)
    pairs = _delete(pairs, dimension)
    pairs.extend((dimension, item) for item in current)
    return _encode(_reset_page(pairs))


def set_time_range(query: str | None, time_range: str) -> str:
    cleaned = (time_range or "").strip().lower()
    if cleaned not in TIME_RANGES:
        raise ValueError(f"unknown time range: {time_range}")
    pairs = _pairs(query)
    if cleaned == TIME_RANGE_ALL:
        pairs = _delete(pairs, "timeRange", "startTime", "endTime")
    else:
        pairs = _set(pairs, "timeRange", cleaned)
        if cleaned != TIME_RANGE_CUSTOM:
            pairs = _delete(pairs, "startTime", "endTime")
    return _encode(_reset_page(pairs))


def set_custom_range(query: str | None, start_ms: int | None, end_ms: int | None) -> str:
    pairs = _set(_pairs(query), "timeRange", TIME_RANGE_CUSTOM)
    for key, bound in (("startTime", start_ms), ("endTime", end_ms)):
        if bound is None:
            pairs = _delete(pairs, key)
        else:
            pairs = _set(pairs, key, str(int(bound)))
    return _encode(_reset_page(pairs))


def set_search_text(query: str | None, text: str) -> str:
    pairs = _pairs(query)
    pairs = _set(pairs, "search", text) if text else _delete(pairs, "search")
    return _encode(_reset_page(pairs))


def clear_all(query: str | None) -> str:
    return _encode(_reset_page(_delete(_pairs(query), *FILTER_PARAMS)))


def set_page(query: str | None, page: int) -> str:
    if page < 1:
        raise ValueError("page must be >= 1")
    return _encode(_set(_pairs(query), "page", str(page)))


def manual_refresh(query: str | None, now_ms: int) -> str:
    return _encode(_set(_pairs(query), REFRESH_PARAM, str(now_ms)))


def refresh_token(query: str | None) -> str | None:
    values = _get_all(_pairs(query), REFRESH_PARAM)
    return values[0] if values else None


def encode_filter_state(state: FilterState) -> str:
    """Serialize a filter state to the query string the intents would build."""

    pairs: Pairs = [("page", str(state.page))]
    for dimension in MULTI_VALUE_PARAMS:
        pairs.extend((dimension, value) for value in state.values_for(dimension))
    if state.search_text:
        pairs.append(("search", state.search_text))
    if state.time_range != TIME_RANGE_ALL:
        pairs.append(("timeRange", state.time_range))
    if state.time_range == TIME_RANGE_CUSTOM:
        if state.custom_start is not None:
            pairs.append(("startTime", str(state.custom_start)))
        if state.custom_end is not None:
            pairs.append(("endTime", str(state.custom_end)))
    return _encode(pairs)


def share_url(dashboard_url: str, project_id: str, query: str | None) -> str:
    """Dashboard link for the logs tab; the refresh token is not shared."""

    pairs = [
        (key, value) for key, value in _pairs(query) if key not in {REFRESH_PARAM, "tab"}
    ]
    encoded = _encode([("tab", "logs"), *pairs])
    base = dashboard_url.rstrip("/")
    return f"{base}/project/{quote(project_id, safe='')}?{encoded}"
