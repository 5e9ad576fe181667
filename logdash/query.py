from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final

from .filters import TIME_RANGE_CUSTOM, FilterState

DEFAULT_PAGE_SIZE: Final = 50
APPLICATION_LOG_TYPE: Final = "application"

TIME_RANGE_DURATIONS_MS: Final[dict[str, int]] = {
    "5m": 5 * 60 * 1000,
    "30m": 30 * 60 * 1000,
    "1h": 60 * 60 * 1000,
    "6h": 6 * 60 * 60 * 1000,
    "12h": 12 * 60 * 60 * 1000,
    "1d": 24 * 60 * 60 * 1000,
}

MultiValue = str | list[str]


@dataclass(frozen=True, slots=True)
class SearchRequest:
    page: int
    page_size: int = DEFAULT_PAGE_SIZE
    log_type: str = APPLICATION_LOG_TYPE
    level: MultiValue | None = None
    environment: MultiValue | None = None
    hostname: MultiValue | None = None
    doc_filter: dict[str, str] | None = None
    start_time: int | None = None
    end_time: int | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "page": self.page,
            "pageSize": self.page_size,
            "logType": self.log_type,
        }
        optional = {
            "level": self.level,
            "environment": self.environment,
            "hostname": self.hostname,
            "docFilter": self.doc_filter,
            "startTime": self.start_time,
            "endTime": self.end_time,
        }
        for key, value in optional.items():
            if value is not None:
                payload[key] = value
        return payload


def collapse_values(values: tuple[str, ...]) -> MultiValue | None:
    # One selected value goes over the wire as a bare string.
    if not values:
        return None
    if len(values) == 1:
        return values[0]
    return list(values)


def time_window(
    time_range: str,
    now_ms: int,
    *,
    custom_start: int | None = None,
    custom_end: int | None = None,
) -> tuple[int | None, int | None]:
    """Resolve a time range to absolute ``(start, end)`` bounds.

    Relative ranges are anchored on ``now_ms`` every call, so the window rolls
    forward with each request. ``custom`` passes both bounds through and
    either side may be open. Anything else is unbounded.
    """

    duration = TIME_RANGE_DURATIONS_MS.get(time_range)
    if duration is not None:
        return now_ms - duration, now_ms
    if time_range == TIME_RANGE_CUSTOM:
        return custom_start, custom_end
    return None, None


def build_search_request(
    state: FilterState,
    now_ms: int,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> SearchRequest:
    start_time, end_time = time_window(
        state.time_range,
        now_ms,
        custom_start=state.custom_start,
        custom_end=state.custom_end,
    )
    doc_filter = None
    if state.search_text:
        doc_filter = {"phrase": state.search_text, "matchType": "contains"}
    return SearchRequest(
        page=state.page,
        page_size=page_size,
        log_type=APPLICATION_LOG_TYPE,
        level=collapse_values(state.levels),
        environment=collapse_values(state.environments),
        hostname=collapse_values(state.hostnames),
        doc_filter=doc_filter,
        start_time=start_time,
        end_time=end_time,
    )
