from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Pagination:
    page: int = 1
    page_size: int = 50
    total: int = 0
    total_pages: int = 0

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None) -> Pagination:
        data = payload or {}
        return cls(
            page=_int(data.get("page"), 1),
            page_size=_int(data.get("pageSize"), 50),
            total=_int(data.get("total"), 0),
            total_pages=_int(data.get("totalPages"), 0),
        )


@dataclass(frozen=True, slots=True)
class LogRecord:
    id: str
    level: str | list[str]
    message: str
    timestamp_ms: int | None = None
    environment: str | None = None
    hostname: str | None = None
    stack_trace: str | None = None
    raw_stack_trace: str | None = None
    details: dict[str, Any] | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> LogRecord:
        level = payload.get("level") or "INFO"
        if isinstance(level, list):
            level = [str(item) for item in level]
        else:
            level = str(level)
        details = payload.get("details")
        timestamp = payload.get("timestampMS")
        return cls(
            id=str(payload.get("_id") or payload.get("id") or ""),
            level=level,
            message=str(payload.get("message") or ""),
            timestamp_ms=_int(timestamp, None) if timestamp is not None else None,
            environment=payload.get("environment"),
            hostname=payload.get("hostname"),
            stack_trace=payload.get("stackTrace"),
            raw_stack_trace=payload.get("rawStackTrace"),
            details=details if isinstance(details, dict) else None,
            raw=dict(payload),
        )


@dataclass(frozen=True, slots=True)
class SearchResult:
    logs: list[LogRecord]
    pagination: Pagination

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> SearchResult:
        items = payload.get("logs") or []
        logs = [LogRecord.from_payload(item) for item in items if isinstance(item, dict)]
        return cls(logs=logs, pagination=Pagination.from_payload(payload.get("pagination")))


@dataclass(frozen=True, slots=True)
class EnvironmentOption:
    value: str
    count: int = 0

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> EnvironmentOption:
        return cls(value=str(payload.get("value") or ""), count=_int(payload.get("count"), 0))


def _int(value: object, default: Any) -> Any:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
