from __future__ import annotations

import asyncio
import json
import logging
from http.client import HTTPConnection, HTTPException, HTTPSConnection
from typing import Any, Protocol
from urllib.parse import quote, urlencode, urlparse

from .models import EnvironmentOption, SearchResult
from .query import APPLICATION_LOG_TYPE, SearchRequest

logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = "Failed to fetch logs"
ENVIRONMENTS_FAILED_MESSAGE = "Failed to fetch environments"


class LogdashError(RuntimeError):
    pass


class NetworkError(LogdashError):
    def __init__(self, message: str, *, status: int | None = None):
        super().__init__(message)
        self.status = status


class EnvironmentLoadError(LogdashError):
    pass


class LogsBackend(Protocol):
    async def search(
        self, project_id: str, request: SearchRequest, token: str | None
    ) -> SearchResult: ...

    async def list_environments(
        self, project_id: str, log_type: str, token: str | None
    ) -> list[EnvironmentOption]: ...


def build_base_url(address: str) -> str:
    trimmed = address.strip().rstrip("/")
    if not trimmed:
        return ""
    # "host:port" parses with the host as scheme; only a netloc means a scheme was given.
    if urlparse(trimmed).netloc:
        return trimmed
    return f"http://{trimmed}"


def _connect(url: str, timeout_s: float) -> tuple[HTTPConnection, str]:
    parsed = urlparse(url)
    if not parsed.hostname:
        raise ValueError(f"no host in url: {url}")
    secure = parsed.scheme == "https"
    connection_cls = HTTPSConnection if secure else HTTPConnection
    port = parsed.port or (443 if secure else 80)
    conn = connection_cls(parsed.hostname, port, timeout=timeout_s)
    target = parsed.path or "/"
    if parsed.query:
        target = f"{target}?{parsed.query}"
    return conn, target


def _decode_body(raw: bytes) -> dict[str, Any] | None:
    if not raw:
        return None
    try:
        decoded = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        snippet = raw[:240].decode("utf-8", errors="replace").strip()
        return {"error": f"non_json_response: {snippet}" if snippet else "non_json_response"}
    if isinstance(decoded, dict):
        return decoded
    return {"error": f"unexpected_json_type: {type(decoded).__name__}"}


def request_json(
    method: str,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    body: dict[str, Any] | None = None,
    timeout_s: float = 10.0,
) -> tuple[int, dict[str, Any] | None]:
    """Send one JSON request and return ``(status, decoded object or None)``.

    The connection is closed on every path, including failures while reading.
    """

    conn, target = _connect(url, timeout_s)
    encoded = None if body is None else json.dumps(body, ensure_ascii=False).encode("utf-8")
    sent_headers = {"Accept": "application/json"}
    if encoded is not None:
        sent_headers["Content-Type"] = "application/json"
        sent_headers["Content-Length"] = str(len(encoded))
    sent_headers.update(headers or {})
    try:
        conn.request(method, target, body=encoded, headers=sent_headers)
        response = conn.getresponse()
        return int(response.status), _decode_body(response.read())
    finally:
        conn.close()


def _error_message(payload: dict[str, Any] | None, fallback: str) -> str:
    if payload:
        for key in ("error", "message"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return fallback


class LogsApi:
    """Blocking client for the log search backend."""

    def __init__(self, base_url: str, *, timeout_s: float = 10.0):
        self.base_url = build_base_url(base_url)
        self.timeout_s = timeout_s

    def _project_url(self, project_id: str, suffix: str) -> str:
        if not self.base_url:
            raise ValueError("api_url is not configured")
        return f"{self.base_url}/v1/projects/{quote(project_id, safe='')}/{suffix}"

    def _call(
        self,
        method: str,
        url: str,
        *,
        token: str | None,
        body: dict[str, Any] | None = None,
        fallback: str,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            status, payload = request_json(
                method, url, headers=headers, body=body, timeout_s=self.timeout_s
            )
        except (OSError, HTTPException, ValueError) as exc:
            raise NetworkError(f"{fallback}: {exc}") from exc
        if status < 200 or status >= 300:
            raise NetworkError(_error_message(payload, f"{fallback} ({status})"), status=status)
        return payload or {}

    def search(self, project_id: str, request: SearchRequest, token: str | None) -> SearchResult:
        url = self._project_url(project_id, "logs/search")
        logger.debug("search %s page=%s", project_id, request.page)
        payload = self._call(
            "POST", url, token=token, body=request.to_payload(), fallback=FETCH_FAILED_MESSAGE
        )
        return SearchResult.from_payload(payload)

    def list_environments(
        self, project_id: str, log_type: str = APPLICATION_LOG_TYPE, token: str | None = None
    ) -> list[EnvironmentOption]:
        url = self._project_url(project_id, "logs/environments")
        url = f"{url}?{urlencode({'logType': log_type})}"
        try:
            payload = self._call(
                "GET", url, token=token, fallback=ENVIRONMENTS_FAILED_MESSAGE
            )
        except NetworkError as exc:
            raise EnvironmentLoadError(str(exc)) from exc
        items = payload.get("environments") or []
        return [EnvironmentOption.from_payload(item) for item in items if isinstance(item, dict)]


class AsyncLogsApi:
    """Runs the blocking client on a worker thread so the event loop stays free."""

    def __init__(self, api: LogsApi):
        self.api = api

    async def search(
        self, project_id: str, request: SearchRequest, token: str | None
    ) -> SearchResult:
        return await asyncio.to_thread(self.api.search, project_id, request, token)

    async def list_environments(
        self, project_id: str, log_type: str, token: str | None
    ) -> list[EnvironmentOption]:
        return await asyncio.to_thread(self.api.list_environments, project_id, log_type, token)
