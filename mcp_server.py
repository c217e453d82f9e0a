"""MCP server for the Mordecai dashboard.

Exposes the dashboard's read endpoints as MCP tools so AI clients can look
at agent status, activity history, memory and daily summaries through a
standard MCP interface.
"""

from __future__ import annotations

import json
import os
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from mcp.server.fastmcp import FastMCP

BASE_URL = os.environ.get("MORDECAI_DASHBOARD_BASE_URL", "http://127.0.0.1:5050").rstrip("/")
REQUEST_TIMEOUT_SEC = float(os.environ.get("MORDECAI_MCP_TIMEOUT_SEC", "10"))

mcp = FastMCP("mordecai-dashboard")


def _build_url(path: str, params: dict[str, Any] | None = None) -> str:
    clean = {k: v for k, v in (params or {}).items() if v is not None and v != ""}
    query = urlencode(clean, doseq=True)
    return f"{BASE_URL}{path}{'?' + query if query else ''}"


def _http_get(path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    url = _build_url(path, params)
    request = Request(url=url, method="GET")

    try:
        with urlopen(request, timeout=REQUEST_TIMEOUT_SEC) as response:
            charset = response.headers.get_content_charset() or "utf-8"
            body = response.read().decode(charset)
            return {
                "ok": True,
                "base_url": BASE_URL,
                "status_code": int(response.status),
                "data": json.loads(body) if body else {},
            }
    except HTTPError as exc:
        details = ""
        try:
            details = exc.read().decode("utf-8", errors="replace")
        except OSError:
            details = ""
        return {
            "ok": False,
            "base_url": BASE_URL,
            "status_code": int(exc.code),
            "error": f"HTTP error {exc.code}",
            "details": details,
        }
    except URLError as exc:
        return {
            "ok": False,
            "base_url": BASE_URL,
            "error": "Connection error",
            "details": str(exc.reason),
        }
    except json.JSONDecodeError as exc:
        return {
            "ok": False,
            "base_url": BASE_URL,
            "error": "Invalid JSON response",
            "details": str(exc),
        }


@mcp.tool()
def dashboard_ready() -> dict[str, Any]:
    """Return dashboard readiness from /ready."""
    return _http_get("/ready")


@mcp.tool()
def dashboard_capabilities() -> dict[str, Any]:
    """Return data directory and available data files from /capabilities."""
    return _http_get("/capabilities")


@mcp.tool()
def activity_query(
    type: str | None = None,
    channel: str | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int = 25,
) -> dict[str, Any]:
    """Return one page of the activity log (newest first) from /api/activity.

    ``type`` is one of message, task, cron, heartbeat, memory, tool, error.
    ``search`` matches summary, type and sub-agent id case-insensitively.
    """
    return _http_get(
        "/api/activity",
        {"type": type, "channel": channel, "search": search, "page": page, "pageSize": page_size},
    )


@mcp.tool()
def system_status() -> dict[str, Any]:
    """Return the agent status document from /api/status."""
    return _http_get("/api/status")


@mcp.tool()
def daily_summary(date: str | None = None) -> dict[str, Any]:
    """Return the daily summary for date (YYYY-MM-DD, default today) from /api/daily."""
    return _http_get("/api/daily", {"date": date})


@mcp.tool()
def memory_search(search: str | None = None, include_content: bool = True) -> dict[str, Any]:
    """Return memory entries from /api/memory, optionally without entry bodies."""
    payload = _http_get("/api/memory", {"search": search})
    if not payload.get("ok") or include_content:
        return payload

    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    entries = data.get("entries") if isinstance(data.get("entries"), list) else []
    data["entries"] = [
        {k: v for k, v in entry.items() if k != "content"} if isinstance(entry, dict) else entry
        for entry in entries
    ]
    payload["data"] = data
    return payload


@mcp.tool()
def list_sub_agents() -> dict[str, Any]:
    """Return the sub-agent listing from /api/agents."""
    return _http_get("/api/agents")


@mcp.tool()
def system_info() -> dict[str, Any]:
    """Return host/system information from /api/system."""
    return _http_get("/api/system")


@mcp.tool()
def dashboard_overview() -> dict[str, Any]:
    """Return the aggregated home view from /api/overview."""
    return _http_get("/api/overview")


if __name__ == "__main__":
    mcp.run()
