from __future__ import annotations

import json
import logging
import math
from typing import Any

import httpx
from opentelemetry import trace

from labsite.core.telemetry import set_span_attributes
from labsite.services.cache import ClientRowCache, Rows, cache_key

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_SHEETS_BASE_URL = "https://docs.google.com/spreadsheets/d"
DEFAULT_REVALIDATE_SECONDS = 300


class SheetsError(Exception):
    """Base error for tab fetches."""

    def __init__(self, tab_name: str, message: str) -> None:
        super().__init__(message)
        self.tab_name = tab_name


class SheetsFetchError(SheetsError):
    """Raised when the transport call for a tab does not succeed."""

    def __init__(self, tab_name: str, status_code: int | None, reason: str | None = None) -> None:
        detail = str(status_code) if status_code is not None else (reason or "transport error")
        super().__init__(tab_name, f'Failed to fetch sheet "{tab_name}" ({detail})')
        self.status_code = status_code
        self.reason = reason


class SheetsParseError(SheetsError):
    """Raised when a response cannot be unwrapped to a GViz table."""


def extract_gviz_json(text: str, tab_name: str = "") -> dict[str, Any]:
    # Payload shape: google.visualization.Query.setResponse({...});
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise SheetsParseError(tab_name, "Unexpected GViz response")
    try:
        decoded = json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        raise SheetsParseError(tab_name, f"Invalid GViz JSON: {exc.msg}") from exc
    except RecursionError as exc:
        raise SheetsParseError(tab_name, "GViz JSON nested too deeply") from exc
    if not isinstance(decoded, dict):
        raise SheetsParseError(tab_name, "Unexpected GViz response")
    return decoded


def gviz_to_rows(payload: dict[str, Any], tab_name: str = "") -> Rows:
    """Flatten a GViz table into ``[header, *data_rows]`` of strings."""
    table = payload.get("table")
    if not isinstance(table, dict):
        raise SheetsParseError(tab_name, "GViz response has no table")

    cols = table.get("cols") or []
    header = [cell_text(col.get("label") if isinstance(col, dict) else None).strip() for col in cols]

    data: Rows = []
    for raw_row in table.get("rows") or []:
        cells = raw_row.get("c") if isinstance(raw_row, dict) else None
        data.append([cell_text(cell.get("v") if isinstance(cell, dict) else None) for cell in cells or []])
    return [header, *data]


def cell_text(value: Any) -> str:
    """Stringify a GViz cell value the way the sheet displays it in JSON."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def build_gviz_url(base_url: str, document_id: str) -> str:
    return f"{base_url.rstrip('/')}/{document_id}/gviz/tq"


class SheetsClient:
    """Reads spreadsheet tabs through the GViz JSON endpoint.

    With a ``cache`` the client behaves like a browser: it consults the
    TTL row cache first and asks the transport not to store responses.
    Without one, the revalidation window is forwarded as a
    ``Cache-Control: max-age`` hint so an HTTP cache in front of the
    transport may reuse a recent response.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_SHEETS_BASE_URL,
        timeout_seconds: float = 10.0,
        cache: ClientRowCache | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.cache = cache
        self._client = client

    async def fetch_rows(
        self,
        document_id: str,
        tab_name: str,
        revalidate_seconds: int = DEFAULT_REVALIDATE_SECONDS,
    ) -> Rows:
        key = cache_key(document_id, tab_name)
        with tracer.start_as_current_span("sheets.fetch_tab") as span:
            set_span_attributes(span, "sheets", tab=tab_name, document_id=document_id)
            if self.cache is not None:
                cached = self.cache.get(key)
                if cached is not None:
                    set_span_attributes(span, "sheets", cache_hit=True, row_count=len(cached) - 1)
                    return cached
                headers = {"Cache-Control": "no-store"}
            else:
                headers = {"Cache-Control": f"max-age={max(0, int(revalidate_seconds))}"}
            set_span_attributes(span, "sheets", cache_hit=False)

            text = await self._get_text(document_id, tab_name, headers)
            rows = gviz_to_rows(extract_gviz_json(text, tab_name), tab_name)
            set_span_attributes(span, "sheets", row_count=len(rows) - 1)
            logger.debug("fetched tab=%s rows=%s", tab_name, len(rows) - 1)

            if self.cache is not None:
                self.cache.set(key, rows)
            return rows

    async def _get_text(self, document_id: str, tab_name: str, headers: dict[str, str]) -> str:
        url = build_gviz_url(self.base_url, document_id)
        params = {"tqx": "out:json", "sheet": tab_name}
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds, follow_redirects=True) as client:
                    response = await client.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise SheetsFetchError(tab_name, None, str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            raise SheetsFetchError(tab_name, response.status_code)
        return response.text
