from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from labsite.core.config import Settings
from labsite.core.telemetry import (
    configure_logging,
    parse_headers,
    set_span_attributes,
    setup_telemetry,
    shutdown_telemetry,
)
from labsite.services import sheets


def test_parse_headers_skips_malformed_pairs() -> None:
    assert parse_headers(None) == {}
    assert parse_headers("authorization=Bearer abc, x-team = lab ,broken,=nokey") == {
        "authorization": "Bearer abc",
        "x-team": "lab",
    }


def test_setup_telemetry_disabled_is_a_noop() -> None:
    runtime = setup_telemetry(Settings(otel_enabled=False))

    assert runtime.enabled is False
    assert runtime.provider is None
    shutdown_telemetry(runtime)


def test_log_records_carry_trace_fields_outside_spans() -> None:
    configure_logging()

    record = logging.getLogRecordFactory()("labsite", logging.INFO, __file__, 1, "msg", None, None)

    assert record.trace_id == "0" * 32
    assert record.span_id == "0" * 16


def _recording_tracer() -> tuple[InMemorySpanExporter, trace.Tracer]:
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return exporter, provider.get_tracer("labsite-tests")


def test_set_span_attributes_namespaces_keys_and_skips_none() -> None:
    exporter, tracer = _recording_tracer()

    with tracer.start_as_current_span("sheets.fetch_tab") as span:
        set_span_attributes(span, "sheets", tab="members", row_count=3, cache_hit=False, document_id=None)

    (finished,) = exporter.get_finished_spans()
    assert dict(finished.attributes) == {"sheets.tab": "members", "sheets.row_count": 3, "sheets.cache_hit": False}


def test_fetch_rows_span_records_tab_and_row_count(monkeypatch: pytest.MonkeyPatch) -> None:
    exporter, tracer = _recording_tracer()
    monkeypatch.setattr(sheets, "tracer", tracer)
    payload = {"table": {"cols": [{"label": "id"}], "rows": [{"c": [{"v": "a"}]}, {"c": [{"v": "b"}]}]}}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="setResponse(" + json.dumps(payload) + ");")

    async def run() -> None:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            await sheets.SheetsClient(client=http).fetch_rows("doc-1", "members")

    asyncio.run(run())

    (finished,) = exporter.get_finished_spans()
    assert finished.name == "sheets.fetch_tab"
    assert finished.attributes["sheets.tab"] == "members"
    assert finished.attributes["sheets.document_id"] == "doc-1"
    assert finished.attributes["sheets.cache_hit"] is False
    assert finished.attributes["sheets.row_count"] == 2
