#!/usr/bin/env python3
"""Print one spreadsheet tab as normalized JSON records."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from labsite.core.config import get_settings
from labsite.services.rows import rows_to_objects
from labsite.services.sheets import SheetsClient, extract_gviz_json, gviz_to_rows


def render_tab(rows: list[list[str]], *, raw: bool) -> str:
    payload = rows if raw else rows_to_objects(rows)
    return json.dumps(payload, indent=2, ensure_ascii=False)


async def _fetch(sheet_id: str, tab: str) -> list[list[str]]:
    settings = get_settings()
    client = SheetsClient(base_url=settings.sheets_base_url, timeout_seconds=settings.request_timeout_seconds)
    return await client.fetch_rows(sheet_id, tab, revalidate_seconds=0)


def main() -> None:
    parser = argparse.ArgumentParser(description="Dump a content spreadsheet tab as JSON.")
    parser.add_argument("tab", help="Tab name, e.g. members or news_blocks")
    source_group = parser.add_mutually_exclusive_group()
    source_group.add_argument("--sheet-id", help="Spreadsheet id (defaults to LABSITE_SHEETS_ID)")
    source_group.add_argument(
        "--gviz-file",
        type=Path,
        help="Read a saved GViz response instead of fetching",
    )
    parser.add_argument("--raw", action="store_true", help="Print header + rows instead of records")
    args = parser.parse_args()

    if args.gviz_file is not None:
        text = args.gviz_file.read_text(encoding="utf-8")
        rows = gviz_to_rows(extract_gviz_json(text, args.tab), args.tab)
    else:
        sheet_id = args.sheet_id or get_settings().sheets_id
        if not sheet_id:
            parser.error("no spreadsheet id: pass --sheet-id or set LABSITE_SHEETS_ID")
        rows = asyncio.run(_fetch(sheet_id, args.tab))

    print(render_tab(rows, raw=args.raw))


if __name__ == "__main__":
    main()
