from __future__ import annotations

from datetime import datetime, timezone
import math
import re
from typing import Any, Iterable, Mapping, Sequence

HEADER_SCAN_ROWS = 6
META_HEADER = ("key", "value")

_WHITESPACE_RE = re.compile(r"\s+")
_NON_KEY_CHAR_RE = re.compile(r"[^a-z0-9_]")
_GVIZ_DATE_RE = re.compile(
    r"^Date\((\d{1,4}),\s*(\d{1,2}),\s*(\d{1,2})(?:,\s*(\d{1,2}))?(?:,\s*(\d{1,2}))?(?:,\s*(\d{1,2}))?\)$",
    re.IGNORECASE,
)
_DATE_FORMATS = (
    "%Y",
    "%Y-%m",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %Y",
    "%b %Y",
)

Record = dict[str, str]


def clean(value: Any) -> str:
    return ("" if value is None else str(value)).strip()


def rows_to_objects(rows: Sequence[Sequence[Any]]) -> list[Record]:
    """Turn ``[header, *data]`` rows into one dict per non-blank data row.

    Some tabs start with blank rows, so the header is the first of the
    leading rows holding at least two labels and either an ``id`` column
    or three or more labels. When the first two header cells are not
    both filled the tab is read as a ``key, value`` meta table.
    """
    if not rows:
        return []

    header_index = 0
    for index, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        trimmed = [clean(cell) for cell in row or []]
        non_empty = sum(1 for cell in trimmed if cell)
        has_id = any(cell.lower() == "id" for cell in trimmed)
        if non_empty >= 2 and (has_id or non_empty >= 3):
            header_index = index
            break

    header = [clean(cell) for cell in rows[header_index] or []]
    if len(header) >= 2 and header[0] and header[1]:
        effective_header = header
    else:
        effective_header = [*META_HEADER, *header[2:]]

    records: list[Record] = []
    for row in rows[header_index + 1 :]:
        row = row or []
        if not any(clean(cell) for cell in row):
            continue
        records.append(
            {
                label: "" if index >= len(row) or row[index] is None else str(row[index])
                for index, label in enumerate(effective_header)
            }
        )
    return records


def normalize_key(key: str) -> str:
    lowered = clean(key).lower()
    return _NON_KEY_CHAR_RE.sub("", _WHITESPACE_RE.sub("_", lowered))


def normalize_record(record: Mapping[str, Any]) -> Record:
    return {normalize_key(key): "" if value is None else str(value) for key, value in record.items()}


def get_field(record: Mapping[str, Any], aliases: Iterable[str]) -> str:
    """Return the first non-blank value among ``aliases`` (header variants tolerated)."""
    normalized = normalize_record(record)
    for alias in aliases:
        value = normalized.get(normalize_key(alias))
        if value is not None and value.strip():
            return value.strip()
    return ""


def to_number(value: Any, fallback: float = 0.0) -> float:
    text = clean(value)
    if not text:
        return 0.0
    if "_" in text:
        return fallback
    lowered = text.lower()
    try:
        if lowered.startswith(("0x", "0o", "0b")):
            return float(int(lowered, 0))
        number = float(text)
    except ValueError:
        return fallback
    return number if math.isfinite(number) else fallback


def is_approved(status: Any) -> bool:
    return clean(status).lower() == "approved"


def parse_date(value: Any) -> datetime | None:
    text = clean(value)
    if not text:
        return None

    gviz = _GVIZ_DATE_RE.match(text)
    if gviz:
        year, month, day, hour, minute, second = (int(part) if part else 0 for part in gviz.groups())
        try:
            return datetime(year, month + 1, day, hour, minute, second, tzinfo=timezone.utc)
        except ValueError:
            return None

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
    if parsed is None:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
            except ValueError:
                continue
            break
    if parsed is None:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_date_key(value: Any) -> float:
    """Epoch milliseconds for sorting; unparsable dates sort as the oldest (0)."""
    parsed = parse_date(value)
    if parsed is None:
        return 0.0
    return parsed.timestamp() * 1000.0
