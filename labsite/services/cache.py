from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path
import tempfile
import time
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_CACHE_TTL_MS = 300000

Rows = list[list[str]]


class CacheStore(Protocol):
    """Process-wide string key/value store backing the row cache."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class InMemoryCacheStore:
    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFileCacheStore:
    """Persists each key as one JSON text file under ``directory``."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def get(self, key: str) -> str | None:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("cache read failed key=%s: %s", key, exc)
            return None

    def set(self, key: str, value: str) -> None:
        # Readers only ever see a complete file: write aside, then rename over.
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self._path_for(key)
        fd, temp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{target.stem}.", suffix=".tmp")
        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            temp_path.replace(target)
        except Exception:
            temp_path.unlink(missing_ok=True)
            raise

    def _path_for(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"


def cache_key(document_id: str, tab_name: str) -> str:
    return f"sheets_cache:{document_id}:{tab_name}"


def _now_ms() -> float:
    return time.time() * 1000.0


class ClientRowCache:
    """TTL cache of fetched tab rows stored as ``{"ts": ..., "data": ...}``.

    A ``ttl_ms`` of zero or less disables both reads and writes. Entries
    that cannot be decoded are treated as misses.
    """

    def __init__(
        self,
        store: CacheStore,
        *,
        ttl_ms: int = DEFAULT_CLIENT_CACHE_TTL_MS,
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        self.store = store
        self.ttl_ms = ttl_ms
        self.clock = clock

    @property
    def enabled(self) -> bool:
        return self.ttl_ms > 0

    def get(self, key: str) -> Rows | None:
        if not self.enabled:
            return None
        raw = self.store.get(key)
        if not raw:
            return None
        try:
            parsed = json.loads(raw)
        except (ValueError, RecursionError):
            logger.debug("discarding undecodable cache entry key=%s", key)
            return None

        rows = _coerce_rows(parsed.get("data")) if isinstance(parsed, dict) else None
        cached_at = parsed.get("ts") if isinstance(parsed, dict) else None
        if rows is None or not isinstance(cached_at, (int, float)) or isinstance(cached_at, bool) or not cached_at:
            return None
        if self.clock() - cached_at > self.ttl_ms:
            return None
        return rows

    def set(self, key: str, rows: Rows, timestamp: float | None = None) -> None:
        if not self.enabled:
            return
        payload = {"ts": self.clock() if timestamp is None else timestamp, "data": rows}
        try:
            self.store.set(key, json.dumps(payload))
        except (OSError, TypeError, ValueError) as exc:
            logger.debug("cache write failed key=%s: %s", key, exc)


def _coerce_rows(value: Any) -> Rows | None:
    if not isinstance(value, list):
        return None
    rows: Rows = []
    for row in value:
        if not isinstance(row, list):
            return None
        rows.append(["" if cell is None else str(cell) for cell in row])
    return rows
