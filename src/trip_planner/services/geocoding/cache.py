"""Key-value stores for previously geocoded addresses."""

from __future__ import annotations

import functools
import json
import logging
import os
import threading
from pathlib import Path
from typing import Protocol

from ...config import settings

logger = logging.getLogger(__name__)


class GeocodeCache(Protocol):
    def get(self, key: str) -> dict | None: ...

    def set(self, key: str, value: dict) -> None: ...


class InMemoryGeocodeCache:
    """Process-lifetime cache, mostly useful for tests and one-off runs."""

    def __init__(self, entries: dict[str, dict] | None = None) -> None:
        self.entries: dict[str, dict] = dict(entries or {})

    def get(self, key: str) -> dict | None:
        return self.entries.get(key)

    def set(self, key: str, value: dict) -> None:
        self.entries[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self.entries

    def __len__(self) -> int:
        return len(self.entries)


class JsonFileGeocodeCache(InMemoryGeocodeCache):
    """Cache persisted to a JSON file, rewritten on every insert.

    Entries are keyed by the original address string and never expire.
    Writers share one lock and merge the file's current contents before
    replacing it, so entries added by another instance are kept.
    """

    _write_lock = threading.Lock()

    def __init__(self, path: Path | None = None) -> None:
        self.path = (path or settings.geocode_cache_file).resolve()
        super().__init__(self._load())

    def _load(self) -> dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as exc:
            logger.warning(f"Geocode cache at {self.path} is not valid JSON, starting empty: {exc}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Geocode cache at {self.path} is not a JSON object, starting empty")
            return {}
        return data

    def set(self, key: str, value: dict) -> None:
        with self._write_lock:
            merged = self._load()
            merged.update(self.entries)
            merged[key] = value
            self.entries = merged
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_name(f"{self.path.name}.tmp")
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(self.entries, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)


@functools.lru_cache(maxsize=None)
def shared_geocode_cache(path: Path | None = None) -> JsonFileGeocodeCache:
    """Process-wide cache instance per file, shared by every request."""
    return JsonFileGeocodeCache(path)
