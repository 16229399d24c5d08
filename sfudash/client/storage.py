"""Expiring key-value cache for connection metadata seen on the stream.

Entries are stored as JSON strings of ``{"value": ..., "expires_at": ...}``.
Reading an expired or unreadable entry removes it and reports it absent, so
callers must treat a miss as "unknown", never as "denied".

When a path is given the cache is mirrored to a JSON file. Writes are
atomic (write temp file + rename) and protected by an in-process lock.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

logger = logging.getLogger("sfudash.client.storage")

DEFAULT_TTL_SECONDS = 24 * 60 * 60


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    tmp = path.with_name(path.name + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False)
        f.write("\n")
    os.replace(tmp, path)


class TTLStore:
    def __init__(
        self,
        path: str | os.PathLike[str] | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._path = Path(path) if path is not None else None
        self._clock = clock
        self._lock = threading.Lock()
        self._items: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable cache file %s", self._path, exc_info=True)
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _flush(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        _atomic_write_json(self._path, self._items)

    def set(self, key: str, value: Any, ttl: float = DEFAULT_TTL_SECONDS) -> None:
        item = {"value": value, "expires_at": self._clock() + ttl}
        with self._lock:
            self._items[key] = json.dumps(item)
            self._flush()

    def get(self, key: str) -> Any | None:
        with self._lock:
            raw = self._items.get(key)
            if raw is None:
                return None
            try:
                item = json.loads(raw)
                expired = self._clock() > float(item["expires_at"])
            except (ValueError, TypeError, KeyError):
                self._remove(key)
                return None
            if expired:
                self._remove(key)
                return None
            return item.get("value")

    def remove(self, key: str) -> None:
        with self._lock:
            self._remove(key)

    def _remove(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._flush()

    def purge_expired(self) -> int:
        """Drop every expired or unreadable entry; returns how many went."""
        now = self._clock()
        with self._lock:
            stale = []
            for key, raw in self._items.items():
                try:
                    if now > float(json.loads(raw)["expires_at"]):
                        stale.append(key)
                except (ValueError, TypeError, KeyError):
                    stale.append(key)
            for key in stale:
                del self._items[key]
            if stale:
                self._flush()
        return len(stale)

    def __len__(self) -> int:
        return len(self._items)
