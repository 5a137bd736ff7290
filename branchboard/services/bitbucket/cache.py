"""
TTL caching for Bitbucket API responses.

Entries live in a string key-value store as JSON documents of the form
{"data": ..., "timestamp": ms, "expiresAt": ms}. An entry is valid while
now < expiresAt. Keys are "<namespace>:<workspace>:<resource>", so clearing a
prefix invalidates a whole workspace at once.

The cache is a performance optimization only: unreadable entries count as
misses and are removed, and failed writes are logged and dropped.
"""

import json
import logging
import os
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from cachetools import LRUCache  # type: ignore[import-untyped]

from branchboard.services.bitbucket.exceptions import CacheError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Minimal synchronous string store backing TTLCache."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class MemoryStore:
    """In-process store, bounded by evicting the least recently used key."""

    def __init__(self, maxsize: int = 1000) -> None:
        self._data: LRUCache[str, str] = LRUCache(maxsize=maxsize)

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data.keys())

    def __len__(self) -> int:
        return len(self._data)


class JsonFileStore:
    """
    Durable store kept as a single JSON object on disk.

    Loaded lazily on first access and rewritten atomically (temp file + replace)
    after every mutation. Any I/O or decode failure raises CacheError.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._data: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._data is None:
            try:
                if self._path.exists():
                    loaded = json.loads(self._path.read_text(encoding="utf-8"))
                else:
                    loaded = {}
            except (OSError, ValueError) as e:
                raise CacheError(f"Cannot read cache file {self._path}: {e}") from e
            if not isinstance(loaded, dict):
                loaded = {}
            self._data = {k: v for k, v in loaded.items() if isinstance(v, str)}
        return self._data

    def _flush(self) -> None:
        tmp_path = self._path.with_name(f".{self._path.name}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(self._data), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise CacheError(f"Cannot write cache file {self._path}: {e}") from e

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        self._load()[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if self._load().pop(key, None) is not None:
            self._flush()

    def keys(self) -> list[str]:
        return list(self._load().keys())


class TTLCache:
    """Read-through cache over a KeyValueStore with a fixed time-to-live."""

    def __init__(
        self,
        store: KeyValueStore,
        ttl_seconds: float = 300,
        *,
        timer: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds
        self._timer = timer

    def _now_ms(self) -> int:
        return int(self._timer() * 1000)

    def _discard(self, key: str) -> None:
        try:
            self.store.remove(key)
        except CacheError as e:
            logger.debug(f"Cache remove failed for {key}: {e}")

    def _read_entry(self, key: str) -> dict[str, Any] | None:
        """Return the decoded entry, removing it if it cannot be decoded."""
        try:
            raw = self.store.get(key)
        except CacheError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        if raw is None:
            return None

        try:
            entry = json.loads(raw)
            int(entry["expiresAt"])
            entry["data"]
        except (ValueError, TypeError, KeyError):
            logger.debug(f"Cache entry for {key} is malformed, removing")
            self._discard(key)
            return None
        return entry

    def get(self, key: str) -> Any | None:
        """Return cached data, or None if missing or expired (expired entries are removed)."""
        entry = self._read_entry(key)
        if entry is None:
            logger.debug(f"Cache MISS: {key}")
            return None

        if self._now_ms() >= int(entry["expiresAt"]):
            logger.debug(f"Cache EXPIRED: {key}")
            self._discard(key)
            return None

        logger.debug(f"Cache HIT: {key}")
        return entry["data"]

    def set(self, key: str, data: Any) -> None:
        """Store data under key, replacing any previous entry. Failures are logged only."""
        now = self._now_ms()
        try:
            payload = json.dumps(
                {
                    "data": data,
                    "timestamp": now,
                    "expiresAt": now + int(self.ttl_seconds * 1000),
                }
            )
            self.store.set(key, payload)
        except (CacheError, TypeError, ValueError) as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    def invalidate(self, key: str) -> None:
        self._discard(key)

    def _keys_with_prefix(self, prefix: str) -> list[str]:
        try:
            return [key for key in self.store.keys() if key.startswith(prefix)]
        except CacheError as e:
            logger.warning(f"Cache key listing failed: {e}")
            return []

    def clear_all(self, prefix: str) -> int:
        """Remove every entry under prefix. Returns the number of keys removed."""
        keys = self._keys_with_prefix(prefix)
        for key in keys:
            self._discard(key)
        logger.debug(f"Cleared {len(keys)} cache entries under {prefix!r}")
        return len(keys)

    def clear_expired(self, prefix: str) -> int:
        """
        Remove expired entries under prefix. Returns the number of expired entries removed.

        Malformed entries are dropped along the way but not counted.
        """
        now = self._now_ms()
        removed = 0
        for key in self._keys_with_prefix(prefix):
            entry = self._read_entry(key)
            if entry is not None and now >= int(entry["expiresAt"]):
                self._discard(key)
                removed += 1
        return removed

    def stats(self, prefix: str = "") -> dict[str, int]:
        """Count entries under prefix, split into valid and expired."""
        now = self._now_ms()
        valid = expired = 0
        for key in self._keys_with_prefix(prefix):
            entry = self._read_entry(key)
            if entry is None:
                continue
            if now < int(entry["expiresAt"]):
                valid += 1
            else:
                expired += 1
        return {"size": valid + expired, "valid": valid, "expired": expired}
