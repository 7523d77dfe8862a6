"""
Cache Regions

Key/value stores with per-entry expiry. The tracker uses three independent
regions: memoized query results, geolocation lookups and rate-limit
counters. A region lives in memory and, when given a path, is mirrored to a
JSON file so its entries survive a restart. The file is only read when the
region is built, so separate processes do not see each other's writes.
"""

import json
import logging
import time
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

QUERIES = "queries"
IPSTACK = "ipstack"
RATELIMIT = "ratelimit"

REGION_NAMES = (QUERIES, IPSTACK, RATELIMIT)


class CacheRegion:
    """A named, independently flushable cache."""

    def __init__(
        self,
        name: str,
        path: Optional[Path] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize a cache region.

        Args:
            name: Region name, used in log messages
            path: Optional JSON file mirroring the region's entries
            clock: Returns the current time in epoch seconds
        """
        self.name = name
        self.path = path
        self._clock = clock
        self._lock = Lock()
        self._entries: Dict[str, Dict[str, Any]] = self._load()

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value under key, or default when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            expires_at = entry.get("expires_at")
            if expires_at is not None and expires_at <= self._clock():
                del self._entries[key]
                return default
            return entry["value"]

    def set(self, key: str, value: Any, ttl: int = 0) -> None:
        """Store value under key.

        Args:
            key: Cache key
            value: JSON-serializable value
            ttl: Lifetime in seconds, 0 keeps the entry until flushed
        """
        with self._lock:
            self._entries[key] = {
                "value": value,
                "expires_at": self._clock() + ttl if ttl > 0 else None,
            }
            self._save()

    def remove(self, key: str) -> None:
        with self._lock:
            if self._entries.pop(key, None) is not None:
                self._save()

    def flush(self) -> None:
        """Drop every entry of this region."""
        with self._lock:
            self._entries.clear()
            self._save()
        logger.debug(f"Flushed cache region '{self.name}'")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _load(self) -> Dict[str, Dict[str, Any]]:
        """Load entries from the backing file."""
        if self.path is None:
            return {}
        try:
            if self.path.exists():
                with open(self.path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    return data
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Error loading cache region '{self.name}': {e}")
        return {}

    def _save(self) -> None:
        """Save entries to the backing file. Caller holds the lock."""
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(self._entries, f, ensure_ascii=False)
        except OSError as e:
            logger.error(f"Error saving cache region '{self.name}': {e}")


class CacheRegistry:
    """The three cache regions used by the tracker."""

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.cache_dir = Path(cache_dir) if cache_dir else None
        self._regions = {
            name: CacheRegion(
                name,
                path=self.cache_dir / f"{name}.json" if self.cache_dir else None,
                clock=clock,
            )
            for name in REGION_NAMES
        }

    @property
    def queries(self) -> CacheRegion:
        return self._regions[QUERIES]

    @property
    def ipstack(self) -> CacheRegion:
        return self._regions[IPSTACK]

    @property
    def ratelimit(self) -> CacheRegion:
        return self._regions[RATELIMIT]

    def region(self, name: str) -> CacheRegion:
        return self._regions[name]

    def flush_all(self) -> None:
        for region in self._regions.values():
            region.flush()
