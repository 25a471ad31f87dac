"""TTL cache for fetched wallet datasets."""

from __future__ import annotations

import hashlib
import time
from threading import Lock
from typing import Callable, NamedTuple, Optional

from cachetools import TLRUCache

from ..config.settings import CacheConfig, get_app_config
from ..datalake.schemas import WalletDataset
from ..monitoring.metrics import METRICS


def wallet_cache_key(address: str) -> str:
    """SHA-256 of the lowercased wallet address."""

    return hashlib.sha256(address.strip().lower().encode("utf-8")).hexdigest()


class _Entry(NamedTuple):
    dataset: WalletDataset
    ttl: float


def _time_to_use(_key: str, entry: _Entry, now: float) -> float:
    return now + entry.ttl


class WalletDatasetCache:
    """Per-entry TTL cache; expiry is evaluated when an entry is read."""

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        *,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or get_app_config().cache
        self._cache: TLRUCache[str, _Entry] = TLRUCache(
            maxsize=self._config.max_entries, ttu=_time_to_use, timer=timer
        )
        self._lock = Lock()

    @property
    def default_ttl(self) -> int:
        return self._config.dataset_ttl_seconds

    def get(self, key: str) -> Optional[WalletDataset]:
        with self._lock:
            entry = self._cache.get(key)
        if entry is None:
            METRICS.increment("cache.miss")
            return None
        METRICS.increment("cache.hit")
        return entry.dataset

    def set(self, key: str, value: WalletDataset, ttl: Optional[float] = None) -> None:
        seconds = self.default_ttl if ttl is None else max(float(ttl), 0.0)
        with self._lock:
            self._cache[key] = _Entry(value, seconds)
            METRICS.gauge("cache.entries", len(self._cache))

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            METRICS.gauge("cache.entries", 0)

    def purge(self) -> int:
        """Drop expired entries and return how many were removed."""

        with self._lock:
            before = len(self._cache)
            self._cache.expire()
            remaining = len(self._cache)
        METRICS.gauge("cache.entries", remaining)
        return before - remaining

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._cache

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)


__all__ = ["WalletDatasetCache", "wallet_cache_key"]
