import hashlib

from wallet_rank.config.settings import CacheConfig
from wallet_rank.datalake.schemas import WalletDataset
from wallet_rank.ingestion.cache import WalletDatasetCache, wallet_cache_key
from wallet_rank.monitoring.metrics import METRICS


class FakeClock:
    def __init__(self) -> None:
        self.now = 1_000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_cache_key_is_case_insensitive_sha256() -> None:
    key = wallet_cache_key(" 0xAbC ")
    assert key == hashlib.sha256(b"0xabc").hexdigest()
    assert key == wallet_cache_key("0xabc")
    assert len(key) == 64


def test_entries_expire_on_read() -> None:
    clock = FakeClock()
    cache = WalletDatasetCache(CacheConfig(dataset_ttl_seconds=60), timer=clock)
    dataset = WalletDataset(address="0xabc")
    key = wallet_cache_key("0xabc")

    assert cache.get(key) is None
    cache.set(key, dataset)
    clock.advance(59)
    assert cache.get(key) is dataset
    clock.advance(1)
    assert cache.get(key) is None

    assert METRICS.get("cache.hit") == 1
    assert METRICS.get("cache.miss") == 2


def test_per_entry_ttl_and_purge() -> None:
    clock = FakeClock()
    cache = WalletDatasetCache(CacheConfig(dataset_ttl_seconds=3_600), timer=clock)
    cache.set("short", WalletDataset(address="0x1"), ttl=10)
    cache.set("long", WalletDataset(address="0x2"))

    clock.advance(30)

    assert METRICS.snapshot()["gauges"]["cache.entries"] == 2.0
    assert cache.purge() == 1
    assert METRICS.snapshot()["gauges"]["cache.entries"] == 1.0
    assert "short" not in cache
    assert "long" in cache
    assert len(cache) == 1


def test_delete_and_clear() -> None:
    cache = WalletDatasetCache(CacheConfig())
    cache.set("a", WalletDataset(address="0xa"))
    cache.set("b", WalletDataset(address="0xb"))

    cache.delete("a")
    cache.delete("missing")
    assert cache.get("a") is None
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0


def test_capacity_is_bounded() -> None:
    cache = WalletDatasetCache(CacheConfig(max_entries=2))
    for index in range(3):
        cache.set(f"key{index}", WalletDataset(address=f"0x{index}"))
    assert len(cache) == 2
