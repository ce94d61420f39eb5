"""
Tests for the content-addressed analysis cache
"""
import asyncio

import pytest

from cheongyak.models.document import AnalysisOutcome, OcrQuality
from cheongyak.services.cache_service import (
    AnalysisCache,
    MemoryCacheStore,
    cache_key
)

FINGERPRINT = "f" * 64
DAY = 86400


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class BrokenStore:
    """Store whose every operation fails"""

    async def get(self, key):
        raise ConnectionError("store down")

    async def set(self, key, value, ttl_seconds):
        raise ConnectionError("store down")

    async def expire(self, key, ttl_seconds):
        raise ConnectionError("store down")


def make_outcome(**overrides) -> AnalysisOutcome:
    data = {
        "document_id": "doc-1",
        "name": "래미안 원베일리",
        "region": "서울",
        "max_age": 39,
        "match_score": 85,
        "is_eligible": True,
        "ocr_quality": OcrQuality.MEDIUM,
        "ocr_warning": "일부 내용이 불완전할 수 있습니다. 결과를 확인해주세요.",
        "extracted_text": "본문",
        "ai_model": "test-model",
        "processing_time_ms": 1234,
    }
    data.update(overrides)
    return AnalysisOutcome(**data)


def make_cache(clock=None):
    store = MemoryCacheStore(clock=clock or FakeClock())
    return AnalysisCache(store, ttl_days=30), store


def test_cache_key_uses_prefix():
    assert cache_key("abc") == "pdf:analysis:abc"


def test_put_then_get_returns_equal_outcome():
    cache, _ = make_cache()
    outcome = make_outcome()

    async def scenario():
        await cache.put(FINGERPRINT, outcome)
        return await cache.get(FINGERPRINT)

    cached = asyncio.run(scenario())
    assert cached == outcome
    assert cached.ocr_quality == OcrQuality.MEDIUM


def test_unknown_fingerprint_is_a_miss():
    cache, _ = make_cache()
    assert asyncio.run(cache.get("0" * 64)) is None
    assert asyncio.run(cache.is_cached("0" * 64)) is False


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache, _ = make_cache(clock)

    asyncio.run(cache.put(FINGERPRINT, make_outcome()))
    clock.now += 30 * DAY - 1
    assert asyncio.run(cache.is_cached(FINGERPRINT))
    clock.now += 1
    assert asyncio.run(cache.get(FINGERPRINT)) is None


def test_touch_extends_lifetime_by_full_ttl():
    clock = FakeClock()
    cache, _ = make_cache(clock)

    asyncio.run(cache.put(FINGERPRINT, make_outcome()))
    clock.now += 20 * DAY
    assert asyncio.run(cache.touch(FINGERPRINT)) is True
    clock.now += 25 * DAY
    assert asyncio.run(cache.is_cached(FINGERPRINT))


def test_touch_on_missing_entry_returns_false():
    cache, _ = make_cache()
    assert asyncio.run(cache.touch(FINGERPRINT)) is False


def test_unreadable_payload_is_treated_as_miss():
    cache, store = make_cache()
    asyncio.run(store.set(cache_key(FINGERPRINT), "{not json", 60))
    assert asyncio.run(cache.get(FINGERPRINT)) is None


def test_invalidate_and_size():
    cache, _ = make_cache()

    async def scenario():
        await cache.put("1" * 64, make_outcome())
        await cache.put("2" * 64, make_outcome(document_id="doc-2"))
        before = await cache.size()
        removed = await cache.invalidate("1" * 64)
        removed_again = await cache.invalidate("1" * 64)
        return before, removed, removed_again, await cache.size()

    assert asyncio.run(scenario()) == (2, True, False, 1)


def test_store_failures_degrade_to_misses():
    cache = AnalysisCache(BrokenStore(), ttl_days=1)

    async def scenario():
        await cache.put(FINGERPRINT, make_outcome())
        return await cache.get(FINGERPRINT), await cache.touch(FINGERPRINT)

    assert asyncio.run(scenario()) == (None, False)


def test_uninitialised_cache_raises():
    cache = AnalysisCache()
    with pytest.raises(RuntimeError):
        asyncio.run(cache.get(FINGERPRINT))

    cache.init(MemoryCacheStore())
    assert asyncio.run(cache.get(FINGERPRINT)) is None
