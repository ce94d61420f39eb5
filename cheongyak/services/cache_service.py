"""
Content-addressed cache of analysis outcomes keyed by document fingerprint
"""
import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Protocol, Tuple

from pydantic import ValidationError

from ..config import settings
from ..models.document import AnalysisOutcome

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "pdf:analysis:"


def cache_key(fingerprint: str) -> str:
    return f"{CACHE_KEY_PREFIX}{fingerprint}"


class CacheStore(Protocol):
    """String-keyed store with per-entry expiry"""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str, ttl_seconds: float) -> None:
        ...

    async def expire(self, key: str, ttl_seconds: float) -> bool:
        ...

    async def delete(self, key: str) -> bool:
        ...

    async def count(self, prefix: str) -> int:
        ...


class MemoryCacheStore:
    """In-process cache store for single-instance deployments"""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = asyncio.Lock()

    def _live(self, key: str) -> Optional[Tuple[str, float]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry[1] <= self._clock():
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            entry = self._live(key)
            return entry[0] if entry else None

    async def set(self, key: str, value: str, ttl_seconds: float) -> None:
        async with self._lock:
            self._entries[key] = (value, self._clock() + ttl_seconds)

    async def expire(self, key: str, ttl_seconds: float) -> bool:
        async with self._lock:
            entry = self._live(key)
            if entry is None:
                return False
            self._entries[key] = (entry[0], self._clock() + ttl_seconds)
            return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def count(self, prefix: str) -> int:
        async with self._lock:
            return sum(1 for key in list(self._entries) if key.startswith(prefix) and self._live(key))


class MongoCacheStore:
    """Cache store on a MongoDB collection with a TTL index on ``expires_at``"""

    def __init__(self, collection_getter: Callable):
        self._collection_getter = collection_getter

    @property
    def collection(self):
        return self._collection_getter()

    @staticmethod
    def _expiry(ttl_seconds: float) -> datetime:
        return datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)

    async def get(self, key: str) -> Optional[str]:
        # The TTL monitor runs periodically, so expired entries are filtered here too
        doc = await self.collection.find_one(
            {"_id": key, "expires_at": {"$gt": datetime.now(timezone.utc)}}
        )
        return doc["value"] if doc else None

    async def set(self, key: str, value: str, ttl_seconds: float) -> None:
        await self.collection.update_one(
            {"_id": key},
            {"$set": {"value": value, "expires_at": self._expiry(ttl_seconds)}},
            upsert=True
        )

    async def expire(self, key: str, ttl_seconds: float) -> bool:
        result = await self.collection.update_one(
            {"_id": key, "expires_at": {"$gt": datetime.now(timezone.utc)}},
            {"$set": {"expires_at": self._expiry(ttl_seconds)}}
        )
        return result.matched_count > 0

    async def delete(self, key: str) -> bool:
        result = await self.collection.delete_one({"_id": key})
        return result.deleted_count > 0

    async def count(self, prefix: str) -> int:
        return await self.collection.count_documents({
            "_id": {"$regex": f"^{prefix}"},
            "expires_at": {"$gt": datetime.now(timezone.utc)}
        })


class AnalysisCache:
    """Caches analysis outcomes as JSON under ``pdf:analysis:<fingerprint>``"""

    def __init__(self, store: Optional[CacheStore] = None, ttl_days: Optional[int] = None):
        self.store = store
        self.ttl_seconds = (ttl_days if ttl_days is not None else settings.cache_ttl_days) * 86400

    def init(self, store: CacheStore) -> None:
        """Attach the backing store; called once from the application lifespan"""
        self.store = store
        logger.info(f"Analysis cache initialised with {type(store).__name__}")

    def _require_store(self) -> CacheStore:
        if self.store is None:
            raise RuntimeError("Analysis cache used before initialisation")
        return self.store

    async def get(self, fingerprint: str) -> Optional[AnalysisOutcome]:
        """Cached outcome, or None on a miss, an expired entry or an unreadable payload"""
        store = self._require_store()
        try:
            payload = await store.get(cache_key(fingerprint))
        except Exception as e:
            logger.error(f"Cache read failed for {fingerprint}: {e}")
            return None

        if payload is None:
            logger.debug(f"Cache miss for {fingerprint}")
            return None

        try:
            outcome = AnalysisOutcome.model_validate_json(payload)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Discarding unreadable cache entry for {fingerprint}: {e}")
            return None

        logger.info(f"Cache hit for {fingerprint}")
        return outcome

    async def put(self, fingerprint: str, outcome: AnalysisOutcome, ttl_seconds: Optional[float] = None) -> None:
        store = self._require_store()
        try:
            payload = outcome.model_dump_json()
        except (ValueError, TypeError) as e:
            logger.error(f"Failed to serialise outcome for {fingerprint}: {e}")
            return
        try:
            await store.set(cache_key(fingerprint), payload, ttl_seconds or self.ttl_seconds)
        except Exception as e:
            logger.error(f"Cache write failed for {fingerprint}: {e}")
            return
        logger.info(f"Cached analysis outcome for {fingerprint}")

    async def touch(self, fingerprint: str) -> bool:
        """Extend the entry's lifetime by a full TTL"""
        store = self._require_store()
        try:
            return await store.expire(cache_key(fingerprint), self.ttl_seconds)
        except Exception as e:
            logger.error(f"Cache TTL extension failed for {fingerprint}: {e}")
            return False

    async def invalidate(self, fingerprint: str) -> bool:
        removed = await self._require_store().delete(cache_key(fingerprint))
        if removed:
            logger.info(f"Invalidated cache entry for {fingerprint}")
        return removed

    async def is_cached(self, fingerprint: str) -> bool:
        return await self.get(fingerprint) is not None

    async def size(self) -> int:
        return await self._require_store().count(CACHE_KEY_PREFIX)


# Global analysis cache instance, attached to a store at startup
analysis_cache = AnalysisCache()
