"""In-memory rate limiter.

Fixed-window counters keyed by ``identifier:limit:window``. This is the only
process-wide mutable state in the service, so the key table is bounded: once it
holds ``max_keys`` entries, windows that have already expired are dropped and,
if that is not enough, the least recently touched keys go next.

Usage pattern:
    allowed, meta = await rate_limiter.check_and_increment(
        key=api_key,
        category="record_write",
        limit=20,
        window_seconds=60,
    )

meta = {
    'limit': int,
    'remaining': int,
    'reset_epoch': int,       # epoch seconds when the window resets
    'retry_after': int,       # seconds until reset, for the Retry-After header
    'window_start': int,
    'count': int,
    'category': str,
}
"""
from __future__ import annotations

import time
import asyncio
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Tuple

from driver_finance.config import RATE_LIMIT_MAX_KEYS


@dataclass
class Bucket:
    window_start: int
    window_seconds: int
    count: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def expired(self, now: int) -> bool:
        return now >= self.window_start + self.window_seconds


class InMemoryRateLimiter:
    def __init__(self, max_keys: int = RATE_LIMIT_MAX_KEYS):
        self.max_keys = max_keys
        self._buckets: "OrderedDict[str, Bucket]" = OrderedDict()
        self._global_lock = asyncio.Lock()

    def _now(self) -> int:
        return int(time.time())

    @staticmethod
    def bucket_key(key: str, category: str, limit: int, window_seconds: int) -> str:
        return f"{key}:{category}:{limit}:{window_seconds}"

    def __len__(self) -> int:
        return len(self._buckets)

    def reset(self) -> None:
        self._buckets.clear()

    def _evict(self, now: int) -> None:
        if len(self._buckets) < self.max_keys:
            return
        for name in [k for k, b in self._buckets.items() if b.expired(now)]:
            del self._buckets[name]
        while len(self._buckets) >= self.max_keys:
            self._buckets.popitem(last=False)

    async def check_and_increment(self, key: str, category: str, limit: int, window_seconds: int) -> Tuple[bool, dict]:
        now = self._now()
        window_start = now - (now % window_seconds)
        name = self.bucket_key(key, category, limit, window_seconds)

        async with self._global_lock:
            bucket = self._buckets.get(name)
            if bucket is None:
                self._evict(now)
                bucket = Bucket(window_start=window_start, window_seconds=window_seconds)
                self._buckets[name] = bucket
            else:
                self._buckets.move_to_end(name)

        async with bucket.lock:
            if bucket.window_start != window_start:
                bucket.window_start = window_start
                bucket.count = 0
            bucket.count += 1
            allowed = bucket.count <= limit
            reset_epoch = bucket.window_start + window_seconds
            meta = {
                "limit": limit,
                "remaining": max(0, limit - bucket.count) if allowed else 0,
                "reset_epoch": reset_epoch,
                "retry_after": max(1, reset_epoch - now),
                "window_start": bucket.window_start,
                "count": bucket.count,
                "category": category,
            }
            return allowed, meta


# Singleton instance used application-wide
rate_limiter = InMemoryRateLimiter()

__all__ = ["rate_limiter", "InMemoryRateLimiter", "Bucket"]
