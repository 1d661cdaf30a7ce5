import asyncio

from driver_finance.main import rate_limit_category
from driver_finance.utils.ratelimiter import InMemoryRateLimiter


class FrozenClockLimiter(InMemoryRateLimiter):
    def __init__(self, now: int, **kwargs):
        super().__init__(**kwargs)
        self.now = now

    def _now(self) -> int:
        return self.now


def _hit(limiter, key="k1", category="default", limit=3, window=60):
    return asyncio.run(limiter.check_and_increment(key, category, limit, window))


def test_fixed_window_blocks_after_limit():
    limiter = FrozenClockLimiter(now=1_000_020)
    results = [_hit(limiter) for _ in range(4)]
    assert [allowed for allowed, _ in results] == [True, True, True, False]
    assert [meta["remaining"] for _, meta in results] == [2, 1, 0, 0]
    blocked = results[-1][1]
    assert blocked["reset_epoch"] == 1_000_020 - (1_000_020 % 60) + 60
    assert blocked["retry_after"] == blocked["reset_epoch"] - 1_000_020


def test_window_rollover_resets_count():
    limiter = FrozenClockLimiter(now=1_000_000)
    for _ in range(3):
        _hit(limiter)
    assert _hit(limiter)[0] is False
    limiter.now += 60
    allowed, meta = _hit(limiter)
    assert allowed is True
    assert meta["count"] == 1


def test_keys_and_categories_are_independent():
    limiter = FrozenClockLimiter(now=1_000_000)
    assert _hit(limiter, limit=1)[0] is True
    assert _hit(limiter, limit=1)[0] is False
    assert _hit(limiter, key="k2", limit=1)[0] is True
    assert _hit(limiter, category="record_write", limit=1)[0] is True


def test_key_table_is_bounded():
    limiter = FrozenClockLimiter(now=1_000_000, max_keys=3)
    for i in range(5):
        _hit(limiter, key=f"user{i}")
    assert len(limiter) == 3
    limiter.reset()
    assert len(limiter) == 0


def test_expired_windows_are_evicted_first():
    limiter = FrozenClockLimiter(now=1_000_000, max_keys=2)
    _hit(limiter, key="short", window=10)
    _hit(limiter, key="long", window=3600)
    limiter.now += 30
    _hit(limiter, key="new", window=3600)
    names = list(limiter._buckets)
    assert any(name.startswith("long:") for name in names)
    assert not any(name.startswith("short:") for name in names)


def test_category_mapping():
    assert rate_limit_category("/api/v1/records/", "POST") == "record_write"
    assert rate_limit_category("/api/v1/records/3", "DELETE") == "record_write"
    assert rate_limit_category("/api/v1/records/", "GET") == "default"
    assert rate_limit_category("/api/v1/alerts/generate", "POST") == "alert_generate"
    assert rate_limit_category("/api/v1/alerts/", "POST") == "default"
