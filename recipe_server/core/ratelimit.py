"""
Token-bucket rate limiter.

- In-memory, keyed by credential prefix or client ip.
- Disabled unless RATE_LIMIT_ENABLED is set.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict


@dataclass
class RateLimitConfig:
    enabled: bool = False
    per_minute_default: int = 120
    burst_default: int = 30


class TokenBucket:
    def __init__(self, capacity: int, refill_rate_per_sec: float, time_fn: Callable[[], float] = time.monotonic):
        self.capacity = max(1, capacity)
        self.tokens = float(self.capacity)
        self.refill_rate = max(0.0, refill_rate_per_sec)
        self.time_fn = time_fn
        self.last_refill = self.time_fn()

    def _refill(self) -> None:
        now = self.time_fn()
        elapsed = now - self.last_refill
        if elapsed <= 0:
            return
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    def allow(self, cost: float = 1.0) -> bool:
        self._refill()
        if self.tokens >= cost:
            self.tokens -= cost
            return True
        return False


class InMemoryRateLimiter:
    def __init__(self, config: RateLimitConfig, time_fn: Callable[[], float] = time.monotonic):
        self.config = config
        self.time_fn = time_fn
        self.buckets: Dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    def _bucket_for(self, key: str, per_minute: int, burst: int) -> TokenBucket:
        if key not in self.buckets:
            refill_rate = per_minute / 60.0
            self.buckets[key] = TokenBucket(capacity=burst, refill_rate_per_sec=refill_rate, time_fn=self.time_fn)
        return self.buckets[key]

    def allow(self, key: str, *, per_minute: int, burst: int) -> bool:
        with self._lock:
            bucket = self._bucket_for(key, per_minute, burst)
            return bucket.allow()


def build_rate_limit_config(settings_obj) -> RateLimitConfig:
    per_minute = getattr(settings_obj, "RATE_LIMIT_PER_MINUTE_DEFAULT", 120)
    burst = getattr(settings_obj, "RATE_LIMIT_BURST_DEFAULT", 30)
    return RateLimitConfig(
        enabled=bool(getattr(settings_obj, "RATE_LIMIT_ENABLED", False)),
        per_minute_default=per_minute if per_minute > 0 else 120,
        burst_default=burst if burst > 0 else 30,
    )
