"""
In-process token bucket rate limiter.
Keys carry both scope and identity (e.g. "auth:ip:1.2.3.4"); buckets live per process.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable


@dataclass
class _Bucket:
    tokens: float
    updated_at: float


class RateLimiter:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._mem: dict[str, _Bucket] = {}
        self._lock = threading.Lock()

    def allow(self, key: str, *, limit: int, per_seconds: float) -> bool:
        """Take one token from `key`'s bucket; False once `limit` calls were spent within the window."""
        now = self._clock()
        rate = float(limit) / float(per_seconds)
        with self._lock:
            b = self._mem.get(key)
            if b is None:
                b = _Bucket(tokens=float(limit), updated_at=now)
                self._mem[key] = b
            # refill
            b.tokens = min(float(limit), b.tokens + (now - b.updated_at) * rate)
            b.updated_at = now
            if b.tokens < 1.0:
                return False
            b.tokens -= 1.0
            return True

    def reset(self) -> None:
        with self._lock:
            self._mem.clear()
