from collections import deque
from threading import Lock


class SlidingWindowRateLimiter:
    """Per-key request counter over a trailing window of ``window_seconds``.

    Keys whose timestamps have all expired are dropped, so the table only holds
    callers seen within the last window.
    """

    def __init__(self, limit: int, window_seconds: float) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._buckets: dict[str, deque[float]] = {}
        self._last_sweep = 0.0
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._buckets)

    def allow(self, key: str, now: float) -> bool:
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)

            bucket = self._buckets.setdefault(key, deque())
            self._expire(bucket, now)
            if len(bucket) >= self.limit:
                return False
            bucket.append(now)
            return True

    def _expire(self, bucket: deque[float], now: float) -> None:
        while bucket and now - bucket[0] > self.window_seconds:
            bucket.popleft()

    def _sweep(self, now: float) -> None:
        for key in list(self._buckets):
            bucket = self._buckets[key]
            self._expire(bucket, now)
            if not bucket:
                del self._buckets[key]
        self._last_sweep = now
