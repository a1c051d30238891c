from datetime import datetime, timedelta
from threading import Lock

from src.adapters.clock import ClockPort, SystemClock


class InMemoryRateLimiter:
    """
    Sliding-window attempt counter keyed by client (IP address).

    State is per process; it resets on restart.
    """

    def __init__(self, clock: ClockPort | None = None):
        self._clock = clock if clock is not None else SystemClock()
        self._history: dict[str, list[datetime]] = {}
        self._lock = Lock()

    def _cleanup(self, key: str, window: int) -> None:
        cutoff = self._clock.now() - timedelta(seconds=window)
        if key in self._history:
            self._history[key] = [t for t in self._history[key] if t > cutoff]
            if not self._history[key]:
                del self._history[key]

    def check_rate_limit(self, key: str, limit: int, window_seconds: int) -> tuple[bool, int]:
        """
        Check whether another attempt is allowed. Does not record it.

        Returns:
            Tuple of (is_allowed, remaining_attempts)
        """
        if limit <= 0:
            return False, 0

        with self._lock:
            self._cleanup(key, window_seconds)
            current_count = len(self._history.get(key, []))
            remaining = max(limit - current_count, 0)
            return current_count < limit, remaining

    def record_attempt(self, key: str) -> None:
        with self._lock:
            self._history.setdefault(key, []).append(self._clock.now())

    def reset(self) -> None:
        with self._lock:
            self._history.clear()
