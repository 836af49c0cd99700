"""In-memory fixed-window rate limiting, one counter per key per process"""

import time
from threading import Lock
from typing import Callable, Dict, Tuple

from replaycoach.errors import RateLimited
from replaycoach.utils.logger import get_logger

logger = get_logger(__name__)

CLEANUP_INTERVAL_SECONDS = 60


def get_client_ip(request) -> str:
    """Best-effort client IP behind common proxies"""
    forwarded = request.headers.get('X-Forwarded-For')
    if forwarded:
        return forwarded.split(',')[0].strip()

    for header in ('X-Real-IP', 'CF-Connecting-IP'):
        value = request.headers.get(header)
        if value:
            return value.strip()

    return request.remote_addr or 'unknown'


class RateLimiter:
    """Fixed-window counter keyed by an arbitrary string (client IP, email)"""

    def __init__(self, limit: int, window_seconds: int, key_prefix: str = 'rate_limit',
                 message: str = 'Too many requests. Please try again later.',
                 clock: Callable[[], float] = time.time):
        self.limit = limit
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix
        self.message = message
        self.clock = clock
        self._windows: Dict[str, dict] = {}
        self._lock = Lock()
        self._last_cleanup = 0

    def _cleanup(self, now: float):
        if now - self._last_cleanup < CLEANUP_INTERVAL_SECONDS:
            return
        expired = [k for k, v in self._windows.items() if now >= v['reset_time']]
        for k in expired:
            del self._windows[k]
        self._last_cleanup = now

    def check(self, key: str) -> Tuple[bool, int, int]:
        """Count one request for key.

        Returns:
            Tuple of (is_allowed, remaining, seconds_until_reset)
        """
        now = self.clock()
        full_key = f"{self.key_prefix}:{key}"

        with self._lock:
            self._cleanup(now)

            entry = self._windows.get(full_key)
            if entry is None or now >= entry['reset_time']:
                entry = {'count': 0, 'reset_time': now + self.window_seconds}
                self._windows[full_key] = entry

            is_allowed = entry['count'] < self.limit
            if is_allowed:
                entry['count'] += 1

            remaining = max(0, self.limit - entry['count'])
            reset_in = max(0, int(entry['reset_time'] - now + 0.999))
            return is_allowed, remaining, reset_in

    def hit(self, key: str) -> dict:
        """Count one request, raising RateLimited once the window is used up.

        Returns the X-RateLimit-* headers for the response.
        """
        is_allowed, remaining, reset_in = self.check(key)
        if not is_allowed:
            logger.warning(f"Rate limit exceeded for {self.key_prefix}:{key}")
            raise RateLimited(self.message, retry_after=reset_in, limit=self.limit)

        return {
            'X-RateLimit-Limit': str(self.limit),
            'X-RateLimit-Remaining': str(remaining),
            'X-RateLimit-Reset': str(reset_in),
        }

    def reset(self, key: str = None):
        """Forget one key, or every key when none is given"""
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(f"{self.key_prefix}:{key}", None)
