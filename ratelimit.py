import logging
import time
from collections import defaultdict, deque

from fastapi import Request

from errors import RateLimited

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Sliding window rate limiter keyed by client address.

    A limit of 0 turns it off. State lives in this process only.
    """

    def __init__(self, limit: int, window_seconds: int = 60):
        self.limit = limit
        self.window_seconds = window_seconds
        self.request_history = defaultdict(deque)
        self.last_sweep = time.monotonic()

    def record_request(self, identifier: str) -> int:
        """Record a request and return the count inside the current window."""
        now = time.monotonic()
        cutoff = now - self.window_seconds
        if now - self.last_sweep >= self.window_seconds:
            self.sweep(cutoff)
            self.last_sweep = now
        history = self.request_history[identifier]
        while history and history[0] <= cutoff:
            history.popleft()
        history.append(now)
        return len(history)

    def sweep(self, cutoff: float) -> None:
        """Forget clients with no request newer than cutoff."""
        for identifier in [k for k, history in self.request_history.items() if history[-1] <= cutoff]:
            del self.request_history[identifier]

    def check(self, identifier: str) -> None:
        if not self.limit:
            return
        if self.record_request(identifier) > self.limit:
            logger.warning("Rate limit hit for %s", identifier)
            raise RateLimited()


async def rate_limit(request: Request):
    limiter: RateLimiter = request.app.state.rate_limiter
    client = request.client.host if request.client else "unknown"
    limiter.check(client)
