"""
Rate limiting for API endpoints
"""
import time
from collections import deque
from fastapi import Request
from typing import Callable, Deque, Dict
import logging

from exam_engine.config import settings
from exam_engine.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    In-memory sliding-window rate limiter, per client address
    Production: Use Redis for distributed rate limiting
    """

    EXEMPT_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")
    SWEEP_INTERVAL = 60  # seconds between full sweeps of idle clients

    def __init__(
        self,
        requests_per_minute: int = 60,
        requests_per_hour: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour
        self.clock = clock

        # {client_id: timestamps of accepted requests within the last hour}
        self.history: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

    def _get_client_id(self, request: Request) -> str:
        """Extract client identifier from request"""
        return request.client.host if request.client else "unknown"

    def check(self, client_id: str) -> None:
        """
        Record a request for the client, or reject it

        Raises:
            RateLimitExceededError: minute or hour budget spent
        """
        now = self.clock()
        if now - self._last_sweep >= self.SWEEP_INTERVAL:
            self._cleanup_old_entries(now)

        history = self.history.get(client_id) or deque()
        self._prune(history, now)

        minute_requests = sum(1 for ts in history if ts > now - 60)
        if minute_requests >= self.requests_per_minute:
            logger.warning(f"Rate limit exceeded (minute): {client_id}")
            raise RateLimitExceededError(
                f"Too many requests. Limit: {self.requests_per_minute} requests per minute",
                extra={"retry_after": 60},
            )

        if len(history) >= self.requests_per_hour:
            logger.warning(f"Rate limit exceeded (hour): {client_id}")
            raise RateLimitExceededError(
                f"Too many requests. Limit: {self.requests_per_hour} requests per hour",
                extra={"retry_after": 3600},
            )

        history.append(now)
        self.history[client_id] = history

    @staticmethod
    def _prune(history: Deque[float], now: float) -> None:
        """Drop timestamps older than the hour window"""
        while history and history[0] <= now - 3600:
            history.popleft()

    def _cleanup_old_entries(self, now: float) -> None:
        """Forget clients with no requests left in the hour window"""
        for client_id in list(self.history):
            self._prune(self.history[client_id], now)
            if not self.history[client_id]:
                del self.history[client_id]
        self._last_sweep = now

    async def check_rate_limit(self, request: Request) -> None:
        if request.url.path in self.EXEMPT_PATHS:
            return
        self.check(self._get_client_id(request))

    def reset(self) -> None:
        self.history.clear()
        self._last_sweep = self.clock()


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR
)
