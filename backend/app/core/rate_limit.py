"""Per-client request throttling for the API."""
import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict, List, Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.errors import RateLimited

logger = logging.getLogger(__name__)

MINUTE = 60
HOUR = 3600

# Liveness probes are never throttled
EXEMPT_PATHS = ("/", "/health")


class SlidingWindowLimiter:
    """In-memory sliding-window limiter with one or more (window, limit) rules.

    Clients idle for longer than the longest window are evicted on a periodic
    sweep so the history only holds recently active clients.
    """

    def __init__(self, rules: List[Tuple[int, int]], clock=time.monotonic):
        self.rules = sorted(rules)
        self.clock = clock
        self.history: Dict[str, Deque[float]] = defaultdict(deque)
        self.longest = self.rules[-1][0]
        self._next_sweep = clock() + self.longest

    def retry_after(self, client_id: str) -> Optional[int]:
        """Seconds until ``client_id`` may call again, or None if it may call now.

        An allowed call is recorded.
        """
        now = self.clock()
        if now >= self._next_sweep:
            self.sweep(now)

        stamps = self.history[client_id]
        self._prune(stamps, now)

        for window, limit in self.rules:
            in_window = [t for t in stamps if now - t < window]
            if len(in_window) >= limit:
                oldest = in_window[-limit]
                return max(1, int(window - (now - oldest)) + 1)

        stamps.append(now)
        return None

    def sweep(self, now: Optional[float] = None) -> None:
        """Drop clients with no call inside the longest window."""
        now = self.clock() if now is None else now
        for client_id in list(self.history):
            stamps = self.history[client_id]
            self._prune(stamps, now)
            if not stamps:
                del self.history[client_id]
        self._next_sweep = now + self.longest

    def reset(self) -> None:
        self.history.clear()

    def _prune(self, stamps: Deque[float], now: float) -> None:
        while stamps and now - stamps[0] >= self.longest:
            stamps.popleft()


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, requests_per_minute: int = 60, requests_per_hour: int = 1000):
        super().__init__(app)
        self.limiter = SlidingWindowLimiter([(MINUTE, requests_per_minute), (HOUR, requests_per_hour)])

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        client_id = request.client.host if request.client else "unknown"
        wait = self.limiter.retry_after(client_id)

        # Exceptions raised here bypass the app's handlers, so answer directly
        if wait is not None:
            logger.warning(f"Throttled {client_id} on {request.method} {request.url.path}, retry in {wait}s")
            error = RateLimited(f"Too many requests, retry in {wait} seconds")
            return JSONResponse(
                status_code=error.status_code,
                content=error.to_dict(),
                headers={"Retry-After": str(wait)},
            )

        return await call_next(request)
