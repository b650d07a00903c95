"""
Request-scoped collaborators: caller identity and rate limiting.

The core functions never see these; routes declare them as dependencies.
"""

import logging
import threading
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional

from fastapi import Depends, Header, HTTPException

from infraflow.config import RATE_LIMIT_PER_MINUTE

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"


def get_caller(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Caller identity as forwarded by the auth proxy."""
    return (x_user_id or "").strip() or ANONYMOUS


class RateLimiter:
    """Sliding one-minute window per caller, kept in process memory."""

    def __init__(self, limit_per_minute: int = RATE_LIMIT_PER_MINUTE, window_seconds: float = 60.0):
        self.limit = limit_per_minute
        self.window = window_seconds
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def allow(self, caller: str, now: Optional[float] = None) -> bool:
        now = time.monotonic() if now is None else now
        with self._lock:
            hits = self._hits[caller]
            while hits and now - hits[0] >= self.window:
                hits.popleft()
            if len(hits) >= self.limit:
                return False
            hits.append(now)
            return True

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()

    def check(self, caller: str = Depends(get_caller)) -> str:
        if not self.allow(caller):
            logger.warning("Rate limit exceeded for %s", caller)
            raise HTTPException(status_code=429, detail="Too many requests")
        return caller


rate_limiter = RateLimiter()
