"""In-memory rate limiting for the public login and contact endpoints."""

from __future__ import annotations

import os
import threading
import time
from collections import defaultdict, deque

from fastapi import HTTPException, Request


class InMemoryRateLimiter:
    """Sliding-window limiter keyed by an arbitrary string.

    Hits are kept per key for `window_seconds`; a process restart forgets
    everything, which is fine for a single-container deployment. Keys whose
    hits have all expired are dropped at most once per window.
    """

    def __init__(self):
        self._hits = defaultdict(deque)
        self._lock = threading.Lock()
        self._last_sweep = time.monotonic()

    def __len__(self) -> int:
        return len(self._hits)

    def _sweep(self, cutoff: float) -> None:
        for key in [k for k, hits in self._hits.items() if not hits or hits[-1] < cutoff]:
            del self._hits[key]

    def allow(self, key: str, max_requests: int, window_seconds: int) -> tuple[bool, int]:
        """Record a hit for `key` and report `(allowed, retry_after_seconds)`."""
        now = time.monotonic()
        with self._lock:
            cutoff = now - window_seconds
            if now - self._last_sweep >= window_seconds:
                self._sweep(cutoff)
                self._last_sweep = now
            hits = self._hits[key]
            while hits and hits[0] < cutoff:
                hits.popleft()
            if len(hits) >= max_requests:
                return False, max(1, int(window_seconds - (now - hits[0])))
            hits.append(now)
            return True, 0

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._hits.clear()
            else:
                self._hits.pop(key, None)


def client_key(request: Request, scope: str) -> str:
    host = request.client.host if request.client else "unknown"
    return f"{scope}:{host}"


def enforce(limiter: InMemoryRateLimiter, request: Request, scope: str, limit_env: str, default_limit: int) -> None:
    """Raise 429 with `Retry-After` once a client exceeds its budget.

    Limits are read from the environment on every call so they can be
    tuned (or tightened in tests) without restarting.
    """
    max_requests = int(os.getenv(limit_env, str(default_limit)))
    window = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
    allowed, retry_after = limiter.allow(client_key(request, scope), max_requests, window)
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail=f"rate limit exceeded; retry after {retry_after}s",
            headers={"Retry-After": str(retry_after)},
        )
