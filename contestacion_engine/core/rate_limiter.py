"""Simple in-memory rate limiter for API endpoints."""

import time
from collections import defaultdict
from typing import Dict, Tuple

from fastapi import HTTPException

from contestacion_engine.core.config import get_settings
from contestacion_engine.core.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Token bucket rate limiter keyed by caller (e.g., user id).

    Uses in-memory storage, so limits are per process.
    """

    def __init__(
        self,
        requests_per_minute: int = 60,
        burst_size: int | None = None,
        max_keys: int = 10_000,
    ):
        """
        Initialize rate limiter.

        Args:
            requests_per_minute: Sustained rate limit
            burst_size: Maximum burst size (defaults to requests_per_minute)
            max_keys: Tracked keys above which idle buckets are dropped
        """
        self.requests_per_minute = requests_per_minute
        self.burst_size = burst_size if burst_size is not None else requests_per_minute
        self.refill_rate = requests_per_minute / 60.0  # tokens per second
        self.max_keys = max_keys

        # key -> (tokens, last_refill_time)
        self._buckets: Dict[str, Tuple[float, float]] = defaultdict(
            lambda: (float(self.burst_size), time.monotonic())
        )
        self._request_counts: Dict[str, int] = defaultdict(int)

    def _refill_bucket(self, key: str) -> None:
        current_tokens, last_refill = self._buckets[key]
        now = time.monotonic()
        new_tokens = min(self.burst_size, current_tokens + (now - last_refill) * self.refill_rate)
        self._buckets[key] = (new_tokens, now)

    def _evict_idle(self) -> None:
        """Drop buckets that have refilled to full, which equal fresh ones."""
        now = time.monotonic()
        idle = [
            key
            for key, (tokens, last_refill) in self._buckets.items()
            if tokens + (now - last_refill) * self.refill_rate >= self.burst_size
        ]
        for key in idle:
            self._buckets.pop(key, None)
            self._request_counts.pop(key, None)
        if idle:
            logger.debug(f"Evicted {len(idle)} idle rate limit buckets")

    def check_limit(self, key: str, cost: float = 1.0) -> bool:
        """
        Consume ``cost`` tokens for ``key``.

        Returns:
            True if allowed

        Raises:
            HTTPException: 429 if rate limited
        """
        self._refill_bucket(key)
        current_tokens, last_refill = self._buckets[key]

        if current_tokens >= cost:
            self._buckets[key] = (current_tokens - cost, last_refill)
            self._request_counts[key] += 1
            if len(self._buckets) > self.max_keys:
                self._evict_idle()
            return True

        retry_after = int((cost - current_tokens) / self.refill_rate) + 1
        logger.warning(
            f"Rate limit exceeded for key: {key}, "
            f"tokens: {current_tokens:.2f}/{self.burst_size}, "
            f"retry after: {retry_after}s"
        )
        raise HTTPException(
            status_code=429,
            detail=f"Rate limit exceeded. Try again in {retry_after} seconds.",
            headers={"Retry-After": str(retry_after)},
        )

    def get_stats(self, key: str) -> Dict[str, int]:
        self._refill_bucket(key)
        current_tokens, _ = self._buckets[key]
        return {
            "tokens_remaining": int(current_tokens),
            "burst_size": self.burst_size,
            "requests_per_minute": self.requests_per_minute,
            "total_requests": self._request_counts.get(key, 0),
        }

    def reset(self, key: str | None = None) -> None:
        """Reset one key, or every key when ``key`` is None."""
        if key is None:
            self._buckets.clear()
            self._request_counts.clear()
            return
        self._buckets.pop(key, None)
        self._request_counts.pop(key, None)


orchestrate_rate_limiter = RateLimiter(
    requests_per_minute=get_settings().ORCHESTRATE_REQUESTS_PER_MINUTE,
)


def check_orchestrate_rate_limit(user_id: str) -> None:
    """
    Check rate limit for the orchestrate endpoint.

    Raises:
        HTTPException: 429 if rate limited
    """
    orchestrate_rate_limiter.check_limit(f"orchestrate:{user_id}")
