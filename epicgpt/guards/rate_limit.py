"""
Per-user sliding window rate limiting.

Each (user, operation class) pair keeps the timestamps of its accepted
requests. A request is rejected once the window already holds
``max_requests`` timestamps; rejected requests are not recorded.
"""

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from epicgpt.config.settings import RateLimitSettings

logger = logging.getLogger(__name__)


class OperationClass(str, Enum):
    CHAT = "CHAT"
    SEARCH = "SEARCH"
    TOOLS = "TOOLS"


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int
    window_seconds: float


@dataclass(frozen=True)
class RateLimitDecision:
    limited: bool
    retry_after: float = 0.0

    @property
    def retry_after_seconds(self) -> int:
        """Retry delay rounded up to whole seconds, as shown to users."""
        whole = int(self.retry_after)
        return whole + 1 if self.retry_after > whole else whole


DEFAULT_LIMITS: dict[OperationClass, RateLimitConfig] = {
    OperationClass.CHAT: RateLimitConfig(max_requests=10, window_seconds=10.0),
    OperationClass.SEARCH: RateLimitConfig(max_requests=10, window_seconds=10.0),
    OperationClass.TOOLS: RateLimitConfig(max_requests=30, window_seconds=60.0),
}


class RateLimiter:
    """
    In-memory sliding window limiter.

    ``check`` is safe to call from any number of concurrent handlers: pruning,
    counting and recording happen under one lock with no suspension point, so
    two simultaneous checks can never both take the last free slot.

    Args:
        limits: Limit per operation class; missing classes use DEFAULT_LIMITS
        clock: Monotonic seconds, injectable for tests
    """

    def __init__(
        self,
        limits: dict[OperationClass, RateLimitConfig] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limits = {**DEFAULT_LIMITS, **(limits or {})}
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[tuple[str, OperationClass], deque[float]] = {}

    @classmethod
    def from_settings(cls, settings: RateLimitSettings, **kwargs) -> "RateLimiter":
        return cls(
            limits={
                OperationClass.CHAT: RateLimitConfig(
                    settings.chat_max_requests, settings.chat_window_seconds
                ),
                OperationClass.SEARCH: RateLimitConfig(
                    settings.search_max_requests, settings.search_window_seconds
                ),
                OperationClass.TOOLS: RateLimitConfig(
                    settings.tools_max_requests, settings.tools_window_seconds
                ),
            },
            **kwargs,
        )

    def check(self, user_id: str, operation: OperationClass) -> RateLimitDecision:
        """Check the limit for a user and, if allowed, record the request."""
        config = self.limits[operation]
        key = (user_id, operation)

        with self._lock:
            now = self._clock()
            timestamps = self._entries.setdefault(key, deque())
            self._prune(timestamps, now, config.window_seconds)

            if len(timestamps) >= config.max_requests:
                oldest = timestamps[0] if timestamps else now
                retry_after = config.window_seconds - (now - oldest)
                logger.debug(f"Rate limited {user_id} on {operation.value}, retry in {retry_after:.1f}s")
                return RateLimitDecision(limited=True, retry_after=max(retry_after, 0.0))

            timestamps.append(now)
            return RateLimitDecision(limited=False)

    def sweep(self) -> int:
        """Prune every entry with its class window and drop empty ones. Returns entries removed."""
        removed = 0
        with self._lock:
            now = self._clock()
            for key in list(self._entries):
                timestamps = self._entries[key]
                self._prune(timestamps, now, self.limits[key[1]].window_seconds)
                if not timestamps:
                    del self._entries[key]
                    removed += 1
        if removed:
            logger.debug(f"Swept {removed} idle rate limit entries")
        return removed

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def _prune(timestamps: deque[float], now: float, window: float) -> None:
        while timestamps and now - timestamps[0] >= window:
            timestamps.popleft()
