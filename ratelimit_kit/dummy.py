"""
No-op limiters.

Drop-in replacements for the real limiters when rate limiting is disabled:
every call succeeds and every reported quantity is UNLIMITED.
"""

from typing import Optional

from .interfaces import (
    FixedWindowLimiter,
    LeakyBucketLimiter,
    SlidingLogLimiter,
    SlidingWindowLimiter,
    ThrottlingLimiter,
    TokenBucketLimiter,
)
from .models import (
    FixedWindowResult,
    LeakyBucketResult,
    LeakyBucketState,
    SlidingLogResult,
    SlidingWindowResult,
    ThrottlingResult,
    TokenConsumeResult,
    TokenCountResult,
)

UNLIMITED = -1


class DummyFixedWindow(FixedWindowLimiter):

    def consume(self, key: str) -> FixedWindowResult:
        return FixedWindowResult(success=True, remaining=UNLIMITED)

    def get_remaining(self, key: str) -> int:
        return UNLIMITED

    def get_limit(self) -> int:
        return UNLIMITED

    def get_interval(self) -> float:
        return 0.0

    def reset(self, key: str) -> None:
        pass


class DummySlidingWindow(SlidingWindowLimiter):

    def consume(self, key: str) -> SlidingWindowResult:
        return SlidingWindowResult(success=True, remaining=UNLIMITED)

    def get_remaining(self, key: str) -> int:
        return UNLIMITED

    def get_limit(self) -> int:
        return UNLIMITED

    def get_interval(self) -> float:
        return 0.0

    def reset(self, key: str) -> None:
        pass


class DummySlidingLog(SlidingLogLimiter):

    def consume(self, key: str, unique_request_id: Optional[str] = None) -> SlidingLogResult:
        return SlidingLogResult(success=True, remaining=UNLIMITED)

    def get_remaining(self, key: str) -> int:
        return UNLIMITED

    def get_limit(self) -> int:
        return UNLIMITED

    def get_interval(self) -> float:
        return 0.0

    def reset(self, key: str) -> None:
        pass


class DummyTokenBucket(TokenBucketLimiter):
    """Token bucket that never runs dry. `next_refill_at` is always 0."""

    def consume(self, key: str, tokens: float = 1) -> TokenConsumeResult:
        return TokenConsumeResult(success=True, remaining_tokens=UNLIMITED, next_refill_at=0.0)

    def get_remaining_tokens(self, key: str) -> TokenCountResult:
        return TokenCountResult(remaining_tokens=UNLIMITED, next_refill_at=0.0)

    def add_tokens(self, key: str, amount: float) -> None:
        pass

    def remove_tokens(self, key: str, amount: float) -> None:
        pass

    def get_capacity(self) -> int:
        return UNLIMITED

    def get_refill_amount(self) -> float:
        return UNLIMITED

    def get_refill_interval(self) -> float:
        return 0.0

    def reset(self, key: str) -> None:
        pass


class DummyLeakyBucket(LeakyBucketLimiter):

    def consume(self, key: str, unique_request_id: Optional[str] = None) -> LeakyBucketResult:
        return LeakyBucketResult(success=True, remaining=UNLIMITED)

    def get_state(self, key: str) -> LeakyBucketState:
        return LeakyBucketState(size=0, remaining=UNLIMITED)

    def get_capacity(self) -> int:
        return UNLIMITED

    def get_interval(self) -> float:
        return 0.0

    def reset(self, key: str) -> None:
        pass


class DummyThrottling(ThrottlingLimiter):
    """Throttler that never asks the caller to wait."""

    def throttle(self, key: str) -> ThrottlingResult:
        return ThrottlingResult(success=True, wait_time=0, next_allowed_at=0)

    def get_status(self, key: str) -> ThrottlingResult:
        return ThrottlingResult(success=True, wait_time=0, next_allowed_at=0)

    def get_min_interval(self) -> int:
        return 0

    def get_min_interval_seconds(self) -> float:
        return 0.0

    def reset(self, key: str) -> None:
        pass
