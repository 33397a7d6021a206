"""
Rate limiter interfaces.

Callers should depend on these abstractions rather than on a concrete
limiter, so a store-backed limiter can be swapped for its dummy counterpart
(tests, disabled rate limiting) without code changes.
"""

from abc import ABC, abstractmethod
from typing import Optional

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


class Limiter(ABC):
    """Operations shared by every limiter."""

    @abstractmethod
    def reset(self, key: str) -> None:
        """Forget all state held for `key`."""
        pass


class FixedWindowLimiter(Limiter):
    """Counts requests in fixed, aligned time windows."""

    @abstractmethod
    def consume(self, key: str) -> FixedWindowResult:
        """Count one request for `key` in the current window."""
        pass

    @abstractmethod
    def get_remaining(self, key: str) -> int:
        """Requests left in the current window, without consuming."""
        pass

    @abstractmethod
    def get_limit(self) -> int:
        pass

    @abstractmethod
    def get_interval(self) -> float:
        """Window length in seconds."""
        pass


class SlidingWindowLimiter(Limiter):
    """Approximates a sliding window from two adjacent fixed window counters."""

    @abstractmethod
    def consume(self, key: str) -> SlidingWindowResult:
        pass

    @abstractmethod
    def get_remaining(self, key: str) -> int:
        pass

    @abstractmethod
    def get_limit(self) -> int:
        pass

    @abstractmethod
    def get_interval(self) -> float:
        pass


class SlidingLogLimiter(Limiter):
    """Keeps an exact log of request timestamps inside the window."""

    @abstractmethod
    def consume(self, key: str, unique_request_id: Optional[str] = None) -> SlidingLogResult:
        pass

    @abstractmethod
    def get_remaining(self, key: str) -> int:
        pass

    @abstractmethod
    def get_limit(self) -> int:
        pass

    @abstractmethod
    def get_interval(self) -> float:
        pass


class TokenBucketLimiter(Limiter):
    """Token budget refilled by a fixed amount at a fixed interval."""

    @abstractmethod
    def consume(self, key: str, tokens: float = 1) -> TokenConsumeResult:
        """Take `tokens` from the bucket if enough are available."""
        pass

    @abstractmethod
    def get_remaining_tokens(self, key: str) -> TokenCountResult:
        """Tokens currently in the bucket, without consuming."""
        pass

    @abstractmethod
    def add_tokens(self, key: str, amount: float) -> None:
        pass

    @abstractmethod
    def remove_tokens(self, key: str, amount: float) -> None:
        pass

    @abstractmethod
    def get_capacity(self) -> int:
        pass

    @abstractmethod
    def get_refill_amount(self) -> float:
        pass

    @abstractmethod
    def get_refill_interval(self) -> float:
        """Refill interval in seconds."""
        pass


class LeakyBucketLimiter(Limiter):
    """Capped admission queue whose entries expire after a fixed interval."""

    @abstractmethod
    def consume(self, key: str, unique_request_id: Optional[str] = None) -> LeakyBucketResult:
        pass

    @abstractmethod
    def get_state(self, key: str) -> LeakyBucketState:
        pass

    @abstractmethod
    def get_capacity(self) -> int:
        pass

    @abstractmethod
    def get_interval(self) -> float:
        pass


class ThrottlingLimiter(Limiter):
    """Enforces a minimum spacing between allowed requests."""

    @abstractmethod
    def throttle(self, key: str) -> ThrottlingResult:
        pass

    @abstractmethod
    def get_status(self, key: str) -> ThrottlingResult:
        """Same result as `throttle` would give, without recording a request."""
        pass

    @abstractmethod
    def get_min_interval(self) -> int:
        """Minimum spacing in milliseconds."""
        pass

    @abstractmethod
    def get_min_interval_seconds(self) -> float:
        pass
