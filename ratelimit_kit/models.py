"""
Result types returned by the rate limiters.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FixedWindowResult:
    """Outcome of a fixed window consume."""
    success: bool
    remaining: int


@dataclass(frozen=True)
class SlidingWindowResult:
    """Outcome of a sliding window consume. `remaining` is approximate."""
    success: bool
    remaining: int


@dataclass(frozen=True)
class SlidingLogResult:
    """Outcome of a sliding log consume."""
    success: bool
    remaining: int


@dataclass(frozen=True)
class TokenConsumeResult:
    """Outcome of a token bucket consume.

    Attributes:
        success: Whether the tokens were consumed
        remaining_tokens: Tokens left in the bucket after this call
        next_refill_at: Unix timestamp (seconds) of the next scheduled refill
    """
    success: bool
    remaining_tokens: int
    next_refill_at: float


@dataclass(frozen=True)
class TokenCountResult:
    """Snapshot of a token bucket."""
    remaining_tokens: int
    next_refill_at: float


@dataclass(frozen=True)
class LeakyBucketResult:
    """Outcome of a leaky bucket consume."""
    success: bool
    remaining: int


@dataclass(frozen=True)
class LeakyBucketState:
    """Snapshot of a leaky bucket queue."""
    size: int
    remaining: int


@dataclass(frozen=True)
class ThrottlingResult:
    """Outcome of a throttle call.

    Attributes:
        success: Whether the request may proceed now
        wait_time: Milliseconds to wait before the next allowed request
        next_allowed_at: Unix timestamp (milliseconds) of the next allowed request
    """
    success: bool
    wait_time: int
    next_allowed_at: int
