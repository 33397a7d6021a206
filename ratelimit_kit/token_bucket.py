"""
Token bucket rate limiter.

A bucket holds up to `capacity` tokens and gains `refill_amount` tokens every
`refill_interval` seconds. Refills happen in whole cycles counted from the
bucket's refill anchor, which only ever advances by whole cycles.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .base import StoreBackedLimiter
from .exceptions import InvalidArgumentError
from .interfaces import TokenBucketLimiter
from .models import TokenConsumeResult, TokenCountResult
from .store.base import UNCHANGED, Procedure, StateStore, Transition
from .utils import DurationLike, require_positive, to_seconds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenBucketState:
    tokens: float
    last_refill: float


def _refill(state: Optional[TokenBucketState], capacity: float, refill_amount: float,
            refill_interval: float, now: float) -> Tuple[float, float]:
    """Return (tokens, last_refill) after applying the refills due at `now`."""
    if state is None:
        return float(capacity), now
    tokens, last_refill = state.tokens, state.last_refill
    elapsed = now - last_refill
    if elapsed > 0:
        cycles = math.floor(elapsed / refill_interval)
        if cycles > 0:
            tokens = min(capacity, tokens + cycles * refill_amount)
            last_refill = last_refill + cycles * refill_interval
    return tokens, last_refill


def _ttl(tokens: float, last_refill: float, capacity: float, refill_amount: float,
         refill_interval: float, now: float) -> float:
    # A bucket untouched until it is full again is indistinguishable from a new one
    cycles_to_full = math.ceil(max(0.0, capacity - tokens) / refill_amount)
    return max(refill_interval, last_refill + (cycles_to_full + 1) * refill_interval - now)


def consume_transition(state: Optional[TokenBucketState], capacity: float, refill_amount: float,
                       refill_interval: float, now: float, requested: float) -> Transition:
    tokens, last_refill = _refill(state, capacity, refill_amount, refill_interval, now)
    next_refill_at = last_refill + refill_interval
    if tokens >= requested:
        tokens -= requested
        ttl = _ttl(tokens, last_refill, capacity, refill_amount, refill_interval, now)
        return Transition(TokenBucketState(tokens, last_refill), (1, tokens, next_refill_at), ttl)
    return Transition(UNCHANGED, (0, tokens, next_refill_at))


def peek_transition(state: Optional[TokenBucketState], capacity: float, refill_amount: float,
                    refill_interval: float, now: float) -> Transition:
    tokens, last_refill = _refill(state, capacity, refill_amount, refill_interval, now)
    return Transition(UNCHANGED, (tokens, last_refill + refill_interval))


def adjust_transition(state: Optional[TokenBucketState], capacity: float, refill_amount: float,
                      refill_interval: float, now: float, delta: float) -> Transition:
    tokens, last_refill = _refill(state, capacity, refill_amount, refill_interval, now)
    tokens = min(capacity, max(0.0, tokens + delta))
    ttl = _ttl(tokens, last_refill, capacity, refill_amount, refill_interval, now)
    return Transition(TokenBucketState(tokens, last_refill), (tokens, last_refill + refill_interval), ttl)


_REFILL_LUA = """
local key = KEYS[1]
local capacity = tonumber(ARGV[1])
local refill_amount = tonumber(ARGV[2])
local refill_interval = tonumber(ARGV[3])
local now = tonumber(ARGV[4])

local function num(x)
    return string.format('%.17g', x)
end

-- Get current state
local state = redis.call('HMGET', key, 'tokens', 'last_refill')
local tokens = tonumber(state[1])
local last_refill = tonumber(state[2])

-- Initialize if not exists
if not tokens or not last_refill then
    tokens = capacity
    last_refill = now
end

-- Add whole refill cycles, advancing the anchor by the same amount
local elapsed = now - last_refill
if elapsed > 0 then
    local cycles = math.floor(elapsed / refill_interval)
    if cycles > 0 then
        tokens = math.min(capacity, tokens + cycles * refill_amount)
        last_refill = last_refill + cycles * refill_interval
    end
end

local function save()
    local cycles_to_full = math.ceil(math.max(0, capacity - tokens) / refill_amount)
    local ttl = math.max(refill_interval, last_refill + (cycles_to_full + 1) * refill_interval - now)
    redis.call('HSET', key, 'tokens', num(tokens), 'last_refill', num(last_refill))
    redis.call('PEXPIRE', key, math.max(1, math.ceil(ttl * 1000)))
end
"""

CONSUME_SCRIPT = _REFILL_LUA + """
local requested = tonumber(ARGV[5])
if tokens >= requested then
    tokens = tokens - requested
    save()
    return {1, num(tokens), num(last_refill + refill_interval)}
end
return {0, num(tokens), num(last_refill + refill_interval)}
"""

PEEK_SCRIPT = _REFILL_LUA + """
return {num(tokens), num(last_refill + refill_interval)}
"""

ADJUST_SCRIPT = _REFILL_LUA + """
local delta = tonumber(ARGV[5])
tokens = math.min(capacity, math.max(0, tokens + delta))
save()
return {num(tokens), num(last_refill + refill_interval)}
"""

CONSUME = Procedure("token_bucket.consume", CONSUME_SCRIPT, consume_transition)
PEEK = Procedure("token_bucket.peek", PEEK_SCRIPT, peek_transition)
ADJUST = Procedure("token_bucket.adjust", ADJUST_SCRIPT, adjust_transition)


def _invalid_amount(value) -> bool:
    return isinstance(value, bool) or not isinstance(value, (int, float))


class TokenBucketRateLimiter(StoreBackedLimiter, TokenBucketLimiter):
    """
    A rate limiter using the token bucket algorithm.
    Good for handling bursts while maintaining average rate.
    """

    algorithm = "token_bucket"

    def __init__(self, store: StateStore, capacity: int, refill_amount: float,
                 refill_interval: DurationLike, name: str = "default"):
        """
        Initialize the rate limiter.

        Args:
            store: State store holding the buckets
            capacity: Maximum number of tokens in the bucket
            refill_amount: Number of tokens added per refill cycle
            refill_interval: Length of a refill cycle, as a timedelta or seconds
            name: Limiter name, part of every key
        """
        require_positive(capacity, "capacity")
        require_positive(refill_amount, "refill_amount")
        self.refill_interval = to_seconds(refill_interval, "refill_interval")
        require_positive(self.refill_interval, "refill_interval")
        super().__init__(store, name)
        self.capacity = int(capacity)
        self.refill_amount = refill_amount

    def _args(self):
        return self.capacity, self.refill_amount, self.refill_interval, self.store.now()

    def consume(self, key: str, tokens: float = 1) -> TokenConsumeResult:
        """
        Take `tokens` tokens from the bucket of `key`.

        Nothing is taken when the bucket holds fewer than requested.

        Raises:
            InvalidArgumentError: If `tokens` is negative
        """
        if _invalid_amount(tokens) or tokens < 0:
            raise InvalidArgumentError(f"tokens must be a non-negative number, got {tokens!r}")
        reply = self._transact(self._key(key), CONSUME, *self._args(), tokens)
        result = TokenConsumeResult(
            success=bool(int(reply[0])),
            remaining_tokens=int(math.floor(float(reply[1]))),
            next_refill_at=float(reply[2]),
        )
        if result.success:
            self.metrics.tokens_consumed.labels(algorithm=self.algorithm).inc(tokens)
        self._record(key, result.success, result.remaining_tokens)
        return result

    def get_remaining_tokens(self, key: str) -> TokenCountResult:
        reply = self._transact(self._key(key), PEEK, *self._args())
        return TokenCountResult(
            remaining_tokens=int(math.floor(float(reply[0]))),
            next_refill_at=float(reply[1]),
        )

    def add_tokens(self, key: str, amount: float) -> None:
        """Add tokens to the bucket, up to its capacity. Non-positive amounts are ignored."""
        if _invalid_amount(amount):
            raise InvalidArgumentError(f"amount must be a number, got {amount!r}")
        if amount <= 0:
            return
        reply = self._transact(self._key(key), ADJUST, *self._args(), amount)
        logger.debug(f"Added {amount} tokens to {key}, now {reply[0]}")

    def remove_tokens(self, key: str, amount: float) -> None:
        """Remove tokens from the bucket, down to zero. Non-positive amounts are ignored."""
        if _invalid_amount(amount):
            raise InvalidArgumentError(f"amount must be a number, got {amount!r}")
        if amount <= 0:
            return
        reply = self._transact(self._key(key), ADJUST, *self._args(), -amount)
        logger.debug(f"Removed {amount} tokens from {key}, now {reply[0]}")

    def get_capacity(self) -> int:
        return self.capacity

    def get_refill_amount(self) -> float:
        return self.refill_amount

    def get_refill_interval(self) -> float:
        return self.refill_interval

    def reset(self, key: str) -> None:
        """Drop the bucket; the next access starts it full."""
        self.store.delete(self._key(key))
