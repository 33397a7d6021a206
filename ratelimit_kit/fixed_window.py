"""
Fixed window counter.

Time is cut into aligned windows of `interval` seconds and each key gets one
counter per window. Every attempt increments the counter, including rejected
ones, so a caller hammering a full window stays rejected until it rolls over.
"""

import math
from dataclasses import dataclass
from typing import Optional

from .base import StoreBackedLimiter
from .interfaces import FixedWindowLimiter
from .models import FixedWindowResult
from .store.base import UNCHANGED, Procedure, StateStore, Transition
from .utils import DurationLike, require_positive, to_seconds


@dataclass(frozen=True)
class FixedWindowState:
    count: int
    window_start: float


def window_id_for(now: float, interval: float) -> int:
    return math.floor(now / interval)


def window_start_for(now: float, interval: float) -> float:
    return window_id_for(now, interval) * interval


def _counted(state: Optional[FixedWindowState], window_start: float) -> int:
    if state is None or state.window_start != window_start:
        return 0
    return state.count


def consume_transition(state: Optional[FixedWindowState], limit: int, interval: float,
                       now: float) -> Transition:
    window_start = window_start_for(now, interval)
    count = _counted(state, window_start) + 1
    success = count <= limit
    return Transition(
        FixedWindowState(count, window_start),
        (1 if success else 0, max(0, limit - count)),
        window_start + interval - now,
    )


def peek_transition(state: Optional[FixedWindowState], limit: int, interval: float,
                    now: float) -> Transition:
    count = _counted(state, window_start_for(now, interval))
    return Transition(UNCHANGED, (max(0, limit - count),))


CONSUME_SCRIPT = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local interval = tonumber(ARGV[2])
local now = tonumber(ARGV[3])

local window_start = math.floor(now / interval) * interval
local count = redis.call('INCR', key)

-- First hit in this window: expire the counter when the window ends
if count == 1 then
    local ttl_ms = math.ceil((window_start + interval - now) * 1000)
    redis.call('PEXPIRE', key, math.max(ttl_ms, 1))
end

local remaining = math.max(0, limit - count)
if count <= limit then
    return {1, remaining}
end
return {0, remaining}
"""

PEEK_SCRIPT = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])

local count = tonumber(redis.call('GET', key) or '0')
return {math.max(0, limit - count)}
"""

CONSUME = Procedure("fixed_window.consume", CONSUME_SCRIPT, consume_transition)
PEEK = Procedure("fixed_window.peek", PEEK_SCRIPT, peek_transition)


class FixedWindowRateLimiter(StoreBackedLimiter, FixedWindowLimiter):
    """
    Fixed window rate limiter.

    Allows `limit` requests per key in each aligned window of `interval`
    seconds. Cheap and exact within a window, but permits up to twice the
    limit across a window boundary.
    """

    algorithm = "fixed_window"

    def __init__(self, store: StateStore, limit: int, interval: DurationLike, name: str = "default"):
        """
        Args:
            store: State store holding the counters
            limit: Maximum number of requests per window
            interval: Window length, as a timedelta or seconds
            name: Limiter name, part of every key
        """
        require_positive(limit, "limit")
        self.interval = to_seconds(interval)
        require_positive(self.interval, "interval")
        super().__init__(store, name)
        self.limit = int(limit)

    def _window_key(self, key: str, now: float) -> str:
        return self._key(key, str(window_id_for(now, self.interval)))

    def consume(self, key: str) -> FixedWindowResult:
        now = self.store.now()
        reply = self._transact(self._window_key(key, now), CONSUME, self.limit, self.interval, now)
        result = FixedWindowResult(success=bool(int(reply[0])), remaining=int(reply[1]))
        self._record(key, result.success, result.remaining)
        return result

    def get_remaining(self, key: str) -> int:
        now = self.store.now()
        reply = self._transact(self._window_key(key, now), PEEK, self.limit, self.interval, now)
        return int(reply[0])

    def get_limit(self) -> int:
        return self.limit

    def get_interval(self) -> float:
        return self.interval

    def reset(self, key: str) -> None:
        """Clear the counter of the current window."""
        self.store.delete(self._window_key(key, self.store.now()))
