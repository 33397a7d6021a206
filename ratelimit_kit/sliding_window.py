"""
Sliding window counter.

Keeps the request count of the current fixed window and of the one before
it, and estimates the count over the trailing `interval` seconds by weighting
the previous window with the share of it still covered.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .base import StoreBackedLimiter
from .interfaces import SlidingWindowLimiter
from .models import SlidingWindowResult
from .store.base import UNCHANGED, Procedure, StateStore, Transition
from .utils import DurationLike, require_positive, to_seconds


@dataclass(frozen=True)
class SlidingWindowState:
    current: int
    previous: int
    current_window_start: float


def _roll(state: Optional[SlidingWindowState], interval: float, now: float) -> Tuple[int, int, float]:
    """Return (current, previous, window_start) as seen at `now`."""
    window_id = math.floor(now / interval)
    window_start = window_id * interval
    if state is None:
        return 0, 0, window_start

    stored_id = round(state.current_window_start / interval)
    if window_id <= stored_id:
        # Rollover only moves forward
        return state.current, state.previous, state.current_window_start
    if window_id == stored_id + 1:
        return 0, state.current, window_start
    return 0, 0, window_start


def _weighted(current: int, previous: int, window_start: float, interval: float, now: float) -> int:
    weight = min(1.0, max(0.0, (window_start + interval - now) / interval))
    return current + math.floor(previous * weight)


def consume_transition(state: Optional[SlidingWindowState], limit: int, interval: float,
                       now: float) -> Transition:
    current, previous, window_start = _roll(state, interval, now)
    weighted = _weighted(current, previous, window_start, interval, now)
    ttl = window_start + 2 * interval - now

    if weighted < limit:
        new_state = SlidingWindowState(current + 1, previous, window_start)
        return Transition(new_state, (1, max(0, limit - (weighted + 1))), ttl)
    return Transition(SlidingWindowState(current, previous, window_start), (0, max(0, limit - weighted)), ttl)


def peek_transition(state: Optional[SlidingWindowState], limit: int, interval: float,
                    now: float) -> Transition:
    current, previous, window_start = _roll(state, interval, now)
    weighted = _weighted(current, previous, window_start, interval, now)
    return Transition(UNCHANGED, (max(0, limit - weighted),))


# Shared by both scripts: load the hash and apply the rollover in locals
_ROLL_LUA = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local interval = tonumber(ARGV[2])
local now = tonumber(ARGV[3])

local function num(x)
    return string.format('%.17g', x)
end

local window_id = math.floor(now / interval)
local window_start = window_id * interval
local current = 0
local previous = 0

local state = redis.call('HMGET', key, 'current', 'previous', 'window_start')
local stored_start = tonumber(state[3])
if stored_start then
    local stored_id = math.floor(stored_start / interval + 0.5)
    if window_id <= stored_id then
        current = tonumber(state[1]) or 0
        previous = tonumber(state[2]) or 0
        window_start = stored_start
    elseif window_id == stored_id + 1 then
        previous = tonumber(state[1]) or 0
    end
end

local weight = math.min(1, math.max(0, (window_start + interval - now) / interval))
local weighted = current + math.floor(previous * weight)
"""

CONSUME_SCRIPT = _ROLL_LUA + """
local allowed = 0
local remaining = math.max(0, limit - weighted)
if weighted < limit then
    current = current + 1
    allowed = 1
    remaining = math.max(0, limit - (weighted + 1))
end

redis.call('HSET', key, 'current', current, 'previous', previous, 'window_start', num(window_start))
redis.call('PEXPIRE', key, math.max(1, math.ceil((window_start + 2 * interval - now) * 1000)))
return {allowed, remaining}
"""

PEEK_SCRIPT = _ROLL_LUA + """
return {math.max(0, limit - weighted)}
"""

CONSUME = Procedure("sliding_window.consume", CONSUME_SCRIPT, consume_transition)
PEEK = Procedure("sliding_window.peek", PEEK_SCRIPT, peek_transition)


class SlidingWindowRateLimiter(StoreBackedLimiter, SlidingWindowLimiter):
    """
    Sliding window counter rate limiter.

    Smooths the boundary burst of a fixed window at the cost of an
    approximate count. Reported `remaining` values are estimates.
    """

    algorithm = "sliding_window"

    def __init__(self, store: StateStore, limit: int, interval: DurationLike, name: str = "default"):
        require_positive(limit, "limit")
        self.interval = to_seconds(interval)
        require_positive(self.interval, "interval")
        super().__init__(store, name)
        self.limit = int(limit)

    def consume(self, key: str) -> SlidingWindowResult:
        reply = self._transact(self._key(key), CONSUME, self.limit, self.interval, self.store.now())
        result = SlidingWindowResult(success=bool(int(reply[0])), remaining=int(reply[1]))
        self._record(key, result.success, result.remaining)
        return result

    def get_remaining(self, key: str) -> int:
        """Estimated requests left, without consuming or rolling the window."""
        reply = self._transact(self._key(key), PEEK, self.limit, self.interval, self.store.now())
        return int(reply[0])

    def get_limit(self) -> int:
        return self.limit

    def get_interval(self) -> float:
        return self.interval

    def reset(self, key: str) -> None:
        self.store.delete(self._key(key))
