"""
Sliding log rate limiter.

Records the timestamp of every admitted request and counts the entries
inside the trailing window. Exact, but memory grows with the limit.
"""

import uuid
from typing import Optional, Tuple

from .base import StoreBackedLimiter
from .interfaces import SlidingLogLimiter
from .models import SlidingLogResult
from .store.base import UNCHANGED, Procedure, StateStore, Transition
from .utils import DurationLike, require_positive, to_seconds

# Log entries are (timestamp, member) pairs ordered by timestamp
LogEntries = Tuple[Tuple[float, str], ...]


def consume_transition(state: Optional[LogEntries], limit: int, interval: float, now: float,
                       member: str) -> Transition:
    entries = tuple(entry for entry in state or () if entry[0] > now - interval)
    if len(entries) >= limit:
        return Transition(entries, (0, 0), interval)

    # Same member replaces its older entry
    entries = tuple(sorted([entry for entry in entries if entry[1] != member] + [(now, member)]))
    return Transition(entries, (1, max(0, limit - len(entries))), interval)


def peek_transition(state: Optional[LogEntries], limit: int, interval: float, now: float) -> Transition:
    count = sum(1 for entry in state or () if entry[0] > now - interval)
    return Transition(UNCHANGED, (max(0, limit - count),))


CONSUME_SCRIPT = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local interval = tonumber(ARGV[2])
local now = tonumber(ARGV[3])
local member = ARGV[4]

-- Drop entries that left the window
redis.call('ZREMRANGEBYSCORE', key, '-inf', string.format('%.17g', now - interval))

local count = redis.call('ZCARD', key)
if count >= limit then
    return {0, 0}
end

redis.call('ZADD', key, string.format('%.17g', now), member)
redis.call('PEXPIRE', key, math.max(1, math.ceil(interval * 1000)))
count = redis.call('ZCARD', key)
return {1, math.max(0, limit - count)}
"""

PEEK_SCRIPT = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local interval = tonumber(ARGV[2])
local now = tonumber(ARGV[3])

local count = redis.call('ZCOUNT', key, '(' .. string.format('%.17g', now - interval), '+inf')
return {math.max(0, limit - count)}
"""

CONSUME = Procedure("sliding_log.consume", CONSUME_SCRIPT, consume_transition)
PEEK = Procedure("sliding_log.peek", PEEK_SCRIPT, peek_transition)


class SlidingLogRateLimiter(StoreBackedLimiter, SlidingLogLimiter):
    """
    Sliding window log rate limiter.

    Allows at most `limit` requests per key in any `interval` seconds.
    """

    algorithm = "sliding_log"

    def __init__(self, store: StateStore, limit: int, interval: DurationLike, name: str = "default"):
        """
        Args:
            store: State store holding the logs
            limit: Maximum number of requests inside the window
            interval: Window length, as a timedelta or seconds
            name: Limiter name, part of every key
        """
        require_positive(limit, "limit")
        self.interval = to_seconds(interval)
        require_positive(self.interval, "interval")
        super().__init__(store, name)
        self.limit = int(limit)

    def consume(self, key: str, unique_request_id: Optional[str] = None) -> SlidingLogResult:
        """
        Try to log one request for `key`.

        Args:
            key: Caller key
            unique_request_id: Log member for this request. Reusing an id
                replaces its earlier entry instead of adding one.
        """
        now = self.store.now()
        member = unique_request_id or f"{now}:{uuid.uuid4()}"
        reply = self._transact(self._key(key), CONSUME, self.limit, self.interval, now, member)
        result = SlidingLogResult(success=bool(int(reply[0])), remaining=int(reply[1]))
        self._record(key, result.success, result.remaining)
        return result

    def get_remaining(self, key: str) -> int:
        reply = self._transact(self._key(key), PEEK, self.limit, self.interval, self.store.now())
        return int(reply[0])

    def get_limit(self) -> int:
        return self.limit

    def get_interval(self) -> float:
        return self.interval

    def reset(self, key: str) -> None:
        self.store.delete(self._key(key))
