"""
Leaky bucket rate limiter.

Each admitted request occupies one slot of a queue holding at most
`capacity` entries; a slot drains `interval` seconds after it was taken.
"""

import uuid
from typing import Optional, Tuple

from .base import StoreBackedLimiter
from .interfaces import LeakyBucketLimiter
from .models import LeakyBucketResult, LeakyBucketState
from .store.base import UNCHANGED, Procedure, StateStore, Transition
from .utils import DurationLike, require_positive, to_seconds

# Queue entries are (expires_at, member) pairs ordered by expiry
QueueEntries = Tuple[Tuple[float, str], ...]


def consume_transition(state: Optional[QueueEntries], capacity: int, interval: float, now: float,
                       member: str) -> Transition:
    queue = tuple(entry for entry in state or () if entry[0] > now)
    if len(queue) >= capacity:
        return Transition(queue, (0, 0), interval)

    queue = tuple(sorted([entry for entry in queue if entry[1] != member] + [(now + interval, member)]))
    return Transition(queue, (1, max(0, capacity - len(queue))), interval)


def state_transition(state: Optional[QueueEntries], capacity: int, interval: float, now: float) -> Transition:
    size = sum(1 for entry in state or () if entry[0] > now)
    return Transition(UNCHANGED, (size, max(0, capacity - size)))


CONSUME_SCRIPT = """
local key = KEYS[1]
local capacity = tonumber(ARGV[1])
local interval = tonumber(ARGV[2])
local now = tonumber(ARGV[3])
local member = ARGV[4]

-- Leak expired entries
redis.call('ZREMRANGEBYSCORE', key, '-inf', string.format('%.17g', now))

local size = redis.call('ZCARD', key)
if size >= capacity then
    return {0, 0}
end

redis.call('ZADD', key, string.format('%.17g', now + interval), member)
redis.call('PEXPIRE', key, math.max(1, math.ceil(interval * 1000)))
size = redis.call('ZCARD', key)
return {1, math.max(0, capacity - size)}
"""

STATE_SCRIPT = """
local key = KEYS[1]
local capacity = tonumber(ARGV[1])
local now = tonumber(ARGV[3])

local size = redis.call('ZCOUNT', key, '(' .. string.format('%.17g', now), '+inf')
return {size, math.max(0, capacity - size)}
"""

CONSUME = Procedure("leaky_bucket.consume", CONSUME_SCRIPT, consume_transition)
STATE = Procedure("leaky_bucket.state", STATE_SCRIPT, state_transition)


class LeakyBucketRateLimiter(StoreBackedLimiter, LeakyBucketLimiter):
    """
    A rate limiter using the leaky bucket algorithm.

    At most `capacity` requests per key are in the bucket at any time; each
    leaves it `interval` seconds after admission.
    """

    algorithm = "leaky_bucket"

    def __init__(self, store: StateStore, capacity: int, interval: DurationLike, name: str = "default"):
        require_positive(capacity, "capacity")
        self.interval = to_seconds(interval)
        require_positive(self.interval, "interval")
        super().__init__(store, name)
        self.capacity = int(capacity)

    def consume(self, key: str, unique_request_id: Optional[str] = None) -> LeakyBucketResult:
        now = self.store.now()
        member = unique_request_id or f"{now}:{uuid.uuid4()}"
        reply = self._transact(self._key(key), CONSUME, self.capacity, self.interval, now, member)
        result = LeakyBucketResult(success=bool(int(reply[0])), remaining=int(reply[1]))
        self._record(key, result.success, result.remaining)
        return result

    def get_state(self, key: str) -> LeakyBucketState:
        """Current queue size and free slots, without admitting anything."""
        reply = self._transact(self._key(key), STATE, self.capacity, self.interval, self.store.now())
        return LeakyBucketState(size=int(reply[0]), remaining=int(reply[1]))

    def get_capacity(self) -> int:
        return self.capacity

    def get_interval(self) -> float:
        return self.interval

    def reset(self, key: str) -> None:
        self.store.delete(self._key(key))
