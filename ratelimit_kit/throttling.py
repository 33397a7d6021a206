"""
Throttling rate limiter.

Enforces a minimum spacing between two allowed requests of the same key.
All times on this limiter's surface are in milliseconds.
"""

from dataclasses import dataclass
from typing import Optional

from .base import StoreBackedLimiter
from .interfaces import ThrottlingLimiter
from .models import ThrottlingResult
from .store.base import UNCHANGED, Procedure, StateStore, Transition
from .utils import DurationLike, require_positive, to_milliseconds

# State outlives the spacing by this much so a quick retry still sees it
GRACE_MS = 60_000


@dataclass(frozen=True)
class ThrottleState:
    last_allowed_at: int


def _evaluate(state: Optional[ThrottleState], min_interval: int, now_ms: int):
    if state is None:
        return True, 0, now_ms
    elapsed = now_ms - state.last_allowed_at
    if elapsed >= min_interval:
        return True, 0, now_ms
    return False, min_interval - elapsed, state.last_allowed_at + min_interval


def throttle_transition(state: Optional[ThrottleState], min_interval: int, now_ms: int) -> Transition:
    success, wait_time, next_allowed_at = _evaluate(state, min_interval, now_ms)
    reply = (1 if success else 0, wait_time, next_allowed_at)
    if success:
        return Transition(ThrottleState(now_ms), reply, (min_interval + GRACE_MS) / 1000)
    return Transition(UNCHANGED, reply)


def status_transition(state: Optional[ThrottleState], min_interval: int, now_ms: int) -> Transition:
    success, wait_time, next_allowed_at = _evaluate(state, min_interval, now_ms)
    return Transition(UNCHANGED, (1 if success else 0, wait_time, next_allowed_at))


_EVALUATE_LUA = """
local key = KEYS[1]
local min_interval = tonumber(ARGV[1])
local now = tonumber(ARGV[2])

local allowed = 1
local wait_time = 0
local next_allowed_at = now

local last_allowed_at = tonumber(redis.call('GET', key))
if last_allowed_at then
    local elapsed = now - last_allowed_at
    if elapsed < min_interval then
        allowed = 0
        wait_time = min_interval - elapsed
        next_allowed_at = last_allowed_at + min_interval
    end
end
"""

THROTTLE_SCRIPT = _EVALUATE_LUA + """
if allowed == 1 then
    redis.call('SET', key, ARGV[2], 'PX', min_interval + """ + str(GRACE_MS) + """)
end
return {allowed, wait_time, next_allowed_at}
"""

STATUS_SCRIPT = _EVALUATE_LUA + """
return {allowed, wait_time, next_allowed_at}
"""

THROTTLE = Procedure("throttling.throttle", THROTTLE_SCRIPT, throttle_transition)
STATUS = Procedure("throttling.status", STATUS_SCRIPT, status_transition)


class ThrottlingRateLimiter(StoreBackedLimiter, ThrottlingLimiter):
    """
    Allows one request per key every `min_interval`.
    """

    algorithm = "throttling"

    def __init__(self, store: StateStore, min_interval: DurationLike, name: str = "default"):
        """
        Args:
            store: State store holding the last allowed timestamps
            min_interval: Minimum spacing, as a timedelta or seconds
            name: Limiter name, part of every key
        """
        self.min_interval = to_milliseconds(min_interval, "min_interval")
        require_positive(self.min_interval, "min_interval")
        super().__init__(store, name)

    def _now_ms(self) -> int:
        return int(round(self.store.now() * 1000))

    def _result(self, reply) -> ThrottlingResult:
        return ThrottlingResult(
            success=bool(int(reply[0])),
            wait_time=int(reply[1]),
            next_allowed_at=int(reply[2]),
        )

    def throttle(self, key: str) -> ThrottlingResult:
        result = self._result(self._transact(self._key(key), THROTTLE, self.min_interval, self._now_ms()))
        if not result.success:
            self.metrics.throttle_wait.labels(algorithm=self.algorithm).observe(result.wait_time / 1000)
        self._record(key, result.success, result.wait_time)
        return result

    def get_status(self, key: str) -> ThrottlingResult:
        return self._result(self._transact(self._key(key), STATUS, self.min_interval, self._now_ms()))

    def get_min_interval(self) -> int:
        return self.min_interval

    def get_min_interval_seconds(self) -> float:
        return self.min_interval / 1000

    def reset(self, key: str) -> None:
        self.store.delete(self._key(key))
