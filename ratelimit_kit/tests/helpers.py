"""
Shared fixtures for the rate limiter tests.
"""

import os
import threading

import redis

from ratelimit_kit.store.memory import MemoryStateStore
from ratelimit_kit.store.redis_store import RedisStateStore

# Aligned to 60 seconds so window boundaries fall on whole offsets from T0
T0 = 1_699_999_980.0

REDIS_TEST_DB = 15


class FakeClock:
    """Manually driven time source."""

    def __init__(self, start: float = T0):
        self.current = start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self.current

    def advance(self, seconds: float) -> None:
        with self._lock:
            self.current += seconds

    def set(self, offset: float) -> None:
        """Move to T0 + offset."""
        with self._lock:
            self.current = T0 + offset


def connect_test_redis():
    """Return a client on the test database, or None when no server answers."""
    client = redis.Redis(
        host=os.environ.get('REDIS_HOST', 'localhost'),
        port=int(os.environ.get('REDIS_PORT', 6379)),
        db=REDIS_TEST_DB,
        socket_connect_timeout=1,
        socket_timeout=2,
    )
    try:
        client.ping()
    except redis.RedisError:
        return None
    return client


_probe = connect_test_redis()
REDIS_AVAILABLE = _probe is not None
if _probe is not None:
    _probe.close()


class MemoryBackend:
    """Mixin giving a test case a memory store on a fake clock."""

    def setUp(self):
        self.clock = FakeClock()
        self.store = MemoryStateStore(clock=self.clock)
        super().setUp()

    def tearDown(self):
        super().tearDown()
        self.store.close()


class RedisBackend:
    """Mixin giving a test case a Redis store on a fake clock, on a flushed test db."""

    def setUp(self):
        if not REDIS_AVAILABLE:
            self.skipTest("Redis is not available")
        self.clock = FakeClock()
        self.redis_client = connect_test_redis()
        if self.redis_client is None:
            self.skipTest("Redis went away")
        self.redis_client.flushdb()
        self.store = RedisStateStore(self.redis_client, clock=self.clock)
        super().setUp()

    def tearDown(self):
        super().tearDown()
        self.redis_client.flushdb()
        self.redis_client.close()
