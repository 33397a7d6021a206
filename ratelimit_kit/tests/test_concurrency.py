"""
Concurrent callers racing for the last unit of capacity on one key.
"""

import threading
import unittest
from concurrent.futures import ThreadPoolExecutor

from ratelimit_kit.fixed_window import FixedWindowRateLimiter
from ratelimit_kit.leaky_bucket import LeakyBucketRateLimiter
from ratelimit_kit.sliding_log import SlidingLogRateLimiter
from ratelimit_kit.sliding_window import SlidingWindowRateLimiter
from ratelimit_kit.throttling import ThrottlingRateLimiter
from ratelimit_kit.token_bucket import TokenBucketRateLimiter
from ratelimit_kit.tests.helpers import MemoryBackend, RedisBackend

WORKERS = 16


class LastSlotCases:

    def race(self, attempt):
        barrier = threading.Barrier(WORKERS)

        def worker(_):
            barrier.wait()
            return attempt()

        with ThreadPoolExecutor(max_workers=WORKERS) as executor:
            return list(executor.map(worker, range(WORKERS)))

    def assert_exactly_one_wins(self, outcomes):
        self.assertEqual(sum(1 for success in outcomes if success), 1)

    def test_fixed_window(self):
        limiter = FixedWindowRateLimiter(self.store, limit=5, interval=60)
        for _ in range(4):
            limiter.consume("k")
        self.assert_exactly_one_wins(self.race(lambda: limiter.consume("k").success))
        self.assertEqual(limiter.get_remaining("k"), 0)

    def test_sliding_window(self):
        limiter = SlidingWindowRateLimiter(self.store, limit=5, interval=60)
        for _ in range(4):
            limiter.consume("k")
        self.assert_exactly_one_wins(self.race(lambda: limiter.consume("k").success))

    def test_sliding_log(self):
        limiter = SlidingLogRateLimiter(self.store, limit=5, interval=60)
        for _ in range(4):
            limiter.consume("k")
        self.assert_exactly_one_wins(self.race(lambda: limiter.consume("k").success))
        self.assertEqual(limiter.get_remaining("k"), 0)

    def test_token_bucket(self):
        limiter = TokenBucketRateLimiter(self.store, capacity=5, refill_amount=1, refill_interval=60)
        limiter.consume("k", 4)
        self.assert_exactly_one_wins(self.race(lambda: limiter.consume("k").success))
        self.assertEqual(limiter.get_remaining_tokens("k").remaining_tokens, 0)

    def test_leaky_bucket(self):
        limiter = LeakyBucketRateLimiter(self.store, capacity=5, interval=60)
        for _ in range(4):
            limiter.consume("k")
        self.assert_exactly_one_wins(self.race(lambda: limiter.consume("k").success))
        self.assertEqual(limiter.get_state("k").size, 5)

    def test_throttling(self):
        limiter = ThrottlingRateLimiter(self.store, min_interval=60)
        self.assert_exactly_one_wins(self.race(lambda: limiter.throttle("k").success))


class TestConcurrencyMemory(MemoryBackend, LastSlotCases, unittest.TestCase):
    pass


class TestConcurrencyRedis(RedisBackend, LastSlotCases, unittest.TestCase):
    pass


if __name__ == '__main__':
    unittest.main()
