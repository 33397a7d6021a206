import unittest
from datetime import timedelta

from ratelimit_kit.exceptions import ConfigurationError, InvalidArgumentError
from ratelimit_kit.store.base import UNCHANGED
from ratelimit_kit.tests.helpers import T0, MemoryBackend, RedisBackend
from ratelimit_kit.token_bucket import (
    TokenBucketRateLimiter,
    TokenBucketState,
    adjust_transition,
    consume_transition,
    peek_transition,
)


class TestTokenBucketTransitions(unittest.TestCase):

    def test_new_bucket_starts_full(self):
        transition = consume_transition(None, 10, 2, 1.0, T0, 3)
        self.assertEqual(transition.state, TokenBucketState(7.0, T0))
        self.assertEqual(transition.reply, (1, 7.0, T0 + 1))
        self.assertEqual(transition.ttl, 3.0)

    def test_refill_advances_anchor_by_whole_cycles(self):
        transition = peek_transition(TokenBucketState(0.0, T0), 10, 2, 1.0, T0 + 3.7)
        self.assertIs(transition.state, UNCHANGED)
        self.assertEqual(transition.reply, (6.0, T0 + 4))

    def test_refill_is_capped(self):
        transition = peek_transition(TokenBucketState(9.0, T0), 10, 2, 1.0, T0 + 100)
        self.assertEqual(transition.reply[0], 10)

    def test_insufficient_tokens_does_not_write(self):
        transition = consume_transition(TokenBucketState(1.0, T0), 10, 2, 1.0, T0 + 0.5, 2)
        self.assertIs(transition.state, UNCHANGED)
        self.assertEqual(transition.reply, (0, 1.0, T0 + 1))

    def test_adjust_clamps(self):
        self.assertEqual(adjust_transition(None, 10, 2, 1.0, T0, 5).state.tokens, 10)
        self.assertEqual(adjust_transition(None, 10, 2, 1.0, T0, -50).state.tokens, 0)


class TokenBucketCases:

    def setUp(self):
        self.limiter = TokenBucketRateLimiter(self.store, capacity=10, refill_amount=2, refill_interval=1)
        self.key = "user-1"

    def test_refill_after_draining(self):
        result = self.limiter.consume(self.key, 10)
        self.assertTrue(result.success)
        self.assertEqual(result.remaining_tokens, 0)
        self.assertEqual(result.next_refill_at, T0 + 1)

        self.clock.set(1.1)
        remaining = self.limiter.get_remaining_tokens(self.key)
        self.assertEqual(remaining.remaining_tokens, 2)
        self.assertEqual(remaining.next_refill_at, T0 + 2)

    def test_rejection_takes_nothing(self):
        self.limiter.consume(self.key, 8)
        result = self.limiter.consume(self.key, 3)
        self.assertFalse(result.success)
        self.assertEqual(result.remaining_tokens, 2)
        self.assertTrue(self.limiter.consume(self.key, 2).success)

    def test_anchor_is_not_reset_by_consumption(self):
        self.limiter.consume(self.key, 10)
        self.clock.set(1.5)
        result = self.limiter.consume(self.key, 1)
        self.assertTrue(result.success)
        self.assertEqual(result.remaining_tokens, 1)
        self.assertEqual(result.next_refill_at, T0 + 2)
        self.clock.set(2.0)
        self.assertEqual(self.limiter.get_remaining_tokens(self.key).remaining_tokens, 3)

    def test_never_exceeds_capacity(self):
        self.limiter.consume(self.key, 1)
        self.clock.set(3600)
        self.assertEqual(self.limiter.get_remaining_tokens(self.key).remaining_tokens, 10)

    def test_unseen_key_is_full(self):
        result = self.limiter.get_remaining_tokens("nobody")
        self.assertEqual(result.remaining_tokens, 10)
        self.assertEqual(result.next_refill_at, T0 + 1)

    def test_get_remaining_tokens_is_stable(self):
        self.limiter.consume(self.key, 4)
        first = self.limiter.get_remaining_tokens(self.key)
        second = self.limiter.get_remaining_tokens(self.key)
        self.assertEqual(first, second)

    def test_negative_tokens_rejected(self):
        with self.assertRaises(InvalidArgumentError):
            self.limiter.consume(self.key, -1)
        self.assertEqual(self.limiter.get_remaining_tokens(self.key).remaining_tokens, 10)

    def test_zero_tokens_always_succeeds(self):
        self.limiter.consume(self.key, 10)
        result = self.limiter.consume(self.key, 0)
        self.assertTrue(result.success)
        self.assertEqual(result.remaining_tokens, 0)

    def test_add_and_remove_tokens(self):
        self.limiter.consume(self.key, 10)
        self.limiter.add_tokens(self.key, 4)
        self.assertEqual(self.limiter.get_remaining_tokens(self.key).remaining_tokens, 4)
        self.limiter.add_tokens(self.key, 100)
        self.assertEqual(self.limiter.get_remaining_tokens(self.key).remaining_tokens, 10)
        self.limiter.remove_tokens(self.key, 3)
        self.assertEqual(self.limiter.get_remaining_tokens(self.key).remaining_tokens, 7)
        self.limiter.remove_tokens(self.key, 100)
        self.assertEqual(self.limiter.get_remaining_tokens(self.key).remaining_tokens, 0)

    def test_non_positive_adjustments_are_ignored(self):
        self.limiter.consume(self.key, 5)
        self.limiter.add_tokens(self.key, 0)
        self.limiter.remove_tokens(self.key, -3)
        self.assertEqual(self.limiter.get_remaining_tokens(self.key).remaining_tokens, 5)

    def test_non_numeric_adjustments_rejected(self):
        for amount in ("3", None, True):
            with self.assertRaises(InvalidArgumentError):
                self.limiter.add_tokens(self.key, amount)
            with self.assertRaises(InvalidArgumentError):
                self.limiter.remove_tokens(self.key, amount)
        with self.assertRaises(InvalidArgumentError):
            self.limiter.consume(self.key, "1")

    def test_fractional_refill(self):
        limiter = TokenBucketRateLimiter(self.store, capacity=2, refill_amount=0.5,
                                         refill_interval=timedelta(seconds=1), name="fractional")
        limiter.consume(self.key, 2)
        self.clock.set(1)
        self.assertEqual(limiter.get_remaining_tokens(self.key).remaining_tokens, 0)
        self.clock.set(2)
        self.assertEqual(limiter.get_remaining_tokens(self.key).remaining_tokens, 1)
        result = limiter.consume(self.key, 0.5)
        self.assertTrue(result.success)
        self.assertEqual(result.remaining_tokens, 0)

    def test_reset_refills(self):
        self.limiter.consume(self.key, 10)
        self.limiter.reset(self.key)
        self.assertEqual(self.limiter.get_remaining_tokens(self.key).remaining_tokens, 10)

    def test_accessors(self):
        self.assertEqual(self.limiter.get_capacity(), 10)
        self.assertEqual(self.limiter.get_refill_amount(), 2)
        self.assertEqual(self.limiter.get_refill_interval(), 1)


class TestTokenBucketMemory(MemoryBackend, TokenBucketCases, unittest.TestCase):

    def test_get_remaining_tokens_does_not_create_state(self):
        self.limiter.get_remaining_tokens(self.key)
        self.assertEqual(self.store.key_count(), 0)

    def test_invalid_configuration(self):
        with self.assertRaises(ConfigurationError):
            TokenBucketRateLimiter(self.store, capacity=0, refill_amount=1, refill_interval=1)
        with self.assertRaises(ConfigurationError):
            TokenBucketRateLimiter(self.store, capacity=10, refill_amount=0, refill_interval=1)
        with self.assertRaises(ConfigurationError):
            TokenBucketRateLimiter(self.store, capacity=10, refill_amount=1, refill_interval=-2)


class TestTokenBucketRedis(RedisBackend, TokenBucketCases, unittest.TestCase):

    def test_get_remaining_tokens_does_not_create_state(self):
        self.limiter.get_remaining_tokens(self.key)
        self.assertFalse(self.redis_client.exists(f"token_bucket:default:{self.key}"))


if __name__ == '__main__':
    unittest.main()
