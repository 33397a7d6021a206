"""
Rate limiters backed by Redis or by process memory.
"""

from .dummy import (
    UNLIMITED,
    DummyFixedWindow,
    DummyLeakyBucket,
    DummySlidingLog,
    DummySlidingWindow,
    DummyThrottling,
    DummyTokenBucket,
)
from .exceptions import BackendUnavailableError, ConfigurationError, InvalidArgumentError, RateLimitError
from .factory import RateLimiterFactory
from .fixed_window import FixedWindowRateLimiter
from .leaky_bucket import LeakyBucketRateLimiter
from .metrics import RateLimiterMetrics
from .models import (
    FixedWindowResult,
    LeakyBucketResult,
    LeakyBucketState,
    SlidingLogResult,
    SlidingWindowResult,
    ThrottlingResult,
    TokenConsumeResult,
    TokenCountResult,
)
from .sliding_log import SlidingLogRateLimiter
from .sliding_window import SlidingWindowRateLimiter
from .store import MemoryStateStore, RedisStateStore, StateStore
from .throttling import ThrottlingRateLimiter
from .token_bucket import TokenBucketRateLimiter

__version__ = "0.1.0"

__all__ = [
    'FixedWindowRateLimiter',
    'SlidingWindowRateLimiter',
    'SlidingLogRateLimiter',
    'TokenBucketRateLimiter',
    'LeakyBucketRateLimiter',
    'ThrottlingRateLimiter',
    'DummyFixedWindow',
    'DummySlidingWindow',
    'DummySlidingLog',
    'DummyTokenBucket',
    'DummyLeakyBucket',
    'DummyThrottling',
    'UNLIMITED',
    'StateStore',
    'MemoryStateStore',
    'RedisStateStore',
    'RateLimiterFactory',
    'RateLimiterMetrics',
    'RateLimitError',
    'ConfigurationError',
    'InvalidArgumentError',
    'BackendUnavailableError',
    'FixedWindowResult',
    'SlidingWindowResult',
    'SlidingLogResult',
    'TokenConsumeResult',
    'TokenCountResult',
    'LeakyBucketResult',
    'LeakyBucketState',
    'ThrottlingResult',
]
