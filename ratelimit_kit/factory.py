"""
Builds stores and limiters from configuration mappings.

Expected layout (see config.yaml at the repository root)::

    rate_limiter:
      enabled: true
      algorithm: token_bucket
      name: api
      store:
        backend: redis
      token_bucket:
        capacity: 100
        refill_amount: 10
        refill_interval: 1
"""

import logging
from typing import Any, Dict, Optional

import redis

from .config import create_redis_client
from .dummy import (
    DummyFixedWindow,
    DummyLeakyBucket,
    DummySlidingLog,
    DummySlidingWindow,
    DummyThrottling,
    DummyTokenBucket,
)
from .exceptions import ConfigurationError
from .fixed_window import FixedWindowRateLimiter
from .interfaces import Limiter
from .leaky_bucket import LeakyBucketRateLimiter
from .sliding_log import SlidingLogRateLimiter
from .sliding_window import SlidingWindowRateLimiter
from .store.base import StateStore
from .store.memory import MemoryStateStore
from .store.redis_store import RedisStateStore
from .throttling import ThrottlingRateLimiter
from .token_bucket import TokenBucketRateLimiter

logger = logging.getLogger(__name__)

# algorithm -> (limiter class, required settings, dummy class)
ALGORITHMS = {
    "fixed_window": (FixedWindowRateLimiter, ("limit", "interval"), DummyFixedWindow),
    "sliding_window": (SlidingWindowRateLimiter, ("limit", "interval"), DummySlidingWindow),
    "sliding_log": (SlidingLogRateLimiter, ("limit", "interval"), DummySlidingLog),
    "token_bucket": (TokenBucketRateLimiter, ("capacity", "refill_amount", "refill_interval"), DummyTokenBucket),
    "leaky_bucket": (LeakyBucketRateLimiter, ("capacity", "interval"), DummyLeakyBucket),
    "throttling": (ThrottlingRateLimiter, ("min_interval",), DummyThrottling),
}


class RateLimiterFactory:

    @staticmethod
    def create_store(store_config: Optional[Dict[str, Any]] = None,
                     redis_client: Optional[redis.Redis] = None) -> StateStore:
        """
        Create a state store.

        Args:
            store_config: The `store` section; `backend` is 'memory' (default) or 'redis'
            redis_client: Client to use instead of connecting from the environment
        """
        store_config = store_config or {}
        backend = store_config.get('backend', 'memory')

        if backend == 'memory':
            store = MemoryStateStore(name=store_config.get('name', 'memory'))
            sweep_interval = store_config.get('sweep_interval')
            if sweep_interval:
                store.start_sweeper(float(sweep_interval))
            return store
        elif backend == 'redis':
            if redis_client is None:
                redis_client = create_redis_client(
                    host=store_config.get('host'),
                    port=store_config.get('port'),
                    db=store_config.get('db')
                )
            return RedisStateStore(redis_client, use_server_time=bool(store_config.get('use_server_time', False)))
        else:
            raise ConfigurationError(f"Unknown state store backend: {backend}")

    @staticmethod
    def create_rate_limiter(algorithm: str, store: Optional[StateStore], algorithm_config: Dict[str, Any],
                            name: str = "default", enabled: bool = True) -> Limiter:
        """
        Create a limiter for `algorithm` from its settings.

        A disabled limiter is the matching dummy and needs no store.

        Raises:
            ConfigurationError: On an unknown algorithm or missing settings
        """
        if algorithm not in ALGORITHMS:
            raise ConfigurationError(f"Unknown rate limiter algorithm: {algorithm}")
        limiter_class, required, dummy_class = ALGORITHMS[algorithm]

        if not enabled:
            logger.info(f"Rate limiting disabled, using {dummy_class.__name__}")
            return dummy_class()

        algorithm_config = algorithm_config or {}
        missing = [field for field in required if field not in algorithm_config]
        if missing:
            raise ConfigurationError(f"Missing settings for {algorithm}: {', '.join(missing)}")

        settings = {field: algorithm_config[field] for field in required}
        limiter = limiter_class(store, name=name, **settings)
        logger.info(f"Created {limiter_class.__name__} '{name}' on {store.backend} store with {settings}")
        return limiter

    @classmethod
    def from_config(cls, config: Dict[str, Any], redis_client: Optional[redis.Redis] = None) -> Limiter:
        """Build the limiter described by the `rate_limiter` section of `config`."""
        if 'rate_limiter' not in config:
            raise ConfigurationError("Configuration has no 'rate_limiter' section")
        rate_limiter_config = config['rate_limiter'] or {}
        algorithm = rate_limiter_config.get('algorithm')
        if not algorithm:
            raise ConfigurationError("rate_limiter.algorithm is required")
        enabled = rate_limiter_config.get('enabled', True)

        store = None
        if enabled:
            store = cls.create_store(rate_limiter_config.get('store'), redis_client)
        try:
            return cls.create_rate_limiter(
                algorithm,
                store,
                rate_limiter_config.get(algorithm, {}),
                name=rate_limiter_config.get('name', 'default'),
                enabled=enabled
            )
        except Exception:
            # A caller supplied client stays open
            if store is not None and (redis_client is None or isinstance(store, MemoryStateStore)):
                logger.info(f"Closing {store.backend} store after failed limiter construction")
                store.close()
            raise
