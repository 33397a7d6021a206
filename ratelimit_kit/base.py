"""
Shared plumbing for limiters running on a StateStore.
"""

import logging
import time
from typing import Optional, Tuple

from .exceptions import BackendUnavailableError, ConfigurationError, InvalidArgumentError
from .metrics import RateLimiterMetrics
from .store.base import Procedure, StateStore
from .utils import get_key

logger = logging.getLogger(__name__)


class StoreBackedLimiter:
    """
    Base class binding a limiter to a state store.

    Subclasses set `algorithm` (also the key prefix) and describe their
    transactions as `Procedure` objects; this class builds namespaced keys,
    runs the transactions and records metrics.
    """

    algorithm = "base"

    def __init__(self, store: StateStore, name: str = "default"):
        if not isinstance(store, StateStore):
            raise ConfigurationError(f"store must be a StateStore, got {type(store).__name__}")
        if not isinstance(name, str) or not name:
            raise ConfigurationError("name must be a non-empty string")
        self.store = store
        self.name = name
        self.metrics = RateLimiterMetrics()

    def _key(self, identifier: str, extra: Optional[str] = None) -> str:
        if not isinstance(identifier, str):
            raise InvalidArgumentError(f"key must be a string, got {type(identifier).__name__}")
        return get_key(self.algorithm, self.name, identifier, extra)

    def _transact(self, key: str, procedure: Procedure, *args) -> Tuple:
        start_time = time.time()
        try:
            return self.store.transact(key, procedure, *args)
        except BackendUnavailableError as e:
            self.metrics.record_error(e.backend, self.algorithm)
            raise
        finally:
            self.metrics.request_duration.labels(algorithm=self.algorithm).observe(time.time() - start_time)

    def _record(self, key: str, allowed: bool, remaining) -> None:
        self.metrics.record_decision(self.algorithm, allowed)
        logger.debug(f"{self.algorithm}:{self.name} decision for {key}: allowed={allowed}, remaining={remaining}")

    def __repr__(self):
        return f"{type(self).__name__}(name={self.name!r}, backend={self.store.backend!r})"
