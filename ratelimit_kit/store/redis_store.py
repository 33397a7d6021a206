"""
Redis-backed state store.

Every transaction is one Lua script executed server side with EVALSHA, so
Redis serializes conflicting requests to the same key and clients need no
locking. Scripts are loaded on first use and reloaded if the server's script
cache was flushed.
"""

import logging
import time
from typing import Callable, Dict, Tuple

import redis

from ..exceptions import BackendUnavailableError
from .base import Procedure, StateStore

logger = logging.getLogger(__name__)


class RedisStateStore(StateStore):
    """State store running each procedure as a server-side Lua script."""

    backend = "redis"

    def __init__(self, redis_client: redis.Redis, clock: Callable[[], float] = time.time,
                 use_server_time: bool = False):
        """
        Args:
            redis_client: Redis client instance
            clock: Client side time source, seconds since the epoch
            use_server_time: Read the time from the Redis TIME command instead of `clock`
        """
        super().__init__(clock)
        self.redis = redis_client
        self.use_server_time = use_server_time
        self._script_shas: Dict[str, str] = {}

    def now(self) -> float:
        if not self.use_server_time:
            return self._clock()
        try:
            seconds, microseconds = self.redis.time()
        except redis.RedisError as e:
            logger.error(f"Failed to get Redis time: {e}")
            raise BackendUnavailableError(f"Failed to get Redis time: {e}", backend=self.backend) from e
        return seconds + microseconds / 1_000_000

    def _load_script(self, procedure: Procedure) -> str:
        """
        Load the Lua script of a procedure into Redis.
        Returns the SHA of the loaded script.
        """
        sha = self.redis.script_load(procedure.lua)
        self._script_shas[procedure.name] = sha
        logger.info(f"Loaded Lua script for {procedure.name}")
        return sha

    def preload(self, *procedures: Procedure) -> None:
        """Load the scripts of `procedures` ahead of the first call."""
        try:
            for procedure in procedures:
                self._load_script(procedure)
        except redis.RedisError as e:
            logger.error(f"Failed to load Lua scripts: {e}")
            raise BackendUnavailableError(f"Failed to load Lua scripts: {e}", backend=self.backend) from e

    def transact(self, key: str, procedure: Procedure, *args) -> Tuple:
        try:
            sha = self._script_shas.get(procedure.name) or self._load_script(procedure)
            try:
                result = self.redis.evalsha(sha, 1, key, *args)
            except redis.exceptions.NoScriptError:
                # Script cache was flushed; the script did not run
                logger.warning(f"Lua script for {procedure.name} evicted, reloading")
                sha = self._load_script(procedure)
                result = self.redis.evalsha(sha, 1, key, *args)
        except redis.RedisError as e:
            logger.error(f"Redis transaction {procedure.name} failed for {key}: {e}")
            raise BackendUnavailableError(
                f"Redis transaction {procedure.name} failed: {e}", backend=self.backend
            ) from e
        return self._normalize(result)

    @staticmethod
    def _normalize(result) -> Tuple:
        if not isinstance(result, (list, tuple)):
            result = [result]
        return tuple(value.decode() if isinstance(value, bytes) else value for value in result)

    def delete(self, key: str) -> None:
        try:
            self.redis.delete(key)
        except redis.RedisError as e:
            logger.error(f"Failed to delete {key}: {e}")
            raise BackendUnavailableError(f"Failed to delete {key}: {e}", backend=self.backend) from e

    def close(self) -> None:
        self.redis.close()
