"""
In-process state store.

All state lives in this process and is lost on restart. Each key has its own
lock, held across the whole read -> apply -> write span, so transactions on
the same key are serialized while distinct keys proceed in parallel.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Optional, Tuple

from ..metrics import RateLimiterMetrics
from .base import UNCHANGED, Procedure, StateStore

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ('state', 'expires_at')

    def __init__(self, state: Any, expires_at: Optional[float]):
        self.state = state
        self.expires_at = expires_at

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class _KeyLock:
    __slots__ = ('lock', 'users')

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class MemoryStateStore(StateStore):
    """
    Thread-safe in-memory state store with per-key locking.

    Entries written with a TTL are treated as absent once expired and are
    physically removed by `sweep()`, either called directly or from the
    background sweeper thread.
    """

    backend = "memory"

    def __init__(self, clock: Callable[[], float] = time.time, name: str = "memory"):
        """
        Args:
            clock: Time source returning seconds since the epoch
            name: Label used for the key count metric
        """
        super().__init__(clock)
        self.name = name
        self._entries: Dict[str, _Entry] = {}
        self._locks: Dict[str, _KeyLock] = {}
        self._guard = threading.Lock()
        self._sweeper: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self.metrics = RateLimiterMetrics()

    @contextmanager
    def _locked(self, key: str):
        with self._guard:
            slot = self._locks.get(key)
            if slot is None:
                slot = self._locks[key] = _KeyLock()
            slot.users += 1
        try:
            with slot.lock:
                yield
        finally:
            with self._guard:
                slot.users -= 1
                if slot.users == 0 and key not in self._entries:
                    self._locks.pop(key, None)

    def transact(self, key: str, procedure: Procedure, *args) -> Tuple:
        with self._locked(key):
            now = self.now()
            entry = self._entries.get(key)
            state = None
            if entry is not None and not entry.is_expired(now):
                state = entry.state

            transition = procedure.apply(state, *args)

            if transition.state is not UNCHANGED:
                expires_at = now + transition.ttl if transition.ttl is not None else None
                self._entries[key] = _Entry(transition.state, expires_at)
                self.metrics.memory_keys.labels(store=self.name).set(len(self._entries))
            logger.debug(f"{procedure.name} on {key}: {transition.reply}")
            return transition.reply

    def get_state(self, key: str) -> Any:
        """Return the live state stored under `key`, or None."""
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self.now()):
            return None
        return entry.state

    def delete(self, key: str) -> None:
        with self._locked(key):
            self._entries.pop(key, None)
        self.metrics.memory_keys.labels(store=self.name).set(len(self._entries))

    def clear(self) -> None:
        """Drop every entry."""
        with self._guard:
            self._entries.clear()
            for key in [k for k, slot in self._locks.items() if slot.users == 0]:
                del self._locks[key]
        self.metrics.memory_keys.labels(store=self.name).set(0)

    def key_count(self) -> int:
        """Number of keys currently held, including expired ones not yet swept."""
        return len(self._entries)

    def sweep(self) -> int:
        """
        Remove expired entries.

        Keys with a transaction in flight are skipped and picked up by the
        next sweep.

        Returns:
            Number of entries removed
        """
        now = self.now()
        removed = 0
        with self._guard:
            for key in list(self._entries):
                slot = self._locks.get(key)
                if slot is not None and slot.users:
                    continue
                entry = self._entries.get(key)
                if entry is not None and entry.is_expired(now):
                    del self._entries[key]
                    self._locks.pop(key, None)
                    removed += 1
            remaining = len(self._entries)
        self.metrics.memory_keys.labels(store=self.name).set(remaining)
        if removed:
            logger.debug(f"Swept {removed} expired keys from {self.name}, {remaining} left")
        return removed

    def start_sweeper(self, interval: float = 60.0) -> None:
        """Start a daemon thread that calls `sweep()` every `interval` seconds."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop_event.clear()

        def run():
            while not self._stop_event.wait(interval):
                try:
                    self.sweep()
                except Exception as e:
                    logger.error(f"Error in sweeper for {self.name}: {e}")

        self._sweeper = threading.Thread(target=run, name=f"{self.name}-sweeper", daemon=True)
        self._sweeper.start()
        logger.info(f"Started sweeper for {self.name} (every {interval}s)")

    def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._stop_event.set()
        self._sweeper.join()
        self._sweeper = None
        logger.info(f"Stopped sweeper for {self.name}")

    def close(self) -> None:
        self.stop_sweeper()
        self.clear()
