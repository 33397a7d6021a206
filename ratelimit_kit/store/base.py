"""
State store abstraction.

A store executes one atomic read-modify-write transaction per key. Every
algorithm describes its transactions as `Procedure` objects carrying both
realizations: a Lua script for the shared Redis store and a pure Python
transition function for the in-process store.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, NamedTuple, Optional, Tuple


class _Unchanged:
    def __repr__(self):
        return "UNCHANGED"


# Returned as the new state when a transaction must not write
UNCHANGED = _Unchanged()


class Transition(NamedTuple):
    """Result of applying a procedure to a key's state.

    Attributes:
        state: New state to persist, or UNCHANGED to skip the write
        reply: Fixed-shape reply tuple returned to the caller
        ttl: Seconds after which the written state may be dropped
    """
    state: Any
    reply: Tuple
    ttl: Optional[float] = None


@dataclass(frozen=True)
class Procedure:
    """One atomic transaction, expressed for both backends.

    `apply(state, *args)` receives the current state (None when the key is
    unseen or expired) and the same arguments passed as ARGV to `lua`.
    """
    name: str
    lua: str
    apply: Callable[..., Transition]


class StateStore(ABC):
    """Executes atomic per-key transactions."""

    backend = "abstract"

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    def now(self) -> float:
        """Current time in seconds, shared by every limiter bound to this store."""
        return self._clock()

    @abstractmethod
    def transact(self, key: str, procedure: Procedure, *args) -> Tuple:
        """Run `procedure` atomically against `key` and return its reply."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Drop the state stored under `key`."""
        pass

    def close(self) -> None:
        """Release resources held by the store."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
