"""
State stores: atomic per-key transactions over Redis or process memory.
"""

from .base import UNCHANGED, Procedure, StateStore, Transition
from .memory import MemoryStateStore
from .redis_store import RedisStateStore

__all__ = [
    'UNCHANGED',
    'Procedure',
    'StateStore',
    'Transition',
    'MemoryStateStore',
    'RedisStateStore',
]
