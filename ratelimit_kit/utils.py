"""
Helpers shared by all limiters: key namespacing and duration conversion.
"""

from datetime import timedelta
from typing import Optional, Union

from .exceptions import ConfigurationError

DurationLike = Union[timedelta, int, float]


def get_key(algorithm: str, name: str, identifier: str, extra: Optional[str] = None) -> str:
    """
    Build a namespaced storage key.

    Args:
        algorithm: Algorithm prefix (e.g. 'token_bucket')
        name: Name of the limiter instance
        identifier: Caller supplied key
        extra: Optional suffix such as a window id

    Returns:
        Key of the form ``<algorithm>:<name>:<identifier>[:<extra>]``
    """
    key = f"{algorithm}:{name}:{identifier}"
    if extra:
        key = f"{key}:{extra}"
    return key


def to_seconds(duration: DurationLike, field: str = "interval") -> float:
    """Convert a timedelta or a number of seconds to float seconds."""
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    if isinstance(duration, bool) or not isinstance(duration, (int, float)):
        raise ConfigurationError(f"{field} must be a timedelta or a number of seconds, got {duration!r}")
    return float(duration)


def to_milliseconds(duration: DurationLike, field: str = "interval") -> int:
    """Convert a timedelta or a number of seconds to whole milliseconds."""
    return int(round(to_seconds(duration, field) * 1000))


def require_positive(value, field: str) -> None:
    """Raise ConfigurationError unless value is a positive number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigurationError(f"{field} must be a positive value, got {value!r}")
