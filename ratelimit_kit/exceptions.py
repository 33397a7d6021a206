"""
Exceptions raised by the rate limiters and their state stores.
"""


class RateLimitError(Exception):
    """Base class for all rate limiter errors."""
    pass


class ConfigurationError(RateLimitError, ValueError):
    """Raised when a limiter or store is configured with invalid values.

    Raised synchronously at construction time, so a limiter is never
    partially usable.
    """
    pass


class InvalidArgumentError(RateLimitError, ValueError):
    """Raised when a call receives an invalid argument.

    Raised before any state is read, so no state is mutated.
    """
    pass


class BackendUnavailableError(RateLimitError):
    """Raised when the state store cannot be reached or a transaction fails.

    The caller decides whether to fail open or fail closed; the limiters
    never translate this into an admission decision.
    """

    def __init__(self, message: str, backend: str = "unknown"):
        super().__init__(message)
        self.backend = backend
