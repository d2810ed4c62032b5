"""
Error types surfaced by the ranking engine.

Missing embeddings are not errors; they are handled with the neutral
fallback at every scoring site.
"""


class NemesisError(Exception):
    """Base class for all engine errors."""
    retryable = False


class NotFound(NemesisError):
    """The requester identifier does not resolve to an existing user."""


class InvalidArgument(NemesisError, ValueError):
    """A request argument is out of range or malformed."""


class StoreUnavailable(NemesisError):
    """A backing store failed while reading reference data."""
    retryable = True


class Timeout(NemesisError):
    """The overall computation exceeded its deadline."""
    retryable = True
