"""Exceptions raised by flowmatch.

All errors are raised before the failing call mutates any state.
"""


class MatchingError(Exception):
    """Base class for all flowmatch errors."""


class InvalidArgumentError(MatchingError, ValueError):
    """Raised when a required argument is missing, has the wrong type, or is not positive."""


class UnknownEntityError(MatchingError, LookupError):
    """Raised when a U or V value is not part of the matching network."""


class AlreadyMatchedError(MatchingError):
    """Raised when a U or V value has no remaining capacity for a manual match."""


class NoCompatiblePathError(MatchingError):
    """Raised when a manual match is requested for a pair the predicate rejected."""


class CapacityViolationError(MatchingError, ValueError):
    """Raised when flow is pushed beyond an arc's residual capacity."""
