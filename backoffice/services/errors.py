"""Domain errors raised by the service layer.

Routers translate these into HTTP responses. Nothing here is retried
internally; callers decide their own retry policy.
"""


class BackofficeError(Exception):
    """Base exception for service errors."""

    pass


class NotFoundError(BackofficeError):
    """Referenced quote, project, issue or alert does not exist."""

    pass


class InvalidTransitionError(BackofficeError):
    """Requested lifecycle change is not allowed in the current state."""

    pass


class InclusionNotAllowedError(InvalidTransitionError):
    """Milestone cannot be included in the quote (no categorized issues)."""

    pass


class ValidationFailure(BackofficeError):
    """Malformed input rejected before any write."""

    pass


class ExternalFetchFailure(BackofficeError):
    """The issue tracker could not provide a snapshot."""

    retryable: bool = True
