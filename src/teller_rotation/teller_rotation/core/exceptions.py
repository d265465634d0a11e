class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidTransitionError(ValidationError):
    """Raised when an assignment cannot move from its current status."""


class NotFoundError(DomainError):
    """Raised when an assignment or worker id does not exist."""


class ConflictError(DomainError):
    """Raised when a write would break the one-assignment-per-day rule."""
