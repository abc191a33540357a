class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when credentials or a bearer token are missing, invalid or expired."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""


class ConflictError(DomainError):
    """Raised when a write collides with the current state (e.g. a break is already open)."""


class DuplicateRecordError(ConflictError):
    """Raised when a storage uniqueness constraint rejects a write."""


class PreconditionError(DomainError):
    """Base for ledger state preconditions that were not met."""


class NoActiveSessionError(PreconditionError):
    """No open attendance record for the day."""


class NoOpenBreakError(PreconditionError):
    """No break is currently open."""


class AlreadyCheckedOutError(PreconditionError):
    """The day's record already carries a check-out time."""


class StorageError(DomainError):
    """Raised when the underlying store fails."""
