class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a requested record does not exist."""


class StoreError(DomainError):
    """Raised when the backing store rejects a read or write."""


class ConflictError(StoreError):
    """Raised when a write violates a uniqueness constraint (e.g. duplicate roll number)."""


class UnsavedChangesError(DomainError):
    """Raised when navigation would drop staged attendance changes without confirmation."""

    def __init__(self, pending_count: int):
        super().__init__(f"{pending_count} unsaved change(s) would be discarded")
        self.pending_count = pending_count
