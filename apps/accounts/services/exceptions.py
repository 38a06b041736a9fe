"""Domain-specific exceptions for accounts services."""


class AccountsServiceError(Exception):
    """Base exception for accounts services."""
    pass


class InvalidCredentialsError(AccountsServiceError):
    """Raised when authentication credentials are invalid."""
    pass


class InactiveAccountError(AccountsServiceError):
    """Raised when account is deactivated."""
    pass


class UserNotFoundError(AccountsServiceError):
    """Raised when user does not exist."""
    pass


class DuplicateEmailError(AccountsServiceError):
    """Raised when a staff member with the email already exists."""
    pass


class StaffLimitExceededError(AccountsServiceError):
    """Raised when the clinic's staff or doctor limit would be exceeded."""
    pass


class UnknownPermissionError(AccountsServiceError):
    """Raised when a permission type is not recognised."""
    pass


class SelfDeactivationError(AccountsServiceError):
    """Raised when a staff member tries to deactivate their own account."""
    pass
