"""Custom exception classes for the user administration service.

This module defines application-specific exceptions.
"""

from typing import List, Optional

from schemas.importing import ImportErrorKind, ImportIssue


class UserAdminError(Exception):
    """Base exception for all user administration errors."""

    pass


class UserNotFoundError(UserAdminError):
    """Raised when a requested user cannot be found."""

    def __init__(self, user_id: str):
        """Initialize the exception.

        Args:
            user_id: The ID of the user that was not found.
        """
        self.user_id = user_id
        super().__init__(f"User '{user_id}' not found")


class UserAlreadyExistsError(UserAdminError):
    """Raised when creating a user whose email is already stored."""

    def __init__(self, email: str):
        """Initialize the exception.

        Args:
            email: The normalized email that collided.
        """
        self.email = email
        super().__init__(f"User with email '{email}' already exists")


class AuthenticationError(UserAdminError):
    """Raised when credentials or tokens cannot be verified."""

    pass


class ConfigurationError(UserAdminError):
    """Raised when there is a configuration error."""

    pass


class ImportAbortedError(UserAdminError):
    """Raised by an import stage to abort the whole batch.

    Carries the complete error set of the failing stage so the orchestrator
    can report every problem at once.
    """

    def __init__(
        self,
        kind: ImportErrorKind,
        message: str,
        issues: Optional[List[ImportIssue]] = None,
    ):
        """Initialize the exception.

        Args:
            kind: Category of the failure.
            message: Human-readable summary.
            issues: Row/field level errors, empty for batch-level failures.
        """
        self.kind = kind
        self.message = message
        self.issues = list(issues or [])
        super().__init__(message)
