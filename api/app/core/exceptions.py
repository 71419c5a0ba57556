"""
Custom exceptions for the application.
"""


class PalabraException(Exception):
    """Base exception for all Palabra application exceptions."""
    pass


class ValidationError(PalabraException):
    """Raised when validation fails."""
    pass


class NotFoundError(PalabraException):
    """Raised when a requested resource is not found."""
    pass


class ConflictError(PalabraException):
    """Raised when there's a conflict (e.g., duplicate entry)."""
    pass


class AuthenticationError(PalabraException):
    """Raised when authentication fails."""
    pass


class AuthorizationError(PalabraException):
    """Raised when authorization fails."""
    pass


class UnsupportedOperationError(ValidationError):
    """Raised when a sync stream receives an operation kind it does not accept."""

    def __init__(self, stream: str, operation: str):
        self.stream = stream
        self.operation = operation
        super().__init__(f"Operation '{operation}' is not supported for {stream}")
