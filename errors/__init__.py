"""Domain exceptions shared by the marketplace managers.

Each exception carries the HTTP status the API renders it with, so managers
can raise them without knowing about the web layer.
"""

class MarketError(Exception):
    """Base exception for marketplace operations."""
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        self.message = message
        super().__init__(message)

class ValidationError(MarketError):
    """Raised when input breaks a business rule."""
    status_code = 400

class ConflictError(MarketError):
    """Raised when the current state forbids the operation (e.g. already sold)."""
    status_code = 400

class AuthenticationError(MarketError):
    """Raised when credentials or tokens are missing or invalid."""
    status_code = 401

class ForbiddenError(MarketError):
    """Raised when the caller does not own the resource or lacks the role."""
    status_code = 403

class NotFoundError(MarketError):
    """Raised when a referenced entity does not exist."""
    status_code = 404

__all__ = [
    'MarketError',
    'ValidationError',
    'ConflictError',
    'AuthenticationError',
    'ForbiddenError',
    'NotFoundError'
]
