# category_tree/exceptions.py
from typing import List, Optional


class CategoryEngineError(Exception):
    """Base error carrying a user-displayable message"""

    default_message = "Category operation failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NetworkError(CategoryEngineError):
    """Transport failure or timeout; recoverable by refresh"""

    default_message = "Could not reach the category store"


class CancelledError(CategoryEngineError):
    """A fetch superseded by a newer one; never shown to the user"""

    default_message = "Request was cancelled"


class ValidationError(CategoryEngineError):
    """Local rejection raised before any remote call"""

    default_message = "Validation error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[str]] = None):
        self.errors = list(errors or ([message] if message else []))
        super().__init__(message or "; ".join(self.errors) or None)


class ConflictError(CategoryEngineError):
    """Remote rejection surfaced verbatim from the store"""

    default_message = "The store rejected the operation"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(ConflictError):
    default_message = "Category not found"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, status_code=404)
