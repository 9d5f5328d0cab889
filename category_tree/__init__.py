# category_tree/__init__.py
"""Category hierarchy engine for the inventory console"""
from .exceptions import (
    CategoryEngineError,
    NetworkError,
    CancelledError,
    ValidationError,
    ConflictError,
    NotFoundError,
)

__version__ = "0.1.0"

__all__ = [
    'CategoryEngineError',
    'NetworkError',
    'CancelledError',
    'ValidationError',
    'ConflictError',
    'NotFoundError',
]
