# category_tree/models/__init__.py
"""Data models for category records and derived tree nodes"""
from .base import TimeStampedModel
from .category import (
    CategoryId,
    CategoryStatus,
    CategoryRecord,
    CategoryNode,
    CategoryCreate,
    CategoryUpdate,
    ListParams,
    ListResult,
    PendingOperation,
    SortKey,
    SortOrder,
)

__all__ = [
    'TimeStampedModel',
    'CategoryId',
    'CategoryStatus',
    'CategoryRecord',
    'CategoryNode',
    'CategoryCreate',
    'CategoryUpdate',
    'ListParams',
    'ListResult',
    'PendingOperation',
    'SortKey',
    'SortOrder',
]
