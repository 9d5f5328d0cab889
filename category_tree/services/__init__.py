# category_tree/services/__init__.py
"""Category stores, synchronization and reporting"""
from .store import CategoryStore, InMemoryCategoryStore
from .http_store import HttpCategoryStore
from .category_service import CategoryService
from .sync_controller import LoadState, SyncController
from .report_service import ReportService

__all__ = [
    'CategoryStore',
    'InMemoryCategoryStore',
    'HttpCategoryStore',
    'CategoryService',
    'LoadState',
    'SyncController',
    'ReportService',
]
