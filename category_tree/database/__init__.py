# category_tree/database/__init__.py
"""PostgreSQL connection handling"""
from .database import Database

__all__ = ["Database"]
