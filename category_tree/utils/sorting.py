# category_tree/utils/sorting.py
"""Recursive, stable ordering of category forests."""

from typing import Any, Callable, Dict, Iterable, List

from ..models.category import CategoryNode, CategoryRecord
from .formatters import EPOCH, to_utc

SORT_KEYS = ('name', 'productCount', 'revenue', 'createdAt')
SORT_ORDERS = ('asc', 'desc')


def _name_key(record: CategoryRecord) -> Any:
    # Case-insensitive first; exact casing only separates otherwise equal names
    return (record.name.casefold(), record.name)


def _created_key(record: CategoryRecord) -> Any:
    # Missing timestamps sort before any real date
    created = to_utc(record.created_at)
    return (created is not None, created or EPOCH)


_KEY_FUNCTIONS: Dict[str, Callable[[CategoryRecord], Any]] = {
    'name': _name_key,
    'productCount': lambda record: record.product_count or 0,
    'revenue': lambda record: record.revenue or 0,
    'createdAt': _created_key,
}


def sort_forest(forest: Iterable[CategoryNode], key: str = 'name', order: str = 'asc') -> List[CategoryNode]:
    """Sort every level of ``forest`` by the same key and order.

    ``sorted`` is stable in both directions: with ``reverse=True`` non-tied
    pairs swap while nodes with equal keys keep their input order.
    """

    if key not in _KEY_FUNCTIONS:
        raise ValueError(f"Unsupported sort key: {key!r}")
    if order not in SORT_ORDERS:
        raise ValueError(f"Unsupported sort order: {order!r}")
    return _sort_level(forest, _KEY_FUNCTIONS[key], order == 'desc')


def _sort_level(nodes: Iterable[CategoryNode], key_func, reverse: bool) -> List[CategoryNode]:
    ordered = sorted(nodes, key=lambda node: key_func(node.record), reverse=reverse)
    return [
        node.model_copy(update={'children': tuple(_sort_level(node.children, key_func, reverse))})
        if node.children else node
        for node in ordered
    ]


def record_sort_key(key: str) -> Callable[[CategoryRecord], Any]:
    """Key function for ordering flat records"""
    if key not in _KEY_FUNCTIONS:
        raise ValueError(f"Unsupported sort key: {key!r}")
    return _KEY_FUNCTIONS[key]
