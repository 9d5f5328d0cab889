# category_tree/utils/__init__.py
"""Pure tree, sort, filter and expansion helpers"""
from .tree_builder import (
    FlattenedCategory,
    build_tree,
    count_nodes,
    descendant_ids,
    find_cycles,
    flatten_tree,
    iter_nodes,
    tree_depth,
)
from .sorting import SORT_KEYS, SORT_ORDERS, sort_forest
from .filters import filter_by_status, filter_forest, matches_term, prune_forest, slugify
from .expansion import collapse_all, expand_all, is_all_expanded, select_all, toggle
from .cancellation import CancellationToken

__all__ = [
    'FlattenedCategory',
    'build_tree',
    'count_nodes',
    'descendant_ids',
    'find_cycles',
    'flatten_tree',
    'iter_nodes',
    'tree_depth',
    'SORT_KEYS',
    'SORT_ORDERS',
    'sort_forest',
    'filter_by_status',
    'filter_forest',
    'matches_term',
    'prune_forest',
    'slugify',
    'collapse_all',
    'expand_all',
    'is_all_expanded',
    'select_all',
    'toggle',
    'CancellationToken',
]
