# category_tree/utils/expansion.py
"""Expansion and selection state keyed by category id.

Every operation returns a new ``frozenset`` and leaves its input untouched,
so callers can detect changes with a plain equality check.
"""

from typing import AbstractSet, FrozenSet, Iterable, List

from ..models.category import CategoryId, CategoryNode

IdSet = FrozenSet[CategoryId]


def toggle(ids: AbstractSet[CategoryId], category_id: CategoryId) -> IdSet:
    if category_id in ids:
        return frozenset(i for i in ids if i != category_id)
    return frozenset(ids) | {category_id}


def expand_all(ids: Iterable[CategoryId]) -> IdSet:
    return frozenset(ids)


def collapse_all() -> IdSet:
    return frozenset()


def root_ids(forest: Iterable[CategoryNode]) -> List[CategoryId]:
    return [node.id for node in forest]


def is_all_expanded(expanded: AbstractSet[CategoryId], forest: Iterable[CategoryNode]) -> bool:
    """True when every root of the forest is expanded"""
    roots = root_ids(forest)
    return bool(roots) and all(category_id in expanded for category_id in roots)


def select_all(selected: AbstractSet[CategoryId], visible: Iterable[CategoryId]) -> IdSet:
    """Select every visible id, or clear when they are all selected already"""
    visible = frozenset(visible)
    if visible and visible <= selected:
        return frozenset()
    return visible


def discard(ids: AbstractSet[CategoryId], removed: Iterable[CategoryId]) -> IdSet:
    return frozenset(ids) - frozenset(removed)
