# category_tree/utils/filters.py
"""Search and status pruning that keeps ancestors of every match."""

import re
import unicodedata
from typing import Callable, List, Optional, Sequence

from ..models.category import CategoryNode, CategoryRecord

_NON_ALNUM = re.compile(r'[^a-z0-9]+')


def slugify(value: str) -> str:
    """'Cables & Adapters' -> 'cables-adapters'"""
    ascii_value = unicodedata.normalize('NFKD', value).encode('ascii', 'ignore').decode('ascii')
    return _NON_ALNUM.sub('-', ascii_value.lower()).strip('-')


def record_slug(record: CategoryRecord) -> str:
    return record.slug or slugify(record.name)


def matches_term(record: CategoryRecord, term: str) -> bool:
    """Case-insensitive substring match on name, description and slug"""
    needle = term.strip().casefold()
    haystacks = (record.name, record.description, record_slug(record))
    return any(needle in value.casefold() for value in haystacks if value)


def prune_forest(
    forest: Sequence[CategoryNode],
    predicate: Callable[[CategoryRecord], bool],
) -> List[CategoryNode]:
    """Keep nodes that satisfy ``predicate`` or have a descendant that does.

    Children are always pruned too, so every kept leaf satisfies the
    predicate and every kept inner node has a satisfying descendant or
    satisfies it itself.
    """

    result: List[CategoryNode] = []
    for node in forest:
        children = prune_forest(node.children, predicate)
        if children or predicate(node.record):
            unchanged = len(children) == len(node.children) and all(
                kept is original for kept, original in zip(children, node.children)
            )
            if not unchanged:
                node = node.model_copy(update={'children': tuple(children)})
            result.append(node)
    return result


def filter_forest(forest: Sequence[CategoryNode], term: Optional[str]) -> Sequence[CategoryNode]:
    if not term or not term.strip():
        return forest
    return prune_forest(forest, lambda record: matches_term(record, term))


def filter_by_status(forest: Sequence[CategoryNode], status: Optional[str]) -> Sequence[CategoryNode]:
    if not status or status == 'all':
        return forest
    return prune_forest(forest, lambda record: record.status == status)
