# category_tree/utils/tree_builder.py
"""Helpers for working with category hierarchies."""

from collections import defaultdict
from typing import (
    AbstractSet, Dict, Iterable, Iterator, List, NamedTuple, Optional, Sequence, Set
)

from ..models.category import CategoryId, CategoryNode, CategoryRecord


class FlattenedCategory(NamedTuple):
    """A flattened tree row with hierarchy metadata."""

    node: CategoryNode
    has_children: bool


def build_tree(records: Iterable[CategoryRecord]) -> List[CategoryNode]:
    """Build a forest from flat records.

    Records whose parent is missing from the input become roots, so every
    record ends up in the output exactly once. Sibling order follows input
    order; sorting is left to :func:`category_tree.utils.sorting.sort_forest`.
    """

    records = list(records)
    present = {record.id for record in records}
    children_of: Dict[CategoryId, List[CategoryRecord]] = defaultdict(list)
    roots: List[CategoryRecord] = []

    for record in records:
        parent_id = record.parent_id
        if parent_id is not None and parent_id != record.id and parent_id in present:
            children_of[parent_id].append(record)
        else:
            roots.append(record)

    return [_build_node(record, children_of, 0) for record in roots]


def _build_node(
    record: CategoryRecord,
    children_of: Dict[CategoryId, List[CategoryRecord]],
    level: int,
) -> CategoryNode:
    children = tuple(
        _build_node(child, children_of, level + 1)
        for child in children_of.get(record.id, ())
    )
    return CategoryNode(record=record, children=children, level=level)


def flatten_tree(
    nodes: Iterable[CategoryNode],
    expanded: Optional[AbstractSet[CategoryId]] = None,
) -> Iterator[FlattenedCategory]:
    """Yield rows in display order.

    With ``expanded`` given, only the children of expanded nodes are visited.
    """

    for node in nodes:
        yield FlattenedCategory(node=node, has_children=bool(node.children))
        if expanded is None or node.id in expanded:
            yield from flatten_tree(node.children, expanded)


def iter_nodes(nodes: Iterable[CategoryNode]) -> Iterator[CategoryNode]:
    """Depth-first walk over every node of a forest."""

    for node in nodes:
        yield node
        yield from iter_nodes(node.children)


def count_nodes(nodes: Iterable[CategoryNode]) -> int:
    return sum(1 for _ in iter_nodes(nodes))


def tree_depth(nodes: Iterable[CategoryNode]) -> int:
    """Deepest level present in the forest, -1 when empty."""

    return max((node.level for node in iter_nodes(nodes)), default=-1)


def descendant_ids(records: Sequence[CategoryRecord], category_id: CategoryId) -> Set[CategoryId]:
    """Ids of every record below ``category_id`` in the parent chain."""

    children_of: Dict[CategoryId, List[CategoryId]] = defaultdict(list)
    for record in records:
        if record.parent_id is not None:
            children_of[record.parent_id].append(record.id)

    found: Set[CategoryId] = set()
    stack = list(children_of.get(category_id, ()))
    while stack:
        current = stack.pop()
        if current in found or current == category_id:
            continue
        found.add(current)
        stack.extend(children_of.get(current, ()))
    return found


def find_cycles(records: Sequence[CategoryRecord]) -> List[List[CategoryId]]:
    """Return each parent-reference cycle found in the records."""

    parent_of = {record.id: record.parent_id for record in records}
    state: Dict[CategoryId, int] = {}  # 1 = on current path, 2 = done
    cycles: List[List[CategoryId]] = []

    for start in parent_of:
        path: List[CategoryId] = []
        current = start
        while current in parent_of and current not in state:
            state[current] = 1
            path.append(current)
            current = parent_of[current]
        if current in parent_of and state.get(current) == 1:
            cycles.append(path[path.index(current):])
        for visited in path:
            state[visited] = 2

    return cycles
