from category_tree.utils.tree_builder import (
    build_tree,
    count_nodes,
    descendant_ids,
    find_cycles,
    flatten_tree,
    iter_nodes,
    tree_depth,
)
from tests.conftest import make_record


class TestBuildTree:
    """Test building a forest from flat records"""

    def test_example_scenario(self, example_records):
        forest = build_tree(example_records)

        assert [node.name for node in forest] == ['Electronics', 'Cables']
        assert [child.name for child in forest[0].children] == ['Phones', 'Accessories']
        assert forest[1].children == ()

    def test_every_record_appears_once(self, catalog_records):
        forest = build_tree(catalog_records)

        ids = [node.id for node in iter_nodes(forest)]
        assert count_nodes(forest) == len(catalog_records)
        assert sorted(ids) == sorted(record.id for record in catalog_records)

    def test_orphan_becomes_root(self, example_records):
        forest = build_tree(example_records)

        cables = forest[1]
        assert cables.id == 4
        assert cables.level == 0
        assert cables.record.parent_id == 99

    def test_levels_increase_by_one(self, catalog_records):
        forest = build_tree(catalog_records)

        for root in forest:
            assert root.level == 0
        for node in iter_nodes(forest):
            for child in node.children:
                assert child.level == node.level + 1
        assert tree_depth(forest) == 2

    def test_sibling_order_follows_input(self):
        records = [
            make_record('b', 'Beta', 'root'),
            make_record('root', 'Root'),
            make_record('a', 'Alpha', 'root'),
        ]

        forest = build_tree(records)

        assert [child.id for child in forest[0].children] == ['b', 'a']

    def test_empty_input(self):
        assert build_tree([]) == []
        assert tree_depth([]) == -1

    def test_self_parent_is_root(self):
        forest = build_tree([make_record(1, 'Loop', 1)])

        assert [node.id for node in forest] == [1]

    def test_string_and_integer_ids_are_distinct(self):
        records = [make_record(1, 'Numeric'), make_record(2, 'Child', '1')]

        forest = build_tree(records)

        assert [node.id for node in forest] == [1, 2]


class TestTreeHelpers:
    """Test flattening and hierarchy queries"""

    def test_flatten_visits_everything_without_expansion(self, example_records):
        rows = list(flatten_tree(build_tree(example_records)))

        assert [row.node.name for row in rows] == ['Electronics', 'Phones', 'Accessories', 'Cables']
        assert rows[0].has_children is True
        assert rows[1].has_children is False

    def test_flatten_respects_expansion(self, example_records):
        forest = build_tree(example_records)

        collapsed = list(flatten_tree(forest, frozenset()))
        expanded = list(flatten_tree(forest, frozenset({1})))

        assert [row.node.name for row in collapsed] == ['Electronics', 'Cables']
        assert len(expanded) == 4

    def test_descendant_ids(self, catalog_records):
        assert descendant_ids(catalog_records, 1) == {2, 3, 5}
        assert descendant_ids(catalog_records, 2) == {5}
        assert descendant_ids(catalog_records, 4) == set()

    def test_find_cycles(self):
        records = [
            make_record(1, 'One', 2),
            make_record(2, 'Two', 1),
            make_record(3, 'Three'),
            make_record(4, 'Four', 3),
        ]

        cycles = find_cycles(records)

        assert len(cycles) == 1
        assert sorted(cycles[0]) == [1, 2]
        assert find_cycles(records[2:]) == []
