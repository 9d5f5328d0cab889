from category_tree.utils.filters import (
    filter_by_status,
    filter_forest,
    matches_term,
    slugify,
)
from category_tree.utils.tree_builder import build_tree, iter_nodes
from tests.conftest import make_record


def names(forest):
    return [node.name for node in forest]


def assert_ancestors_preserved(forest, predicate):
    for node in iter_nodes(forest):
        if not node.children:
            assert predicate(node.record)
        else:
            subtree = list(iter_nodes([node]))
            assert any(predicate(n.record) for n in subtree)


class TestFilterForest:
    """Test search pruning with ancestor preservation"""

    def test_example_scenario(self, example_records):
        forest = filter_forest(build_tree(example_records), 'phone')

        assert names(forest) == ['Electronics']
        assert names(forest[0].children) == ['Phones']

    def test_blank_term_returns_input(self, example_records):
        forest = build_tree(example_records)

        assert filter_forest(forest, '') is forest
        assert filter_forest(forest, '   ') is forest
        assert filter_forest(forest, None) is forest

    def test_matching_parent_drops_unmatched_children(self, catalog_records):
        forest = filter_forest(build_tree(catalog_records), 'household')

        assert names(forest) == ['Home']
        assert forest[0].children == ()

    def test_deep_match_keeps_whole_chain(self, catalog_records):
        forest = filter_forest(build_tree(catalog_records), 'cookware')

        assert names(forest) == ['Home']
        assert names(forest[0].children) == ['kitchen']
        assert names(forest[0].children[0].children) == ['Cookware']

    def test_matches_description_and_slug(self, catalog_records):
        by_description = filter_forest(build_tree(catalog_records), 'FITNESS')
        by_slug = filter_forest(build_tree(catalog_records), 'pots-and')
        by_derived_slug = filter_forest(build_tree(catalog_records), 'kitch')

        assert names(by_description) == ['Sports']
        assert names(by_slug) == ['Home']
        assert names(by_derived_slug) == ['Home']

    def test_no_match_is_empty(self, catalog_records):
        assert filter_forest(build_tree(catalog_records), 'zzz') == []

    def test_every_leaf_matches(self, catalog_records):
        for term in ('o', 'en', 'k', 'goods'):
            forest = filter_forest(build_tree(catalog_records), term)
            assert_ancestors_preserved(forest, lambda record: matches_term(record, term))

    def test_levels_are_kept(self, catalog_records):
        forest = filter_forest(build_tree(catalog_records), 'cookware')

        assert forest[0].children[0].children[0].level == 2

    def test_partially_pruned_grandchildren(self):
        records = [
            make_record(1, 'Root'),
            make_record(2, 'Branch', 1),
            make_record(3, 'Leaf match', 2),
            make_record(4, 'Leaf other', 2),
        ]

        forest = filter_forest(build_tree(records), 'match')

        assert names(forest[0].children[0].children) == ['Leaf match']


class TestStatusFilter:
    """Test status pruning"""

    def test_inactive_keeps_parent(self, catalog_records):
        forest = filter_by_status(build_tree(catalog_records), 'inactive')

        assert names(forest) == ['Home']
        assert names(forest[0].children) == ['Garden']

    def test_all_is_identity(self, catalog_records):
        forest = build_tree(catalog_records)

        assert filter_by_status(forest, 'all') is forest
        assert filter_by_status(forest, None) is forest


class TestSlugify:
    """Test slug derivation"""

    def test_slugify(self):
        assert slugify('Cables & Adapters') == 'cables-adapters'
        assert slugify('  Électronique ') == 'electronique'
        assert slugify('Home/Garden 2024') == 'home-garden-2024'
