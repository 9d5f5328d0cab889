import pytest

from category_tree.exceptions import ConflictError, NotFoundError
from category_tree.models.category import ListParams


class TestInMemoryCategoryStore:
    """Test the mock store's server-side rules"""

    async def test_create_assigns_next_id(self, memory_store):
        record = await memory_store.create({'name': 'Tablets', 'parent_id': 1})

        assert record.id == 5
        assert record.product_count == 0
        assert record.created_at is not None

    async def test_duplicate_names_conflict(self, memory_store):
        with pytest.raises(ConflictError) as excinfo:
            await memory_store.create({'name': 'phones'})

        assert excinfo.value.status_code == 409

    async def test_update_validates_the_stored_record(self, memory_store):
        with pytest.raises(ConflictError) as excinfo:
            await memory_store.update(2, {'status': None})

        assert excinfo.value.status_code == 422
        result = await memory_store.list(ListParams())
        assert [r.status for r in result.items if r.id == 2] == ['active']

    async def test_update_missing_category(self, memory_store):
        with pytest.raises(NotFoundError):
            await memory_store.update(42, {'name': 'Other'})

    async def test_remove_refuses_category_with_products(self, memory_store):
        with pytest.raises(ConflictError):
            await memory_store.remove(1)

        assert len(memory_store.records) == 4
