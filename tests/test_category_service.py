from datetime import datetime
from decimal import Decimal

import asyncpg
import pytest

from category_tree.exceptions import ConflictError, NetworkError, NotFoundError
from category_tree.models.category import ListParams
from category_tree.services.category_service import CategoryService


class FakeTransaction:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class FakeConnection:
    """Records queries and replays canned results"""

    def __init__(self, rows=(), fetchval_results=(), execute_result="UPDATE 1", error=None):
        self.rows = list(rows)
        self.fetchval_results = list(fetchval_results)
        self.execute_result = execute_result
        self.error = error
        self.queries = []

    def _record(self, query, args):
        self.queries.append((" ".join(query.split()), args))
        if self.error is not None:
            raise self.error

    async def fetch(self, query, *args):
        self._record(query, args)
        return self.rows

    async def fetchrow(self, query, *args):
        self._record(query, args)
        return self.rows[0] if self.rows else None

    async def fetchval(self, query, *args):
        self._record(query, args)
        return self.fetchval_results.pop(0)

    async def execute(self, query, *args):
        self._record(query, args)
        return self.execute_result

    def transaction(self):
        return FakeTransaction()


class FakeAcquire:
    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        return self.conn

    async def __aexit__(self, *exc_info):
        return False


class FakePool:
    def __init__(self, conn):
        self.conn = conn

    def acquire(self):
        return FakeAcquire(self.conn)


class FakeDatabase:
    def __init__(self, conn):
        self.pool = FakePool(conn)


ROW = {
    'id': 1, 'name': 'Electronics', 'parent_id': None, 'description': None,
    'slug': 'electronics', 'color': '#FF6B6B', 'icon': None, 'status': 'active',
    'created_at': datetime(2024, 1, 15, 10, 30), 'updated_at': None,
    'product_count': 5, 'revenue': Decimal('1250.50'),
}


class TestCategoryService:
    """Test the PostgreSQL adapter with a fake pool"""

    async def test_list_maps_rows(self):
        conn = FakeConnection(rows=[ROW], fetchval_results=[1])
        service = CategoryService(FakeDatabase(conn))

        result = await service.list(ListParams(search='elec', sort='revenue', order='desc', page=2, limit=10))

        record = result.items[0]
        assert record.id == 1
        assert record.product_count == 5
        assert record.revenue == 1250.5
        assert result.total == 1

        query, args = conn.queries[0]
        assert 'ILIKE $1' in query
        assert 'ORDER BY revenue DESC' in query
        assert 'LIMIT $2 OFFSET $3' in query
        assert args == ('%elec%', 10, 10)
        assert conn.queries[1][1] == ('%elec%',)

    async def test_list_defaults_to_name_order(self):
        conn = FakeConnection(rows=[], fetchval_results=[0])
        service = CategoryService(FakeDatabase(conn))

        result = await service.list(ListParams())

        assert result.items == []
        assert 'ORDER BY c.name ASC' in conn.queries[0][0]
        assert conn.queries[0][1] == ()

    async def test_create_inserts_writable_columns(self):
        conn = FakeConnection(rows=[ROW], fetchval_results=[1])
        service = CategoryService(FakeDatabase(conn))

        record = await service.create({'name': 'Electronics', 'status': 'active', 'product_count': 0})

        insert, args = conn.queries[0]
        assert insert.startswith('INSERT INTO categories (name, status)')
        assert args == ('Electronics', 'active')
        assert record.name == 'Electronics'

    async def test_update_missing_category(self):
        conn = FakeConnection(execute_result="UPDATE 0")
        service = CategoryService(FakeDatabase(conn))

        with pytest.raises(NotFoundError):
            await service.update(7, {'name': 'Other'})

    async def test_remove_refuses_category_with_products(self):
        conn = FakeConnection(fetchval_results=[3])
        service = CategoryService(FakeDatabase(conn))

        with pytest.raises(ConflictError):
            await service.remove(1)

        assert len(conn.queries) == 1

    async def test_remove(self):
        conn = FakeConnection(fetchval_results=[0], execute_result="DELETE 1")
        service = CategoryService(FakeDatabase(conn))

        await service.remove('1')

        assert conn.queries[-1][1] == (1,)

    async def test_unique_violation_is_conflict(self):
        conn = FakeConnection(error=asyncpg.exceptions.UniqueViolationError('duplicate key'))
        service = CategoryService(FakeDatabase(conn))

        with pytest.raises(ConflictError) as excinfo:
            await service.create({'name': 'Electronics'})

        assert excinfo.value.message == "Category name already exists"

    async def test_not_null_violation_is_conflict(self):
        conn = FakeConnection(error=asyncpg.exceptions.NotNullViolationError('null value in column "status"'))
        service = CategoryService(FakeDatabase(conn))

        with pytest.raises(ConflictError) as excinfo:
            await service.update(1, {'status': None})

        assert excinfo.value.status_code == 422

    async def test_non_numeric_id_is_not_found(self):
        conn = FakeConnection()
        service = CategoryService(FakeDatabase(conn))

        with pytest.raises(NotFoundError):
            await service.remove('pending-1f2e')

        assert conn.queries == []

    async def test_connection_errors_are_network_errors(self):
        conn = FakeConnection(error=ConnectionRefusedError('refused'))
        service = CategoryService(FakeDatabase(conn))

        with pytest.raises(NetworkError):
            await service.list(ListParams())
