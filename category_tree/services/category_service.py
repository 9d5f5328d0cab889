# category_tree/services/category_service.py
import asyncio
import logging
from typing import Any, Dict, List, Optional

import asyncpg

from ..exceptions import CancelledError, ConflictError, NetworkError, NotFoundError
from ..models.category import CategoryId, CategoryRecord, ListParams, ListResult
from ..utils.cancellation import CancellationToken
from .store import CategoryStore

_SELECT = """
    SELECT c.category_id AS id, c.name, c.parent_id, c.description, c.slug,
           c.color, c.icon, c.status, c.created_at, c.updated_at,
           COUNT(p.product_id) AS product_count,
           COALESCE(SUM(p.price * p.stock), 0) AS revenue
    FROM categories c
    LEFT JOIN products p ON p.category_id = c.category_id
"""

_GROUP_BY = " GROUP BY c.category_id"

_SORT_COLUMNS = {
    'name': 'c.name',
    'productCount': 'product_count',
    'revenue': 'revenue',
    'createdAt': 'c.created_at',
}

_WRITABLE_COLUMNS = ('name', 'parent_id', 'description', 'slug', 'color', 'icon', 'status')


def _row_id(category_id: CategoryId) -> int:
    """Database ids are integers; anything else cannot exist"""
    try:
        return int(category_id)
    except (TypeError, ValueError):
        raise NotFoundError() from None


class CategoryService(CategoryStore):
    """Category store backed by PostgreSQL"""

    def __init__(self, db):
        self.db = db
        self.logger = logging.getLogger(__name__)

    async def list(self, params: ListParams, token: Optional[CancellationToken] = None) -> ListResult:
        """List categories with product aggregates"""
        if token:
            token.raise_if_cancelled()

        where = ""
        args: List[Any] = []
        if params.search and params.search.strip():
            args.append(f"%{params.search.strip()}%")
            where = " WHERE c.name ILIKE $1 OR c.description ILIKE $1 OR c.slug ILIKE $1"

        direction = "DESC" if params.order == 'desc' else "ASC"
        order_by = f" ORDER BY {_SORT_COLUMNS.get(params.sort or 'name', 'c.name')} {direction}, c.category_id"

        limit = ""
        if params.page and params.limit:
            args.extend([params.limit, (params.page - 1) * params.limit])
            limit = f" LIMIT ${len(args) - 1} OFFSET ${len(args)}"

        async with self._errors():
            async with self.db.pool.acquire() as conn:
                rows = await conn.fetch(_SELECT + where + _GROUP_BY + order_by + limit, *args)
                total = await conn.fetchval(
                    "SELECT COUNT(*) FROM categories c" + where, *(args[:1] if where else ())
                )

        if token:
            token.raise_if_cancelled()
        return ListResult(items=[self._to_record(row) for row in rows], total=total or 0)

    async def get_category(self, category_id: CategoryId) -> Optional[CategoryRecord]:
        """Fetch a single category"""
        async with self._errors():
            async with self.db.pool.acquire() as conn:
                row = await conn.fetchrow(
                    _SELECT + " WHERE c.category_id = $1" + _GROUP_BY, _row_id(category_id)
                )
        return self._to_record(row) if row else None

    async def create(self, data: Dict[str, Any]) -> CategoryRecord:
        """Insert a new category"""
        columns = [column for column in _WRITABLE_COLUMNS if column in data]
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        async with self._errors():
            async with self.db.pool.acquire() as conn:
                category_id = await conn.fetchval(f"""
                    INSERT INTO categories ({', '.join(columns)})
                    VALUES ({placeholders})
                    RETURNING category_id
                """, *[data[column] for column in columns])
        self.logger.info(f"Category {category_id} created")
        return await self.get_category(category_id)

    async def update(self, category_id: CategoryId, data: Dict[str, Any]) -> CategoryRecord:
        """Update the writable columns present in ``data``"""
        query_parts = []
        params = []
        param_count = 1

        for key in _WRITABLE_COLUMNS:
            if key in data:
                query_parts.append(f"{key} = ${param_count}")
                params.append(data[key])
                param_count += 1

        if query_parts:
            params.append(_row_id(category_id))
            query = f"""
                UPDATE categories
                SET {', '.join(query_parts)}, updated_at = CURRENT_TIMESTAMP
                WHERE category_id = ${param_count}
            """
            async with self._errors():
                async with self.db.pool.acquire() as conn:
                    result = await conn.execute(query, *params)
            if result != "UPDATE 1":
                raise NotFoundError()

        record = await self.get_category(category_id)
        if record is None:
            raise NotFoundError()
        return record

    async def remove(self, category_id: CategoryId) -> None:
        """Delete a category that has no products"""
        async with self._errors():
            async with self.db.pool.acquire() as conn:
                async with conn.transaction():
                    count = await conn.fetchval("""
                        SELECT COUNT(*)
                        FROM products
                        WHERE category_id = $1
                    """, _row_id(category_id))
                    if count:
                        raise ConflictError(
                            "Cannot delete category with associated products", status_code=409
                        )

                    result = await conn.execute("""
                        DELETE FROM categories
                        WHERE category_id = $1
                    """, _row_id(category_id))

        if result != "DELETE 1":
            raise NotFoundError()
        self.logger.info(f"Category {category_id} deleted")

    @staticmethod
    def _to_record(row) -> CategoryRecord:
        values = dict(row)
        if values.get('revenue') is not None:
            values['revenue'] = float(values['revenue'])
        return CategoryRecord.model_validate(values)

    def _errors(self):
        return _TranslateErrors(self.logger)


class _TranslateErrors:
    """Map asyncpg failures onto the store error taxonomy"""

    def __init__(self, logger):
        self.logger = logger

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc is None or isinstance(exc, (ConflictError, CancelledError, NetworkError)):
            return False
        if isinstance(exc, asyncpg.exceptions.UniqueViolationError):
            raise ConflictError("Category name already exists", status_code=409) from exc
        if isinstance(exc, asyncpg.exceptions.ForeignKeyViolationError):
            raise ConflictError("Parent category not found", status_code=409) from exc
        if isinstance(exc, asyncpg.exceptions.NotNullViolationError):
            raise ConflictError(str(exc), status_code=422) from exc
        if isinstance(exc, asyncpg.exceptions.CheckViolationError):
            raise ConflictError(str(exc), status_code=422) from exc
        if isinstance(exc, (OSError, asyncio.TimeoutError,
                            asyncpg.exceptions.PostgresConnectionError,
                            asyncpg.exceptions.InterfaceError)):
            self.logger.error(f"Database unavailable: {exc}")
            raise NetworkError("Database unavailable") from exc
        return False
