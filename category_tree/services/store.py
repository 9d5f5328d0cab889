# category_tree/services/store.py
import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ConflictError, NotFoundError
from ..models.category import CategoryId, CategoryRecord, ListParams, ListResult
from ..utils.cancellation import CancellationToken
from ..utils.filters import matches_term
from ..utils.sorting import record_sort_key


class CategoryStore(ABC):
    """Remote home of category records.

    Implementations raise only errors from ``category_tree.exceptions``:
    ``NetworkError`` for transport trouble, ``ConflictError`` for rejections
    and ``CancelledError`` when a listing's token is cancelled.
    """

    @abstractmethod
    async def list(self, params: ListParams, token: Optional[CancellationToken] = None) -> ListResult:
        """List category records"""

    @abstractmethod
    async def create(self, data: Dict[str, Any]) -> CategoryRecord:
        """Create a category and return the stored record"""

    @abstractmethod
    async def update(self, category_id: CategoryId, data: Dict[str, Any]) -> CategoryRecord:
        """Apply partial changes and return the stored record"""

    @abstractmethod
    async def remove(self, category_id: CategoryId) -> None:
        """Delete a category"""

    async def close(self):
        """Release underlying resources"""


class InMemoryCategoryStore(CategoryStore):
    """Local mock store used for demos and tests"""

    def __init__(self, records: Iterable[Any] = (), latency: float = 0.0):
        self.logger = logging.getLogger(__name__)
        self.latency = latency
        self._records: Dict[CategoryId, CategoryRecord] = {}
        for record in records:
            record = CategoryRecord.model_validate(record)
            self._records[record.id] = record
        numeric_ids = [i for i in self._records if isinstance(i, int)]
        self._ids = itertools.count(max(numeric_ids, default=0) + 1)

    @property
    def records(self) -> List[CategoryRecord]:
        return list(self._records.values())

    async def _wait(self, token: Optional[CancellationToken] = None):
        if token:
            token.raise_if_cancelled()
        if self.latency:
            await asyncio.sleep(self.latency)
        if token:
            token.raise_if_cancelled()

    async def list(self, params: ListParams, token: Optional[CancellationToken] = None) -> ListResult:
        await self._wait(token)
        items = self.records
        if params.search and params.search.strip():
            items = [record for record in items if matches_term(record, params.search)]
        if params.sort:
            key_func = record_sort_key(params.sort)
            items = sorted(items, key=key_func, reverse=params.order == 'desc')
        total = len(items)
        if params.page and params.limit:
            start = (params.page - 1) * params.limit
            items = items[start:start + params.limit]
        return ListResult(items=items, total=total)

    def _check_unique_name(self, name: str, exclude: Optional[CategoryId] = None):
        for record in self._records.values():
            if record.id != exclude and record.name.casefold() == name.casefold():
                raise ConflictError("Category name already exists", status_code=409)

    async def create(self, data: Dict[str, Any]) -> CategoryRecord:
        await self._wait()
        self._check_unique_name(data['name'])
        values = {'product_count': 0, **data}
        values.setdefault('created_at', datetime.now(timezone.utc))
        values.pop('id', None)
        record = CategoryRecord(id=next(self._ids), **values)
        self._records[record.id] = record
        self.logger.info(f"Category {record.id} created")
        return record

    async def update(self, category_id: CategoryId, data: Dict[str, Any]) -> CategoryRecord:
        await self._wait()
        current = self._records.get(category_id)
        if current is None:
            raise NotFoundError()
        if data.get('name'):
            self._check_unique_name(data['name'], exclude=category_id)
        try:
            record = CategoryRecord.model_validate(
                {**current.model_dump(), **data, 'updated_at': datetime.now(timezone.utc)}
            )
        except PydanticValidationError as e:
            raise ConflictError(e.errors()[0]['msg'], status_code=422) from e
        self._records[category_id] = record
        return record

    async def remove(self, category_id: CategoryId) -> None:
        await self._wait()
        record = self._records.get(category_id)
        if record is None:
            raise NotFoundError()
        if record.has_products:
            raise ConflictError("Cannot delete category with associated products", status_code=409)
        del self._records[category_id]
        self.logger.info(f"Category {category_id} deleted")
