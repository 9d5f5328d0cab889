# category_tree/services/sync_controller.py
import asyncio
import enum
import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..config import Config
from ..exceptions import CancelledError, CategoryEngineError, NetworkError, ValidationError
from ..models.category import (
    CategoryCreate,
    CategoryId,
    CategoryNode,
    CategoryRecord,
    CategoryUpdate,
    ListParams,
    PendingOperation,
)
from ..utils import expansion
from ..utils.cancellation import CancellationToken
from ..utils.filters import filter_by_status, filter_forest
from ..utils.sorting import SORT_KEYS, SORT_ORDERS, sort_forest
from ..utils.tree_builder import build_tree, descendant_ids, find_cycles, iter_nodes
from .store import CategoryStore


class LoadState(str, enum.Enum):
    IDLE = 'idle'
    LOADING = 'loading'
    READY = 'ready'
    ERROR = 'error'


Listener = Callable[['SyncController'], None]


class SyncController:
    """Keeps one category list view in sync with a store.

    The flat record list is the only mutable state and is always replaced
    with a new list. The forest handed to the UI is derived from it on
    demand: build, then sort, then filter by search term and status.
    """

    def __init__(
        self,
        store: CategoryStore,
        *,
        debounce_ms: Optional[int] = None,
        fetch_timeout: Optional[float] = None,
        page_size: Optional[int] = None,
        sort_key: str = 'name',
        sort_order: str = 'asc',
        remote_search: bool = False,
        refresh_after_mutation: bool = False,
    ):
        self.store = store
        self.logger = logging.getLogger(__name__)
        self.debounce_ms = Config.SEARCH_DEBOUNCE_MS if debounce_ms is None else debounce_ms
        self.fetch_timeout = Config.FETCH_TIMEOUT if fetch_timeout is None else fetch_timeout
        self.remote_search = remote_search
        self.refresh_after_mutation = refresh_after_mutation

        self._check_sort(sort_key, sort_order)
        self._sort_key = sort_key
        self._sort_order = sort_order
        self._search_term = ''
        self._status_filter: Optional[str] = None
        self._page: Optional[int] = None
        self._limit = page_size or Config.PAGE_SIZE
        self._total = 0

        self._records: List[CategoryRecord] = []
        self._forest: Optional[List[CategoryNode]] = None
        self._state = LoadState.IDLE
        self._error: Optional[CategoryEngineError] = None
        self._expanded: FrozenSet[CategoryId] = expansion.collapse_all()
        self._selected: FrozenSet[CategoryId] = frozenset()
        self._pending: Dict[str, PendingOperation] = {}

        self._generation = 0
        self._token: Optional[CancellationToken] = None
        self._debounce_task: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []

    # Consumer surface

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state == LoadState.LOADING

    @property
    def error(self) -> Optional[CategoryEngineError]:
        return self._error

    @property
    def records(self) -> List[CategoryRecord]:
        return self._records

    @property
    def forest(self) -> List[CategoryNode]:
        if self._forest is None:
            forest = sort_forest(build_tree(self._records), self._sort_key, self._sort_order)
            forest = filter_forest(forest, self._search_term)
            self._forest = list(filter_by_status(forest, self._status_filter))
        return self._forest

    @property
    def search_term(self) -> str:
        return self._search_term

    @property
    def sort(self):
        return self._sort_key, self._sort_order

    @property
    def expanded(self) -> FrozenSet[CategoryId]:
        return self._expanded

    @property
    def all_expanded(self) -> bool:
        return expansion.is_all_expanded(self._expanded, self.forest)

    @property
    def selected(self) -> FrozenSet[CategoryId]:
        return self._selected

    @property
    def pending(self) -> List[PendingOperation]:
        return list(self._pending.values())

    @property
    def page(self) -> Optional[int]:
        return self._page

    @property
    def total(self) -> int:
        return self._total

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self._total / self._limit)) if self._limit else 1

    def get(self, category_id: CategoryId) -> Optional[CategoryRecord]:
        for record in self._records:
            if record.id == category_id:
                return record
        return None

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a change callback; returns the unsubscribe function"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Lifecycle

    async def mount(self):
        """Initial load of the view"""
        await self._fetch()

    async def close(self):
        """Unmount: drop pending work and ignore any late response"""
        task = self._debounce_task
        self._cancel_debounce()
        if task is not None and task is not asyncio.current_task():
            await asyncio.gather(task, return_exceptions=True)
        self._generation += 1
        if self._token:
            self._token.cancel()
            self._token = None
        self._listeners = []

    async def refresh(self):
        await self._fetch()

    # Parameters

    def search(self, term: str):
        """Filter locally at once and refetch after the debounce window"""
        term = term or ''
        if term != self._search_term:
            self._search_term = term
            self._changed(rebuild=True)
        self._cancel_debounce()
        task = asyncio.get_running_loop().create_task(self._debounced_fetch())
        task.add_done_callback(self._debounce_done)
        self._debounce_task = task

    async def set_sort(self, key: str, order: str = 'asc'):
        self._check_sort(key, order)
        self._sort_key = key
        self._sort_order = order
        self._changed(rebuild=True)
        await self._fetch()

    def set_status_filter(self, status: Optional[str]):
        self._status_filter = None if status in (None, 'all') else status
        self._changed(rebuild=True)

    async def set_page(self, page: int, limit: Optional[int] = None):
        if limit is not None:
            if limit < 1:
                raise ValidationError("Page size must be positive")
            self._limit = limit
        if page < 1 or (self._page is not None and page > self.total_pages):
            raise ValidationError(f"Page {page} is out of range")
        self._page = page
        await self._fetch()

    # Expansion and selection

    def toggle_expand(self, category_id: CategoryId):
        self._expanded = expansion.toggle(self._expanded, category_id)
        self._changed()

    def expand_all(self):
        self._expanded = expansion.expand_all(expansion.root_ids(self.forest))
        self._changed()

    def collapse_all(self):
        self._expanded = expansion.collapse_all()
        self._changed()

    def toggle_select(self, category_id: CategoryId):
        self._selected = expansion.toggle(self._selected, category_id)
        self._changed()

    def select_all(self):
        visible = [node.id for node in iter_nodes(self.forest)]
        self._selected = expansion.select_all(self._selected, visible)
        self._changed()

    def clear_selection(self):
        self._selected = frozenset()
        self._changed()

    # Mutations

    async def create(self, data: Union[Mapping[str, Any], CategoryCreate],
                     refresh: Optional[bool] = None) -> CategoryRecord:
        payload = self._validate(CategoryCreate, data).model_dump(exclude_none=True)
        payload.pop('id', None)
        operation = self._begin('create')
        placeholder = CategoryRecord(
            id=self._placeholder_id(operation),
            **{'product_count': 0, 'created_at': datetime.now(timezone.utc), **payload},
        )
        self._replace_records(self._records + [placeholder])

        try:
            created = await self.store.create(payload)
        except CategoryEngineError as e:
            self.logger.warning(f"Creating category '{payload['name']}' failed: {e.message}")
            raise
        finally:
            await self._finish(operation, refresh)

        if any(record.id == placeholder.id for record in self._records):
            self._replace_records([created if r.id == placeholder.id else r for r in self._records])
        elif self.get(created.id) is None:
            self._replace_records(self._records + [created])
        return created

    async def update(self, category_id: CategoryId, data: Union[Mapping[str, Any], CategoryUpdate],
                     refresh: Optional[bool] = None) -> CategoryRecord:
        changes = self._validate(CategoryUpdate, data).changes()
        if not changes:
            raise ValidationError("Nothing to update")
        if 'parent_id' in changes:
            self._check_parent(category_id, changes['parent_id'])

        current = self.get(category_id)
        if current is not None:
            optimistic = current.model_copy(update=changes)
            self._replace_records([optimistic if r.id == category_id else r for r in self._records])

        operation = self._begin('update', category_id)
        try:
            updated = await self.store.update(category_id, changes)
        except CategoryEngineError as e:
            self.logger.warning(f"Updating category {category_id} failed: {e.message}")
            raise
        finally:
            await self._finish(operation, refresh)

        if self.get(category_id) is not None:
            self._replace_records([updated if r.id == category_id else r for r in self._records])
        return updated

    async def remove(self, category_id: CategoryId, refresh: Optional[bool] = None):
        self._check_not_pending(category_id)
        record = self.get(category_id)
        if record is not None and record.has_products:
            raise ValidationError(
                f"Cannot delete '{record.name}': it still has {record.product_count} products"
            )
        self._drop_locally([category_id])

        operation = self._begin('delete', category_id)
        try:
            await self.store.remove(category_id)
        except CategoryEngineError as e:
            self.logger.warning(f"Deleting category {category_id} failed: {e.message}")
            raise
        finally:
            await self._finish(operation, refresh)

    async def remove_many(self, category_ids: Iterable[CategoryId], refresh: Optional[bool] = None):
        """All-or-nothing bulk delete on the product check"""
        category_ids = list(dict.fromkeys(category_ids))
        for category_id in category_ids:
            self._check_not_pending(category_id)
        blocked = [record for record in map(self.get, category_ids)
                   if record is not None and record.has_products]
        if blocked:
            raise ValidationError(errors=[
                f"Cannot delete '{record.name}': it still has {record.product_count} products"
                for record in blocked
            ])
        if not category_ids:
            return

        self._drop_locally(category_ids)
        failures: List[CategoryEngineError] = []
        for category_id in category_ids:
            operation = self._begin('delete', category_id)
            try:
                await self.store.remove(category_id)
            except CategoryEngineError as e:
                self.logger.warning(f"Deleting category {category_id} failed: {e.message}")
                failures.append(e)
            finally:
                self._pending.pop(operation.correlation_id, None)

        if self._should_refresh(refresh):
            await self._fetch()
        if failures:
            raise failures[0]

    async def remove_selected(self, refresh: Optional[bool] = None):
        await self.remove_many(sorted(self._selected, key=str), refresh=refresh)

    # Internals

    async def _fetch(self):
        self._cancel_debounce()
        if self._token:
            self._token.cancel()
        self._generation += 1
        generation = self._generation
        token = self._token = CancellationToken()

        self._state = LoadState.LOADING
        self._changed()

        try:
            call = self.store.list(self._list_params(), token)
            if self.fetch_timeout:
                result = await asyncio.wait_for(call, self.fetch_timeout)
            else:
                result = await call
        except CancelledError:
            self.logger.debug(f"Fetch {generation} cancelled")
            return
        except asyncio.TimeoutError:
            self._fail(generation, NetworkError("Loading categories timed out"))
            return
        except CategoryEngineError as e:
            self._fail(generation, e)
            return
        except Exception as e:
            self.logger.error(f"Unexpected error loading categories: {e}", exc_info=True)
            self._fail(generation, NetworkError(str(e) or None))
            raise

        if generation != self._generation or token.cancelled:
            self.logger.debug(f"Discarding stale response for fetch {generation}")
            return

        self._token = None
        cycles = find_cycles(result.items)
        if cycles:
            self.logger.warning(f"Category parent references contain cycles: {cycles}")
        self._total = result.total if result.total is not None else len(result.items)
        self._records = list(result.items)
        self._selected = self._selected & {record.id for record in self._records}
        self._error = None
        self._state = LoadState.READY
        self._changed(rebuild=True)

    def _fail(self, generation: int, error: CategoryEngineError):
        if generation != self._generation:
            self.logger.debug(f"Ignoring failure of superseded fetch {generation}: {error.message}")
            return
        self._token = None
        self.logger.warning(f"Loading categories failed: {error.message}")
        # Keep showing the last good records
        self._error = error
        self._state = LoadState.ERROR
        self._changed()

    async def _debounced_fetch(self):
        await asyncio.sleep(self.debounce_ms / 1000)
        self._debounce_task = None
        await self._fetch()

    def _debounce_done(self, task: asyncio.Task):
        # Nothing awaits this task; _fetch has already recorded the failure
        if not task.cancelled() and task.exception() is not None:
            self.logger.debug(f"Debounced fetch ended with {task.exception()!r}")

    def _cancel_debounce(self):
        if self._debounce_task is not None and self._debounce_task is not asyncio.current_task():
            self._debounce_task.cancel()
        self._debounce_task = None

    def _list_params(self) -> ListParams:
        return ListParams(
            search=(self._search_term.strip() or None) if self.remote_search else None,
            sort=self._sort_key,
            order=self._sort_order,
            page=self._page,
            limit=self._limit if self._page is not None else None,
        )

    def _begin(self, kind: str, target_id: Optional[CategoryId] = None) -> PendingOperation:
        operation = PendingOperation(kind=kind, target_id=target_id)
        self._pending[operation.correlation_id] = operation
        return operation

    async def _finish(self, operation: PendingOperation, refresh: Optional[bool]):
        self._pending.pop(operation.correlation_id, None)
        if self._should_refresh(refresh):
            await self._fetch()

    def _should_refresh(self, refresh: Optional[bool]) -> bool:
        return self.refresh_after_mutation if refresh is None else refresh

    @staticmethod
    def _placeholder_id(operation: PendingOperation) -> str:
        return f"pending-{operation.correlation_id}"

    def _check_not_pending(self, category_id: CategoryId):
        for operation in self._pending.values():
            if operation.kind == 'create' and self._placeholder_id(operation) == category_id:
                raise ValidationError("Cannot delete a category that is still being created")

    def _drop_locally(self, category_ids: Sequence[CategoryId]):
        removed = set(category_ids)
        self._selected = expansion.discard(self._selected, removed)
        self._replace_records([r for r in self._records if r.id not in removed])

    def _replace_records(self, records: List[CategoryRecord]):
        self._records = records
        self._changed(rebuild=True)

    def _check_parent(self, category_id: CategoryId, parent_id: Optional[CategoryId]):
        if parent_id is None:
            return
        if parent_id == category_id:
            raise ValidationError("A category cannot be its own parent")
        if parent_id in descendant_ids(self._records, category_id):
            raise ValidationError("A category cannot be moved under one of its subcategories")

    @staticmethod
    def _check_sort(key: str, order: str):
        if key not in SORT_KEYS:
            raise ValidationError(f"Unsupported sort key: {key}")
        if order not in SORT_ORDERS:
            raise ValidationError(f"Unsupported sort order: {order}")

    @staticmethod
    def _validate(model, data):
        if isinstance(data, BaseModel):
            data = data.model_dump(exclude_unset=True)
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(errors=[error['msg'] for error in e.errors()]) from e

    def _changed(self, rebuild: bool = False):
        if rebuild:
            self._forest = None
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                self.logger.exception("Category listener failed")
