import asyncio
from datetime import datetime
from typing import List, Optional

import pytest

from category_tree.models.category import CategoryRecord, ListParams, ListResult
from category_tree.services.store import InMemoryCategoryStore
from category_tree.utils.cancellation import CancellationToken


def make_record(id, name, parent_id=None, **extra) -> CategoryRecord:
    return CategoryRecord(id=id, name=name, parent_id=parent_id, **extra)


@pytest.fixture
def example_records() -> List[CategoryRecord]:
    """Electronics/Phones/Accessories plus an orphaned Cables"""
    return [
        make_record(1, 'Electronics', product_count=5),
        make_record(2, 'Phones', 1),
        make_record(3, 'Accessories', 1),
        make_record(4, 'Cables', 99),
    ]


@pytest.fixture
def catalog_records() -> List[CategoryRecord]:
    return [
        make_record(1, 'Home', description='Household goods', product_count=12,
                    revenue=1500.0, created_at=datetime(2024, 1, 15, 10, 30)),
        make_record(2, 'kitchen', 1, product_count=3, revenue=300.0,
                    created_at=datetime(2024, 2, 1, 9, 0)),
        make_record(3, 'Garden', 1, status='inactive', product_count=3,
                    created_at=datetime(2024, 1, 20, 8, 0)),
        make_record(4, 'Sports', description='Fitness equipment',
                    created_at=datetime(2024, 2, 10, 16, 45)),
        make_record(5, 'Cookware', 2, slug='pots-and-pans', product_count=0),
        make_record(6, 'Books', status='archived', product_count=7, revenue=90.5),
    ]


@pytest.fixture
def memory_store(example_records) -> InMemoryCategoryStore:
    return InMemoryCategoryStore(example_records)


class ScriptedStore(InMemoryCategoryStore):
    """In-memory store whose listings wait for the test to release them"""

    def __init__(self, records=()):
        super().__init__(records)
        self.list_calls: List[ListParams] = []
        self.tokens: List[Optional[CancellationToken]] = []
        self.gates: List[asyncio.Future] = []
        self.hold = False
        self.fail_with: Optional[Exception] = None
        self.remove_calls = []

    async def list(self, params, token=None):
        self.list_calls.append(params)
        self.tokens.append(token)
        if self.hold:
            gate = asyncio.get_running_loop().create_future()
            self.gates.append(gate)
            outcome = await gate
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        if self.fail_with is not None:
            raise self.fail_with
        return await super().list(params, token)

    async def remove(self, category_id):
        self.remove_calls.append(category_id)
        return await super().remove(category_id)


@pytest.fixture
def scripted_store(example_records) -> ScriptedStore:
    return ScriptedStore(example_records)


def listing(*records) -> ListResult:
    return ListResult(items=list(records), total=len(records))
