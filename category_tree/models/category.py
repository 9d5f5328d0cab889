# category_tree/models/category.py
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator
from .base import TimeStampedModel

CategoryId = Union[int, str]
CategoryStatus = Literal['active', 'inactive', 'archived']
SortKey = Literal['name', 'productCount', 'revenue', 'createdAt']
SortOrder = Literal['asc', 'desc']

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 255

SLUG_RE = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')
COLOR_RE = re.compile(r'^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$')


class CategoryRecord(TimeStampedModel):
    """Flat category record as received from the store"""
    id: CategoryId
    name: str
    parent_id: Optional[CategoryId] = None
    description: Optional[str] = None
    slug: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    status: CategoryStatus = 'active'
    product_count: Optional[int] = None
    revenue: Optional[float] = None

    # Records are replaced, never edited; unknown attributes ride along
    model_config = ConfigDict(frozen=True, extra='allow')

    @property
    def has_products(self) -> bool:
        return (self.product_count or 0) > 0

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for the REST backend"""
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)


class CategoryNode(BaseModel):
    """Tree node derived from a record; rebuilt, never mutated"""
    record: CategoryRecord
    children: Tuple['CategoryNode', ...] = ()
    level: int = 0

    model_config = ConfigDict(frozen=True)

    @property
    def id(self) -> CategoryId:
        return self.record.id

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def is_leaf(self) -> bool:
        return not self.children


def _check_name(value: str) -> str:
    value = value.strip()
    if len(value) < NAME_MIN_LENGTH:
        raise ValueError(f"Name must be at least {NAME_MIN_LENGTH} characters")
    if len(value) > NAME_MAX_LENGTH:
        raise ValueError(f"Name cannot exceed {NAME_MAX_LENGTH} characters")
    return value


def _check_slug(value: Optional[str]) -> Optional[str]:
    if value and not SLUG_RE.match(value):
        raise ValueError("Slug may only contain lowercase letters, digits and hyphens")
    return value or None


def _check_color(value: Optional[str]) -> Optional[str]:
    if value and not COLOR_RE.match(value):
        raise ValueError("Color must be a valid HEX code (e.g. #FF0000)")
    return value or None


class CategoryCreate(TimeStampedModel):
    """Payload accepted when creating a category"""
    name: str
    parent_id: Optional[CategoryId] = None
    description: Optional[str] = None
    slug: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    status: CategoryStatus = 'active'
    product_count: Optional[int] = Field(default=None, ge=0)
    revenue: Optional[float] = None

    model_config = ConfigDict(extra='allow')

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _check_name(value)

    @field_validator('slug')
    @classmethod
    def validate_slug(cls, value: Optional[str]) -> Optional[str]:
        return _check_slug(value)

    @field_validator('color')
    @classmethod
    def validate_color(cls, value: Optional[str]) -> Optional[str]:
        return _check_color(value)


class CategoryUpdate(TimeStampedModel):
    """Partial payload accepted when updating a category"""
    name: Optional[str] = None
    parent_id: Optional[CategoryId] = None
    description: Optional[str] = None
    slug: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    status: Optional[CategoryStatus] = None
    product_count: Optional[int] = Field(default=None, ge=0)
    revenue: Optional[float] = None

    model_config = ConfigDict(extra='allow')

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            raise ValueError("Name cannot be empty")
        return _check_name(value)

    @field_validator('slug')
    @classmethod
    def validate_slug(cls, value: Optional[str]) -> Optional[str]:
        return _check_slug(value)

    @field_validator('color')
    @classmethod
    def validate_color(cls, value: Optional[str]) -> Optional[str]:
        return _check_color(value)

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            raise ValueError("Status cannot be empty")
        return value

    def changes(self) -> Dict[str, Any]:
        """Only the fields the caller actually set"""
        return self.model_dump(exclude_unset=True)


class ListParams(BaseModel):
    """Query parameters for a store listing"""
    search: Optional[str] = None
    sort: Optional[SortKey] = None
    order: Optional[SortOrder] = None
    page: Optional[int] = None
    limit: Optional[int] = None

    def to_query(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ListResult(BaseModel):
    """Records returned by a store listing"""
    items: List[CategoryRecord] = []
    total: Optional[int] = None


class PendingOperation(BaseModel):
    """In-flight create/update/delete tracked by correlation id"""
    kind: Literal['create', 'update', 'delete']
    target_id: Optional[CategoryId] = None
    correlation_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
