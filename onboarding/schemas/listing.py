"""Parameters and results shared by the dashboard listings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from math import ceil
from typing import Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")

ALL = "all"


class SortKey(str, Enum):
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass
class ListingQuery:
    """
    Filter/sort/page options. ``status`` is a status, an error type, or ``all``;
    ``start`` is inclusive and ``end`` exclusive (naive UTC).
    """

    status: str = ALL
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    search: Optional[str] = None
    sort_key: SortKey = SortKey.CREATED_AT
    sort_direction: SortDirection = SortDirection.DESC
    page: int = 1
    limit: int = 20
    rating: Optional[int] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class PageResult(Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int
    summary: Dict[str, int] = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        if self.total == 0:
            return 0
        return ceil(self.total / self.limit)


class ConversationStatusFilter(str, Enum):
    ALL = ALL
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    ERROR = "error"


class ErrorTypeFilter(str, Enum):
    ALL = ALL
    SPORTTIA_API_ERROR = "sporttia_api_error"
    OPENAI_API_ERROR = "openai_api_error"
    EMAIL_FAILED = "email_failed"
    VALIDATION_ERROR = "validation_error"
    INTERNAL_ERROR = "internal_error"
