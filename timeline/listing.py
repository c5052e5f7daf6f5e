"""Minimal page request/response types for reading the feed back out."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Generic, List, Optional, TypeVar


T = TypeVar("T")

DEFAULT_PAGE_SIZE = 25


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @property
    def sql(self) -> str:
        return "ASC" if self is SortDirection.ASC else "DESC"


@dataclass(frozen=True)
class ListRequest:
    """Page number (1-based), page size (None shows everything), direction."""
    page: int = 1
    page_size: Optional[int] = DEFAULT_PAGE_SIZE
    direction: SortDirection = SortDirection.DESC

    @classmethod
    def show_all(cls, direction: SortDirection = SortDirection.DESC) -> "ListRequest":
        return cls(page=1, page_size=None, direction=direction)

    @property
    def is_show_all(self) -> bool:
        return self.page_size is None

    def ensure_page_within(self, total: int) -> "ListRequest":
        """Clamp the page to the last page that holds items."""
        if self.page_size is None:
            return replace(self, page=1)
        last_page = max(1, -(-total // self.page_size))
        return replace(self, page=min(max(self.page, 1), last_page))

    @property
    def offset(self) -> int:
        if self.page_size is None:
            return 0
        return (max(self.page, 1) - 1) * self.page_size


@dataclass
class Page(Generic[T]):
    items: List[T] = field(default_factory=list)
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    total: int = 0
    show_all: bool = False

    @property
    def total_pages(self) -> int:
        if self.show_all or self.page_size <= 0:
            return 1
        return max(1, -(-self.total // self.page_size))

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages
