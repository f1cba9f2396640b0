"""Page arithmetic shared by every paginated listing."""

import math
from dataclasses import dataclass, field
from typing import Generic, List, Tuple, TypeVar

T = TypeVar("T")


def page_bounds(page: int, per_page: int) -> Tuple[int, int]:
    """Return (offset, limit) for a 1-based page number."""
    page = max(page, 1)
    return (page - 1) * per_page, per_page


def total_pages(total: int, per_page: int) -> int:
    return math.ceil(total / per_page) if per_page > 0 else 0


@dataclass
class Page(Generic[T]):
    items: List[T]
    total: int
    page: int
    per_page: int
    pages: int = field(init=False)

    def __post_init__(self) -> None:
        self.pages = total_pages(self.total, self.per_page)

    @property
    def has_more(self) -> bool:
        return self.page < self.pages


def ilike_pattern(term: str) -> str:
    """Substring pattern with LIKE wildcards in the term escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
