"""
Common schema types used across the API.
"""

from typing import Any, Generic, List, Optional, TypeVar
from pydantic import BaseModel

from minjok.services.pagination import Page

T = TypeVar("T")


class ErrorResponse(BaseModel):
    """
    Error body.

    Auth and lookup failures carry ``detail``; form-style failures
    (validation, throttle, conflicts, store failures) carry ``error``.
    """

    detail: Optional[str] = None
    error: Optional[str] = None
    request_id: Optional[str] = None


class SuccessResponse(BaseModel):
    """Standard success response."""

    message: str
    data: Optional[Any] = None


class PaginatedResponse(BaseModel, Generic[T]):
    """Paginated list response."""

    items: List[T]
    total: int
    page: int = 1
    page_size: int = 20
    pages: int = 0
    has_more: bool = False

    @classmethod
    def from_page(cls, page: Page, items: List[T]) -> "PaginatedResponse[T]":
        return cls(
            items=items,
            total=page.total,
            page=page.page,
            page_size=page.per_page,
            pages=page.pages,
            has_more=page.has_more,
        )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str
    database: str = "connected"
