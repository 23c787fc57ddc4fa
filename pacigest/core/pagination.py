"""
Core pagination utilities for API endpoints.
"""
from typing import TypeVar, Generic, List, Optional, Type
from pydantic import BaseModel
from fastapi import Query
from sqlalchemy.orm import Query as SQLAlchemyQuery
import math

T = TypeVar("T")

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class PageParams:
    """
    Page parameters for pagination.

    Attributes:
        page: Page number (1-indexed)
        limit: Number of items per page
    """
    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number"),
        limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Items per page")
    ):
        self.page = page
        self.limit = limit
        self.offset = (page - 1) * limit


class AppointmentPageParams(PageParams):
    """Appointments page through a day's agenda, so the default page is larger."""
    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number"),
        limit: int = Query(20, ge=1, le=MAX_LIMIT, description="Items per page")
    ):
        super().__init__(page=page, limit=limit)


class PageResponse(BaseModel, Generic[T]):
    """
    Paginated response model.

    Attributes:
        success: Always true for a successful page
        data: List of items for the current page
        total: Total number of items
        page: Current page number
        limit: Number of items per page
        total_pages: Total number of pages
        has_next: Whether there is a next page
        has_prev: Whether there is a previous page
    """
    success: bool = True
    data: List[T]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool


def paginate(
    query: SQLAlchemyQuery,
    page_params: PageParams,
    schema_class: Optional[Type[BaseModel]] = None
) -> PageResponse:
    """
    Paginate a SQLAlchemy query.

    Args:
        query: SQLAlchemy query to paginate (already ordered)
        page_params: Pagination parameters
        schema_class: Optional Pydantic model to convert items to

    Returns:
        PageResponse: Paginated response
    """
    total = query.order_by(None).count()
    items = query.offset(page_params.offset).limit(page_params.limit).all()

    if schema_class:
        items = [schema_class.model_validate(item) for item in items]

    total_pages = math.ceil(total / page_params.limit) if total > 0 else 0

    return PageResponse(
        data=items,
        total=total,
        page=page_params.page,
        limit=page_params.limit,
        total_pages=total_pages,
        has_next=page_params.page < total_pages,
        has_prev=page_params.page > 1
    )
