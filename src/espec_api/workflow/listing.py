"""Client-side search and pagination over lists already held in memory."""

import math
from typing import Generic
from typing import List
from typing import Sequence
from typing import TypeVar

from pydantic import BaseModel

from espec_api.models.domain import Project

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of an in-memory list."""

    items: List[T]
    page: int
    page_size: int
    total_pages: int
    total_items: int


def filter_projects(projects: Sequence[Project], query: str | None) -> List[Project]:
    """Case-insensitive substring match on name OR responsible party; blank query keeps everything."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(projects)
    return [p for p in projects if needle in p.name.lower() or needle in p.responsible.lower()]


def paginate(items: Sequence[T], page: int, page_size: int) -> Page[T]:
    """
    Slice `items` into a 1-based page.

    total_pages is at least 1 so an empty list still has a page to show;
    pages past the end clamp to the last page, pages below 1 clamp to 1.
    """
    if page_size <= 0:
        raise ValueError("page_size must be greater than 0")
    total_pages = max(1, math.ceil(len(items) / page_size))
    page = min(max(page, 1), total_pages)
    start = (page - 1) * page_size
    return Page(
        items=list(items[start : start + page_size]),
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        total_items=len(items),
    )
