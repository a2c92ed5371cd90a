"""
Offset pagination and JSON:API pagination links
"""

import math
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from .errors import MalformedQueryError
from .query import DEFAULT_PAGE_NUMBER, DEFAULT_PAGE_SIZE


class Page(BaseModel):
    """Pagination state for one response, zero based"""
    number: int = DEFAULT_PAGE_NUMBER
    size: int = DEFAULT_PAGE_SIZE
    total: int = 0

    @property
    def offset(self) -> int:
        return self.number * self.size

    @property
    def limit(self) -> int:
        return self.size

    @property
    def total_pages(self) -> int:
        # An empty collection still has one (empty) page
        return max(1, math.ceil(self.total / self.size))


class LinkSet(BaseModel):
    """first/prev/self/next/last links, absent links are None"""
    model_config = ConfigDict(populate_by_name=True)

    first: str
    last: str
    self_link: str = Field(alias="self")
    previous: Optional[str] = None
    next: Optional[str] = None


def new_page(number: Optional[int] = None, size: Optional[int] = None) -> Page:
    """Build a page, defaulting to number=0 and size=10"""
    number = DEFAULT_PAGE_NUMBER if number is None else number
    size = DEFAULT_PAGE_SIZE if size is None else size
    if number < 0:
        raise MalformedQueryError("page[number]", str(number), "must not be negative")
    if size <= 0:
        raise MalformedQueryError("page[size]", str(size), "must be greater than zero")
    return Page(number=number, size=size)


def _page_link(base_url: str, number: int, size: int) -> str:
    if "?" not in base_url:
        separator = "?"
    elif base_url.endswith("?") or base_url.endswith("&"):
        separator = ""
    else:
        separator = "&"
    return f"{base_url}{separator}page[number]={number}&page[size]={size}"


def compute_links(page: Page, total: int, base_url: str) -> LinkSet:
    """
    Build pagination links for a collection of `total` rows.

    The requested number is clamped into [0, total_pages - 1] first and
    previous/next are derived from the clamped value.
    """
    page.total = total
    last_page = page.total_pages - 1
    current = min(max(page.number, 0), last_page)

    return LinkSet(
        first=_page_link(base_url, 0, page.size),
        last=_page_link(base_url, last_page, page.size),
        self_link=_page_link(base_url, current, page.size),
        previous=_page_link(base_url, current - 1, page.size) if current > 0 else None,
        next=_page_link(base_url, current + 1, page.size) if current < last_page else None,
    )
