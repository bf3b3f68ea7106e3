"""
Generic paging, sorting and filtering primitives.

Feature packages declare which fields may be sorted or filtered on and map
public (camelCase) field names to columns; this module owns the parameter
validation, page arithmetic and navigation links.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

from . import settings
from .errors import ValidationError

ASC = "asc"
DESC = "desc"

# Filter operators.
IEQUALS = "iequals"
ICONTAINS = "icontains"
EQUALS = "equals"
OPERATORS = frozenset({IEQUALS, ICONTAINS, EQUALS})

# Stores take OFFSET as a bigint; anything past it is beyond every row.
MAX_OFFSET = 2**63 - 1


@dataclass(frozen=True)
class SortOrder:
    field: str
    direction: str = ASC


@dataclass(frozen=True)
class Filter:
    field: str
    op: str
    value: str

    def __post_init__(self) -> None:
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op!r}")


@dataclass(frozen=True)
class PageRequest:
    page: int
    size: int
    sort: tuple[SortOrder, ...] = ()

    @property
    def offset(self) -> int:
        return min(self.page * self.size, MAX_OFFSET)


@dataclass(frozen=True)
class Page:
    content: list[Any]
    number: int
    size: int
    total_elements: int
    total_pages: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "total_pages", total_pages(self.total_elements, self.size))

    def metadata(self) -> dict[str, int]:
        return {
            "size": self.size,
            "totalElements": self.total_elements,
            "totalPages": self.total_pages,
            "number": self.number,
        }


def total_pages(total_elements: int, size: int) -> int:
    return math.ceil(total_elements / size) if size > 0 else 0


def parse_sort(raw: Sequence[str] | None, *, allowed: Mapping[str, str]) -> tuple[SortOrder, ...]:
    """
    Parse `field[,asc|desc]` values into sort orders.

    `allowed` maps public field names to column names; the returned orders
    carry column names. An `id` ascending tie-break is always appended.
    """
    orders: list[SortOrder] = []
    for item in raw or ():
        item = (item or "").strip()
        if not item:
            continue
        name, _, direction = item.partition(",")
        name = name.strip()
        direction = (direction.strip() or ASC).lower()
        if name not in allowed:
            raise ValidationError(f"Unknown sort field: {name!r}.")
        if direction not in (ASC, DESC):
            raise ValidationError(f"Unknown sort direction: {direction!r}. Use 'asc' or 'desc'.")
        orders.append(SortOrder(field=allowed[name], direction=direction))

    if not any(o.field == "id" for o in orders):
        orders.append(SortOrder(field="id", direction=ASC))
    return tuple(orders)


def page_request(
    *,
    page: int | None,
    size: int | None,
    sort: Sequence[str] | None,
    allowed_sort: Mapping[str, str],
) -> PageRequest:
    page = 0 if page is None else page
    size = settings.page_default_size() if size is None else size
    if page < 0:
        raise ValidationError("Page index must not be negative.")
    if size <= 0:
        raise ValidationError("Page size must be greater than zero.")
    size = min(size, settings.page_max_size())
    return PageRequest(page=page, size=size, sort=parse_sort(sort, allowed=allowed_sort))


def page_links(page: Page, url_for_page: Callable[[int], str]) -> dict[str, dict[str, str]]:
    """
    Build navigation links from the page position alone.

    `url_for_page(n)` must return the absolute URL of page `n` with every
    other request parameter preserved.
    """
    links = {"self": {"href": url_for_page(page.number)}}
    last = page.total_pages - 1
    if page.total_pages > 1:
        links["first"] = {"href": url_for_page(0)}
    if page.number > 0 and last >= 0:
        links["prev"] = {"href": url_for_page(min(page.number - 1, last))}
    if page.number + 1 < page.total_pages:
        links["next"] = {"href": url_for_page(page.number + 1)}
    if page.total_pages > 1:
        links["last"] = {"href": url_for_page(last)}
    return links
