"""
City business logic.

Scope:
- translate public field names to columns and back
- list/search through the generic paging primitives
- single-resource CRUD with not-found handling
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from core.errors import NotFoundError, ValidationError
from core.paging import EQUALS, ICONTAINS, IEQUALS, Filter, Page, PageRequest, page_request

from . import repository

logger = logging.getLogger(__name__)

# Public (JSON) field name -> column name.
FIELD_COLUMNS = {
    "id": "id",
    "name": "name",
    "county": "county",
    "stateCode": "state_code",
    "postalCode": "postal_code",
    "latitude": "latitude",
    "longitude": "longitude",
}
COLUMN_FIELDS = {column: name for name, column in FIELD_COLUMNS.items()}

REQUIRED_FIELDS = ("name", "county", "stateCode", "postalCode")

# Search endpoint name -> (column, operator). One predicate per search.
SEARCHES: dict[str, tuple[str, str]] = {
    "name": ("name", IEQUALS),
    "nameContains": ("name", ICONTAINS),
    "state": ("state_code", EQUALS),
    "postalCode": ("postal_code", EQUALS),
}


def to_city(row: dict[str, Any]) -> dict[str, Any]:
    return {COLUMN_FIELDS[k]: v for k, v in row.items() if k in COLUMN_FIELDS}


def _to_columns(fields: dict[str, Any]) -> dict[str, Any]:
    return {FIELD_COLUMNS[k]: v for k, v in fields.items() if k in FIELD_COLUMNS and k != "id"}


def _check_required(fields: dict[str, Any]) -> None:
    missing = [name for name in REQUIRED_FIELDS if not str(fields.get(name) or "").strip()]
    if missing:
        raise ValidationError(f"Required fields must not be empty: {', '.join(missing)}.")


def build_page_request(*, page: int | None, size: int | None, sort: Sequence[str] | None) -> PageRequest:
    return page_request(page=page, size=size, sort=sort, allowed_sort=FIELD_COLUMNS)


def search_filter(search: str, value: str) -> Filter:
    if search not in SEARCHES:
        raise NotFoundError(f"Unknown search: {search!r}.")
    value = (value or "").strip()
    if not value:
        raise ValidationError("Query parameter 'q' must not be empty.")
    column, op = SEARCHES[search]
    return Filter(field=column, op=op, value=value)


async def find_page(request: PageRequest, filter_: Filter | None = None) -> Page:
    rows, total = await repository.scan_cities(
        filter_=filter_,
        order=request.sort,
        offset=request.offset,
        limit=request.size,
    )
    return Page(
        content=[to_city(r) for r in rows],
        number=request.page,
        size=request.size,
        total_elements=total,
    )


async def list_cities(request: PageRequest) -> Page:
    return await find_page(request)


async def search_cities(search: str, value: str, request: PageRequest) -> Page:
    return await find_page(request, search_filter(search, value))


def _check_id(city_id: int) -> None:
    if not 0 < city_id <= repository.MAX_ID:
        raise NotFoundError(f"City {city_id} not found.")


async def get_city(city_id: int) -> dict[str, Any]:
    _check_id(city_id)
    row = await repository.get_city(city_id)
    if row is None:
        raise NotFoundError(f"City {city_id} not found.")
    return to_city(row)


async def create_city(fields: dict[str, Any]) -> dict[str, Any]:
    _check_required(fields)
    row = await repository.create_city(_to_columns(fields))
    logger.info("city_created id=%s name=%s", row["id"], row["name"])
    return to_city(row)


async def replace_city(city_id: int, fields: dict[str, Any]) -> dict[str, Any]:
    _check_required(fields)
    _check_id(city_id)
    row = await repository.update_city(city_id, _to_columns(fields))
    if row is None:
        raise NotFoundError(f"City {city_id} not found.")
    logger.info("city_updated id=%s", city_id)
    return to_city(row)


async def patch_city(city_id: int, changes: dict[str, Any]) -> dict[str, Any]:
    """
    Apply only the supplied fields; the store writes them in one statement.
    """
    _check_id(city_id)
    fields = {k: v for k, v in changes.items() if k != "id"}
    blank = [name for name in REQUIRED_FIELDS if name in fields and not str(fields[name] or "").strip()]
    if blank:
        raise ValidationError(f"Required fields must not be empty: {', '.join(blank)}.")
    if not fields:
        return await get_city(city_id)

    row = await repository.patch_city(city_id, _to_columns(fields))
    if row is None:
        raise NotFoundError(f"City {city_id} not found.")
    logger.info("city_patched id=%s fields=%s", city_id, ",".join(sorted(fields)))
    return to_city(row)


async def delete_city(city_id: int) -> None:
    _check_id(city_id)
    if not await repository.delete_city(city_id):
        raise NotFoundError(f"City {city_id} not found.")
    logger.info("city_deleted id=%s", city_id)
