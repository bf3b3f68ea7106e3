"""
City persistence (raw SQL).

Rows are returned with database column names (`state_code`, ...);
`service.py` converts them to the public shape.
"""

from __future__ import annotations

from typing import Any, Sequence

from core import db
from core.paging import EQUALS, ICONTAINS, IEQUALS, Filter, SortOrder

COLUMNS = ("id", "name", "county", "state_code", "postal_code", "latitude", "longitude")
WRITABLE_COLUMNS = ("name", "county", "state_code", "postal_code", "latitude", "longitude")

# `id` is a bigint; larger values can never match a row.
MAX_ID = 2**63 - 1

_SELECT = "SELECT " + ", ".join(COLUMNS) + " FROM city"


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _check_column(name: str) -> str:
    # Column names are interpolated into SQL; only known ones are allowed.
    if name not in COLUMNS:
        raise ValueError(f"Unknown city column: {name!r}")
    return name


def build_where(filter_: Filter | None) -> tuple[str, list[Any]]:
    """
    Translate one filter predicate into a WHERE clause and its arguments.
    """
    if filter_ is None:
        return "", []

    column = _check_column(filter_.field)
    placeholder = "$1"
    if filter_.op == IEQUALS:
        return f"WHERE lower({column}) = lower({placeholder})", [filter_.value]
    if filter_.op == ICONTAINS:
        return (
            f"WHERE {column} ILIKE ('%' || {placeholder} || '%') ESCAPE '\\'",
            [_escape_like(filter_.value)],
        )
    if filter_.op == EQUALS:
        return f"WHERE {column} = {placeholder}", [filter_.value]
    raise ValueError(f"Unsupported filter operator: {filter_.op!r}")


def build_set(fields: dict[str, Any]) -> tuple[str, list[Any]]:
    """
    Build `SET col = $2, ...` for the supplied writable columns; `$1` is the id.
    """
    columns = [c for c in WRITABLE_COLUMNS if c in fields]
    if not columns:
        raise ValueError("No writable city columns supplied.")
    assignments = ", ".join(f"{c} = ${i}" for i, c in enumerate(columns, start=2))
    return "SET " + assignments, [fields[c] for c in columns]


def build_order_by(order: Sequence[SortOrder]) -> str:
    if not order:
        return "ORDER BY id ASC"
    parts = [f"{_check_column(o.field)} {o.direction.upper()}" for o in order]
    return "ORDER BY " + ", ".join(parts)


async def create_city(fields: dict[str, Any]) -> dict[str, Any]:
    row = await db.fetch_one(
        f"""
        INSERT INTO city (name, county, state_code, postal_code, latitude, longitude)
        VALUES ($1, $2, $3, $4, $5, $6)
        RETURNING {", ".join(COLUMNS)}
        """,
        *(fields.get(c) for c in WRITABLE_COLUMNS),
    )
    if row is None:
        raise RuntimeError("Failed to create city.")
    return row


async def get_city(city_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(f"{_SELECT} WHERE id = $1", city_id)


async def update_city(city_id: int, fields: dict[str, Any]) -> dict[str, Any] | None:
    """
    Overwrite every writable column. Returns None when the id does not exist.
    """
    return await db.fetch_one(
        f"""
        UPDATE city
        SET name = $2,
            county = $3,
            state_code = $4,
            postal_code = $5,
            latitude = $6,
            longitude = $7
        WHERE id = $1
        RETURNING {", ".join(COLUMNS)}
        """,
        city_id,
        *(fields.get(c) for c in WRITABLE_COLUMNS),
    )


async def patch_city(city_id: int, fields: dict[str, Any]) -> dict[str, Any] | None:
    """
    Overwrite only the supplied columns in one statement.
    Returns None when the id does not exist.
    """
    assignments, args = build_set(fields)
    return await db.fetch_one(
        f"""
        UPDATE city
        {assignments}
        WHERE id = $1
        RETURNING {", ".join(COLUMNS)}
        """,
        city_id,
        *args,
    )


async def delete_city(city_id: int) -> bool:
    row = await db.fetch_one(
        """
        DELETE FROM city
        WHERE id = $1
        RETURNING id
        """,
        city_id,
    )
    return row is not None


async def scan_cities(
    *,
    filter_: Filter | None,
    order: Sequence[SortOrder],
    offset: int,
    limit: int,
) -> tuple[list[dict[str, Any]], int]:
    """
    Return one page of matching rows plus the total match count.

    Both queries run in one read-only snapshot so the count and the page agree.
    """
    where, args = build_where(filter_)
    n = len(args)
    async with db.connection() as conn:
        async with conn.transaction(isolation="repeatable_read", readonly=True):
            total = await conn.fetchval(f"SELECT count(*) FROM city {where}", *args)
            rows = await conn.fetch(
                f"""
                {_SELECT}
                {where}
                {build_order_by(order)}
                LIMIT ${n + 1}
                OFFSET ${n + 2}
                """,
                *args,
                limit,
                offset,
            )
    return [dict(r) for r in rows], int(total or 0)
