"""
Shared fixtures: an in-memory stand-in for `cities.repository` and a
TestClient that never opens a database pool.
"""

from __future__ import annotations

from typing import Any, Sequence

import pytest
from fastapi.testclient import TestClient

from cities import repository
from core.paging import DESC, EQUALS, ICONTAINS, IEQUALS, Filter, SortOrder


class FakeCityStore:
    def __init__(self) -> None:
        self.rows: dict[int, dict[str, Any]] = {}
        self._next_id = 1
        self.offsets: list[int] = []

    def _matches(self, row: dict[str, Any], filter_: Filter | None) -> bool:
        if filter_ is None:
            return True
        value = row.get(filter_.field) or ""
        if filter_.op == IEQUALS:
            return value.lower() == filter_.value.lower()
        if filter_.op == ICONTAINS:
            return filter_.value.lower() in value.lower()
        if filter_.op == EQUALS:
            return value == filter_.value
        raise AssertionError(filter_.op)

    async def create_city(self, fields: dict[str, Any]) -> dict[str, Any]:
        row = {"id": self._next_id, **{c: fields.get(c) for c in repository.WRITABLE_COLUMNS}}
        self.rows[self._next_id] = row
        self._next_id += 1
        return dict(row)

    async def get_city(self, city_id: int) -> dict[str, Any] | None:
        row = self.rows.get(city_id)
        return dict(row) if row is not None else None

    async def update_city(self, city_id: int, fields: dict[str, Any]) -> dict[str, Any] | None:
        if city_id not in self.rows:
            return None
        self.rows[city_id] = {"id": city_id, **{c: fields.get(c) for c in repository.WRITABLE_COLUMNS}}
        return dict(self.rows[city_id])

    async def patch_city(self, city_id: int, fields: dict[str, Any]) -> dict[str, Any] | None:
        if city_id not in self.rows:
            return None
        self.rows[city_id].update({c: v for c, v in fields.items() if c in repository.WRITABLE_COLUMNS})
        return dict(self.rows[city_id])

    async def delete_city(self, city_id: int) -> bool:
        return self.rows.pop(city_id, None) is not None

    async def scan_cities(
        self,
        *,
        filter_: Filter | None,
        order: Sequence[SortOrder],
        offset: int,
        limit: int,
    ) -> tuple[list[dict[str, Any]], int]:
        self.offsets.append(offset)
        matched = [dict(r) for r in self.rows.values() if self._matches(r, filter_)]
        # Stable sorts applied last-key-first give a multi-key ordering.
        for o in reversed(list(order)):
            matched.sort(
                key=lambda r: (r[o.field] is None, r[o.field]),
                reverse=(o.direction == DESC),
            )
        return matched[offset : offset + limit], len(matched)


@pytest.fixture
def store(monkeypatch: pytest.MonkeyPatch) -> FakeCityStore:
    fake = FakeCityStore()
    for name in ("create_city", "get_city", "update_city", "patch_city", "delete_city", "scan_cities"):
        monkeypatch.setattr(repository, name, getattr(fake, name))
    return fake


@pytest.fixture
def client(store: FakeCityStore) -> TestClient:
    from main import app

    return TestClient(app)


def _city_payload(name: str, **overrides: Any) -> dict[str, Any]:
    payload = {
        "name": name,
        "county": "HAMPDEN",
        "stateCode": "MA",
        "postalCode": "01001",
        "latitude": "+42.140549",
        "longitude": "-072.788661",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def city_payload():
    return _city_payload
