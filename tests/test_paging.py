from __future__ import annotations

import pytest

from core import paging
from core.errors import ValidationError

ALLOWED = {"id": "id", "name": "name", "stateCode": "state_code"}


def _url(n: int) -> str:
    return f"/items?page={n}"


def test_total_pages_rounds_up() -> None:
    assert paging.total_pages(0, 20) == 0
    assert paging.total_pages(3, 2) == 2
    assert paging.total_pages(4, 2) == 2
    assert paging.total_pages(5, 2) == 3


def test_default_sort_is_id_ascending() -> None:
    assert paging.parse_sort(None, allowed=ALLOWED) == (paging.SortOrder("id", "asc"),)


def test_sort_maps_public_names_and_appends_tie_break() -> None:
    orders = paging.parse_sort(["stateCode,desc", "name"], allowed=ALLOWED)
    assert orders == (
        paging.SortOrder("state_code", "desc"),
        paging.SortOrder("name", "asc"),
        paging.SortOrder("id", "asc"),
    )


def test_explicit_id_sort_is_not_duplicated() -> None:
    assert paging.parse_sort(["id,desc"], allowed=ALLOWED) == (paging.SortOrder("id", "desc"),)


@pytest.mark.parametrize("raw", ["population", "name,up", "state_code"])
def test_bad_sort_is_rejected(raw: str) -> None:
    with pytest.raises(ValidationError):
        paging.parse_sort([raw], allowed=ALLOWED)


def test_page_request_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PAGE_DEFAULT_SIZE", raising=False)
    request = paging.page_request(page=None, size=None, sort=None, allowed_sort=ALLOWED)
    assert (request.page, request.size, request.offset) == (0, 20, 0)


def test_page_request_clamps_to_max_size(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PAGE_MAX_SIZE", "50")
    request = paging.page_request(page=3, size=500, sort=None, allowed_sort=ALLOWED)
    assert request.size == 50
    assert request.offset == 150


@pytest.mark.parametrize(("page", "size"), [(-1, 10), (0, 0), (0, -3)])
def test_page_request_rejects_out_of_bounds(page: int, size: int) -> None:
    with pytest.raises(ValidationError):
        paging.page_request(page=page, size=size, sort=None, allowed_sort=ALLOWED)


def test_page_metadata() -> None:
    page = paging.Page(content=["c"], number=1, size=2, total_elements=3)
    assert page.metadata() == {"size": 2, "totalElements": 3, "totalPages": 2, "number": 1}


def test_links_for_middle_page() -> None:
    page = paging.Page(content=[], number=1, size=10, total_elements=25)
    assert paging.page_links(page, _url) == {
        "self": {"href": "/items?page=1"},
        "first": {"href": "/items?page=0"},
        "prev": {"href": "/items?page=0"},
        "next": {"href": "/items?page=2"},
        "last": {"href": "/items?page=2"},
    }


def test_links_for_empty_result() -> None:
    page = paging.Page(content=[], number=0, size=10, total_elements=0)
    assert paging.page_links(page, _url) == {"self": {"href": "/items?page=0"}}


def test_prev_link_past_the_end_points_at_last_page() -> None:
    page = paging.Page(content=[], number=9, size=10, total_elements=25)
    links = paging.page_links(page, _url)
    assert links["prev"] == {"href": "/items?page=2"}
    assert "next" not in links


def test_filter_rejects_unknown_operator() -> None:
    with pytest.raises(ValueError):
        paging.Filter(field="name", op="startswith", value="W")


def test_offset_is_capped_at_bigint(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PAGE_MAX_SIZE", raising=False)
    request = paging.page_request(page=10**19, size=20, sort=None, allowed_sort=ALLOWED)
    assert request.page == 10**19
    assert request.offset == paging.MAX_OFFSET == 2**63 - 1
