"""
City collection API endpoints.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, Request, Response, status

from core import paging

from . import schemas, service

router = APIRouter()


def _city_body(request: Request, city: dict[str, Any]) -> dict[str, Any]:
    href = str(request.url_for("get_city", city_id=city["id"]))
    return {**city, "links": {"self": {"href": href}}}


def _page_body(request: Request, page: paging.Page) -> dict[str, Any]:
    def url_for_page(number: int) -> str:
        return str(request.url.include_query_params(page=number, size=page.size))

    return {
        "content": [_city_body(request, c) for c in page.content],
        "page": page.metadata(),
        "links": paging.page_links(page, url_for_page),
    }


@router.get("/cities")
async def list_cities(
    request: Request,
    page: int | None = Query(default=None),
    size: int | None = Query(default=None),
    sort: list[str] | None = Query(default=None),
) -> dict:
    page_request = service.build_page_request(page=page, size=size, sort=sort)
    result = await service.list_cities(page_request)
    return _page_body(request, result)


@router.get("/cities/search")
async def search_directory(request: Request) -> dict:
    """
    List the available search endpoints so clients need not hardcode them.
    """
    links = {
        name: {"href": str(request.url_for("search_cities", search=name))}
        for name in service.SEARCHES
    }
    links["self"] = {"href": str(request.url_for("search_directory"))}
    return {"links": links}


@router.get("/cities/search/{search}")
async def search_cities(
    request: Request,
    search: str,
    q: str = Query(..., max_length=500),
    page: int | None = Query(default=None),
    size: int | None = Query(default=None),
    sort: list[str] | None = Query(default=None),
) -> dict:
    page_request = service.build_page_request(page=page, size=size, sort=sort)
    result = await service.search_cities(search, q, page_request)
    return _page_body(request, result)


@router.post("/cities", status_code=status.HTTP_201_CREATED)
async def create_city(
    request: Request,
    response: Response,
    payload: schemas.CityFields,
) -> dict:
    city = await service.create_city(payload.model_dump())
    body = _city_body(request, city)
    response.headers["Location"] = body["links"]["self"]["href"]
    return body


@router.get("/cities/{city_id}")
async def get_city(request: Request, city_id: int) -> dict:
    city = await service.get_city(city_id)
    return _city_body(request, city)


@router.put("/cities/{city_id}")
async def replace_city(request: Request, city_id: int, payload: schemas.CityFields) -> dict:
    city = await service.replace_city(city_id, payload.model_dump())
    return _city_body(request, city)


@router.patch("/cities/{city_id}")
async def patch_city(request: Request, city_id: int, payload: schemas.CityPatch) -> dict:
    city = await service.patch_city(city_id, payload.model_dump(exclude_unset=True))
    return _city_body(request, city)


@router.delete("/cities/{city_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_city(city_id: int) -> Response:
    await service.delete_city(city_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
