"""Listing endpoints."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request

from src.errors import ValidationError
from src.handlers.deps import current_user_id, get_server
from src.query.engine import Filters, SortKey

router = APIRouter(tags=["listings"])


def _require_object(body: Any) -> dict:
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


@router.post("/listings")
async def create_listing(
    request: Request,
    draft: Any = Body(...),
    user_id: str = Depends(current_user_id),
):
    listing = await get_server(request).listings.create_listing(user_id, _require_object(draft))
    return {"success": True, "listing": listing.to_dict()}


@router.get("/listings")
async def get_listings(
    request: Request,
    listing_type: str | None = Query(None, alias="type", description="housing or marketplace"),
    category: str | None = Query(None, description="Marketplace category"),
    include_sold: bool = Query(False, alias="includeSold"),
    q: str = Query("", description="Search title, description and location"),
    sort: str | None = Query(None, description="newest, price-low, price-high or move-in"),
    price_min: str | None = Query(None, alias="priceMin"),
    price_max: str | None = Query(None, alias="priceMax"),
    move_in_date: str | None = Query(None, alias="moveInDate"),
    move_out_date: str | None = Query(None, alias="moveOutDate"),
    distance: str | None = Query(None, alias="distanceFromCampus"),
    gender: str | None = Query(None, alias="roommateGender"),
    housing_types: list[str] = Query([], alias="housingTypes"),
    bedrooms: str | None = Query(None),
):
    filters = Filters.from_params({
        "priceMin": price_min,
        "priceMax": price_max,
        "moveInDate": move_in_date,
        "moveOutDate": move_out_date,
        "distanceFromCampus": distance,
        "roommateGender": gender,
        "housingTypes": housing_types,
        "bedrooms": bedrooms,
    })
    snapshot = await get_server(request).listings.snapshot(listing_type, category)
    listings = snapshot.query(
        search_term=q,
        filters=filters,
        sort_key=SortKey.parse(sort),
        include_sold=include_sold,
    )
    return {"listings": [l.to_dict() for l in listings]}


@router.get("/listings/{listing_id}")
async def get_listing(listing_id: str, request: Request):
    listing = await get_server(request).listings.get_listing(listing_id)
    return {"listing": listing.to_dict()}


@router.put("/listings/{listing_id}")
async def update_listing(
    listing_id: str,
    request: Request,
    patch: Any = Body(...),
    user_id: str = Depends(current_user_id),
):
    listing = await get_server(request).listings.update_listing(
        listing_id, user_id, _require_object(patch)
    )
    return {"success": True, "listing": listing.to_dict()}


@router.delete("/listings/{listing_id}")
async def delete_listing(listing_id: str, request: Request, user_id: str = Depends(current_user_id)):
    await get_server(request).listings.delete_listing(listing_id, user_id)
    return {"success": True}


@router.get("/my-listings")
async def get_my_listings(
    request: Request,
    include_sold: bool = Query(True, alias="includeSold"),
    user_id: str = Depends(current_user_id),
):
    listings = await get_server(request).listings.my_listings(user_id, include_sold=include_sold)
    return {"listings": [l.to_dict() for l in listings]}
