from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.encoders import jsonable_encoder

from safari_quote.api.deps import get_reference_store
from safari_quote.core.security import get_current_user
from safari_quote.db.stores import LOOKUP_NAMES, ReferenceDataStore
from safari_quote.quote.seasons import filter_in_season

router = APIRouter(prefix="/reference", dependencies=[Depends(get_current_user)])


@router.get("/clients")
async def clients(reference: ReferenceDataStore = Depends(get_reference_store)) -> dict[str, Any]:
    return {"items": await reference.list_clients()}


@router.get("/hotels")
async def hotels(
    category: str | None = None,
    reference: ReferenceDataStore = Depends(get_reference_store),
) -> dict[str, Any]:
    return {"items": await reference.list_hotels(category=category)}


@router.get("/park-products")
async def park_products(
    park_id: int | None = Query(default=None, alias="parkId"),
    category: str | None = None,
    entry_type: str | None = Query(default=None, alias="entryType"),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    reference: ReferenceDataStore = Depends(get_reference_store),
) -> dict[str, Any]:
    entries = await reference.list_park_products(
        park_id=park_id, category=category, entry_type=entry_type
    )
    return {"items": jsonable_encoder(filter_in_season(entries, start_date, end_date))}


@router.get("/hotel-rates")
async def hotel_rates(
    hotel_id: int | None = Query(default=None, alias="hotelId"),
    meal_plan: str | None = Query(default=None, alias="mealPlan"),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    reference: ReferenceDataStore = Depends(get_reference_store),
) -> dict[str, Any]:
    rates = await reference.list_hotel_rates(hotel_id=hotel_id, meal_plan=meal_plan)
    return {"items": jsonable_encoder(filter_in_season(rates, start_date, end_date))}


@router.get("/child-policies")
async def child_policies(
    hotel_id: int | None = Query(default=None, alias="hotelId"),
    reference: ReferenceDataStore = Depends(get_reference_store),
) -> dict[str, Any]:
    return {"items": jsonable_encoder(await reference.list_child_policies(hotel_id=hotel_id))}


@router.get("/equipment")
async def equipment(reference: ReferenceDataStore = Depends(get_reference_store)) -> dict[str, Any]:
    return {"items": jsonable_encoder(await reference.list_equipment())}


@router.get("/transport-services")
async def transport_services(
    reference: ReferenceDataStore = Depends(get_reference_store),
) -> dict[str, Any]:
    return {"items": jsonable_encoder(await reference.list_transport_services())}


@router.get("/{lookup}")
async def lookup(
    lookup: str, reference: ReferenceDataStore = Depends(get_reference_store)
) -> dict[str, Any]:
    name = lookup.replace("-", "_")
    if name not in LOOKUP_NAMES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown lookup: {lookup}")
    return {"items": jsonable_encoder(await reference.list_lookup(name))}


__all__ = ["router"]
