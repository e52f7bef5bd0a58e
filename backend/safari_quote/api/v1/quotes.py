from __future__ import annotations

from datetime import date
from typing import Any, Literal
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from safari_quote.api.deps import get_offer_store, get_reference_store, get_session_store
from safari_quote.core.errors import CatalogEntryNotFoundError, SessionNotFoundError
from safari_quote.core.security import CurrentUser, get_current_user
from safari_quote.db.stores import OfferStore, ReferenceDataStore
from safari_quote.quote import pricing
from safari_quote.quote.models import ITEM_TYPES, LineCategory
from safari_quote.quote.steps import STEP_INFO, describe_steps, progress_percent
from safari_quote.services.quote_controller import (
    OperationResult,
    QuoteDraftController,
    parse_category,
)
from safari_quote.session.store import DraftSessionStore

router = APIRouter(prefix="/quotes/sessions")


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateSessionRequest(_CamelModel):
    offer_id: int | None = Field(default=None, alias="offerId")
    draft_id: int | None = Field(default=None, alias="draftId")


class TripUpdateRequest(_CamelModel):
    client_id: str | None = Field(default=None, alias="clientId")
    client_name: str | None = Field(default=None, alias="clientName")
    client_country: str | None = Field(default=None, alias="clientCountry")
    start_date: date | None = Field(default=None, alias="startDate")
    end_date: date | None = Field(default=None, alias="endDate")
    adults: int | None = Field(default=None, ge=0)
    child_ages: list[int] | None = Field(default=None, alias="childAges")
    trip_type: str | None = Field(default=None, alias="tripType")
    currency: Literal["USD", "TZS"] | None = None


class AddParkRequest(_CamelModel):
    price_id: int = Field(alias="priceId")
    duration: int | None = Field(default=None, ge=1)
    pax: int | None = Field(default=None, ge=1)


class AddHotelRequest(_CamelModel):
    rate_id: int = Field(alias="rateId")
    check_in: date | None = Field(default=None, alias="checkIn")
    check_out: date | None = Field(default=None, alias="checkOut")
    nights: int | None = Field(default=None, ge=0)
    adults: int | None = Field(default=None, ge=0)
    child_ages: list[int] | None = Field(default=None, alias="childAges")


class AddEquipmentRequest(_CamelModel):
    equipment_id: int = Field(alias="equipmentId")
    quantity: int = Field(default=1, ge=1)
    duration: int | None = Field(default=None, ge=1)


class AddTransportRequest(_CamelModel):
    service_id: int = Field(alias="serviceId")
    travel_date: date | None = Field(default=None, alias="date")
    pax: int | None = Field(default=None, ge=1)


class AddAdditionalRequest(_CamelModel):
    service_name: str = Field(alias="serviceName", min_length=1)
    description: str = ""
    price: float = Field(ge=0)
    currency: Literal["USD", "TZS"] = "USD"


class SaveDraftRequest(_CamelModel):
    draft_id: int | None = Field(default=None, alias="draftId")


def _totals(controller: QuoteDraftController) -> dict[str, Any]:
    draft = controller.draft
    return {
        "subtotals": {
            category.value: value for category, value in pricing.category_subtotals(draft).items()
        },
        "grandTotal": pricing.grand_total(draft),
        "byCurrency": {
            currency.value: value for currency, value in pricing.totals_by_currency(draft).items()
        },
        "mixedCurrencies": pricing.has_mixed_currencies(draft),
    }


def _payload(
    session_id: str, controller: QuoteDraftController, result: OperationResult | None = None
) -> dict[str, Any]:
    step = controller.step
    body: dict[str, Any] = {
        "sessionId": session_id,
        "step": {
            "index": step.index,
            "id": step.value,
            "title": STEP_INFO[step][0],
            "progress": progress_percent(step),
        },
        "steps": describe_steps(step),
        "validation": controller.validate_step().errors,
        "draft": controller.draft.to_dict(),
        "totals": _totals(controller),
    }
    if result is not None:
        body["result"] = result.to_dict()
    return body


async def _open(
    session_id: str, user: CurrentUser, offers: OfferStore, sessions: DraftSessionStore
) -> tuple[QuoteDraftController, dict[str, Any]]:
    state = await sessions.get(session_id)
    if state is None or state.get("owner") != user.id:
        raise SessionNotFoundError(session_id)
    controller = QuoteDraftController.from_state(offers, user_id=user.id, state=state)
    return controller, state


async def _store(
    session_id: str,
    controller: QuoteDraftController,
    user: CurrentUser,
    sessions: DraftSessionStore,
    draft_id: int | None = None,
) -> None:
    await sessions.set(session_id, {**controller.to_state(), "owner": user.id, "draftId": draft_id})


def _load_failure(result: OperationResult) -> HTTPException:
    if not result.errors:
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif "invalid" in result.errors.values():
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_404_NOT_FOUND
    return HTTPException(status_code=code, detail=result.message)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_session(
    payload: CreateSessionRequest | None = None,
    user: CurrentUser = Depends(get_current_user),
    offers: OfferStore = Depends(get_offer_store),
    sessions: DraftSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    payload = payload or CreateSessionRequest()
    controller = QuoteDraftController(offers, user_id=user.id)
    if payload.offer_id is not None:
        result = await controller.load_offer(payload.offer_id)
        if not result.ok:
            raise _load_failure(result)
    elif payload.draft_id is not None:
        result = await controller.load_draft(payload.draft_id)
        if not result.ok:
            raise _load_failure(result)
    session_id = uuid4().hex
    await _store(session_id, controller, user, sessions, payload.draft_id)
    return _payload(session_id, controller)


@router.get("/{session_id}")
async def get_session(
    session_id: str,
    user: CurrentUser = Depends(get_current_user),
    offers: OfferStore = Depends(get_offer_store),
    sessions: DraftSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    controller, _ = await _open(session_id, user, offers, sessions)
    return _payload(session_id, controller)


@router.get("/{session_id}/totals")
async def get_totals(
    session_id: str,
    user: CurrentUser = Depends(get_current_user),
    offers: OfferStore = Depends(get_offer_store),
    sessions: DraftSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    controller, _ = await _open(session_id, user, offers, sessions)
    return _totals(controller)


@router.patch("/{session_id}/trip")
async def update_trip(
    session_id: str,
    payload: TripUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    offers: OfferStore = Depends(get_offer_store),
    sessions: DraftSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    controller, state = await _open(session_id, user, offers, sessions)
    controller.update_trip(**payload.model_dump(exclude_unset=True))
    await _store(session_id, controller, user, sessions, state.get("draftId"))
    return _payload(session_id, controller)


@router.post("/{session_id}/parks", status_code=status.HTTP_201_CREATED)
async def add_park(
    session_id: str,
    payload: AddParkRequest,
    user: CurrentUser = Depends(get_current_user),
    offers: OfferStore = Depends(get_offer_store),
    reference: ReferenceDataStore = Depends(get_reference_store),
    sessions: DraftSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    controller, state = await _open(session_id, user, offers, sessions)
    entry = await reference.get_park_product_price(payload.price_id)
    if entry is None:
        raise CatalogEntryNotFoundError("Park product price", payload.price_id)
    controller.add_park(entry, duration=payload.duration, pax=payload.pax)
    await _store(session_id, controller, user, sessions, state.get("draftId"))
    return _payload(session_id, controller)


@router.post("/{session_id}/hotels", status_code=status.HTTP_201_CREATED)
async def add_hotel(
    session_id: str,
    payload: AddHotelRequest,
    user: CurrentUser = Depends(get_current_user),
    offers: OfferStore = Depends(get_offer_store),
    reference: ReferenceDataStore = Depends(get_reference_store),
    sessions: DraftSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    controller, state = await _open(session_id, user, offers, sessions)
    rate = await reference.get_hotel_rate(payload.rate_id)
    if rate is None:
        raise CatalogEntryNotFoundError("Hotel rate", payload.rate_id)
    policies = await reference.list_child_policies(hotel_id=rate.hotel_id)
    controller.add_hotel(
        rate,
        policies,
        check_in=payload.check_in,
        check_out=payload.check_out,
        nights=payload.nights,
        adults=payload.adults,
        child_ages=payload.child_ages,
    )
    await _store(session_id, controller, user, sessions, state.get("draftId"))
    return _payload(session_id, controller)


@router.post("/{session_id}/equipment", status_code=status.HTTP_201_CREATED)
async def add_equipment(
    session_id: str,
    payload: AddEquipmentRequest,
    user: CurrentUser = Depends(get_current_user),
    offers: OfferStore = Depends(get_offer_store),
    reference: ReferenceDataStore = Depends(get_reference_store),
    sessions: DraftSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    controller, state = await _open(session_id, user, offers, sessions)
    equipment = await reference.get_equipment(payload.equipment_id)
    if equipment is None:
        raise CatalogEntryNotFoundError("Equipment", payload.equipment_id)
    controller.add_equipment(equipment, quantity=payload.quantity, duration=payload.duration)
    await _store(session_id, controller, user, sessions, state.get("draftId"))
    return _payload(session_id, controller)


@router.post("/{session_id}/transport", status_code=status.HTTP_201_CREATED)
async def add_transport(
    session_id: str,
    payload: AddTransportRequest,
    user: CurrentUser = Depends(get_current_user),
    offers: OfferStore = Depends(get_offer_store),
    reference: ReferenceDataStore = Depends(get_reference_store),
    sessions: DraftSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    controller, state = await _open(session_id, user, offers, sessions)
    service = await reference.get_transport_service(payload.service_id)
    if service is None:
        raise CatalogEntryNotFoundError("Transport service", payload.service_id)
    controller.add_transport(service, date=payload.travel_date, pax=payload.pax)
    await _store(session_id, controller, user, sessions, state.get("draftId"))
    return _payload(session_id, controller)


@router.post("/{session_id}/additional", status_code=status.HTTP_201_CREATED)
async def add_additional_service(
    session_id: str,
    payload: AddAdditionalRequest,
    user: CurrentUser = Depends(get_current_user),
    offers: OfferStore = Depends(get_offer_store),
    sessions: DraftSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    controller, state = await _open(session_id, user, offers, sessions)
    controller.add_additional_service(
        payload.service_name, payload.description, payload.price, payload.currency
    )
    await _store(session_id, controller, user, sessions, state.get("draftId"))
    return _payload(session_id, controller)


@router.put("/{session_id}/items/{category}/{item_id}")
async def update_item(
    session_id: str,
    category: str,
    item_id: str,
    changes: dict[str, Any],
    user: CurrentUser = Depends(get_current_user),
    offers: OfferStore = Depends(get_offer_store),
    reference: ReferenceDataStore = Depends(get_reference_store),
    sessions: DraftSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    controller, state = await _open(session_id, user, offers, sessions)
    line_category = parse_category(category)
    key_map = ITEM_TYPES[line_category].key_map()
    fields = {key_map.get(key, key): value for key, value in changes.items()}
    policies = []
    if line_category is LineCategory.HOTELS:
        hotel = next((item for item in controller.draft.hotels if item.id == item_id), None)
        if hotel is not None:
            policies = await reference.list_child_policies(hotel_id=hotel.hotel_id)
    try:
        controller.update_item(line_category, item_id, fields, policies=policies)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    await _store(session_id, controller, user, sessions, state.get("draftId"))
    return _payload(session_id, controller)


@router.delete("/{session_id}/items/{category}/{item_id}")
async def remove_item(
    session_id: str,
    category: str,
    item_id: str,
    user: CurrentUser = Depends(get_current_user),
    offers: OfferStore = Depends(get_offer_store),
    sessions: DraftSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    controller, state = await _open(session_id, user, offers, sessions)
    controller.remove_item(category, item_id)
    await _store(session_id, controller, user, sessions, state.get("draftId"))
    return _payload(session_id, controller)


@router.post("/{session_id}/next")
async def next_step(
    session_id: str,
    user: CurrentUser = Depends(get_current_user),
    offers: OfferStore = Depends(get_offer_store),
    sessions: DraftSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    controller, state = await _open(session_id, user, offers, sessions)
    result = await controller.next_step()
    await _store(session_id, controller, user, sessions, state.get("draftId"))
    return _payload(session_id, controller, result)


@router.post("/{session_id}/previous")
async def previous_step(
    session_id: str,
    user: CurrentUser = Depends(get_current_user),
    offers: OfferStore = Depends(get_offer_store),
    sessions: DraftSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    controller, state = await _open(session_id, user, offers, sessions)
    controller.previous_step()
    await _store(session_id, controller, user, sessions, state.get("draftId"))
    return _payload(session_id, controller)


@router.post("/{session_id}/steps/{index}")
async def go_to_step(
    session_id: str,
    index: int,
    user: CurrentUser = Depends(get_current_user),
    offers: OfferStore = Depends(get_offer_store),
    sessions: DraftSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    controller, state = await _open(session_id, user, offers, sessions)
    controller.go_to_step(index)
    await _store(session_id, controller, user, sessions, state.get("draftId"))
    return _payload(session_id, controller)


@router.post("/{session_id}/submit")
async def submit(
    session_id: str,
    user: CurrentUser = Depends(get_current_user),
    offers: OfferStore = Depends(get_offer_store),
    sessions: DraftSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    controller, state = await _open(session_id, user, offers, sessions)
    result = await controller.submit()
    await _store(session_id, controller, user, sessions, state.get("draftId"))
    return _payload(session_id, controller, result)


@router.post("/{session_id}/draft")
async def save_draft(
    session_id: str,
    payload: SaveDraftRequest | None = None,
    user: CurrentUser = Depends(get_current_user),
    offers: OfferStore = Depends(get_offer_store),
    sessions: DraftSessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    controller, state = await _open(session_id, user, offers, sessions)
    draft_id = payload.draft_id if payload and payload.draft_id is not None else state.get("draftId")
    result, saved_id = await controller.save_draft(draft_id)
    await _store(session_id, controller, user, sessions, saved_id if saved_id is not None else draft_id)
    body = _payload(session_id, controller, result)
    body["draftId"] = saved_id
    return body


__all__ = ["router"]
