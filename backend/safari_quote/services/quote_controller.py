"""Wizard controller for building a safari quote.

The controller owns one ``QuoteDraft`` and the current wizard step. Draft
mutations are synchronous and reprice through ``safari_quote.quote.pricing``;
anything that touches the database goes through the injected ``OfferStore``.
Datastore failures never escape: they are logged and returned as a message on
the operation result.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field, fields, replace
from typing import Any, Iterable

from safari_quote.core.errors import DatastoreError, LineItemNotFoundError, UnknownCategoryError
from safari_quote.db.stores import SERVICE_TABLES, OfferStore
from safari_quote.quote import pricing
from safari_quote.quote.models import (
    AdditionalService,
    ChildPolicy,
    Currency,
    EquipmentItem,
    EquipmentSelection,
    HotelRate,
    HotelSelection,
    LineCategory,
    ParkProductPrice,
    ParkSelection,
    QuoteDraft,
    TransportSelection,
    TransportService,
    parse_date,
)
from safari_quote.quote.steps import STEP_ORDER, QuoteStep, StepValidation, validate_step

logger = logging.getLogger(__name__)

# Catalog table/column used to resolve a selection when it carries no explicit row id
_FALLBACK_LOOKUPS: dict[LineCategory, tuple[str, str]] = {
    LineCategory.PARKS: ("park_product_price", "park_product_id"),
    LineCategory.HOTELS: ("hotel_rates", "hotel_id"),
    LineCategory.EQUIPMENT: ("equipment", "id"),
    LineCategory.TRANSPORT: ("transport_services", "id"),
}

_READONLY_FIELDS = frozenset({"id", "price", "average_child_rate", "stored_description"})

# Trip fields that cannot be cleared
_REQUIRED_TRIP_FIELDS = frozenset({"client_name", "client_country", "adults", "trip_type", "currency"})


@dataclass
class OperationResult:
    ok: bool
    message: str | None = None
    errors: dict[str, str] = field(default_factory=dict)
    persisted: dict[str, int] = field(default_factory=dict)
    skipped: list[dict[str, Any]] = field(default_factory=list)
    not_persisted: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "message": self.message,
            "errors": dict(self.errors),
            "persisted": dict(self.persisted),
            "skipped": list(self.skipped),
            "notPersisted": list(self.not_persisted),
        }


def parse_category(value: str | LineCategory) -> LineCategory:
    try:
        return LineCategory(value)
    except ValueError as exc:
        raise UnknownCategoryError(str(value)) from exc


def offer_name(draft: QuoteDraft) -> str:
    trip_type = draft.trip_type or "safari"
    label = trip_type[:1].upper() + trip_type[1:]
    start = draft.start_date.isoformat() if draft.start_date else ""
    end = draft.end_date.isoformat() if draft.end_date else ""
    return f"{draft.client_name} - {label} Safari ({start} to {end})"


def service_description(category: LineCategory, item: Any) -> str:
    stored = getattr(item, "stored_description", None)
    if stored:
        return stored
    if category is LineCategory.PARKS:
        return f"{item.park_name} - {item.category} ({item.entry_type}) for {item.duration} days"
    if category is LineCategory.HOTELS:
        return f"{item.hotel_name} - {item.room_type} ({item.nights} nights)"
    if category is LineCategory.EQUIPMENT:
        return (
            f"{item.equipment_name} - {item.category} "
            f"({item.quantity}x for {item.duration} days)"
        )
    if category is LineCategory.TRANSPORT:
        return f"{item.vehicle_name} from {item.from_location} to {item.to_location} on {item.date}"
    return f"{item.service_name} - {item.description}"


def _client_reference(client_id: str | None) -> int | str | None:
    if client_id is None:
        return None
    return int(client_id) if client_id.isdigit() else client_id


class QuoteDraftController:
    def __init__(
        self,
        offers: OfferStore,
        *,
        user_id: str,
        draft: QuoteDraft | None = None,
        step: QuoteStep = QuoteStep.CLIENT_TRIP,
    ) -> None:
        self._offers = offers
        self._user_id = user_id
        self._draft = draft or QuoteDraft()
        self._step = step
        self._company_id: str | None = None

    @property
    def draft(self) -> QuoteDraft:
        return self._draft

    @property
    def step(self) -> QuoteStep:
        return self._step

    # Navigation

    def validate_step(self, step: QuoteStep | None = None) -> StepValidation:
        return validate_step(self._draft, step or self._step)

    async def next_step(self) -> OperationResult:
        if self._step is STEP_ORDER[-1]:
            return OperationResult(ok=True)
        validation = self.validate_step()
        if not validation.is_valid:
            return OperationResult(
                ok=False,
                message="Please fix the highlighted fields before continuing",
                errors=dict(validation.errors),
            )
        if self._step is QuoteStep.CLIENT_TRIP:
            try:
                await self._save_offer_header()
            except DatastoreError as exc:
                logger.error("Failed to save offer header for user %s: %s", self._user_id, exc)
                return OperationResult(ok=False, message="Could not save the quote. Please try again.")
        self._step = STEP_ORDER[self._step.index + 1]
        return OperationResult(ok=True)

    def previous_step(self) -> QuoteStep:
        if self._step.index > 0:
            self._step = STEP_ORDER[self._step.index - 1]
        return self._step

    def go_to_step(self, index: int) -> QuoteStep:
        if 0 <= index < len(STEP_ORDER):
            self._step = STEP_ORDER[index]
        return self._step

    async def _company(self) -> str:
        if self._company_id is None:
            company_id = await self._offers.get_company_id(self._user_id)
            if company_id is None:
                raise DatastoreError(f"No company registered for user {self._user_id}")
            self._company_id = company_id
        return self._company_id

    async def _save_offer_header(self) -> None:
        draft = self._draft
        values = {
            "offer_name": offer_name(draft),
            "client_id": _client_reference(draft.client_id),
            "active_from": draft.start_date,
            "active_to": draft.end_date,
        }
        company_id = await self._company()
        if draft.offer_id is not None:
            updated = await self._offers.update_offer(draft.offer_id, company_id, values)
            if updated is None:
                raise DatastoreError(f"Offer {draft.offer_id} does not exist for company {company_id}")
            logger.info("Updated offer %s header", draft.offer_id)
            return

        code = await self._offers.generate_offer_code()
        row = await self._offers.insert_offer(
            {**values, "offer_code": code, "owner_id": company_id, "accepted": False}
        )
        draft.offer_id = int(row["id"])
        draft.touch()
        logger.info("Created offer %s (%s) for company %s", draft.offer_id, code, company_id)

    # Draft edits

    def _refresh(self) -> None:
        self._draft.total_amount = pricing.grand_total(self._draft)
        self._draft.touch()

    def update_trip(self, **changes: Any) -> QuoteDraft:
        draft = self._draft
        allowed = {
            "client_id",
            "client_name",
            "client_country",
            "start_date",
            "end_date",
            "adults",
            "child_ages",
            "trip_type",
            "currency",
        }
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Unknown trip fields: {', '.join(sorted(unknown))}")
        for name, value in changes.items():
            if value is None and name in _REQUIRED_TRIP_FIELDS:
                continue
            if name in ("start_date", "end_date"):
                value = parse_date(value)
            elif name == "currency":
                value = Currency.parse(value)
            elif name == "child_ages":
                value = [int(age) for age in value or []]
            elif name == "client_id" and value is not None:
                value = str(value)
            setattr(draft, name, value)
        self._refresh()
        return draft

    def _default_pax(self) -> int:
        return self._draft.adults + self._draft.children

    def _default_days(self) -> int:
        return max(1, pricing.trip_nights(self._draft.start_date, self._draft.end_date))

    def add_park(
        self, entry: ParkProductPrice, *, duration: int | None = None, pax: int | None = None
    ) -> ParkSelection:
        duration = duration if duration is not None else self._default_days()
        pax = pax if pax is not None else self._default_pax()
        item = ParkSelection(
            park_id=entry.park_product_id,
            park_name=entry.park_name,
            product_name=entry.product_name,
            category=entry.category,
            entry_type=entry.entry_type,
            duration=duration,
            pax=pax,
            unit_price=entry.unit_amount,
            price=pricing.price_park(entry.unit_amount, duration, pax),
            currency=entry.currency,
            price_id=entry.id,
        )
        self._draft.parks.append(item)
        self._refresh()
        return item

    def add_hotel(
        self,
        rate: HotelRate,
        policies: Iterable[ChildPolicy],
        *,
        check_in: Any = None,
        check_out: Any = None,
        nights: int | None = None,
        adults: int | None = None,
        child_ages: list[int] | None = None,
    ) -> HotelSelection:
        start = parse_date(check_in) or self._draft.start_date
        end = parse_date(check_out) or self._draft.end_date
        nights = nights if nights is not None else pricing.trip_nights(start, end)
        adults = adults if adults is not None else self._draft.adults
        ages = list(child_ages) if child_ages is not None else list(self._draft.child_ages)
        quote = pricing.price_hotel(rate.rate, adults, ages, nights, rate.hotel_id, policies)
        item = HotelSelection(
            hotel_id=rate.hotel_id,
            hotel_name=rate.hotel_name,
            room_type=rate.room_name,
            check_in=start.isoformat() if start else "",
            check_out=end.isoformat() if end else "",
            nights=nights,
            adults=adults,
            unit_price=rate.rate,
            price=quote.total,
            currency=rate.currency,
            child_ages=ages,
            average_child_rate=quote.average_child_rate,
            meal_plan=rate.meal_plan,
            rate_id=rate.id,
        )
        self._draft.hotels.append(item)
        self._refresh()
        return item

    def add_equipment(
        self, equipment: EquipmentItem, *, quantity: int = 1, duration: int | None = None
    ) -> EquipmentSelection:
        duration = duration if duration is not None else self._default_days()
        item = EquipmentSelection(
            equipment_id=equipment.id,
            equipment_name=equipment.name,
            category=equipment.category,
            quantity=quantity,
            duration=duration,
            unit_price=equipment.price,
            price=pricing.price_equipment(equipment.price, quantity, duration),
            currency=equipment.currency,
        )
        self._draft.equipment.append(item)
        self._refresh()
        return item

    def add_transport(
        self, service: TransportService, *, date: Any = None, pax: int | None = None
    ) -> TransportSelection:
        travel_date = parse_date(date) or self._draft.start_date
        item = TransportSelection(
            vehicle_id=service.id,
            vehicle_name=service.name,
            from_location=service.from_location,
            to_location=service.to_location,
            date=travel_date.isoformat() if travel_date else "",
            pax=pax if pax is not None else self._default_pax(),
            unit_price=service.price,
            price=pricing.price_transport(service.price),
            currency=service.currency,
        )
        self._draft.transport.append(item)
        self._refresh()
        return item

    def add_additional_service(
        self, service_name: str, description: str, price: float, currency: Currency | str = Currency.USD
    ) -> AdditionalService:
        item = AdditionalService(
            service_name=service_name, description=description, price=price, currency=currency
        )
        self._draft.additional_services.append(item)
        self._refresh()
        return item

    def _locate(self, category: LineCategory, item_id: str) -> tuple[list[Any], int]:
        items = self._draft.items(category)
        for index, item in enumerate(items):
            if item.id == item_id:
                return items, index
        raise LineItemNotFoundError(category.value, item_id)

    def update_item(
        self,
        category: str | LineCategory,
        item_id: str,
        changes: dict[str, Any],
        *,
        policies: Iterable[ChildPolicy] = (),
    ) -> Any:
        """Replace an item with an edited, repriced copy at the same position."""
        category = parse_category(category)
        items, index = self._locate(category, item_id)
        current = items[index]
        editable = {item_field.name for item_field in fields(current)} - _READONLY_FIELDS
        unknown = set(changes) - editable
        if unknown:
            raise ValueError(f"Cannot edit {', '.join(sorted(unknown))} on {category.value} items")
        changes = dict(changes)
        if (
            category is LineCategory.HOTELS
            and "nights" not in changes
            and ("check_in" in changes or "check_out" in changes)
        ):
            check_in = parse_date(changes.get("check_in", current.check_in))
            check_out = parse_date(changes.get("check_out", current.check_out))
            changes["nights"] = pricing.trip_nights(check_in, check_out)
        if hasattr(current, "stored_description"):
            changes["stored_description"] = None
        edited = _reprice(category, replace(current, **changes), list(policies))
        items.pop(index)
        items.insert(index, edited)
        self._refresh()
        return edited

    def remove_item(self, category: str | LineCategory, item_id: str) -> None:
        category = parse_category(category)
        items, index = self._locate(category, item_id)
        items.pop(index)
        self._refresh()

    # Persistence

    async def submit(self) -> OperationResult:
        """Replace every stored service row of the offer with the current items."""
        draft = self._draft
        if draft.offer_id is None:
            return OperationResult(ok=False, message="Complete the client and trip step before saving")
        offer_id = draft.offer_id
        result = OperationResult(ok=True)

        try:
            company_id = await self._company()
            if await self._offers.fetch_offer(offer_id, company_id) is None:
                logger.warning("User %s cannot save services of offer %s", self._user_id, offer_id)
                return OperationResult(
                    ok=False, message=f"Offer {offer_id} not found", errors={"offerId": "not found"}
                )
            await asyncio.gather(
                *(
                    self._offers.delete_offer_services(category, offer_id, company_id)
                    for category in SERVICE_TABLES
                )
            )
        except DatastoreError as exc:
            logger.error("Failed to clear services of offer %s: %s", offer_id, exc)
            return OperationResult(ok=False, message="Could not save the quote services. Please try again.")
        logger.info("Cleared existing services for offer %s", offer_id)

        for category, (_, fk_column) in SERVICE_TABLES.items():
            saved = 0
            try:
                for item in draft.items(category):
                    reference = await self._resolve_reference(category, item)
                    if reference is None:
                        logger.warning(
                            "Skipping %s item %s: no catalog row for it", category.value, item.id
                        )
                        result.skipped.append(
                            {"category": category.value, "id": item.id, "reason": "catalog row not found"}
                        )
                        continue
                    await self._offers.insert_offer_service(
                        category,
                        {
                            "offer_id": offer_id,
                            fk_column: reference,
                            "price": item.price,
                            "discount_percent": 0,
                            "final_service_price": item.price,
                            "description": service_description(category, item),
                        },
                    )
                    saved += 1
            except DatastoreError as exc:
                logger.error("Failed to save %s services of offer %s: %s", category.value, offer_id, exc)
                result.ok = False
                result.persisted[category.value] = saved
                result.message = f"Could not save {category.value} services. Please try again."
                return result
            result.persisted[category.value] = saved
            logger.info("Saved %d %s services for offer %s", saved, category.value, offer_id)

        for service in draft.additional_services:
            result.not_persisted.append(
                {"category": LineCategory.ADDITIONAL.value, "id": service.id, "name": service.service_name}
            )
        if draft.additional_services:
            logger.info(
                "Offer %s has %d additional services that are not stored",
                offer_id,
                len(draft.additional_services),
            )
        return result

    async def _resolve_reference(self, category: LineCategory, item: Any) -> int | None:
        if category is LineCategory.PARKS and item.price_id is not None:
            return item.price_id
        if category is LineCategory.HOTELS and item.rate_id is not None:
            return item.rate_id
        table, column = _FALLBACK_LOOKUPS[category]
        key = {
            LineCategory.PARKS: lambda: item.park_id,
            LineCategory.HOTELS: lambda: item.hotel_id,
            LineCategory.EQUIPMENT: lambda: item.equipment_id,
            LineCategory.TRANSPORT: lambda: item.vehicle_id,
        }[category]()
        return await self._offers.first_row_id(table, column, key)

    async def load_offer(self, offer_id: int) -> OperationResult:
        """Replace the draft with one hydrated from a stored offer."""
        try:
            company_id = await self._company()
            header = await self._offers.fetch_offer(offer_id, company_id)
            if header is None:
                return OperationResult(
                    ok=False, message=f"Offer {offer_id} not found", errors={"offerId": "not found"}
                )
            categories = list(SERVICE_TABLES)
            rows = await asyncio.gather(
                *(self._offers.fetch_offer_services(category, offer_id) for category in categories)
            )
        except DatastoreError as exc:
            logger.error("Failed to load offer %s: %s", offer_id, exc)
            return OperationResult(ok=False, message="Could not load the quote. Please try again.")

        first = header.get("cus_first_name") or ""
        last = header.get("cus_last_name") or ""
        draft = QuoteDraft(
            client_id=str(header["client_id"]) if header.get("client_id") is not None else None,
            client_name=f"{first} {last}".strip(),
            client_country=header.get("country_name") or "",
            start_date=parse_date(header.get("active_from")),
            end_date=parse_date(header.get("active_to")),
            offer_id=int(header["id"]),
        )
        created = header.get("time_created") or header.get("created_at")
        if created is not None:
            draft.created_at = created.isoformat() if hasattr(created, "isoformat") else str(created)
        for category, service_rows in zip(categories, rows):
            draft.items(category).extend(_item_from_service_row(category, row) for row in service_rows)
        self._draft = draft
        self._step = QuoteStep.CLIENT_TRIP
        self._refresh()
        return OperationResult(ok=True)

    async def save_draft(self, draft_id: int | None = None) -> tuple[OperationResult, int | None]:
        try:
            saved_id = await self._offers.save_draft(draft_id, self._user_id, self._draft.to_dict())
        except DatastoreError as exc:
            logger.error("Failed to save quote draft for user %s: %s", self._user_id, exc)
            return OperationResult(ok=False, message="Could not save the draft. Please try again."), None
        logger.info("Saved quote draft %s", saved_id)
        return OperationResult(ok=True), saved_id

    async def load_draft(self, draft_id: int) -> OperationResult:
        try:
            row = await self._offers.load_draft(draft_id, self._user_id)
        except DatastoreError as exc:
            logger.error("Failed to load quote draft %s: %s", draft_id, exc)
            return OperationResult(ok=False, message="Could not load the draft. Please try again.")
        try:
            draft = QuoteDraft.from_dict(row.get("data")) if row else None
        except (TypeError, ValueError) as exc:
            logger.warning("Quote draft %s is not readable: %s", draft_id, exc)
            return OperationResult(
                ok=False, message=f"Draft {draft_id} cannot be opened", errors={"draftId": "invalid"}
            )
        if draft is None:
            return OperationResult(
                ok=False, message=f"Draft {draft_id} not found", errors={"draftId": "not found"}
            )
        self._draft = draft
        self._step = QuoteStep.CLIENT_TRIP
        return OperationResult(ok=True)

    # Session state

    def to_state(self) -> dict[str, Any]:
        return {"draft": self._draft.to_dict(), "step": self._step.value}

    @classmethod
    def from_state(cls, offers: OfferStore, *, user_id: str, state: dict[str, Any]) -> QuoteDraftController:
        draft = QuoteDraft.from_dict(state.get("draft")) or QuoteDraft()
        try:
            step = QuoteStep(state.get("step"))
        except ValueError:
            step = QuoteStep.CLIENT_TRIP
        return cls(offers, user_id=user_id, draft=draft, step=step)


def _reprice(category: LineCategory, item: Any, policies: list[ChildPolicy]) -> Any:
    if category is LineCategory.PARKS:
        return replace(item, price=pricing.price_park(item.unit_price, item.duration, item.pax))
    if category is LineCategory.HOTELS:
        quote = pricing.price_hotel(
            item.unit_price, item.adults, item.child_ages, item.nights, item.hotel_id, policies
        )
        return replace(item, price=quote.total, average_child_rate=quote.average_child_rate)
    if category is LineCategory.EQUIPMENT:
        return replace(
            item, price=pricing.price_equipment(item.unit_price, item.quantity, item.duration)
        )
    if category is LineCategory.TRANSPORT:
        return replace(item, price=pricing.price_transport(item.unit_price))
    return item


# Counts recovered from the descriptions written by service_description
_DAYS_RE = re.compile(r"for (\d+) days$")
_NIGHTS_RE = re.compile(r"\((\d+) nights\)$")
_EQUIPMENT_RE = re.compile(r"\((\d+)x for (\d+) days\)$")
_TRAVEL_DATE_RE = re.compile(r" on (\S+)$")


def _match_int(pattern: re.Pattern[str], text: str, default: int = 1, group: int = 1) -> int:
    match = pattern.search(text)
    return int(match.group(group)) if match else default


def _row_currency(row: dict[str, Any]) -> Currency:
    value = row.get("currency_name")
    try:
        return Currency.parse(value)
    except ValueError:
        logger.warning("Unsupported currency %r on stored service, using USD", value)
        return Currency.USD


def _headcount(price: float, unit_price: float, count: int) -> int:
    # Price was unit * count * heads; fall back to one head when it does not divide
    if unit_price <= 0 or count <= 0:
        return 1
    heads = price / (unit_price * count)
    return int(round(heads)) if heads >= 1 and abs(heads - round(heads)) < 1e-6 else 1


def _item_from_service_row(category: LineCategory, row: dict[str, Any]) -> Any:
    price = float(row.get("final_service_price") or row.get("price") or 0)
    description = row.get("description") or ""
    unit_price = float(row.get("catalog_price") or price)
    currency = _row_currency(row)
    _, fk_column = SERVICE_TABLES[category]
    reference = int(row.get(fk_column) or 0)
    if category is LineCategory.PARKS:
        duration = _match_int(_DAYS_RE, description)
        return ParkSelection(
            park_id=int(row.get("park_product_id") or 0),
            park_name=row.get("national_park_name") or "",
            product_name=row.get("product_name") or "",
            category=row.get("category_name") or "",
            entry_type=row.get("entry_name") or "",
            duration=duration,
            pax=_headcount(price, unit_price, duration),
            unit_price=unit_price,
            price=price,
            currency=currency,
            price_id=reference,
            stored_description=description or None,
        )
    if category is LineCategory.HOTELS:
        nights = _match_int(_NIGHTS_RE, description)
        return HotelSelection(
            hotel_id=int(row.get("hotel_id") or 0),
            hotel_name=row.get("hotel_name") or "",
            room_type=row.get("room_name") or "",
            check_in="",
            check_out="",
            nights=nights,
            adults=_headcount(price, unit_price, nights),
            unit_price=unit_price,
            price=price,
            currency=currency,
            meal_plan=row.get("meal_plan") or "",
            rate_id=reference,
            stored_description=description or None,
        )
    if category is LineCategory.EQUIPMENT:
        return EquipmentSelection(
            equipment_id=reference,
            equipment_name=row.get("equipment_name") or "",
            category=row.get("category_name") or "",
            quantity=_match_int(_EQUIPMENT_RE, description),
            duration=_match_int(_EQUIPMENT_RE, description, group=2),
            unit_price=unit_price,
            price=price,
            currency=currency,
            stored_description=description or None,
        )
    travel_date = _TRAVEL_DATE_RE.search(description)
    return TransportSelection(
        vehicle_id=reference,
        vehicle_name=row.get("transport_type") or "",
        from_location=row.get("from_city") or "",
        to_location=row.get("to_city") or "",
        date=travel_date.group(1) if travel_date else "",
        pax=1,
        unit_price=unit_price,
        price=price,
        currency=currency,
        stored_description=description or None,
    )


__all__ = [
    "OperationResult",
    "QuoteDraftController",
    "offer_name",
    "parse_category",
    "service_description",
]
