"""Quote draft, line items and the catalog entries they are priced from.

Line items and the draft serialize to camelCase dicts, the shape stored in
``quote_drafts.data`` and returned by the HTTP API.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, ClassVar
from uuid import uuid4


class Currency(str, Enum):
    USD = "USD"
    TZS = "TZS"

    @classmethod
    def parse(cls, value: Any) -> Currency:
        if isinstance(value, cls):
            return value
        return cls(str(value or cls.USD.value).strip().upper())


class LineCategory(str, Enum):
    PARKS = "parks"
    HOTELS = "hotels"
    EQUIPMENT = "equipment"
    TRANSPORT = "transport"
    ADDITIONAL = "additional"


def _new_item_id() -> str:
    return uuid4().hex


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


class _SerializableItem:
    """camelCase dict round-trip shared by all line item variants."""

    key_overrides: ClassVar[dict[str, str]] = {}
    # Quantities that multiply unit_price into price
    unit_fields: ClassVar[tuple[str, ...]] = ()

    def __post_init__(self) -> None:
        self.currency = Currency.parse(self.currency)  # type: ignore[attr-defined]
        for name in ("unit_price", "price", "average_child_rate"):
            value = getattr(self, name, None)
            if value is not None and value < 0:
                raise ValueError(f"{name} cannot be negative")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for item_field in fields(self):  # type: ignore[arg-type]
            value = getattr(self, item_field.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, list):
                value = list(value)
            payload[self.key_overrides.get(item_field.name, _camel(item_field.name))] = value
        return payload

    @classmethod
    def key_map(cls) -> dict[str, str]:
        """Serialized key -> dataclass field name."""
        return {
            cls.key_overrides.get(item_field.name, _camel(item_field.name)): item_field.name
            for item_field in fields(cls)  # type: ignore[arg-type]
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]):
        kwargs: dict[str, Any] = {}
        for item_field in fields(cls):  # type: ignore[arg-type]
            key = cls.key_overrides.get(item_field.name, _camel(item_field.name))
            if key in raw:
                kwargs[item_field.name] = raw[key]
        cls._fill_legacy(kwargs, raw)
        return cls(**kwargs)

    @classmethod
    def _fill_legacy(cls, kwargs: dict[str, Any], raw: dict[str, Any]) -> None:
        """Derive unit_price for items saved before it was stored."""
        names = {item_field.name for item_field in fields(cls)}  # type: ignore[arg-type]
        if "unit_price" not in names or "unit_price" in kwargs or "price" not in kwargs:
            return
        divisor = 1
        for name in cls.unit_fields:
            divisor *= int(kwargs.get(name) or 0)
        price = float(kwargs["price"])
        kwargs["unit_price"] = price / divisor if divisor > 0 else price


@dataclass
class ParkSelection(_SerializableItem):
    unit_fields: ClassVar[tuple[str, ...]] = ("duration", "pax")

    park_id: int
    park_name: str
    product_name: str
    category: str
    entry_type: str
    duration: int
    pax: int
    unit_price: float
    price: float
    currency: Currency = Currency.USD
    price_id: int | None = None
    stored_description: str | None = None
    id: str = field(default_factory=_new_item_id)


@dataclass
class HotelSelection(_SerializableItem):
    unit_fields: ClassVar[tuple[str, ...]] = ("nights", "adults")

    hotel_id: int
    hotel_name: str
    room_type: str
    check_in: str
    check_out: str
    nights: int
    adults: int
    unit_price: float
    price: float
    currency: Currency = Currency.USD
    child_ages: list[int] = field(default_factory=list)
    average_child_rate: float = 0.0
    meal_plan: str = ""
    rate_id: int | None = None
    stored_description: str | None = None
    id: str = field(default_factory=_new_item_id)

    @property
    def pax(self) -> int:
        return self.adults + len(self.child_ages)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["pax"] = self.pax
        return payload

    @classmethod
    def _fill_legacy(cls, kwargs: dict[str, Any], raw: dict[str, Any]) -> None:
        if "adults" not in kwargs and raw.get("pax") is not None:
            kwargs["adults"] = max(1, int(raw["pax"]) - len(kwargs.get("child_ages") or []))
        super()._fill_legacy(kwargs, raw)


@dataclass
class EquipmentSelection(_SerializableItem):
    unit_fields: ClassVar[tuple[str, ...]] = ("quantity", "duration")

    equipment_id: int
    equipment_name: str
    category: str
    quantity: int
    duration: int
    unit_price: float
    price: float
    currency: Currency = Currency.USD
    stored_description: str | None = None
    id: str = field(default_factory=_new_item_id)


@dataclass
class TransportSelection(_SerializableItem):
    key_overrides: ClassVar[dict[str, str]] = {"from_location": "from", "to_location": "to"}

    vehicle_id: int
    vehicle_name: str
    from_location: str
    to_location: str
    date: str
    pax: int
    unit_price: float
    price: float
    currency: Currency = Currency.USD
    stored_description: str | None = None
    id: str = field(default_factory=_new_item_id)


@dataclass
class AdditionalService(_SerializableItem):
    service_name: str
    description: str
    price: float
    currency: Currency = Currency.USD
    id: str = field(default_factory=_new_item_id)


LineItem = ParkSelection | HotelSelection | EquipmentSelection | TransportSelection | AdditionalService

ITEM_TYPES: dict[LineCategory, type] = {
    LineCategory.PARKS: ParkSelection,
    LineCategory.HOTELS: HotelSelection,
    LineCategory.EQUIPMENT: EquipmentSelection,
    LineCategory.TRANSPORT: TransportSelection,
    LineCategory.ADDITIONAL: AdditionalService,
}

_DRAFT_LIST_KEYS: dict[LineCategory, str] = {
    LineCategory.PARKS: "selectedParks",
    LineCategory.HOTELS: "selectedHotels",
    LineCategory.EQUIPMENT: "selectedEquipment",
    LineCategory.TRANSPORT: "selectedTransport",
    LineCategory.ADDITIONAL: "additionalServices",
}


@dataclass(frozen=True)
class SeasonWindow:
    name: str
    start: date
    end: date


@dataclass(frozen=True)
class ChildPolicy:
    id: int
    hotel_id: int
    min_age: int
    max_age: int
    fee_percentage: float
    adult_sharing: bool = False


@dataclass(frozen=True)
class ParkProductPrice:
    id: int
    park_product_id: int
    park_name: str
    product_name: str
    category: str
    entry_type: str
    currency: Currency
    unit_amount: float
    season: SeasonWindow | None = None


@dataclass(frozen=True)
class HotelRate:
    id: int
    hotel_id: int
    hotel_name: str
    room_name: str
    meal_plan: str
    currency: Currency
    rate: float
    season: SeasonWindow | None = None


@dataclass(frozen=True)
class EquipmentItem:
    id: int
    name: str
    category: str
    price: float
    currency: Currency


@dataclass(frozen=True)
class TransportService:
    id: int
    name: str
    from_location: str
    to_location: str
    price: float
    currency: Currency


@dataclass
class QuoteDraft:
    client_id: str | None = None
    client_name: str = ""
    client_country: str = ""
    start_date: date | None = None
    end_date: date | None = None
    adults: int = 1
    child_ages: list[int] = field(default_factory=list)
    trip_type: str = "safari"
    offer_id: int | None = None
    parks: list[ParkSelection] = field(default_factory=list)
    hotels: list[HotelSelection] = field(default_factory=list)
    equipment: list[EquipmentSelection] = field(default_factory=list)
    transport: list[TransportSelection] = field(default_factory=list)
    additional_services: list[AdditionalService] = field(default_factory=list)
    currency: Currency = Currency.USD
    total_amount: float = 0.0
    created_at: str = field(default_factory=_utc_now_iso)
    updated_at: str = field(default_factory=_utc_now_iso)

    @property
    def children(self) -> int:
        return len(self.child_ages)

    def items(self, category: LineCategory) -> list[Any]:
        if category is LineCategory.PARKS:
            return self.parks
        if category is LineCategory.HOTELS:
            return self.hotels
        if category is LineCategory.EQUIPMENT:
            return self.equipment
        if category is LineCategory.TRANSPORT:
            return self.transport
        return self.additional_services

    def all_items(self) -> list[Any]:
        collected: list[Any] = []
        for category in LineCategory:
            collected.extend(self.items(category))
        return collected

    def touch(self) -> None:
        self.updated_at = _utc_now_iso()

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "clientId": self.client_id,
            "clientName": self.client_name,
            "clientCountry": self.client_country,
            "startDate": self.start_date.isoformat() if self.start_date else "",
            "endDate": self.end_date.isoformat() if self.end_date else "",
            "adults": self.adults,
            "children": self.children,
            "childAges": list(self.child_ages),
            "tripType": self.trip_type,
            "offerId": str(self.offer_id) if self.offer_id is not None else None,
            "currency": self.currency.value,
            "totalAmount": self.total_amount,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        for category, key in _DRAFT_LIST_KEYS.items():
            payload[key] = [item.to_dict() for item in self.items(category)]
        return payload

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> QuoteDraft | None:
        if not isinstance(raw, dict):
            return None
        ages = [int(age) for age in raw.get("childAges") or []]
        declared_children = raw.get("children")
        if isinstance(declared_children, int) and declared_children >= 0:
            # Older drafts stored the count separately; new children start at age 0
            ages = (ages + [0] * declared_children)[:declared_children]
        offer_id = raw.get("offerId")
        client_id = raw.get("clientId")
        draft = cls(
            client_id=str(client_id) if client_id not in (None, "") else None,
            client_name=raw.get("clientName") or "",
            client_country=raw.get("clientCountry") or "",
            start_date=parse_date(raw.get("startDate")),
            end_date=parse_date(raw.get("endDate")),
            adults=int(raw.get("adults", 1)),
            child_ages=ages,
            trip_type=raw.get("tripType") or "safari",
            offer_id=int(offer_id) if offer_id not in (None, "") else None,
            currency=Currency.parse(raw.get("currency")),
            total_amount=float(raw.get("totalAmount") or 0.0),
        )
        if raw.get("createdAt"):
            draft.created_at = raw["createdAt"]
        if raw.get("updatedAt"):
            draft.updated_at = raw["updatedAt"]
        for category, key in _DRAFT_LIST_KEYS.items():
            item_type = ITEM_TYPES[category]
            draft.items(category).extend(
                item_type.from_dict(item) for item in raw.get(key) or [] if isinstance(item, dict)
            )
        return draft


__all__ = [
    "Currency",
    "LineCategory",
    "LineItem",
    "ITEM_TYPES",
    "ParkSelection",
    "HotelSelection",
    "EquipmentSelection",
    "TransportSelection",
    "AdditionalService",
    "SeasonWindow",
    "ChildPolicy",
    "ParkProductPrice",
    "HotelRate",
    "EquipmentItem",
    "TransportService",
    "QuoteDraft",
    "parse_date",
]
