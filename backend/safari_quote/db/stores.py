"""Store interfaces (repository pattern).

Stores are passed into the services that need them; implementations must be
swappable (Postgres in production, in-memory fakes in tests) and raise
``DatastoreError`` for any backend failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from safari_quote.quote.models import (
    ChildPolicy,
    EquipmentItem,
    HotelRate,
    LineCategory,
    ParkProductPrice,
    TransportService,
)

# Persisted line item categories: join table and the catalog foreign key column
SERVICE_TABLES: dict[LineCategory, tuple[str, str]] = {
    LineCategory.PARKS: ("offer_park_services", "park_product_price_id"),
    LineCategory.HOTELS: ("offer_hotel_services", "hotel_rate_id"),
    LineCategory.EQUIPMENT: ("offer_equipment_services", "equipment_id"),
    LineCategory.TRANSPORT: ("offer_transport_services", "transport_service_id"),
}

LOOKUP_NAMES = (
    "countries",
    "currencies",
    "age_groups",
    "crew_categories",
    "meal_plans",
    "entry_types",
)


class ReferenceDataStore(ABC):
    """Read access to the catalog and lookup tables."""

    @abstractmethod
    async def list_lookup(self, name: str) -> list[dict[str, Any]]:
        """Return rows of a simple lookup table named in LOOKUP_NAMES."""
        ...

    @abstractmethod
    async def list_clients(self) -> list[dict[str, Any]]:
        """Return clients with their display name and country."""
        ...

    @abstractmethod
    async def list_hotels(self, *, category: str | None = None) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    async def list_park_products(
        self,
        *,
        park_id: int | None = None,
        category: str | None = None,
        entry_type: str | None = None,
    ) -> list[ParkProductPrice]:
        """Return one entry per park product price row, with its season."""
        ...

    @abstractmethod
    async def get_park_product_price(self, price_id: int) -> ParkProductPrice | None:
        ...

    @abstractmethod
    async def list_hotel_rates(
        self, *, hotel_id: int | None = None, meal_plan: str | None = None
    ) -> list[HotelRate]:
        ...

    @abstractmethod
    async def get_hotel_rate(self, rate_id: int) -> HotelRate | None:
        ...

    @abstractmethod
    async def list_child_policies(self, *, hotel_id: int | None = None) -> list[ChildPolicy]:
        ...

    @abstractmethod
    async def list_equipment(self) -> list[EquipmentItem]:
        ...

    @abstractmethod
    async def get_equipment(self, equipment_id: int) -> EquipmentItem | None:
        ...

    @abstractmethod
    async def list_transport_services(self) -> list[TransportService]:
        ...

    @abstractmethod
    async def get_transport_service(self, service_id: int) -> TransportService | None:
        ...


class OfferStore(ABC):
    """Offer headers, their per-category service rows and saved drafts.

    Offers are scoped to the owning company and drafts to the owning user:
    reads and writes for a row the owner does not hold behave as if the row
    did not exist.
    """

    @abstractmethod
    async def get_company_id(self, owner_user_id: str) -> str | None:
        """Return the id of the company owned by the user, or None."""
        ...

    @abstractmethod
    async def generate_offer_code(self) -> str:
        ...

    @abstractmethod
    async def insert_offer(self, values: dict[str, Any]) -> dict[str, Any]:
        """Insert an offer header and return the stored row (with id)."""
        ...

    @abstractmethod
    async def update_offer(
        self, offer_id: int, owner_id: str, values: dict[str, Any]
    ) -> dict[str, Any] | None:
        """Update an offer header; None when the company holds no offer with that id."""
        ...

    @abstractmethod
    async def fetch_offer(self, offer_id: int, owner_id: str) -> dict[str, Any] | None:
        """Return the offer header joined with client name and country."""
        ...

    @abstractmethod
    async def fetch_offer_services(self, category: LineCategory, offer_id: int) -> list[dict[str, Any]]:
        """Service rows joined with the catalog fields they point at."""
        ...

    @abstractmethod
    async def delete_offer_services(self, category: LineCategory, offer_id: int, owner_id: str) -> None:
        ...

    @abstractmethod
    async def insert_offer_service(self, category: LineCategory, row: dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def first_row_id(self, table: str, column: str, value: int) -> int | None:
        """Lowest id in ``table`` where ``column`` equals ``value``."""
        ...

    @abstractmethod
    async def load_draft(self, draft_id: int, owner_id: str) -> dict[str, Any] | None:
        ...

    @abstractmethod
    async def save_draft(self, draft_id: int | None, owner_id: str, data: dict[str, Any]) -> int:
        """Insert or update a quote draft and return its id.

        Updating a draft the user does not own raises ``DatastoreError``.
        """
        ...


__all__ = ["SERVICE_TABLES", "LOOKUP_NAMES", "ReferenceDataStore", "OfferStore"]
