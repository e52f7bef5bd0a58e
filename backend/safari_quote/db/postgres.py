"""asyncpg-backed implementations of the store interfaces."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, TypeVar

import asyncpg
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from safari_quote.core.errors import DatastoreError
from safari_quote.db.queries import offers as offer_queries
from safari_quote.db.queries import reference as reference_queries
from safari_quote.db.stores import LOOKUP_NAMES, SERVICE_TABLES, OfferStore, ReferenceDataStore
from safari_quote.quote.models import (
    ChildPolicy,
    Currency,
    EquipmentItem,
    HotelRate,
    LineCategory,
    ParkProductPrice,
    SeasonWindow,
    TransportService,
    parse_date,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_ERRORS = (
    OSError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.InterfaceError,
)


def _season(row: dict[str, Any]) -> SeasonWindow | None:
    start = parse_date(row.get("start_date"))
    end = parse_date(row.get("end_date"))
    if start is None or end is None:
        return None
    return SeasonWindow(name=row.get("season_name") or "", start=start, end=end)


def _currency(row: dict[str, Any]) -> Currency | None:
    try:
        return Currency.parse(row.get("currency_name"))
    except ValueError:
        logger.warning("Skipping catalog row %s with unsupported currency %r", row.get("id"), row.get("currency_name"))
        return None


def _park_price(row: dict[str, Any]) -> ParkProductPrice | None:
    currency = _currency(row)
    if currency is None:
        return None
    return ParkProductPrice(
        id=int(row["id"]),
        park_product_id=int(row["park_product_id"]),
        park_name=row.get("national_park_name") or "",
        product_name=row.get("product_name") or "",
        category=row.get("category_name") or "",
        entry_type=row.get("entry_name") or "",
        currency=currency,
        unit_amount=float(row.get("unit_amount") or 0),
        season=_season(row),
    )


def _hotel_rate(row: dict[str, Any]) -> HotelRate | None:
    currency = _currency(row)
    if currency is None:
        return None
    return HotelRate(
        id=int(row["id"]),
        hotel_id=int(row["hotel_id"]),
        hotel_name=row.get("hotel_name") or "",
        room_name=row.get("room_name") or "",
        meal_plan=row.get("meal_plan") or "",
        currency=currency,
        rate=float(row.get("rate") or 0),
        season=_season(row),
    )


def _equipment(row: dict[str, Any]) -> EquipmentItem | None:
    currency = _currency(row)
    if currency is None:
        return None
    return EquipmentItem(
        id=int(row["id"]),
        name=row.get("name") or "",
        category=row.get("category_name") or "",
        price=float(row.get("price") or 0),
        currency=currency,
    )


def _transport(row: dict[str, Any]) -> TransportService | None:
    currency = _currency(row)
    if currency is None:
        return None
    from_city = row.get("from_city") or ""
    to_city = row.get("to_city") or ""
    return TransportService(
        id=int(row["id"]),
        name=row.get("transport_type") or f"{from_city} - {to_city}",
        from_location=from_city,
        to_location=to_city,
        price=float(row.get("price") or 0),
        currency=currency,
    )


def _keep(items: list[T | None]) -> list[T]:
    return [item for item in items if item is not None]


class PostgresReferenceDataStore(ReferenceDataStore):
    """Catalog reads; transient connection failures are retried."""

    def __init__(self, pool: asyncpg.Pool, *, attempts: int = 3) -> None:
        self._pool = pool
        self._attempts = attempts

    async def _read(self, description: str, query: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        try:
            async for attempt in AsyncRetrying(
                reraise=True,
                stop=stop_after_attempt(self._attempts),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
                retry=retry_if_exception_type(_TRANSIENT_ERRORS),
            ):
                with attempt:
                    return await query(self._pool, *args, **kwargs)
        except (asyncpg.PostgresError, *_TRANSIENT_ERRORS) as exc:
            logger.error("Reference query %s failed: %s", description, exc)
            raise DatastoreError(f"Failed to load {description}") from exc
        raise DatastoreError(f"Failed to load {description}")

    async def list_lookup(self, name: str) -> list[dict[str, Any]]:
        if name not in LOOKUP_NAMES:
            raise ValueError(f"Unknown lookup: {name}")
        return await self._read(name, reference_queries.list_lookup, name)

    async def list_clients(self) -> list[dict[str, Any]]:
        rows = await self._read("clients", reference_queries.list_clients)
        return [
            {
                "id": str(row["id"]),
                "name": " ".join(
                    part for part in (row.get("cus_first_name"), row.get("cus_last_name")) if part
                ),
                "email": row.get("cus_email_address"),
                "country": row.get("country_name") or "",
            }
            for row in rows
        ]

    async def list_hotels(self, *, category: str | None = None) -> list[dict[str, Any]]:
        return await self._read("hotels", reference_queries.list_hotels, category=category)

    async def list_park_products(
        self,
        *,
        park_id: int | None = None,
        category: str | None = None,
        entry_type: str | None = None,
    ) -> list[ParkProductPrice]:
        rows = await self._read(
            "park products",
            reference_queries.list_park_products,
            park_id=park_id,
            category=category,
            entry_type=entry_type,
        )
        return _keep([_park_price(row) for row in rows])

    async def get_park_product_price(self, price_id: int) -> ParkProductPrice | None:
        row = await self._read("park product price", reference_queries.fetch_park_product_price, price_id)
        return _park_price(row) if row else None

    async def list_hotel_rates(
        self, *, hotel_id: int | None = None, meal_plan: str | None = None
    ) -> list[HotelRate]:
        rows = await self._read(
            "hotel rates", reference_queries.list_hotel_rates, hotel_id=hotel_id, meal_plan=meal_plan
        )
        return _keep([_hotel_rate(row) for row in rows])

    async def get_hotel_rate(self, rate_id: int) -> HotelRate | None:
        row = await self._read("hotel rate", reference_queries.fetch_hotel_rate, rate_id)
        return _hotel_rate(row) if row else None

    async def list_child_policies(self, *, hotel_id: int | None = None) -> list[ChildPolicy]:
        rows = await self._read("child policies", reference_queries.list_child_policies, hotel_id=hotel_id)
        return [
            ChildPolicy(
                id=int(row["id"]),
                hotel_id=int(row["hotel_id"]),
                min_age=int(row["min_age"]),
                max_age=int(row["max_age"]),
                fee_percentage=float(row["fee_percentage"]),
                adult_sharing=bool(row.get("adult_sharing")),
            )
            for row in rows
        ]

    async def list_equipment(self) -> list[EquipmentItem]:
        rows = await self._read("equipment", reference_queries.list_equipment)
        return _keep([_equipment(row) for row in rows])

    async def get_equipment(self, equipment_id: int) -> EquipmentItem | None:
        row = await self._read("equipment item", reference_queries.fetch_equipment, equipment_id)
        return _equipment(row) if row else None

    async def list_transport_services(self) -> list[TransportService]:
        rows = await self._read("transport services", reference_queries.list_transport_services)
        return _keep([_transport(row) for row in rows])

    async def get_transport_service(self, service_id: int) -> TransportService | None:
        row = await self._read("transport service", reference_queries.fetch_transport_service, service_id)
        return _transport(row) if row else None


class PostgresOfferStore(OfferStore):
    """Offer writes run once; a failure surfaces as DatastoreError."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def _run(self, description: str, query: Callable[..., Awaitable[T]], *args: Any) -> T:
        try:
            return await query(self._pool, *args)
        except (asyncpg.PostgresError, *_TRANSIENT_ERRORS, LookupError) as exc:
            logger.error("Offer store %s failed: %s", description, exc)
            raise DatastoreError(f"Failed to {description}: {exc}") from exc

    async def get_company_id(self, owner_user_id: str) -> str | None:
        return await self._run("look up company", offer_queries.fetch_company_id, owner_user_id)

    async def generate_offer_code(self) -> str:
        return await self._run("generate offer code", offer_queries.generate_offer_code)

    async def insert_offer(self, values: dict[str, Any]) -> dict[str, Any]:
        return await self._run("create offer", offer_queries.insert_offer, values)

    async def update_offer(
        self, offer_id: int, owner_id: str, values: dict[str, Any]
    ) -> dict[str, Any] | None:
        return await self._run("update offer", offer_queries.update_offer, offer_id, owner_id, values)

    async def fetch_offer(self, offer_id: int, owner_id: str) -> dict[str, Any] | None:
        return await self._run("load offer", offer_queries.fetch_offer, offer_id, owner_id)

    async def fetch_offer_services(self, category: LineCategory, offer_id: int) -> list[dict[str, Any]]:
        table, _ = SERVICE_TABLES[category]
        return await self._run(f"load {category.value} services", offer_queries.fetch_offer_services, table, offer_id)

    async def delete_offer_services(self, category: LineCategory, offer_id: int, owner_id: str) -> None:
        table, _ = SERVICE_TABLES[category]
        await self._run(
            f"clear {category.value} services", offer_queries.delete_offer_services, table, offer_id, owner_id
        )

    async def insert_offer_service(self, category: LineCategory, row: dict[str, Any]) -> None:
        table, _ = SERVICE_TABLES[category]
        await self._run(f"save {category.value} service", offer_queries.insert_offer_service, table, row)

    async def first_row_id(self, table: str, column: str, value: int) -> int | None:
        return await self._run(f"look up {table}", offer_queries.fetch_first_id, table, column, value)

    async def load_draft(self, draft_id: int, owner_id: str) -> dict[str, Any] | None:
        return await self._run("load draft", offer_queries.fetch_draft, draft_id, owner_id)

    async def save_draft(self, draft_id: int | None, owner_id: str, data: dict[str, Any]) -> int:
        return await self._run("save draft", offer_queries.upsert_draft, draft_id, owner_id, data)


__all__ = ["PostgresReferenceDataStore", "PostgresOfferStore"]
