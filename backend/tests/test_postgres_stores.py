import asyncio
import json

import asyncpg
import pytest

import _helpers  # noqa: F401

from safari_quote.core.errors import DatastoreError
from safari_quote.db.postgres import PostgresOfferStore, PostgresReferenceDataStore
from safari_quote.quote.models import Currency, LineCategory


class FakeConnection:
    def __init__(self, pool: "FakePool") -> None:
        self._pool = pool

    async def _answer(self, method: str, sql: str, args):
        self._pool.calls.append((method, " ".join(sql.split()), args))
        if self._pool.failures:
            raise self._pool.failures.pop(0)
        return self._pool.results.pop(0) if self._pool.results else None

    async def fetch(self, sql, *args):
        return await self._answer("fetch", sql, args) or []

    async def fetchrow(self, sql, *args):
        return await self._answer("fetchrow", sql, args)

    async def fetchval(self, sql, *args):
        return await self._answer("fetchval", sql, args)

    async def execute(self, sql, *args):
        return await self._answer("execute", sql, args)


class _Acquire:
    def __init__(self, pool: "FakePool") -> None:
        self._pool = pool

    async def __aenter__(self):
        return FakeConnection(self._pool)

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakePool:
    def __init__(self, results=None, failures=None) -> None:
        self.results = list(results or [])
        self.failures = list(failures or [])
        self.calls = []

    def acquire(self):
        return _Acquire(self)


def test_equipment_rows_become_catalog_items():
    pool = FakePool(
        results=[
            [
                {"id": 31, "name": "Tent", "category_name": "Camping", "price": 15, "currency_name": "usd"},
                {"id": 32, "name": "Stove", "category_name": "Camping", "price": 9, "currency_name": "EUR"},
            ]
        ]
    )

    items = asyncio.run(PostgresReferenceDataStore(pool).list_equipment())

    assert [item.id for item in items] == [31]
    assert items[0].currency is Currency.USD
    assert items[0].price == 15.0


def test_park_price_row_carries_season():
    pool = FakePool(
        results=[
            {
                "id": 11,
                "park_product_id": 1,
                "national_park_name": "Serengeti",
                "product_name": "Conservation fee",
                "category_name": "Non-resident",
                "entry_name": "Adult",
                "currency_name": "USD",
                "unit_amount": 80,
                "season_name": "Dry",
                "start_date": "2025-06-01",
                "end_date": "2025-10-31",
            }
        ]
    )

    entry = asyncio.run(PostgresReferenceDataStore(pool).get_park_product_price(11))

    assert entry.park_name == "Serengeti"
    assert entry.season.name == "Dry"
    assert pool.calls[0][2] == (11,)


def test_clients_are_flattened():
    pool = FakePool(
        results=[
            [
                {
                    "id": 7,
                    "cus_first_name": "Jane",
                    "cus_last_name": "Doe",
                    "cus_email_address": "jane@example.com",
                    "country_name": "Kenya",
                }
            ]
        ]
    )

    clients = asyncio.run(PostgresReferenceDataStore(pool).list_clients())

    assert clients == [{"id": "7", "name": "Jane Doe", "email": "jane@example.com", "country": "Kenya"}]


def test_reference_reads_retry_transient_failures():
    pool = FakePool(
        results=[[{"id": 41, "from_city": "Arusha", "to_city": "Karatu", "price": 250, "currency_name": "USD"}]],
        failures=[ConnectionResetError("reset by peer")],
    )

    services = asyncio.run(PostgresReferenceDataStore(pool, attempts=2).list_transport_services())

    assert len(pool.calls) == 2
    assert services[0].name == "Arusha - Karatu"


def test_reference_reads_give_up_with_datastore_error():
    pool = FakePool(failures=[asyncpg.exceptions.UndefinedTableError("relation does not exist")])

    with pytest.raises(DatastoreError):
        asyncio.run(PostgresReferenceDataStore(pool).list_equipment())
    assert len(pool.calls) == 1


def test_unknown_lookup_is_rejected():
    with pytest.raises(ValueError):
        asyncio.run(PostgresReferenceDataStore(FakePool()).list_lookup("planets"))


def test_insert_service_uses_category_table():
    pool = FakePool()
    row = {
        "offer_id": 100,
        "hotel_rate_id": 21,
        "price": 750.0,
        "discount_percent": 0,
        "final_service_price": 750.0,
        "description": "Ngorongoro Lodge - Double (3 nights)",
    }

    asyncio.run(PostgresOfferStore(pool).insert_offer_service(LineCategory.HOTELS, row))

    method, sql, args = pool.calls[0]
    assert method == "execute"
    assert sql.startswith("INSERT INTO offer_hotel_services (offer_id, hotel_rate_id,")
    assert args == (100, 21, 750.0, 0, 750.0, "Ngorongoro Lodge - Double (3 nights)")


def test_first_row_id_orders_by_id():
    pool = FakePool(results=[11])

    found = asyncio.run(PostgresOfferStore(pool).first_row_id("park_product_price", "park_product_id", 1))

    assert found == 11
    assert pool.calls[0][1] == "SELECT id FROM park_product_price WHERE park_product_id = $1 ORDER BY id LIMIT 1"


def test_draft_round_trip_decodes_json_text():
    pool = FakePool(results=[5, {"id": 5, "owner_id": "user-1", "data": json.dumps({"clientName": "Jane"})}])
    store = PostgresOfferStore(pool)

    draft_id = asyncio.run(store.save_draft(None, "user-1", {"clientName": "Jane"}))
    loaded = asyncio.run(store.load_draft(draft_id, "user-1"))

    assert draft_id == 5
    assert loaded["data"] == {"clientName": "Jane"}
    assert pool.calls[0][2] == ("user-1", '{"clientName": "Jane"}')
    assert pool.calls[1][2] == (5, "user-1")
    assert pool.calls[1][1].endswith("WHERE id = $1 AND owner_id = $2")


def test_updating_missing_draft_is_a_datastore_error():
    pool = FakePool(results=[None])

    with pytest.raises(DatastoreError):
        asyncio.run(PostgresOfferStore(pool).save_draft(9, "user-1", {}))
    assert pool.calls[0][2] == (9, "{}", "user-1")
    assert "WHERE id = $1 AND owner_id = $3" in pool.calls[0][1]


def test_offer_write_failure_is_wrapped():
    pool = FakePool(failures=[asyncpg.exceptions.ForeignKeyViolationError("violates foreign key")])

    with pytest.raises(DatastoreError):
        asyncio.run(
            PostgresOfferStore(pool).insert_offer(
                {"offer_code": "OFF-1", "offer_name": "x", "owner_id": "company-1"}
            )
        )


def test_offer_header_reads_and_writes_filter_on_owner():
    pool = FakePool(results=[None, None])
    store = PostgresOfferStore(pool)

    updated = asyncio.run(store.update_offer(100, "company-2", {"offer_name": "x"}))
    fetched = asyncio.run(store.fetch_offer(100, "company-2"))

    assert updated is None
    assert fetched is None
    assert pool.calls[0][2][:2] == (100, "company-2")
    assert "WHERE id = $1 AND owner_id = $2" in pool.calls[0][1]
    assert pool.calls[1][2] == (100, "company-2")
    assert "WHERE o.id = $1 AND o.owner_id = $2" in pool.calls[1][1]


def test_clearing_services_joins_the_owning_offer():
    pool = FakePool()

    asyncio.run(PostgresOfferStore(pool).delete_offer_services(LineCategory.HOTELS, 100, "company-1"))

    method, sql, args = pool.calls[0]
    assert method == "execute"
    assert sql.startswith("DELETE FROM offer_hotel_services s USING offer o")
    assert sql.endswith("WHERE s.offer_id = o.id AND o.id = $1 AND o.owner_id = $2")
    assert args == (100, "company-1")


def test_service_rows_carry_catalog_fields():
    pool = FakePool(results=[[{"id": 1, "offer_id": 100, "hotel_rate_id": 21, "hotel_id": 5}]])

    rows = asyncio.run(PostgresOfferStore(pool).fetch_offer_services(LineCategory.HOTELS, 100))

    assert rows[0]["hotel_id"] == 5
    sql = pool.calls[0][1]
    assert "LEFT JOIN hotel_rates hr ON hr.id = s.hotel_rate_id" in sql
    assert sql.endswith("WHERE s.offer_id = $1 ORDER BY s.id")
