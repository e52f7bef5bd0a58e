from __future__ import annotations

import json
from typing import Any

import asyncpg

# Tables and columns that may be interpolated into service and lookup SQL
SERVICE_COLUMNS: dict[str, str] = {
    "offer_park_services": "park_product_price_id",
    "offer_hotel_services": "hotel_rate_id",
    "offer_equipment_services": "equipment_id",
    "offer_transport_services": "transport_service_id",
}

FIRST_ID_LOOKUPS: frozenset[tuple[str, str]] = frozenset(
    {
        ("park_product_price", "park_product_id"),
        ("hotel_rates", "hotel_id"),
        ("transport_services", "id"),
        ("equipment", "id"),
    }
)


def _service_table(table: str) -> str:
    if table not in SERVICE_COLUMNS:
        raise ValueError(f"Unsupported service table: {table}")
    return table


async def fetch_company_id(pool: asyncpg.Pool, owner_user_id: str) -> str | None:
    sql = "SELECT id FROM companies WHERE owner_id = $1 ORDER BY created_at LIMIT 1"
    async with pool.acquire() as conn:
        value = await conn.fetchval(sql, owner_user_id)
    return str(value) if value is not None else None


async def generate_offer_code(pool: asyncpg.Pool) -> str:
    async with pool.acquire() as conn:
        value = await conn.fetchval("SELECT generate_offer_code()")
    return str(value)


async def insert_offer(pool: asyncpg.Pool, values: dict[str, Any]) -> dict:
    sql = """
        INSERT INTO offer (offer_code, offer_name, client_id, active_from, active_to, owner_id, accepted)
        VALUES ($1, $2, $3, $4, $5, $6, $7)
        RETURNING *
    """
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            sql,
            values["offer_code"],
            values["offer_name"],
            values.get("client_id"),
            values.get("active_from"),
            values.get("active_to"),
            values["owner_id"],
            values.get("accepted", False),
        )
    return dict(row)


async def update_offer(
    pool: asyncpg.Pool, offer_id: int, owner_id: str, values: dict[str, Any]
) -> dict | None:
    sql = """
        UPDATE offer
        SET offer_name = $3, client_id = $4, active_from = $5, active_to = $6, updated_at = now()
        WHERE id = $1 AND owner_id = $2
        RETURNING *
    """
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            sql,
            offer_id,
            owner_id,
            values["offer_name"],
            values.get("client_id"),
            values.get("active_from"),
            values.get("active_to"),
        )
    return dict(row) if row else None


async def fetch_offer(pool: asyncpg.Pool, offer_id: int, owner_id: str) -> dict | None:
    sql = """
        SELECT o.*, cu.cus_first_name, cu.cus_last_name, co.country_name
        FROM offer o
        LEFT JOIN customers cu ON cu.id = o.client_id
        LEFT JOIN countries co ON co.id = cu.country_id
        WHERE o.id = $1 AND o.owner_id = $2
    """
    async with pool.acquire() as conn:
        row = await conn.fetchrow(sql, offer_id, owner_id)
    return dict(row) if row else None


# Service rows with the catalog fields they point at; the catalog unit price is catalog_price
SERVICE_DETAIL_SELECTS: dict[str, str] = {
    "offer_park_services": """
        SELECT s.*, ppp.park_product_id, np.national_park_name, pp.product_name,
               pc.category_name, et.entry_name, c.currency_name,
               ppp.unit_amount AS catalog_price
        FROM offer_park_services s
        LEFT JOIN park_product_price ppp ON ppp.id = s.park_product_price_id
        LEFT JOIN park_product pp ON pp.id = ppp.park_product_id
        LEFT JOIN national_parks np ON np.id = pp.national_park_id
        LEFT JOIN park_category pc ON pc.id = pp.park_category_id
        LEFT JOIN entry_type et ON et.id = pp.entry_type_id
        LEFT JOIN currency c ON c.id = ppp.currency_id
    """,
    "offer_hotel_services": """
        SELECT s.*, hr.hotel_id, h.hotel_name, r.room_name, mp.name AS meal_plan,
               c.currency_name, hr.rate AS catalog_price
        FROM offer_hotel_services s
        LEFT JOIN hotel_rates hr ON hr.id = s.hotel_rate_id
        LEFT JOIN hotels h ON h.id = hr.hotel_id
        LEFT JOIN hotel_rooms hro ON hro.id = hr.hotel_room_id
        LEFT JOIN rooms r ON r.id = hro.room_id
        LEFT JOIN hotel_meal_plans mp ON mp.id = hr.meal_plan_id
        LEFT JOIN currency c ON c.id = hr.currency_id
    """,
    "offer_equipment_services": """
        SELECT s.*, e.name AS equipment_name, ec.name AS category_name, c.currency_name,
               e.price AS catalog_price
        FROM offer_equipment_services s
        LEFT JOIN equipment e ON e.id = s.equipment_id
        LEFT JOIN equipment_category ec ON ec.id = e.category_id
        LEFT JOIN currency c ON c.id = e.currency_id
    """,
    "offer_transport_services": """
        SELECT s.*, tt.name AS transport_type, fc.city_name AS from_city,
               tc.city_name AS to_city, c.currency_name, ts.price AS catalog_price
        FROM offer_transport_services s
        LEFT JOIN transport_services ts ON ts.id = s.transport_service_id
        LEFT JOIN transport_types tt ON tt.id = ts.transport_type_id
        LEFT JOIN cities fc ON fc.id = ts.from_location
        LEFT JOIN cities tc ON tc.id = ts.to_location
        LEFT JOIN currency c ON c.id = ts.currency_id
    """,
}


async def fetch_offer_services(pool: asyncpg.Pool, table: str, offer_id: int) -> list[dict]:
    sql = SERVICE_DETAIL_SELECTS[_service_table(table)] + " WHERE s.offer_id = $1 ORDER BY s.id"
    async with pool.acquire() as conn:
        rows = await conn.fetch(sql, offer_id)
    return [dict(row) for row in rows]


async def delete_offer_services(pool: asyncpg.Pool, table: str, offer_id: int, owner_id: str) -> None:
    sql = f"""
        DELETE FROM {_service_table(table)} s
        USING offer o
        WHERE s.offer_id = o.id AND o.id = $1 AND o.owner_id = $2
    """
    async with pool.acquire() as conn:
        await conn.execute(sql, offer_id, owner_id)


async def insert_offer_service(pool: asyncpg.Pool, table: str, row: dict[str, Any]) -> None:
    column = SERVICE_COLUMNS[_service_table(table)]
    sql = f"""
        INSERT INTO {table} (offer_id, {column}, price, discount_percent, final_service_price, description)
        VALUES ($1, $2, $3, $4, $5, $6)
    """
    async with pool.acquire() as conn:
        await conn.execute(
            sql,
            row["offer_id"],
            row[column],
            row["price"],
            row.get("discount_percent", 0),
            row["final_service_price"],
            row.get("description", ""),
        )


async def fetch_first_id(pool: asyncpg.Pool, table: str, column: str, value: int) -> int | None:
    if (table, column) not in FIRST_ID_LOOKUPS:
        raise ValueError(f"Unsupported lookup: {table}.{column}")
    sql = f"SELECT id FROM {table} WHERE {column} = $1 ORDER BY id LIMIT 1"
    async with pool.acquire() as conn:
        found = await conn.fetchval(sql, value)
    return int(found) if found is not None else None


async def fetch_draft(pool: asyncpg.Pool, draft_id: int, owner_id: str) -> dict | None:
    sql = "SELECT id, owner_id, data, updated_at FROM quote_drafts WHERE id = $1 AND owner_id = $2"
    async with pool.acquire() as conn:
        row = await conn.fetchrow(sql, draft_id, owner_id)
    if not row:
        return None
    result = dict(row)
    if isinstance(result.get("data"), str):
        result["data"] = json.loads(result["data"])
    return result


async def upsert_draft(pool: asyncpg.Pool, draft_id: int | None, owner_id: str, data: dict[str, Any]) -> int:
    payload = json.dumps(data, ensure_ascii=False)
    async with pool.acquire() as conn:
        if draft_id is None:
            value = await conn.fetchval(
                "INSERT INTO quote_drafts (owner_id, data) VALUES ($1, $2::jsonb) RETURNING id",
                owner_id,
                payload,
            )
        else:
            value = await conn.fetchval(
                "UPDATE quote_drafts SET data = $2::jsonb, updated_at = now()"
                " WHERE id = $1 AND owner_id = $3 RETURNING id",
                draft_id,
                payload,
                owner_id,
            )
    if value is None:
        raise LookupError(f"quote draft {draft_id} does not exist for {owner_id}")
    return int(value)


__all__ = [
    "SERVICE_COLUMNS",
    "FIRST_ID_LOOKUPS",
    "SERVICE_DETAIL_SELECTS",
    "fetch_company_id",
    "generate_offer_code",
    "insert_offer",
    "update_offer",
    "fetch_offer",
    "fetch_offer_services",
    "delete_offer_services",
    "insert_offer_service",
    "fetch_first_id",
    "fetch_draft",
    "upsert_draft",
]
