from __future__ import annotations

import asyncpg

LOOKUP_QUERIES: dict[str, str] = {
    "countries": "SELECT id, country_name FROM countries ORDER BY country_name",
    "currencies": "SELECT id, currency_name FROM currency ORDER BY currency_name",
    "age_groups": "SELECT id, age_group_name, min_age, max_age FROM age_group ORDER BY min_age",
    "crew_categories": "SELECT id, name FROM crew_category ORDER BY name",
    "meal_plans": "SELECT id, name, meal_plan_abbr FROM hotel_meal_plans ORDER BY name",
    "entry_types": "SELECT id, entry_name FROM entry_type WHERE is_active ORDER BY entry_name",
}

_PARK_PRODUCT_SELECT = """
    SELECT ppp.id, ppp.park_product_id, np.national_park_name, pp.product_name,
           pc.category_name, et.entry_name, c.currency_name, ppp.unit_amount,
           s.season_name, s.start_date, s.end_date
    FROM park_product_price ppp
    JOIN park_product pp ON pp.id = ppp.park_product_id
    LEFT JOIN national_parks np ON np.id = pp.national_park_id
    LEFT JOIN park_category pc ON pc.id = pp.park_category_id
    LEFT JOIN entry_type et ON et.id = pp.entry_type_id
    LEFT JOIN currency c ON c.id = ppp.currency_id
    LEFT JOIN seasons s ON s.id = ppp.season_id
"""

_HOTEL_RATE_SELECT = """
    SELECT hr.id, hr.hotel_id, h.hotel_name, r.room_name, mp.name AS meal_plan,
           c.currency_name, hr.rate, hs.season_name, hs.start_date, hs.end_date
    FROM hotel_rates hr
    JOIN hotels h ON h.id = hr.hotel_id
    LEFT JOIN hotel_rooms hro ON hro.id = hr.hotel_room_id
    LEFT JOIN rooms r ON r.id = hro.room_id
    LEFT JOIN hotel_meal_plans mp ON mp.id = hr.meal_plan_id
    LEFT JOIN currency c ON c.id = hr.currency_id
    LEFT JOIN hotels_seasons hs ON hs.id = hr.hotel_season_id
"""

_EQUIPMENT_SELECT = """
    SELECT e.id, e.name, ec.name AS category_name, e.price, c.currency_name
    FROM equipment e
    LEFT JOIN equipment_category ec ON ec.id = e.category_id
    LEFT JOIN currency c ON c.id = e.currency_id
"""

_TRANSPORT_SELECT = """
    SELECT ts.id, tt.name AS transport_type, fc.city_name AS from_city,
           tc.city_name AS to_city, ts.price, c.currency_name
    FROM transport_services ts
    LEFT JOIN transport_types tt ON tt.id = ts.transport_type_id
    LEFT JOIN cities fc ON fc.id = ts.from_location
    LEFT JOIN cities tc ON tc.id = ts.to_location
    LEFT JOIN currency c ON c.id = ts.currency_id
"""


async def list_lookup(pool: asyncpg.Pool, name: str) -> list[dict]:
    sql = LOOKUP_QUERIES[name]
    async with pool.acquire() as conn:
        rows = await conn.fetch(sql)
    return [dict(row) for row in rows]


async def list_clients(pool: asyncpg.Pool) -> list[dict]:
    sql = """
        SELECT cu.id, cu.cus_first_name, cu.cus_last_name, cu.cus_email_address,
               co.country_name
        FROM clients cl
        JOIN customers cu ON cu.id = cl.customer_id
        LEFT JOIN countries co ON co.id = cu.country_id
        WHERE cl.customer_id IS NOT NULL
        ORDER BY cu.cus_first_name, cu.cus_last_name
    """
    async with pool.acquire() as conn:
        rows = await conn.fetch(sql)
    return [dict(row) for row in rows]


async def list_hotels(pool: asyncpg.Pool, *, category: str | None = None) -> list[dict]:
    sql = """
        SELECT h.id, h.hotel_name, h.is_partner, hc.name AS category_name
        FROM hotels h
        LEFT JOIN hotel_category hc ON hc.id = h.hotel_category_id
        WHERE h.is_active AND ($1::text IS NULL OR hc.name = $1)
        ORDER BY h.hotel_name
    """
    async with pool.acquire() as conn:
        rows = await conn.fetch(sql, category)
    return [dict(row) for row in rows]


async def list_park_products(
    pool: asyncpg.Pool,
    *,
    park_id: int | None = None,
    category: str | None = None,
    entry_type: str | None = None,
) -> list[dict]:
    sql = (
        _PARK_PRODUCT_SELECT
        + """
        WHERE ($1::int IS NULL OR pp.national_park_id = $1)
          AND ($2::text IS NULL OR pc.category_name = $2)
          AND ($3::text IS NULL OR et.entry_name = $3)
        ORDER BY pp.product_name, ppp.id
    """
    )
    async with pool.acquire() as conn:
        rows = await conn.fetch(sql, park_id, category, entry_type)
    return [dict(row) for row in rows]


async def fetch_park_product_price(pool: asyncpg.Pool, price_id: int) -> dict | None:
    async with pool.acquire() as conn:
        row = await conn.fetchrow(_PARK_PRODUCT_SELECT + " WHERE ppp.id = $1", price_id)
    return dict(row) if row else None


async def list_hotel_rates(
    pool: asyncpg.Pool, *, hotel_id: int | None = None, meal_plan: str | None = None
) -> list[dict]:
    sql = (
        _HOTEL_RATE_SELECT
        + """
        WHERE ($1::int IS NULL OR hr.hotel_id = $1)
          AND ($2::text IS NULL OR mp.name = $2)
        ORDER BY hr.id
    """
    )
    async with pool.acquire() as conn:
        rows = await conn.fetch(sql, hotel_id, meal_plan)
    return [dict(row) for row in rows]


async def fetch_hotel_rate(pool: asyncpg.Pool, rate_id: int) -> dict | None:
    async with pool.acquire() as conn:
        row = await conn.fetchrow(_HOTEL_RATE_SELECT + " WHERE hr.id = $1", rate_id)
    return dict(row) if row else None


async def list_child_policies(pool: asyncpg.Pool, *, hotel_id: int | None = None) -> list[dict]:
    sql = """
        SELECT id, hotel_id, min_age, max_age, fee_percentage, adult_sharing
        FROM hotel_child_policy
        WHERE ($1::int IS NULL OR hotel_id = $1)
        ORDER BY hotel_id, min_age, id
    """
    async with pool.acquire() as conn:
        rows = await conn.fetch(sql, hotel_id)
    return [dict(row) for row in rows]


async def list_equipment(pool: asyncpg.Pool) -> list[dict]:
    async with pool.acquire() as conn:
        rows = await conn.fetch(_EQUIPMENT_SELECT + " WHERE e.is_active ORDER BY e.name")
    return [dict(row) for row in rows]


async def fetch_equipment(pool: asyncpg.Pool, equipment_id: int) -> dict | None:
    async with pool.acquire() as conn:
        row = await conn.fetchrow(_EQUIPMENT_SELECT + " WHERE e.id = $1", equipment_id)
    return dict(row) if row else None


async def list_transport_services(pool: asyncpg.Pool) -> list[dict]:
    async with pool.acquire() as conn:
        rows = await conn.fetch(_TRANSPORT_SELECT + " ORDER BY ts.id")
    return [dict(row) for row in rows]


async def fetch_transport_service(pool: asyncpg.Pool, service_id: int) -> dict | None:
    async with pool.acquire() as conn:
        row = await conn.fetchrow(_TRANSPORT_SELECT + " WHERE ts.id = $1", service_id)
    return dict(row) if row else None


__all__ = [
    "LOOKUP_QUERIES",
    "list_lookup",
    "list_clients",
    "list_hotels",
    "list_park_products",
    "fetch_park_product_price",
    "list_hotel_rates",
    "fetch_hotel_rate",
    "list_child_policies",
    "list_equipment",
    "fetch_equipment",
    "list_transport_services",
    "fetch_transport_service",
]
