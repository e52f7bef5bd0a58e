"""Line item pricing.

Results are plain floats with no rounding, so totals can carry ordinary
floating-point noise.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Sequence

from safari_quote.quote.models import ChildPolicy, Currency, LineCategory, QuoteDraft


def child_rate(
    adult_rate: float, child_age: int, hotel_id: int, policies: Iterable[ChildPolicy]
) -> float:
    """Rate for one child from the first matching policy band of the hotel.

    Without a matching band the child pays the full adult rate.
    """
    for policy in policies:
        if policy.hotel_id == hotel_id and policy.min_age <= child_age <= policy.max_age:
            return adult_rate * policy.fee_percentage / 100
    return adult_rate


def trip_nights(start: date | None, end: date | None) -> int:
    if start is None or end is None:
        return 0
    return max(0, (end - start).days)


def price_park(unit_price: float, duration_days: int, pax: int) -> float:
    # One rate for adults and children alike
    return unit_price * duration_days * pax


@dataclass(frozen=True)
class HotelPrice:
    adult_total: float
    child_total: float
    average_child_rate: float

    @property
    def total(self) -> float:
        return self.adult_total + self.child_total


def price_hotel(
    adult_rate: float,
    adults: int,
    child_ages: Sequence[int],
    nights: int,
    hotel_id: int,
    policies: Iterable[ChildPolicy],
) -> HotelPrice:
    policy_list = list(policies)
    adult_total = adult_rate * adults * nights
    child_total = 0.0
    for age in child_ages:
        child_total += child_rate(adult_rate, age, hotel_id, policy_list) * nights
    average = child_total / len(child_ages) if child_ages else 0.0
    return HotelPrice(adult_total=adult_total, child_total=child_total, average_child_rate=average)


def price_equipment(unit_price: float, quantity: int, duration_days: int) -> float:
    return unit_price * quantity * duration_days


def price_transport(unit_price: float) -> float:
    # Flat charge per vehicle, route and date; pax does not change it
    return unit_price


def category_subtotals(draft: QuoteDraft) -> dict[LineCategory, float]:
    return {
        category: sum(item.price for item in draft.items(category)) for category in LineCategory
    }


def grand_total(draft: QuoteDraft) -> float:
    """Sum of every line item price.

    USD and TZS prices are added together without conversion; use
    ``totals_by_currency`` for a currency-safe figure.
    """
    return sum(category_subtotals(draft).values())


def totals_by_currency(draft: QuoteDraft) -> dict[Currency, float]:
    totals: dict[Currency, float] = {}
    for item in draft.all_items():
        totals[item.currency] = totals.get(item.currency, 0.0) + item.price
    return totals


def has_mixed_currencies(draft: QuoteDraft) -> bool:
    return len(totals_by_currency(draft)) > 1


__all__ = [
    "child_rate",
    "trip_nights",
    "price_park",
    "HotelPrice",
    "price_hotel",
    "price_equipment",
    "price_transport",
    "category_subtotals",
    "grand_total",
    "totals_by_currency",
    "has_mixed_currencies",
]
