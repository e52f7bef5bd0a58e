"""Season window matching and season maintenance helpers."""

from __future__ import annotations

import calendar
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, Literal, Protocol, TypeVar

from safari_quote.quote.models import SeasonWindow


class _Seasonal(Protocol):
    season: SeasonWindow | None


T = TypeVar("T", bound=_Seasonal)


def matches_trip_window(
    trip_start: date, trip_end: date, window_start: date, window_end: date
) -> bool:
    """True when the trip starts inside, ends inside, or spans the window.

    Both window endpoints are inclusive.
    """
    starts_inside = window_start <= trip_start <= window_end
    ends_inside = window_start <= trip_end <= window_end
    spans_window = trip_start <= window_start and trip_end >= window_end
    return starts_inside or ends_inside or spans_window


def in_season(entry: _Seasonal, trip_start: date, trip_end: date) -> bool:
    if entry.season is None:
        return True
    return matches_trip_window(trip_start, trip_end, entry.season.start, entry.season.end)


def filter_in_season(
    entries: Iterable[T], trip_start: date | None, trip_end: date | None
) -> list[T]:
    """Keep the priced entries whose season overlaps the trip.

    Without both trip dates nothing is filtered out.
    """
    items = list(entries)
    if trip_start is None or trip_end is None:
        return items
    return [entry for entry in items if in_season(entry, trip_start, trip_end)]


@dataclass(frozen=True)
class SeasonStatus:
    status: Literal["active", "upcoming", "past"]
    days_until_start: int | None = None
    days_until_end: int | None = None
    days_since_end: int | None = None


def season_status(window: SeasonWindow, today: date | None = None) -> SeasonStatus:
    current = today or date.today()
    if current < window.start:
        return SeasonStatus("upcoming", days_until_start=(window.start - current).days)
    if current > window.end:
        return SeasonStatus("past", days_since_end=(current - window.end).days)
    return SeasonStatus("active", days_until_end=(window.end - current).days)


def season_duration_days(window: SeasonWindow) -> int:
    return (window.end - window.start).days + 1


def seasons_overlap(first: SeasonWindow, second: SeasonWindow) -> bool:
    return first.start <= second.end and second.start <= first.end


def _shift_year(value: date, year: int) -> date:
    # 29 Feb falls back to 28 Feb in non-leap years
    day = min(value.day, calendar.monthrange(year, value.month)[1])
    return value.replace(year=year, day=day)


def copy_season_to_year(window: SeasonWindow, year: int | None = None) -> SeasonWindow:
    """Copy a season onto another year, keeping month and day. Defaults to the next year."""
    target = year if year is not None else window.start.year + 1
    offset = window.end.year - window.start.year
    return replace(
        window,
        start=_shift_year(window.start, target),
        end=_shift_year(window.end, target + offset),
    )


def generate_seasons_for_years(
    name: str,
    start_month: int,
    start_day: int,
    end_month: int,
    end_day: int,
    first_year: int,
    last_year: int,
) -> list[SeasonWindow]:
    return [
        SeasonWindow(
            name=name,
            start=date(year, start_month, start_day),
            end=date(year, end_month, end_day),
        )
        for year in range(first_year, last_year + 1)
    ]


__all__ = [
    "matches_trip_window",
    "in_season",
    "filter_in_season",
    "SeasonStatus",
    "season_status",
    "season_duration_days",
    "seasons_overlap",
    "copy_season_to_year",
    "generate_seasons_for_years",
]
