from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from safari_quote.quote.models import QuoteDraft


class QuoteStep(Enum):
    CLIENT_TRIP = "client-trip"
    PARKS = "parks"
    ACCOMMODATION = "accommodation"
    EQUIPMENT = "equipment"
    TRANSPORT = "transport"
    ADDITIONAL = "additional"
    REVIEW = "review"

    @property
    def index(self) -> int:
        return STEP_ORDER.index(self)

    @classmethod
    def from_index(cls, index: int) -> QuoteStep:
        return STEP_ORDER[index]


STEP_ORDER: list[QuoteStep] = list(QuoteStep)

STEP_INFO: dict[QuoteStep, tuple[str, str]] = {
    QuoteStep.CLIENT_TRIP: ("Client & Trip", "Basic trip information"),
    QuoteStep.PARKS: ("Parks & Activities", "National parks and activities"),
    QuoteStep.ACCOMMODATION: ("Accommodation", "Hotels and lodging"),
    QuoteStep.EQUIPMENT: ("Equipment", "Gear and equipment rental"),
    QuoteStep.TRANSPORT: ("Transport", "Vehicles and logistics"),
    QuoteStep.ADDITIONAL: ("Additional Services", "Extra services and add-ons"),
    QuoteStep.REVIEW: ("Review & Confirm", "Final review and confirmation"),
}


@dataclass
class StepValidation:
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_step(draft: QuoteDraft, step: QuoteStep) -> StepValidation:
    result = StepValidation()
    if step is QuoteStep.CLIENT_TRIP:
        if not draft.client_name.strip():
            result.errors["clientName"] = "Client name is required"
        if draft.start_date is None:
            result.errors["startDate"] = "Start date is required"
        if draft.end_date is None:
            result.errors["endDate"] = "End date is required"
        elif draft.start_date is not None and draft.end_date < draft.start_date:
            result.errors["endDate"] = "End date cannot be before start date"
        if not draft.client_country.strip():
            result.errors["clientCountry"] = "Client country is required"
        if draft.adults < 1:
            result.errors["adults"] = "At least 1 adult required"
    elif step is QuoteStep.PARKS:
        if not draft.parks:
            result.errors["parks"] = "At least one park selection is required"
    return result


def progress_percent(step: QuoteStep) -> float:
    return (step.index + 1) / len(STEP_ORDER) * 100


def describe_steps(current: QuoteStep) -> list[dict[str, Any]]:
    return [
        {
            "index": step.index,
            "id": step.value,
            "title": STEP_INFO[step][0],
            "description": STEP_INFO[step][1],
            "current": step is current,
        }
        for step in STEP_ORDER
    ]


__all__ = [
    "QuoteStep",
    "STEP_ORDER",
    "STEP_INFO",
    "StepValidation",
    "validate_step",
    "progress_percent",
    "describe_steps",
]
