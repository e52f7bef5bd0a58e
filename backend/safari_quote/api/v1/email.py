from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from safari_quote.api.deps import get_dispatcher
from safari_quote.notifications.client import EmailConfigurationError, EmailDeliveryError
from safari_quote.notifications.service import NotificationDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/email")


class _EmailRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    to: str = Field(min_length=3)


class WelcomeRequest(_EmailRequest):
    name: str = Field(min_length=1)
    company_name: str | None = Field(default=None, alias="companyName")


class QuoteGeneratedRequest(_EmailRequest):
    name: str = Field(min_length=1)
    quote_id: str = Field(alias="quoteId", min_length=1)
    quote_amount: float = Field(alias="quoteAmount", ge=0)
    quote_details: str = Field(default="", alias="quoteDetails")


class InvoiceGeneratedRequest(_EmailRequest):
    name: str = Field(min_length=1)
    invoice_id: str = Field(alias="invoiceId", min_length=1)
    invoice_amount: float = Field(alias="invoiceAmount", ge=0)
    due_date: str = Field(alias="dueDate", min_length=1)


class CompanyApprovalRequest(_EmailRequest):
    company_name: str = Field(alias="companyName", min_length=1)
    owner_name: str = Field(alias="ownerName", min_length=1)
    owner_email: str = Field(alias="ownerEmail", min_length=3)
    company_details: dict[str, Any] = Field(default_factory=dict, alias="companyDetails")


class CompanyApprovedRequest(_EmailRequest):
    name: str = Field(min_length=1)
    company_name: str = Field(alias="companyName", min_length=1)


async def _deliver(send) -> dict[str, Any]:
    try:
        result = await send
    except EmailConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except EmailDeliveryError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"success": True, "id": result.get("id")}


@router.post("/welcome")
async def welcome(
    payload: WelcomeRequest, dispatcher: NotificationDispatcher = Depends(get_dispatcher)
) -> dict[str, Any]:
    return await _deliver(
        dispatcher.send_welcome(payload.to, name=payload.name, company_name=payload.company_name)
    )


@router.post("/quote-generated")
async def quote_generated(
    payload: QuoteGeneratedRequest, dispatcher: NotificationDispatcher = Depends(get_dispatcher)
) -> dict[str, Any]:
    return await _deliver(
        dispatcher.send_quote_generated(
            payload.to,
            name=payload.name,
            quote_id=payload.quote_id,
            quote_amount=payload.quote_amount,
            quote_details=payload.quote_details,
        )
    )


@router.post("/invoice-generated")
async def invoice_generated(
    payload: InvoiceGeneratedRequest, dispatcher: NotificationDispatcher = Depends(get_dispatcher)
) -> dict[str, Any]:
    return await _deliver(
        dispatcher.send_invoice_generated(
            payload.to,
            name=payload.name,
            invoice_id=payload.invoice_id,
            invoice_amount=payload.invoice_amount,
            due_date=payload.due_date,
        )
    )


@router.post("/company-approval")
async def company_approval(
    payload: CompanyApprovalRequest, dispatcher: NotificationDispatcher = Depends(get_dispatcher)
) -> dict[str, Any]:
    return await _deliver(
        dispatcher.send_company_approval_request(
            payload.to,
            company_name=payload.company_name,
            owner_name=payload.owner_name,
            owner_email=payload.owner_email,
            company_details=payload.company_details,
        )
    )


@router.post("/company-approved")
async def company_approved(
    payload: CompanyApprovedRequest, dispatcher: NotificationDispatcher = Depends(get_dispatcher)
) -> dict[str, Any]:
    return await _deliver(
        dispatcher.send_company_approved(payload.to, name=payload.name, company_name=payload.company_name)
    )


__all__ = ["router"]
