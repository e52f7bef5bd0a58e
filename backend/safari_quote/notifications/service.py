"""High-level email notifications, one method per email type."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from safari_quote.notifications.client import ResendEmailClient
from safari_quote.notifications.templates import render_template

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(self, client: ResendEmailClient) -> None:
        self._client = client

    async def send(self, template: str, to: str, data: Mapping[str, Any]) -> dict[str, Any]:
        """Render ``template`` with ``data`` and send it to ``to``.

        Raises ValueError for unknown templates or missing fields and
        EmailError subclasses when delivery fails.
        """
        rendered = render_template(template, data)
        logger.info("Dispatching %s email", template)
        return await self._client.send_transactional_email(
            to, rendered.subject, rendered.html, rendered.text
        )

    async def send_welcome(self, to: str, *, name: str, company_name: str | None = None) -> dict[str, Any]:
        return await self.send("welcome", to, {"name": name, "companyName": company_name})

    async def send_email_confirmation(self, to: str, *, name: str, confirmation_link: str) -> dict[str, Any]:
        return await self.send("email-confirmation", to, {"name": name, "confirmationLink": confirmation_link})

    async def send_password_reset(self, to: str, *, name: str, reset_link: str) -> dict[str, Any]:
        return await self.send("password-reset", to, {"name": name, "resetLink": reset_link})

    async def send_company_approval_request(
        self,
        to: str,
        *,
        company_name: str,
        owner_name: str,
        owner_email: str,
        company_details: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        return await self.send(
            "company-approval",
            to,
            {
                "companyName": company_name,
                "ownerName": owner_name,
                "ownerEmail": owner_email,
                "companyDetails": dict(company_details or {}),
            },
        )

    async def send_company_approved(self, to: str, *, name: str, company_name: str) -> dict[str, Any]:
        return await self.send("company-approved", to, {"name": name, "companyName": company_name})

    async def send_quote_generated(
        self, to: str, *, name: str, quote_id: str, quote_amount: float, quote_details: str = ""
    ) -> dict[str, Any]:
        return await self.send(
            "quote-generated",
            to,
            {"name": name, "quoteId": quote_id, "quoteAmount": quote_amount, "quoteDetails": quote_details},
        )

    async def send_invoice_generated(
        self, to: str, *, name: str, invoice_id: str, invoice_amount: float, due_date: str
    ) -> dict[str, Any]:
        return await self.send(
            "invoice-generated",
            to,
            {"name": name, "invoiceId": invoice_id, "invoiceAmount": invoice_amount, "dueDate": due_date},
        )


__all__ = ["NotificationDispatcher"]
