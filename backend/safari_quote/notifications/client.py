from __future__ import annotations

import logging
from typing import Any

import httpx

from safari_quote.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class EmailError(RuntimeError):
    """Base error for transactional email delivery."""


class EmailConfigurationError(EmailError):
    """The email API key or sender is not configured."""


class EmailDeliveryError(EmailError):
    """The email API rejected the message or could not be reached."""


class ResendEmailClient:
    """Sends one message per call through the Resend REST API."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._api_key = self._settings.resend_api_key
        self._base_url = str(self._settings.resend_api_url).rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=self._settings.email_timeout)

    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def close(self) -> None:
        await self._client.aclose()

    async def send_transactional_email(
        self,
        to: str | list[str],
        subject: str,
        html: str,
        text: str,
        reply_to: str | None = None,
    ) -> dict[str, Any]:
        if not self.is_configured():
            raise EmailConfigurationError("RESEND_API_KEY environment variable is not set")

        payload = {
            "from": self._settings.from_email,
            "to": to if isinstance(to, list) else [to],
            "subject": subject,
            "html": html,
            "text": text,
            "reply_to": reply_to or self._settings.reply_to_email,
        }
        try:
            response = await self._client.post(
                f"{self._base_url}/emails",
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.HTTPError as exc:
            logger.error("Email API request failed: %s", exc)
            raise EmailDeliveryError(f"Failed to send email: {exc}") from exc

        body = self._safe_json(response)
        if response.is_error:
            message = body.get("message") or response.text or f"HTTP {response.status_code}"
            logger.error("Email sending failed (%s): %s", response.status_code, message)
            raise EmailDeliveryError(f"Failed to send email: {message}")
        logger.info("Sent email %r to %s (id=%s)", subject, payload["to"], body.get("id"))
        return body

    @staticmethod
    def _safe_json(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}


_EMAIL_CLIENT: ResendEmailClient | None = None


def get_email_client() -> ResendEmailClient:
    global _EMAIL_CLIENT
    if _EMAIL_CLIENT is None:
        _EMAIL_CLIENT = ResendEmailClient()
    return _EMAIL_CLIENT


async def close_email_client() -> None:
    global _EMAIL_CLIENT
    if _EMAIL_CLIENT is not None:
        await _EMAIL_CLIENT.close()
        _EMAIL_CLIENT = None


__all__ = [
    "EmailError",
    "EmailConfigurationError",
    "EmailDeliveryError",
    "ResendEmailClient",
    "get_email_client",
    "close_email_client",
]
