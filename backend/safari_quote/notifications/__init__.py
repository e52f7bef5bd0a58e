"""Transactional email."""

from .client import EmailConfigurationError, EmailDeliveryError, EmailError, ResendEmailClient
from .service import NotificationDispatcher
from .templates import EmailTemplate, render_template

__all__ = [
    "EmailError",
    "EmailConfigurationError",
    "EmailDeliveryError",
    "ResendEmailClient",
    "NotificationDispatcher",
    "EmailTemplate",
    "render_template",
]
