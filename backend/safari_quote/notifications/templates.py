"""Transactional email templates.

Every template renders to a subject, an HTML body and a plain-text body.
User-supplied values are HTML-escaped in the HTML part only.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from html import escape
from typing import Any, Callable, Mapping

from safari_quote.core.config import Settings, get_settings


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    html: str
    text: str


SUBJECTS: dict[str, str] = {
    "welcome": "Welcome to Safari Quote!",
    "email-confirmation": "Confirm your email address",
    "password-reset": "Reset your password",
    "company-approval": "Company approval request",
    "company-approved": "Your company has been approved!",
    "quote-generated": "Your Safari Quote is ready",
    "invoice-generated": "New invoice generated",
}

_STYLE = """
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background: %(color)s; color: white; padding: 30px; text-align: center; border-radius: 8px 8px 0 0; }
    .content { background: #f9fafb; padding: 30px; border-radius: 0 0 8px 8px; }
    .button { display: inline-block; background: %(button)s; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; margin: 20px 0; }
    .box { background: white; border: 2px solid %(color)s; padding: 20px; border-radius: 6px; margin: 20px 0; text-align: center; }
    .amount { font-size: 24px; font-weight: bold; color: %(color)s; }
    .footer { text-align: center; margin-top: 30px; color: #6b7280; font-size: 14px; }
"""


def _footer_lines(settings: Settings, note: str) -> list[str]:
    return [f"© {date.today().year} {settings.company_name}. All rights reserved.", note]


def _layout(
    settings: Settings,
    *,
    title: str,
    heading: str,
    color: str,
    body: str,
    note: str,
    button: str | None = None,
) -> str:
    footer = "".join(f"<p>{escape(line)}</p>" for line in _footer_lines(settings, note))
    style = _STYLE % {"color": color, "button": button or color}
    return (
        "<!DOCTYPE html>\n<html>\n<head>\n"
        '<meta charset="utf-8">\n'
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f"<title>{escape(title)}</title>\n<style>{style}</style>\n</head>\n<body>\n"
        '<div class="container">\n'
        f'<div class="header"><h1>{heading}</h1></div>\n'
        f'<div class="content">{body}</div>\n'
        f'<div class="footer">{footer}</div>\n'
        "</div>\n</body>\n</html>\n"
    )


def _text(settings: Settings, lines: list[str], note: str) -> str:
    return "\n".join([*lines, "", *_footer_lines(settings, note)]) + "\n"


def _require(data: Mapping[str, Any], *keys: str) -> None:
    missing = [key for key in keys if data.get(key) in (None, "")]
    if missing:
        raise ValueError(f"Missing template fields: {', '.join(missing)}")


def _button(href: str, label: str) -> str:
    return f'<a href="{escape(href, quote=True)}" class="button">{escape(label)}</a>'


def _amount(value: Any) -> str:
    return f"${float(value):,.2f}"


def _label(key: str) -> str:
    spaced = re.sub(r"([A-Z])", r" \1", key).replace("_", " ").strip()
    return spaced[:1].upper() + spaced[1:]


def _welcome(data: Mapping[str, Any], settings: Settings) -> tuple[str, str]:
    _require(data, "name")
    name = str(data["name"])
    company = data.get("companyName")
    link = f"{settings.site_url}/dashboard"
    note = "This email was sent to you because you signed up for Safari Quote."
    features = [
        "Create and manage detailed safari quotes",
        "Track equipment and inventory",
        "Manage customer relationships",
        "Generate professional invoices",
        "And much more!",
    ]
    company_html = f"<p>We're excited to have <strong>{escape(str(company))}</strong> on board!</p>" if company else ""
    body = (
        f"<h2>Hello {escape(name)}!</h2>"
        "<p>Welcome to Safari Quote, your comprehensive platform for managing safari tours, "
        "equipment, and customer relationships.</p>"
        f"{company_html}"
        "<p>With Safari Quote, you can:</p>"
        "<ul>" + "".join(f"<li>{feature}</li>" for feature in features) + "</ul>"
        f"{_button(link, 'Get Started')}"
        "<p>If you have any questions, feel free to reach out to our support team.</p>"
    )
    html = _layout(
        settings, title="Welcome to Safari Quote", heading="Welcome to Safari Quote!",
        color="#1f2937", button="#3b82f6", body=body, note=note,
    )
    lines = [
        "Welcome to Safari Quote!",
        "",
        f"Hello {name}!",
        "",
        "Welcome to Safari Quote, your comprehensive platform for managing safari tours, "
        "equipment, and customer relationships.",
    ]
    if company:
        lines += ["", f"We're excited to have {company} on board!"]
    lines += ["", "With Safari Quote, you can:", *(f"- {feature}" for feature in features)]
    lines += ["", f"Get started: {link}", "", "If you have any questions, feel free to reach out to our support team."]
    return html, _text(settings, lines, note)


def _email_confirmation(data: Mapping[str, Any], settings: Settings) -> tuple[str, str]:
    _require(data, "name", "confirmationLink")
    name, link = str(data["name"]), str(data["confirmationLink"])
    note = "If you didn't create this account, you can safely ignore this email."
    body = (
        f"<h2>Hello {escape(name)}!</h2>"
        "<p>Please confirm your email address to complete your Safari Quote account setup.</p>"
        f"{_button(link, 'Confirm Email Address')}"
        "<p>If the button doesn't work, copy and paste this link into your browser:</p>"
        f'<p style="word-break: break-all; color: #6b7280;">{escape(link)}</p>'
        "<p>This link will expire in 24 hours for security reasons.</p>"
    )
    html = _layout(settings, title="Confirm Your Email", heading="Confirm Your Email", color="#059669", body=body, note=note)
    lines = [
        "Confirm Your Email",
        "",
        f"Hello {name}!",
        "",
        "Please confirm your email address to complete your Safari Quote account setup.",
        "",
        f"Confirm Email Address: {link}",
        "",
        "This link will expire in 24 hours for security reasons.",
    ]
    return html, _text(settings, lines, note)


def _password_reset(data: Mapping[str, Any], settings: Settings) -> tuple[str, str]:
    _require(data, "name", "resetLink")
    name, link = str(data["name"]), str(data["resetLink"])
    note = "This is an automated email - please do not reply to it."
    notice = (
        "This link will expire in 1 hour for security reasons.",
        "If you didn't request this password reset, please ignore this email and ensure your account is secure.",
    )
    body = (
        f"<h2>Hello {escape(name)}!</h2>"
        "<p>We received a request to reset your Safari Quote account password.</p>"
        f"{_button(link, 'Reset Password')}"
        "<p>If the button doesn't work, copy and paste this link into your browser:</p>"
        f'<p style="word-break: break-all; color: #6b7280;">{escape(link)}</p>'
        "<div><strong>Security Notice:</strong>" + "".join(f"<p>{line}</p>" for line in notice) + "</div>"
    )
    html = _layout(settings, title="Reset Your Password", heading="Reset Your Password", color="#dc2626", body=body, note=note)
    lines = [
        "Reset Your Password",
        "",
        f"Hello {name}!",
        "",
        "We received a request to reset your Safari Quote account password.",
        "",
        f"Reset Password: {link}",
        "",
        "If the link doesn't work, copy and paste it into your browser.",
        "",
        "Security Notice:",
        *notice,
    ]
    return html, _text(settings, lines, note)


def _company_approval(data: Mapping[str, Any], settings: Settings) -> tuple[str, str]:
    _require(data, "companyName", "ownerName", "ownerEmail")
    details = dict(data.get("companyDetails") or {})
    link = f"{settings.site_url}/admin/approvals"
    note = "This is an automated notification for administrators."
    rows = [
        ("Company Name", data["companyName"]),
        ("Owner Name", data["ownerName"]),
        ("Owner Email", data["ownerEmail"]),
        *((_label(key), value) for key, value in details.items()),
    ]
    body = (
        "<h2>New Company Registration</h2>"
        "<p>A new company has requested approval to join Safari Quote.</p>"
        '<div class="box" style="text-align: left;"><h3>Company Details:</h3>'
        + "".join(f"<p><strong>{escape(label)}:</strong> {escape(str(value))}</p>" for label, value in rows)
        + "</div>"
        f"{_button(link, 'Review Request')}"
        "<p>Please review this request and approve or reject it from the admin panel.</p>"
    )
    html = _layout(settings, title="Company Approval Request", heading="Company Approval Request", color="#7c3aed", body=body, note=note)
    lines = [
        "Company Approval Request",
        "",
        "New Company Registration",
        "",
        "A new company has requested approval to join Safari Quote.",
        "",
        "Company Details:",
        *(f"{label}: {value}" for label, value in rows),
        "",
        f"Review Request: {link}",
        "",
        "Please review this request and approve or reject it from the admin panel.",
    ]
    return html, _text(settings, lines, note)


def _company_approved(data: Mapping[str, Any], settings: Settings) -> tuple[str, str]:
    _require(data, "name", "companyName")
    name, company = str(data["name"]), str(data["companyName"])
    link = f"{settings.site_url}/dashboard"
    note = "Welcome to the Safari Quote family!"
    access = (
        "You now have full access to all features and can start creating quotes, "
        "managing equipment, and growing your business."
    )
    body = (
        f"<h2>Congratulations {escape(name)}!</h2>"
        f"<p>Great news! Your company <strong>{escape(company)}</strong> has been approved for Safari Quote.</p>"
        f"<p>{access}</p>"
        f"{_button(link, 'Access Dashboard')}"
        "<p>If you have any questions or need assistance getting started, our support team is here to help.</p>"
    )
    html = _layout(settings, title="Company Approved", heading="Company Approved!", color="#059669", body=body, note=note)
    lines = [
        "Company Approved!",
        "",
        f"Congratulations {name}!",
        "",
        f"Great news! Your company {company} has been approved for Safari Quote.",
        "",
        access,
        "",
        f"Access Dashboard: {link}",
        "",
        "If you have any questions or need assistance getting started, our support team is here to help.",
    ]
    return html, _text(settings, lines, note)


def _quote_generated(data: Mapping[str, Any], settings: Settings) -> tuple[str, str]:
    _require(data, "name", "quoteId", "quoteAmount")
    name, quote_id = str(data["name"]), str(data["quoteId"])
    amount = _amount(data["quoteAmount"])
    details = str(data.get("quoteDetails") or "")
    link = f"{settings.site_url}/safari-quote/{quote_id}"
    note = "Thank you for choosing Safari Quote!"
    body = (
        f"<h2>Hello {escape(name)}!</h2>"
        "<p>Your safari quote has been generated and is ready for review.</p>"
        '<div class="box">'
        f"<p><strong>Quote ID:</strong> {escape(quote_id)}</p>"
        f'<p class="amount">{amount}</p>'
        f"<p><strong>Details:</strong></p><p>{escape(details)}</p>"
        "</div>"
        f"{_button(link, 'View Quote')}"
        "<p>Please review the details and let us know if you have any questions or need modifications.</p>"
    )
    html = _layout(settings, title="Your Safari Quote is Ready", heading="Your Safari Quote is Ready", color="#f59e0b", body=body, note=note)
    lines = [
        "Your Safari Quote is Ready",
        "",
        f"Hello {name}!",
        "",
        "Your safari quote has been generated and is ready for review.",
        "",
        f"Quote ID: {quote_id}",
        f"Amount: {amount}",
        f"Details: {details}",
        "",
        f"View Quote: {link}",
        "",
        "Please review the details and let us know if you have any questions or need modifications.",
    ]
    return html, _text(settings, lines, note)


def _invoice_generated(data: Mapping[str, Any], settings: Settings) -> tuple[str, str]:
    _require(data, "name", "invoiceId", "invoiceAmount", "dueDate")
    name, invoice_id, due = str(data["name"]), str(data["invoiceId"]), str(data["dueDate"])
    amount = _amount(data["invoiceAmount"])
    link = f"{settings.site_url}/invoices/{invoice_id}"
    note = "Thank you for your business!"
    body = (
        f"<h2>Hello {escape(name)}!</h2>"
        "<p>A new invoice has been generated for your safari services.</p>"
        '<div class="box">'
        f"<p><strong>Invoice ID:</strong> {escape(invoice_id)}</p>"
        f'<p class="amount">{amount}</p>'
        f"<p><strong>Due Date:</strong> {escape(due)}</p>"
        "</div>"
        f"{_button(link, 'View Invoice')}"
        "<p>Please review the invoice and ensure payment is made by the due date.</p>"
        "<p>If you have any questions about this invoice, please contact our support team.</p>"
    )
    html = _layout(settings, title="New Invoice Generated", heading="New Invoice Generated", color="#dc2626", body=body, note=note)
    lines = [
        "New Invoice Generated",
        "",
        f"Hello {name}!",
        "",
        "A new invoice has been generated for your safari services.",
        "",
        f"Invoice ID: {invoice_id}",
        f"Amount: {amount}",
        f"Due Date: {due}",
        "",
        f"View Invoice: {link}",
        "",
        "Please review the invoice and ensure payment is made by the due date.",
        "",
        "If you have any questions about this invoice, please contact our support team.",
    ]
    return html, _text(settings, lines, note)


_RENDERERS: dict[str, Callable[[Mapping[str, Any], Settings], tuple[str, str]]] = {
    "welcome": _welcome,
    "email-confirmation": _email_confirmation,
    "password-reset": _password_reset,
    "company-approval": _company_approval,
    "company-approved": _company_approved,
    "quote-generated": _quote_generated,
    "invoice-generated": _invoice_generated,
}


def render_template(
    name: str, data: Mapping[str, Any], settings: Settings | None = None
) -> EmailTemplate:
    """Render a named template; unknown names and missing fields raise ValueError."""
    renderer = _RENDERERS.get(name)
    if renderer is None:
        raise ValueError(f"Unknown template: {name}")
    html, text = renderer(data, settings or get_settings())
    return EmailTemplate(subject=SUBJECTS[name], html=html, text=text)


__all__ = ["EmailTemplate", "SUBJECTS", "render_template"]
