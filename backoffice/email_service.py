"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design
"""

import logging
from datetime import datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import resend
from mjml import mjml_to_html

from .config import EMAIL_ENABLED, EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    appointment_cancelled_template,
    appointment_confirmation_template,
    appointment_reminder_template,
    contract_executed_template,
    invoice_issued_template,
    signature_code_template,
    signature_invite_template,
)
from .shared.dates import to_aware_utc
from .utils.sanitization import sanitize_string

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns an object/dict with 'html' and 'errors'
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        html = getattr(result, "html", None)
        if html is not None:
            if getattr(result, "errors", None):
                logger.warning(f"MJML compilation warnings: {result.errors}")
            return html
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
    attachments: Optional[list[dict]] = None,
) -> dict:
    """
    Send an email through Resend.

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address
        attachments: Optional list of {filename, content}

    Returns:
        Send response dict, or {"skipped": True} when delivery is disabled
    """
    recipients = [to] if isinstance(to, str) else to

    if not EMAIL_ENABLED or not RESEND_API_KEY:
        logger.info(f"📭 Email delivery disabled - skipping '{subject}' to {recipients}")
        return {"skipped": True}

    html_content = compile_mjml_to_html(mjml_content)
    sender = from_address or EMAIL_FROM_ADDRESS

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        email_data = {
            "from": sender,
            "to": recipients,
            "subject": subject,
            "html": html_content,
        }

        if attachments:
            email_data["attachments"] = [
                {"filename": attachment["filename"], "content": attachment["content"]}
                for attachment in attachments
            ]

        response = resend.Emails.send(email_data)
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


def format_when(starts_at: datetime, time_zone: Optional[str] = None) -> str:
    """Human readable appointment time in the attendee's zone"""
    aware = to_aware_utc(starts_at)
    if time_zone:
        try:
            aware = aware.astimezone(ZoneInfo(time_zone))
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown time zone '{time_zone}', formatting in UTC")
    return aware.strftime("%A, %B %d, %Y at %I:%M %p %Z")


# ============================================
# Pre-built Emails for Common Events
# ============================================


async def send_signature_invite_email(
    to: str,
    signer_name: Optional[str],
    contract_name: str,
    sign_url: str,
    role: str,
    expires_at: datetime,
    requires_code: bool = False,
    login_id: Optional[str] = None,
) -> dict:
    role_label = "customer" if role == "customerSigner" else "provider"
    mjml_content = signature_invite_template(
        signer_name=sanitize_string(signer_name),
        contract_name=sanitize_string(contract_name),
        sign_url=sign_url,
        role_label=role_label,
        expires_label=expires_at.strftime("%B %d, %Y"),
        requires_code=requires_code,
        login_id=login_id,
    )
    return await send_email(to=to, subject=f"Signature requested: {contract_name}", mjml_content=mjml_content)


async def send_signature_code_email(
    to: str, signer_name: Optional[str], contract_name: str, code: str, minutes: int
) -> dict:
    mjml_content = signature_code_template(sanitize_string(signer_name), sanitize_string(contract_name), code, minutes)
    return await send_email(to=to, subject=f"Your signing code for {contract_name}", mjml_content=mjml_content)


async def send_contract_executed_email(
    to: list[str],
    contract_name: str,
    customer_signer: Optional[str],
    provider_signer: Optional[str],
    executed_at: datetime,
) -> dict:
    mjml_content = contract_executed_template(
        sanitize_string(contract_name),
        sanitize_string(customer_signer),
        sanitize_string(provider_signer),
        executed_at.strftime("%B %d, %Y"),
    )
    return await send_email(to=to, subject=f"Fully executed: {contract_name}", mjml_content=mjml_content)


async def send_appointment_confirmation_email(
    to: str,
    attendee_name: str,
    type_name: str,
    starts_at: datetime,
    time_zone: Optional[str] = None,
    location: Optional[str] = None,
    host_name: Optional[str] = None,
) -> dict:
    when_label = format_when(starts_at, time_zone)
    mjml_content = appointment_confirmation_template(
        sanitize_string(attendee_name),
        sanitize_string(type_name),
        when_label,
        sanitize_string(location),
        sanitize_string(host_name),
    )
    return await send_email(to=to, subject=f"Confirmed: {type_name}", mjml_content=mjml_content)


async def send_appointment_cancelled_email(
    to: str,
    attendee_name: str,
    type_name: str,
    starts_at: datetime,
    booking_url: str,
    time_zone: Optional[str] = None,
) -> dict:
    when_label = format_when(starts_at, time_zone)
    mjml_content = appointment_cancelled_template(
        sanitize_string(attendee_name), sanitize_string(type_name), when_label, booking_url
    )
    return await send_email(to=to, subject=f"Cancelled: {type_name}", mjml_content=mjml_content)


async def send_appointment_reminder_email(
    to: str,
    attendee_name: str,
    type_name: str,
    starts_at: datetime,
    time_zone: Optional[str] = None,
    location: Optional[str] = None,
) -> dict:
    when_label = format_when(starts_at, time_zone)
    mjml_content = appointment_reminder_template(
        sanitize_string(attendee_name), sanitize_string(type_name), when_label, sanitize_string(location)
    )
    return await send_email(to=to, subject=f"Reminder: {type_name}", mjml_content=mjml_content)


async def send_invoice_email(
    to: str,
    recipient_name: Optional[str],
    invoice_number: int,
    title: str,
    total: float,
    balance: float,
    currency: str = "USD",
    due_date: Optional[datetime] = None,
) -> dict:
    mjml_content = invoice_issued_template(
        recipient_name=sanitize_string(recipient_name),
        invoice_number=invoice_number,
        title=sanitize_string(title),
        total_label=f"{total:,.2f} {currency}",
        balance_label=f"{balance:,.2f} {currency}",
        due_label=due_date.strftime("%B %d, %Y") if due_date else None,
    )
    return await send_email(to=to, subject=f"Invoice #{invoice_number}: {title}", mjml_content=mjml_content)
