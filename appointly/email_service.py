"""
Email Service using Resend
Provides appointment emails using MJML templates for responsive design
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml2html as mjml_to_html

from .config import EMAIL_FROM_ADDRESS, FRONTEND_URL, RESEND_API_KEY
from .email_templates import (
    appointment_cancelled_template,
    appointment_confirmed_template,
    appointment_created_template,
    appointment_reminder_template,
    appointment_rescheduled_template,
)
from .utils.timezones import get_tz, utc_to_local

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailDeliveryError(Exception):
    """Raised when an email could not be handed to the provider"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise EmailDeliveryError(f"Failed to compile MJML template: {str(e)}") from e

    # mjml_to_html returns a mapping with 'html' and 'errors' keys
    if isinstance(result, dict):
        if result.get("errors"):
            logger.warning(f"MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    html = getattr(result, "html", None)
    return html if html is not None else str(result)


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailDeliveryError("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {to}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise EmailDeliveryError(f"Failed to send email: {str(e)}") from e


# ============================================
# Appointment notifications
# ============================================


def manage_appointment_url(appointment_id: int, token: str) -> str:
    return f"{FRONTEND_URL}/appointments/{appointment_id}/manage?token={token}"


def format_appointment_time(appointment, timezone_name: Optional[str]) -> tuple[str, str]:
    """(date, time range) of an appointment in the business timezone"""
    tz = get_tz(timezone_name)
    start = utc_to_local(appointment.start_time, tz)
    end = utc_to_local(appointment.end_time, tz)
    return start.strftime("%A, %B %d, %Y"), f"{start:%H:%M} - {end:%H:%M} ({start.tzname()})"


def build_appointment_email(
    kind: str, appointment, business_name: str, timezone_name: Optional[str], token: Optional[str] = None
) -> tuple[str, str]:
    """(subject, mjml) for one notification kind"""
    scheduled_date, scheduled_time = format_appointment_time(appointment, timezone_name)
    manage_url = manage_appointment_url(appointment.id, token) if token else None
    args = (appointment.client_name, business_name, scheduled_date, scheduled_time)

    if kind == "created":
        return f"Appointment Requested - {business_name}", appointment_created_template(*args, manage_url=manage_url)
    if kind == "confirmed":
        return f"Appointment Confirmed - {business_name}", appointment_confirmed_template(*args)
    if kind == "rescheduled":
        return f"Appointment Rescheduled - {business_name}", appointment_rescheduled_template(
            *args, manage_url=manage_url
        )
    if kind == "cancelled":
        return f"Appointment Cancelled - {business_name}", appointment_cancelled_template(*args)
    if kind == "reminder":
        return f"Reminder: Your Appointment Tomorrow - {business_name}", appointment_reminder_template(*args)
    raise ValueError(f"Unknown notification kind: {kind}")


async def send_appointment_email(
    kind: str, appointment, business_name: str, timezone_name: Optional[str], token: Optional[str] = None
) -> dict:
    """Send the client email for an appointment event"""
    subject, mjml_content = build_appointment_email(kind, appointment, business_name, timezone_name, token)
    return await send_email(to=appointment.client_email, subject=subject, mjml_content=mjml_content)
