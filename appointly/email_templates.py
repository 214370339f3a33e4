"""
MJML Email Templates
Appointment notification emails using MJML for responsive, cross-client compatibility
"""

from typing import Optional

from .utils.sanitization import sanitize_string

# App theme colors - Indigo/Slate color scheme
THEME = {
    "primary": "#4f46e5",
    "primary_dark": "#4338ca",
    "primary_light": "#e0e7ff",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#16a34a",
    "warning": "#f59e0b",
    "danger": "#ef4444",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <!-- Main Content -->
        <mj-section background-color="#ffffff" padding="40px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              Sent by Appointly on behalf of the business you booked with.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _appointment_block(scheduled_date: str, scheduled_time: str, color: str) -> str:
    return f"""
    <mj-text align="center" font-size="16px" color="{color}" padding="20px 0 0 0">
      📅 {scheduled_date}
    </mj-text>

    <mj-text align="center" font-size="16px" color="{color}" padding="0 0 20px 0">
      ⏰ {scheduled_time}
    </mj-text>
    """


def appointment_created_template(
    client_name: str,
    business_name: str,
    scheduled_date: str,
    scheduled_time: str,
    manage_url: Optional[str] = None,
) -> str:
    """Booking received - includes the self-service link while the token is valid"""
    client_name = sanitize_string(client_name)
    business_name = sanitize_string(business_name)
    content = f"""
    <mj-text>
      Hi {client_name},
    </mj-text>

    <mj-text>
      Your appointment request with <strong>{business_name}</strong> has been received.
    </mj-text>

    {_appointment_block(scheduled_date, scheduled_time, THEME['text_primary'])}

    <mj-text font-size="14px" color="{THEME['text_muted']}">
      Need to change or cancel? Use the button below. The link is valid for a short time and works once.
    </mj-text>
    """

    return get_base_template(
        title="Appointment Requested",
        preview_text=f"Your appointment with {business_name} on {scheduled_date}",
        content_sections=content,
        cta_url=manage_url,
        cta_label="Manage Appointment" if manage_url else None,
    )


def appointment_confirmed_template(
    client_name: str, business_name: str, scheduled_date: str, scheduled_time: str
) -> str:
    """Appointment confirmed by the business"""
    client_name = sanitize_string(client_name)
    business_name = sanitize_string(business_name)
    content = f"""
    <mj-text>
      Hi {client_name},
    </mj-text>

    <mj-text>
      Great news! <strong>{business_name}</strong> has confirmed your appointment.
    </mj-text>

    <mj-text align="center" font-size="18px" font-weight="600" color="{THEME['success']}" padding="20px 0 0 0">
      ✓ Confirmed
    </mj-text>

    {_appointment_block(scheduled_date, scheduled_time, THEME['text_primary'])}
    """

    return get_base_template(
        title="Your Appointment is Confirmed! 🎉",
        preview_text=f"Appointment confirmed - {business_name}",
        content_sections=content,
    )


def appointment_rescheduled_template(
    client_name: str,
    business_name: str,
    scheduled_date: str,
    scheduled_time: str,
    manage_url: Optional[str] = None,
) -> str:
    """Appointment moved to a new time (by the client or the business)"""
    client_name = sanitize_string(client_name)
    business_name = sanitize_string(business_name)
    content = f"""
    <mj-text>
      Hi {client_name},
    </mj-text>

    <mj-text>
      Your appointment with <strong>{business_name}</strong> has been moved to a new time.
      It is pending until the business confirms it.
    </mj-text>

    {_appointment_block(scheduled_date, scheduled_time, THEME['text_primary'])}
    """

    return get_base_template(
        title="Appointment Rescheduled",
        preview_text=f"New time for your appointment with {business_name}",
        content_sections=content,
        cta_url=manage_url,
        cta_label="Manage Appointment" if manage_url else None,
    )


def appointment_cancelled_template(
    client_name: str, business_name: str, scheduled_date: str, scheduled_time: str
) -> str:
    """Appointment cancelled"""
    client_name = sanitize_string(client_name)
    business_name = sanitize_string(business_name)
    content = f"""
    <mj-text>
      Hi {client_name},
    </mj-text>

    <mj-text>
      Your appointment with <strong>{business_name}</strong> has been cancelled.
    </mj-text>

    {_appointment_block(scheduled_date, scheduled_time, THEME['text_muted'])}

    <mj-text font-size="14px" color="{THEME['text_muted']}">
      You can book a new time from the business's booking page whenever you like.
    </mj-text>
    """

    return get_base_template(
        title="Appointment Cancelled",
        preview_text=f"Your appointment with {business_name} was cancelled",
        content_sections=content,
    )


def appointment_reminder_template(
    client_name: str, business_name: str, scheduled_date: str, scheduled_time: str
) -> str:
    """Reminder sent the day before the appointment"""
    client_name = sanitize_string(client_name)
    business_name = sanitize_string(business_name)
    content = f"""
    <mj-text>
      Hi {client_name},
    </mj-text>

    <mj-text>
      This is a reminder of your appointment with <strong>{business_name}</strong> tomorrow.
    </mj-text>

    {_appointment_block(scheduled_date, scheduled_time, THEME['primary'])}
    """

    return get_base_template(
        title="Appointment Reminder ⏰",
        preview_text=f"Tomorrow: your appointment with {business_name}",
        content_sections=content,
    )
