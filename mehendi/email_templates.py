"""
MJML Email Templates
Appointment emails using MJML for responsive, cross-client compatibility
"""

from datetime import datetime
from html import escape
from typing import Optional

from .config import APP_NAME, FRONTEND_URL

# App theme colors - henna plum palette
THEME = {
    "primary": "#7a2fa6",
    "primary_light": "#f3e8fa",
    "background": "#f9f6fb",
    "card_bg": "#ffffff",
    "text_primary": "#2d1a38",
    "text_secondary": "#4a4a4a",
    "text_muted": "#7d7386",
    "border": "#eadff0",
    "success": "#2e7d32",
    "danger": "#b00020",
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
          <mj-all font-family="'Segoe UI', Tahoma, Geneva, Verdana, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['card_bg']}" padding="32px 20px 0 20px">
          <mj-column>
            <mj-text align="center" font-size="22px" font-weight="700" letter-spacing="3px" color="{THEME['primary']}">
              {APP_NAME.upper()}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="16px 0 24px 0" />
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="{THEME['card_bg']}" padding="0 40px 48px 40px">
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
            <mj-text align="center" font-size="13px" color="{THEME['text_muted']}" padding="0">
              © {datetime.now().year} {APP_NAME} Team
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def appointment_confirmed_template(
    client_name: str,
    artist_name: str,
    appointment_date: str,
    appointment_time: str,
) -> str:
    """Appointment confirmed notification for the client"""
    content = f"""
    <mj-text>
      Hello {escape(client_name)},
    </mj-text>

    <mj-text>
      Your mehendi appointment with <strong>{escape(artist_name)}</strong> has been confirmed.
    </mj-text>

    <mj-text align="center" font-size="16px" color="{THEME['text_primary']}" padding="20px 0 0 0">
      📅 {escape(appointment_date)}
    </mj-text>

    <mj-text align="center" font-size="16px" color="{THEME['text_primary']}" padding="0 0 20px 0">
      ⏰ {escape(appointment_time)}
    </mj-text>

    <mj-text>
      We look forward to seeing you!
    </mj-text>
    """

    return get_base_template(
        title="Appointment Confirmed!",
        preview_text=f"Your appointment with {artist_name} is confirmed",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/my-appointments",
        cta_label="View My Appointments",
    )


def appointment_status_update_template(
    recipient_name: str,
    counterpart_name: str,
    appointment_date: str,
    appointment_time: str,
    status: str,
) -> str:
    """Appointment status change notification for either party"""
    is_cancelled = status == "cancelled"
    status_color = THEME["danger"] if is_cancelled else THEME["text_primary"]

    caution = ""
    if is_cancelled:
        caution = f"""
    <mj-text align="center" font-weight="600" color="{THEME['danger']}">
      If this was not intentional, please contact the other party or our support.
    </mj-text>
    """

    content = f"""
    <mj-text>
      Hello {escape(recipient_name)},
    </mj-text>

    <mj-text color="{status_color}" font-weight="600">
      Your mehendi appointment with <strong>{escape(counterpart_name)}</strong> on
      {escape(appointment_date)} at {escape(appointment_time)} has been updated to
      <strong>{escape(status.upper())}</strong>.
    </mj-text>
    {caution}
    """

    return get_base_template(
        title="Appointment Update!",
        preview_text=f"Appointment update: {status}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/my-appointments",
        cta_label="View My Appointments",
    )
