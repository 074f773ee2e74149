"""
MJML Email Templates
"""

from datetime import datetime
from html import escape
from typing import Optional

from .config import BUSINESS_NAME

THEME = {
    "primary": "#be185d",
    "background": "#f7f7f8",
    "text_primary": "#111111",
    "text_secondary": "#444444",
    "text_muted": "#666666",
    "border": "#ececec",
}


def get_base_template(title: str, preview_text: str, content_sections: str) -> str:
    """Base MJML template wrapper for all emails"""
    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="Arial, sans-serif" />
          <mj-text font-size="15px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" border-radius="12px" padding="32px">
          <mj-column>
            {content_sections}
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def booking_confirmation_template(
    name: str,
    treatment_name: str,
    price: Optional[float],
    appointment_start: datetime,
    message: Optional[str] = None,
    business_name: str = BUSINESS_NAME,
) -> str:
    """Booking request received - sent to the client"""
    price_text = f" - £{price:.2f}" if price is not None else ""
    when = appointment_start.strftime("%A %d %B %Y at %H:%M")

    message_section = ""
    if message:
        message_section = f"""
        <mj-text font-size="14px" padding="16px 0 0 0">
          Message: {escape(message)}
        </mj-text>
        """

    content = f"""
    <mj-text font-size="18px" font-weight="600" color="{THEME['text_primary']}">
      Hi {escape(name)},
    </mj-text>

    <mj-text padding="16px 0 0 0">
      Thanks for submitting your booking request to {escape(business_name)}. We'll be in touch soon.
    </mj-text>

    <mj-text font-size="14px" font-weight="600" color="#222222" padding="24px 0 0 0">
      Requested treatment
    </mj-text>
    <mj-text font-size="14px">
      {escape(treatment_name)}{price_text}<br/>
      {when}
    </mj-text>
    {message_section}

    <mj-divider border-color="{THEME['border']}" border-width="1px" padding="24px 0" />

    <mj-text font-size="14px" color="{THEME['text_muted']}">
      If anything looks wrong, reply to this email or call us.
    </mj-text>
    <mj-text color="{THEME['text_primary']}" padding="24px 0 0 0">
      With thanks,<br/>The {escape(business_name)} Team
    </mj-text>
    """

    return get_base_template(
        title="New Booking Created",
        preview_text=f"Your booking request for {escape(treatment_name)}",
        content_sections=content,
    )
