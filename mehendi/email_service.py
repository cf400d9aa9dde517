"""
Email Service using Resend
Appointment emails rendered from MJML templates for responsive design
"""

import logging
from typing import Union

import resend
from mjml import mjml2html as mjml_to_html

from .config import APP_NAME, EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import appointment_confirmed_template, appointment_status_update_template
from .exceptions import DeliveryFailure

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise DeliveryFailure(f"Failed to compile MJML template: {str(e)}") from e

    # mjml_to_html returns a dict with 'html' and 'errors' keys
    if isinstance(result, dict):
        if result.get("errors"):
            logger.warning(f"MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    return str(result)


async def send_email(to: Union[str, list[str]], subject: str, mjml_content: str) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)

    Returns:
        Send response dict

    Raises:
        DeliveryFailure: If the email service is not configured or the send fails
    """
    recipients = [to] if isinstance(to, str) else to

    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise DeliveryFailure("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise DeliveryFailure(f"Failed to send email: {str(e)}") from e


async def send_appointment_confirmation(
    to: str,
    client_name: str,
    artist_name: str,
    appointment_date: str,
    appointment_time: str,
) -> dict:
    """Send appointment confirmation email to the client"""
    mjml_content = appointment_confirmed_template(
        client_name=client_name,
        artist_name=artist_name,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
    )
    return await send_email(
        to=to,
        subject=f"Your Mehendi Appointment is Confirmed! - {APP_NAME}",
        mjml_content=mjml_content,
    )


async def send_appointment_status_update(
    to: str,
    recipient_name: str,
    counterpart_name: str,
    appointment_date: str,
    appointment_time: str,
    status: str,
) -> dict:
    """Send appointment status change email to one party"""
    mjml_content = appointment_status_update_template(
        recipient_name=recipient_name,
        counterpart_name=counterpart_name,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        status=status,
    )
    return await send_email(
        to=to,
        subject=f"Mehendi Appointment Update: {status}",
        mjml_content=mjml_content,
    )
