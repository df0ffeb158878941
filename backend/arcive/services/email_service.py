"""Outbound email over SMTP.

Best effort: one attempt, no retries. When SMTP_HOST is unset the message
is logged instead of sent so development setups need no mail server.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from html import escape
from typing import Optional

from ..core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailResult:
    success: bool
    simulated: bool = False
    error: Optional[str] = None


def send_email(to: str, subject: str, html: str) -> EmailResult:
    """Send one HTML email. Never raises."""
    if not settings.email_enabled:
        logger.info("Email simulated (SMTP not configured)", extra={"to": to, "subject": subject})
        return EmailResult(success=True, simulated=True)

    message = EmailMessage()
    message["From"] = settings.smtp_sender
    message["To"] = to
    message["Subject"] = subject
    message.set_content("This message requires an HTML capable mail client.")
    message.add_alternative(html, subtype="html")

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
            if settings.smtp_use_tls:
                smtp.starttls()
            if settings.smtp_user:
                smtp.login(settings.smtp_user, settings.smtp_password)
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("Failed to send email to %s: %s", to, e)
        return EmailResult(success=False, error=str(e))

    logger.info("Email sent", extra={"to": to, "subject": subject})
    return EmailResult(success=True)


def render_share_email(sharer_name: str, item_name: str, item_type: str, link: str) -> str:
    return (
        "<div style=\"font-family: sans-serif\">"
        f"<h2>{escape(sharer_name)} shared a {escape(item_type)} with you</h2>"
        f"<p><strong>{escape(item_name)}</strong> is now available in your Sedia Arcive.</p>"
        f"<p><a href=\"{escape(link, quote=True)}\">Open in Sedia Arcive</a></p>"
        "</div>"
    )


def render_access_request_email(requester_name: str, requester_email: str, link: str) -> str:
    return (
        "<div style=\"font-family: sans-serif\">"
        "<h2>Upload access requested</h2>"
        f"<p>{escape(requester_name)} ({escape(requester_email)}) is asking for upload access.</p>"
        f"<p><a href=\"{escape(link, quote=True)}\">Review in the admin panel</a></p>"
        "</div>"
    )
