"""
Outbound email through the Resend HTTP API.
The API key is server configuration (RESEND_API_KEY); it is never sent to clients.
"""

import logging
from html import escape
from typing import List, Union

import httpx

from app.config.settings import settings

logger = logging.getLogger(__name__)

INVITATION_SUBJECT = "You've been invited to join TeamUp!"


def send_email(to: Union[str, List[str]], subject: str, html: str) -> bool:
    """Send one message. Returns False (and logs) instead of raising on any failure."""
    if not settings.email_enabled:
        logger.error("RESEND_API_KEY not configured; email to %s not sent", to)
        return False
    payload = {
        "from": settings.email_from,
        "to": [to] if isinstance(to, str) else list(to),
        "subject": subject,
        "html": html,
    }
    try:
        resp = httpx.post(
            settings.resend_api_url,
            headers={"Authorization": f"Bearer {settings.resend_api_key}"},
            json=payload,
            timeout=settings.email_timeout_sec,
        )
    except httpx.HTTPError:
        logger.exception("Failed to send email via Resend API")
        return False
    if resp.status_code in (200, 201, 202):
        logger.info("Email sent to %s: %s", payload["to"], subject)
        return True
    logger.error("Resend API returned non-success: %s %s", resp.status_code, resp.text)
    return False


def invitation_email_html(invite_link: str, expiry_days: int) -> str:
    link = escape(invite_link, quote=True)
    return (
        "<h2>You're invited 🎉</h2>"
        "<p>You've been invited to join a team on TeamUp!</p>"
        f'<p><a href="{link}" target="_blank">Accept Invitation</a></p>'
        "<p>Or copy and paste this link into your browser:</p>"
        f"<p>{link}</p>"
        f"<p>This invitation will expire in {expiry_days} days.</p>"
    )


def send_invitation_email(email: str, token: str) -> bool:
    invite_link = settings.accept_link(token)
    return send_email(
        email,
        INVITATION_SUBJECT,
        invitation_email_html(invite_link, settings.invitation_expiry_days),
    )
