"""
Outbound email through Resend.

Only one message exists: the administrator password reset link. Callers
get a plain bool back; a False means the transport could not take the
message and the caller decides what to report.
"""

import asyncio
import logging
from html import escape

import resend

from app.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key.get_secret_value() if settings.resend_api_key else None

RESET_SUBJECT = "Reset your ID Card admin password"

_RESET_HTML = """\
<div style="font-family: system-ui, sans-serif; max-width: 560px; margin: 0 auto; color: #1f2937;">
  <h2 style="color: #1a365d;">Password reset</h2>
  <p>Hello {username},</p>
  <p>Someone asked to reset the password of the ID Card admin account linked to this address.</p>
  <p><a href="{link}" style="background: #1a365d; color: #fff; padding: 12px 24px;
     border-radius: 6px; text-decoration: none;">Choose a new password</a></p>
  <p style="word-break: break-all; color: #3b82f6;">{link}</p>
  <p><strong>The link works once and expires in {minutes} minutes.</strong></p>
  <p style="color: #6b7280; font-size: 13px;">Ignore this email if the request was not yours.</p>
</div>
"""

_RESET_TEXT = """\
Hello {username},

Open the link below to choose a new ID Card admin password:
{link}

The link works once and expires in {minutes} minutes.
Ignore this email if the request was not yours.
"""


def is_email_configured() -> bool:
    return bool(resend.api_key)


def render_password_reset(username: str, reset_link: str, expires_minutes: int) -> tuple[str, str]:
    """Return (html, text) bodies for the reset email."""
    html = _RESET_HTML.format(
        username=escape(username),
        link=escape(reset_link, quote=True),
        minutes=expires_minutes,
    )
    text = _RESET_TEXT.format(username=username, link=reset_link, minutes=expires_minutes)
    return html, text


async def send_email(to_email: str, subject: str, html: str, text: str | None = None) -> bool:
    """
    Hand one message to Resend.

    With no API key configured, development logs the message and reports
    success; every other environment reports the transport as down.
    """
    if not is_email_configured():
        if settings.is_development:
            logger.warning(f"RESEND_API_KEY not set - not sending '{subject}' to {to_email}")
            return True
        logger.error("RESEND_API_KEY not set - email transport unavailable")
        return False

    params: resend.Emails.SendParams = {
        "from": settings.email_from,
        "to": [to_email],
        "subject": subject,
        "html": html,
    }
    if text:
        params["text"] = text

    try:
        # resend is synchronous
        sent = await asyncio.to_thread(resend.Emails.send, params)
    except Exception as e:
        logger.error(f"Resend rejected email to {to_email}: {e}")
        return False
    logger.info(f"Email '{subject}' queued for {to_email} (id {sent['id']})")
    return True


async def send_password_reset(
    to_email: str,
    username: str,
    reset_link: str,
    expires_minutes: int,
) -> bool:
    html, text = render_password_reset(username, reset_link, expires_minutes)
    return await send_email(to_email, RESET_SUBJECT, html, text)
