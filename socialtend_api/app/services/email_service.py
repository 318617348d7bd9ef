"""
Transactional email through the SendGrid v3 API.

When ``SENDGRID_API_KEY`` is not configured every send is skipped with a
warning and reported as unsuccessful; account flows (registration,
password reset) keep working without email.
"""

import html
import logging
import re
from typing import Optional

import httpx

from socialtend_api.app.core.config import settings

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")

_LAYOUT = """<!DOCTYPE html>
<html>
<head>
  <style>
    body {{ font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; }}
    .header {{ background: {color}; color: white; padding: 20px; text-align: center; border-radius: 8px 8px 0 0; }}
    .content {{ background: #f8fafc; padding: 30px; border-radius: 0 0 8px 8px; }}
    .button {{ display: inline-block; background: {color}; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; margin: 20px 0; }}
    .footer {{ color: #64748b; font-size: 14px; margin-top: 30px; }}
  </style>
</head>
<body>
  <div class="header"><h1>{title}</h1></div>
  <div class="content">
    {body}
    <p style="text-align: center;"><a href="{url}" class="button">{button}</a></p>
    <p>Or copy and paste this link into your browser:</p>
    <p style="word-break: break-all; color: {color};">{url}</p>
    <div class="footer">{footer}</div>
  </div>
</body>
</html>
"""


class EmailService:
    """Send account emails via SendGrid."""

    @classmethod
    def is_configured(cls) -> bool:
        return bool(settings.sendgrid_api_key)

    @classmethod
    async def send_email(cls, to: str, subject: str, html_body: str, text: Optional[str] = None) -> bool:
        """Send one email.  Returns ``True`` when SendGrid accepted it."""
        if not cls.is_configured():
            logger.warning("Email service not configured - skipping email to %s (%s)", to, subject)
            return False
        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": settings.email_from},
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": text or _TAG_RE.sub("", html_body)},
                {"type": "text/html", "value": html_body},
            ],
        }
        headers = {"Authorization": f"Bearer {settings.sendgrid_api_key}"}
        try:
            async with httpx.AsyncClient(timeout=15.0) as client:
                response = await client.post(settings.sendgrid_api_url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Failed to send email to %s (%s): %s", to, subject, exc)
            return False
        logger.info("Email sent to %s (%s)", to, subject)
        return True

    @classmethod
    async def send_verification_email(cls, email: str, token: str, base_url: Optional[str] = None) -> bool:
        url = f"{(base_url or settings.public_base_url).rstrip('/')}/verify-email?token={token}"
        body = _LAYOUT.format(
            color="#2563eb",
            title="Welcome to SocialTend!",
            body=(
                "<h2>Verify Your Email Address</h2>"
                "<p>Thank you for joining SocialTend, the platform connecting event organizers "
                "with hospitality professionals.</p>"
                "<p>Please verify your email address to start connecting:</p>"
            ),
            url=html.escape(url),
            button="Verify Email Address",
            footer=(
                f"<p>This verification link will expire in {settings.email_verification_expire_hours} hours.</p>"
                "<p>If you didn't create an account with SocialTend, you can safely ignore this email.</p>"
            ),
        )
        return await cls.send_email(
            email,
            "Verify your SocialTend account",
            body,
            text=f"Welcome to SocialTend! Please verify your email by visiting: {url}",
        )

    @classmethod
    async def send_password_reset_email(cls, email: str, token: str, base_url: Optional[str] = None) -> bool:
        url = f"{(base_url or settings.public_base_url).rstrip('/')}/reset-password?token={token}"
        body = _LAYOUT.format(
            color="#dc2626",
            title="Password Reset Request",
            body=(
                "<h2>Reset Your Password</h2>"
                "<p>We received a request to reset your SocialTend account password.</p>"
                "<p>Click the button below to create a new password:</p>"
            ),
            url=html.escape(url),
            button="Reset Password",
            footer=(
                f"<p>This reset link will expire in {settings.password_reset_expire_minutes} minutes.</p>"
                "<p>If you didn't request a password reset, you can safely ignore this email.</p>"
            ),
        )
        return await cls.send_email(
            email,
            "Reset your SocialTend password",
            body,
            text=f"Reset your SocialTend password by visiting: {url}",
        )
