"""
Email Service using Resend

Handles transactional emails:
- Email verification links for new registrants
- Password reset links
- Welcome email once an address is verified

Every sender returns True when Resend accepted the message and False
otherwise; callers treat delivery as best-effort.
"""

import resend
from typing import Optional
from app.core.config import settings
from app.core.logging_config import get_logger

logger = get_logger(__name__)

# Initialize Resend
resend.api_key = settings.RESEND_API_KEY


def is_email_configured() -> bool:
    return bool(settings.RESEND_API_KEY)


def _layout(heading: str, body_html: str) -> str:
    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; background-color: #f4f4f5; color: #18181b; margin: 0; padding: 40px 20px;">
    <div style="max-width: 600px; margin: 0 auto; background-color: #ffffff; border-radius: 8px; border: 1px solid #e4e4e7; overflow: hidden;">
        <div style="background-color: #1e3a8a; padding: 30px; text-align: center;">
            <h1 style="margin: 0; font-size: 22px; color: #ffffff;">{settings.PROJECT_NAME}</h1>
        </div>
        <div style="padding: 40px 30px;">
            <h2 style="margin: 0 0 20px 0; font-size: 20px;">{heading}</h2>
            {body_html}
        </div>
    </div>
</body>
</html>
"""


def _button(url: str, label: str) -> str:
    return f"""
<div style="text-align: center; margin: 30px 0;">
    <a href="{url}" style="display: inline-block; background-color: #1e3a8a; color: #ffffff; padding: 14px 32px; text-decoration: none; font-weight: bold; font-size: 14px; border-radius: 4px;">{label}</a>
</div>
<p style="color: #71717a; font-size: 13px; line-height: 1.6;">If the button doesn't work, copy this link into your browser:<br>{url}</p>
"""


def send_email(to_email: str, subject: str, html: str, kind: str = "generic") -> bool:
    """Send one message through Resend."""
    if not is_email_configured():
        logger.info("Skipping email - RESEND_API_KEY not configured", kind=kind, to=to_email)
        return False

    try:
        resend.Emails.send({
            "from": settings.FROM_EMAIL,
            "to": [to_email],
            "subject": subject,
            "html": html,
        })
        logger.info("Email sent", kind=kind, to=to_email)
        return True
    except Exception as e:
        logger.warning("Failed to send email", kind=kind, to=to_email, error=str(e))
        return False


def send_verification_email(to_email: str, token: str) -> bool:
    """
    Send the address confirmation link.
    Returns True if sent successfully, False otherwise.
    """
    verify_url = f"{settings.FRONTEND_URL}/verify-email?token={token}"
    hours = settings.EMAIL_VERIFICATION_EXPIRE_HOURS
    html = _layout(
        "Confirm your email",
        f"""
<p style="color: #52525b; line-height: 1.6;">Thanks for signing up. Confirm your address to finish creating your account.</p>
{_button(verify_url, "VERIFY EMAIL")}
<p style="color: #71717a; font-size: 13px;">This link expires in {hours} hours.</p>
""",
    )
    return send_email(to_email, f"Verify your email - {settings.PROJECT_NAME}", html, kind="verification")


def send_password_reset_email(to_email: str, reset_token: str) -> bool:
    """
    Send password reset email with reset link.
    Returns True if sent successfully, False otherwise.
    """
    reset_url = f"{settings.FRONTEND_URL}/reset-password?token={reset_token}"
    minutes = settings.PASSWORD_RESET_EXPIRE_MINUTES
    html = _layout(
        "Reset your password",
        f"""
<p style="color: #52525b; line-height: 1.6;">We received a request to reset your password. Click below to choose a new one.</p>
{_button(reset_url, "RESET PASSWORD")}
<p style="color: #71717a; font-size: 13px;">This link expires in {minutes} minutes. If you didn't request a reset you can ignore this email.</p>
""",
    )
    return send_email(to_email, f"Reset your password - {settings.PROJECT_NAME}", html, kind="password_reset")


def send_welcome_email(to_email: str, user_name: Optional[str] = None) -> bool:
    name = user_name or to_email.split("@")[0]
    html = _layout(
        f"Welcome, {name}!",
        f"""
<p style="color: #52525b; line-height: 1.6;">Your email is confirmed and your account is ready.</p>
{_button(settings.FRONTEND_URL, "GO TO THE BLOG")}
""",
    )
    return send_email(to_email, f"Welcome to {settings.PROJECT_NAME}!", html, kind="welcome")
