"""
Outbound email content.

Each builder returns (subject, html). Links point at the web frontend,
which calls back into the API with the embedded token.
"""

from html import escape

_WRAPPER = '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">{body}</div>'
_BUTTON = (
    '<div style="text-align: center; margin: 30px 0;">'
    '<a href="{href}" style="background-color: {color}; color: white; padding: 12px 24px; '
    'text-decoration: none; border-radius: 4px; display: inline-block;">{label}</a>'
    "</div>"
)


def _greeting(first_name: str | None, last_name: str | None) -> str:
    name = " ".join(part for part in (first_name, last_name) if part)
    return f"<p>Hello {escape(name)},</p>" if name else "<p>Hello,</p>"


def verification_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/auth/verify-email?token={token}"


def reset_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/auth/reset-password?token={token}"


def verification_email(
    base_url: str,
    token: str,
    otp: str,
    first_name: str | None,
    last_name: str | None,
    ttl_minutes: int,
) -> tuple[str, str]:
    link = verification_link(base_url, token)
    body = (
        "<h2>Welcome! Please verify your email address</h2>"
        + _greeting(first_name, last_name)
        + "<p>Thank you for registering. Please click the button below to verify your email address:</p>"
        + _BUTTON.format(href=link, color="#007bff", label="Verify Email Address")
        + "<p>Or copy and paste this link in your browser:</p>"
        + f'<p style="word-break: break-all; color: #666;">{link}</p>'
        + f"<p><strong>Your OTP code: {otp}</strong> (for future reference)</p>"
        + f'<p style="color: #666; font-size: 12px;">This verification link will expire in {ttl_minutes} minutes. '
        "If you didn't request this, please ignore this email.</p>"
    )
    return "Email Verification - Complete Your Registration", _WRAPPER.format(body=body)


def resent_verification_email(
    base_url: str,
    token: str,
    otp: str,
    first_name: str | None,
    last_name: str | None,
    ttl_minutes: int,
) -> tuple[str, str]:
    link = verification_link(base_url, token)
    body = (
        "<h2>Email Verification</h2>"
        + _greeting(first_name, last_name)
        + "<p>Here's your new verification link:</p>"
        + _BUTTON.format(href=link, color="#007bff", label="Verify Email Address")
        + f"<p><strong>Your new OTP code: {otp}</strong></p>"
        + f'<p style="color: #666; font-size: 12px;">This verification link will expire in {ttl_minutes} minutes.</p>'
    )
    return "Email Verification - Resent", _WRAPPER.format(body=body)


def password_reset_email(
    base_url: str, token: str, first_name: str | None, ttl_minutes: int
) -> tuple[str, str]:
    link = reset_link(base_url, token)
    body = (
        "<h2>Password Reset Request</h2>"
        + _greeting(first_name, None)
        + "<p>You requested to reset your password. Click the button below to proceed:</p>"
        + _BUTTON.format(href=link, color="#dc3545", label="Reset Password")
        + "<p>Or copy and paste this link in your browser:</p>"
        + f'<p style="word-break: break-all; color: #666;">{link}</p>'
        + f'<p style="color: #666; font-size: 12px;">This reset link will expire in {ttl_minutes} minutes.</p>'
    )
    return "Password Reset Request", _WRAPPER.format(body=body)


def account_created_email(
    base_url: str,
    token: str,
    first_name: str | None,
    last_name: str | None,
    ttl_minutes: int,
) -> tuple[str, str]:
    link = reset_link(base_url, token)
    body = (
        "<h2>Account Created</h2>"
        + _greeting(first_name, last_name)
        + "<p>Your account has been created. Please set your password using the link below:</p>"
        + _BUTTON.format(href=link, color="#dc3545", label="Set Password")
        + f'<p style="color: #666; font-size: 12px;">This link expires in {ttl_minutes} minutes.</p>'
    )
    return "Password Reset Required", _WRAPPER.format(body=body)
