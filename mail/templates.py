"""Subjects and HTML bodies for transactional emails."""

from __future__ import annotations

from typing import Mapping

from jinja2 import Environment, select_autoescape

from .abstract_mailer import MailTemplate

_environment = Environment(autoescape=select_autoescape(default=True))

_LAYOUT = """\
<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto;">
    <h1 style="color: #667eea;">{{ heading }}</h1>
    <p>Hello {{ full_name or email }},</p>
    <p>{{ intro }}</p>
    <p><a href="{{ link }}" style="display: inline-block; padding: 14px 32px; background: #667eea; color: white; text-decoration: none; border-radius: 8px;">{{ action }}</a></p>
    <p>This link expires in {{ expires_minutes }} minutes. If you did not request it, you can ignore this email.</p>
  </body>
</html>
"""

_TEMPLATES = {
    MailTemplate.VERIFY_EMAIL: {
        "subject": "Verify your email address",
        "heading": "Confirm your email",
        "intro": "Thanks for signing up. Please confirm your email address to activate your account.",
        "action": "Verify email",
        "path": "/verify-email",
    },
    MailTemplate.RESET_PASSWORD: {
        "subject": "Reset your password",
        "heading": "Password reset",
        "intro": "We received a request to reset the password for your account.",
        "action": "Reset password",
        "path": "/reset-password",
    },
}


def render(
    template: MailTemplate, variables: Mapping[str, object], frontend_url: str
) -> tuple[str, str]:
    """Return the subject and HTML body for ``template``."""

    content = _TEMPLATES[template]
    link = f"{frontend_url.rstrip('/')}{content['path']}?token={variables['token']}"
    html = _environment.from_string(_LAYOUT).render(
        heading=content["heading"],
        intro=content["intro"],
        action=content["action"],
        link=link,
        full_name=variables.get("full_name"),
        email=variables.get("email"),
        expires_minutes=variables.get("expires_minutes"),
    )
    return content["subject"], html
