"""Mail delivery through the Resend API."""

from __future__ import annotations

import logging
from typing import Mapping

import resend

from identity.errors import CollaboratorUnavailable

from .abstract_mailer import AbstractMailer, MailTemplate
from .templates import render

logger = logging.getLogger(__name__)


class ResendMailer(AbstractMailer):
    """Send transactional emails with Resend."""

    def __init__(self, api_key: str | None, from_address: str, frontend_url: str):
        self.api_key = api_key
        self.from_address = from_address
        self.frontend_url = frontend_url

    def send(self, address: str, template: MailTemplate, variables: Mapping[str, object]) -> None:
        if not self.api_key:
            logger.error("RESEND_API_KEY is not configured; cannot send %s", template.value)
            raise CollaboratorUnavailable("Email service is not configured.")

        subject, html = render(template, variables, self.frontend_url)
        resend.api_key = self.api_key
        try:
            response = resend.Emails.send(
                {
                    "from": self.from_address,
                    "to": [address],
                    "subject": subject,
                    "html": html,
                }
            )
        except Exception as error:
            logger.error("Email send error for %s to %s: %s", template.value, address, error)
            raise CollaboratorUnavailable("Failed to send email.") from error
        logger.info("Sent %s email via Resend: %s", template.value, response)
