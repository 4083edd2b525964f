"""Mail backend that only logs messages, for development."""

from __future__ import annotations

import logging
from typing import Mapping

from .abstract_mailer import AbstractMailer, MailTemplate
from .templates import render

logger = logging.getLogger(__name__)


class LogMailer(AbstractMailer):
    def __init__(self, frontend_url: str):
        self.frontend_url = frontend_url

    def send(self, address: str, template: MailTemplate, variables: Mapping[str, object]) -> None:
        subject, body = render(template, variables, self.frontend_url)
        logger.info("Email %s to %s", template.value, address)
        logger.info("Subject: %s", subject)
        logger.debug("Body:\n%s", body)
