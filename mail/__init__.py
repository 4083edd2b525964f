"""Mail delivery backends."""

from typing import Mapping

from .abstract_mailer import AbstractMailer, MailTemplate
from .log_mailer import LogMailer
from .resend_mailer import ResendMailer


def build_mailer(config: Mapping) -> AbstractMailer:
    """Return the mail backend selected by ``MAIL_BACKEND``."""

    backend = (config.get("MAIL_BACKEND") or "log").lower()
    frontend_url = config.get("FRONTEND_URL", "http://localhost:5173")
    if backend == "resend":
        return ResendMailer(
            api_key=config.get("RESEND_API_KEY"),
            from_address=config.get("EMAIL_FROM_ADDRESS"),
            frontend_url=frontend_url,
        )
    if backend == "log":
        return LogMailer(frontend_url)
    raise ValueError(f"Unknown MAIL_BACKEND: {backend}")


__all__ = ["AbstractMailer", "MailTemplate", "LogMailer", "ResendMailer", "build_mailer"]
