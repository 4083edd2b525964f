"""Mail sender abstraction layer."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from typing import Mapping


class MailTemplate(str, enum.Enum):
    """Transactional emails sent by the identity flows."""

    VERIFY_EMAIL = "VERIFY_EMAIL"
    RESET_PASSWORD = "RESET_PASSWORD"


class AbstractMailer(ABC):
    """Interface for mail delivery backends."""

    @abstractmethod
    def send(self, address: str, template: MailTemplate, variables: Mapping[str, object]) -> None:
        """Deliver ``template`` rendered with ``variables`` to ``address``.

        Raises :class:`identity.errors.CollaboratorUnavailable` if delivery
        fails.
        """
