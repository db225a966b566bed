"""In-process stub adapter for the email notifier port.

The stub implements ``EmailNotifierPort`` without any network calls. It is
intended for unit tests and local development where deterministic behavior
is useful and the email service is not required.
"""

import logging
from dataclasses import dataclass
from typing import List

from .domain import EmailNotifierPort

logger = logging.getLogger("storefront.email")


@dataclass(frozen=True)
class SentEmail:
    """A message accepted by ``EmailNotifierStub``."""

    to: str
    subject: str
    body: str


class EmailNotifierStub(EmailNotifierPort):
    """Stub implementation of ``EmailNotifierPort``.

    Records every message in ``sent`` and logs it instead of delivering it.
    """

    def __init__(self):
        self.sent: List[SentEmail] = []

    def send_order_confirmation(self, to: str, subject: str, body: str) -> None:
        """Record a confirmation message.

        Args:
            to: Recipient email address.
            subject: Message subject.
            body: Plain-text message body.
        """
        self.sent.append(SentEmail(to=to, subject=subject, body=body))
        logger.info("order confirmation recorded", extra={"to": to, "subject": subject})
