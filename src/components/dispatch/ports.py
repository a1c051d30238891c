"""
Dispatch component ports.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from src.components.dispatch.models import Newsletter, NewsletterDelivery
from src.core.ports.email import EmailResult


class NewsletterRepoPort(Protocol):
    """Newsletter send history."""

    def save(self, newsletter: Newsletter) -> Newsletter:
        """Insert or update the send record."""
        ...

    def get_by_id(self, newsletter_id: UUID) -> Newsletter | None:
        ...

    def list_recent(self, limit: int = 50, offset: int = 0) -> list[Newsletter]:
        """Newest first."""
        ...

    def add_deliveries(self, deliveries: list[NewsletterDelivery]) -> None:
        ...

    def list_deliveries(self, newsletter_id: UUID) -> list[NewsletterDelivery]:
        ...


class DeliveryPort(Protocol):
    """
    Sends one rendered message.

    Raises EmailSendError when the message was not accepted.
    """

    def deliver(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
    ) -> EmailResult:
        ...
