"""
Newsletter component ports.

Protocol interfaces for newsletter lifecycle dependencies.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from src.components.newsletter.models import Subscriber


class SubscriberRepoPort(Protocol):
    """
    Subscriber repository interface.

    Preferences are loaded and saved together with the subscriber.
    """

    def get_by_id(self, subscriber_id: UUID) -> Subscriber | None:
        ...

    def get_by_email(self, email: str) -> Subscriber | None:
        ...

    def get_by_token(self, token: str) -> Subscriber | None:
        ...

    def save(self, subscriber: Subscriber) -> Subscriber:
        """Insert or update subscriber and its preferences row."""
        ...

    def delete(self, subscriber_id: UUID) -> bool:
        """Hard-delete a subscriber. Returns False if it did not exist."""
        ...

    def list_confirmed(self) -> list[Subscriber]:
        """All confirmed subscribers, preferences included."""
        ...


class RateLimiterPort(Protocol):
    """Tracks and limits subscription attempts per key (client IP)."""

    def check_rate_limit(
        self,
        key: str,
        limit: int,
        window_seconds: int,
    ) -> tuple[bool, int]:
        """
        Returns:
            Tuple of (is_allowed, remaining_attempts)
        """
        ...

    def record_attempt(self, key: str) -> None:
        ...


class NewsletterEmailSenderPort(Protocol):
    """
    Transactional emails around the subscription lifecycle.

    Each method returns True if the email was handed to the transport.
    """

    def send_confirmation_email(
        self,
        recipient_email: str,
        name: str | None,
        confirmation_url: str,
    ) -> bool:
        ...

    def send_welcome_email(
        self,
        recipient_email: str,
        name: str | None,
        manage_url: str,
    ) -> bool:
        ...

    def send_manage_link_email(
        self,
        recipient_email: str,
        name: str | None,
        manage_url: str,
    ) -> bool:
        """Fresh management link for a confirmed subscriber whose old one expired."""
        ...

    def send_unsubscribe_confirmation(
        self,
        recipient_email: str,
        name: str | None,
    ) -> bool:
        ...
