"""
Dispatch component models.

Newsletter send records and per-recipient delivery outcomes.

Send record lifecycle:
    PENDING --fan-out starts--> SENDING --settled--> COMPLETED | PARTIAL | FAILED
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from src.components.newsletter.models import ValidationError
from src.domain.entities import ContentKind


class DispatchStatus(Enum):
    PENDING = "pending"
    SENDING = "sending"
    COMPLETED = "completed"  # every recipient sent (or no recipients)
    PARTIAL = "partial"  # some sent, some failed
    FAILED = "failed"  # recipients existed but none were sent


class DeliveryStatus(Enum):
    SENT = "sent"
    FAILED = "failed"


@dataclass
class Newsletter:
    """A dispatched (or dispatching) newsletter."""

    subject: str
    content: str
    type: ContentKind
    id: UUID = field(default_factory=uuid4)
    project_id: UUID | None = None
    status: DispatchStatus = DispatchStatus.PENDING
    recipient_count: int = 0
    sent_count: int = 0
    failed_count: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    sent_at: datetime | None = None


@dataclass
class NewsletterDelivery:
    """Outcome of sending one newsletter to one subscriber."""

    newsletter_id: UUID
    subscriber_id: UUID | None
    email: str
    status: DeliveryStatus
    attempts: int
    message_id: str | None = None
    error: str | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


# --- Input / Output ---


@dataclass(frozen=True)
class DispatchInput:
    subject: str
    content: str
    type: str
    project_id: UUID | None = None


@dataclass(frozen=True)
class DeliveryOutcome:
    email: str
    status: DeliveryStatus
    attempts: int
    subscriber_id: UUID | None = None
    message_id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class DispatchOutput:
    """
    Result of a dispatch.

    success is False only when the dispatch failed outright: every
    recipient failed, the input was rejected, or a storage error aborted it.
    """

    success: bool
    newsletter_id: UUID | None = None
    status: DispatchStatus | None = None
    recipient_count: int = 0
    sent_count: int = 0
    failed_count: int = 0
    deliveries: list[DeliveryOutcome] = field(default_factory=list)
    errors: list[ValidationError] = field(default_factory=list)


# --- Configuration ---


@dataclass(frozen=True)
class DispatchConfig:
    """Fan-out limits and retry policy."""

    max_concurrency: int = 5
    sends_per_second: float = 10
    max_attempts: int = 3
    backoff_seconds: tuple[float, ...] = (1, 5, 15)
    unsubscribe_path: str = "/unsubscribe"
    token_ttl_days: int | None = 365
    token_refresh_days: int = 30  # reissue tokens this close to expiry before sending
