"""
Email transport interface.

Protocol-based interface for sending newsletter and transactional emails.
Used by the mail dispatcher; transports live in src/adapters.

Implementations:
1. DevEmailAdapter: logs emails and keeps them in memory (dev/test)
2. SMTPEmailAdapter: sends via SMTP (configured server or Ethereal fallback)

Transports never raise for delivery problems; they return a FAILED
EmailResult and say whether a retry may succeed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol


class EmailStatus(Enum):
    """Email send result status."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"  # Dev adapter or dry-run


@dataclass(frozen=True)
class EmailAddress:
    """
    Email address with optional display name.

    Examples:
        EmailAddress("user@example.com")
        EmailAddress("user@example.com", "Jane Doe")
    """

    email: str
    name: str | None = None

    def __str__(self) -> str:
        """Format as RFC 5322 address."""
        if self.name:
            safe_name = self.name.replace('"', '\\"')
            return f'"{safe_name}" <{self.email}>'
        return self.email

    @classmethod
    def parse(cls, value: str) -> EmailAddress:
        """Parse 'Name <addr>' or a bare address."""
        value = value.strip()
        if value.endswith(">") and "<" in value:
            name, _, rest = value.rpartition("<")
            name = name.strip().strip('"') or None
            return cls(email=rest[:-1].strip(), name=name)
        return cls(email=value)


@dataclass(frozen=True)
class EmailMessage:
    """
    Email message to be sent.

    Carries both HTML and plain text bodies.
    """

    recipient: EmailAddress
    subject: str
    body_html: str
    body_text: str
    sender: EmailAddress | None = None  # None = transport default
    reply_to: EmailAddress | None = None
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.recipient.email:
            raise ValueError("Recipient email is required")
        if not self.subject:
            raise ValueError("Subject is required")
        if not self.body_html and not self.body_text:
            raise ValueError("At least one of body_html or body_text is required")


@dataclass
class EmailResult:
    """Result of an email send attempt."""

    status: EmailStatus
    message_id: str | None = None  # Provider's message ID
    error: str | None = None
    retriable: bool = False
    sent_at: datetime | None = None
    recipient: str = ""

    @property
    def ok(self) -> bool:
        return self.status != EmailStatus.FAILED

    @classmethod
    def success(cls, recipient: str, message_id: str | None = None) -> EmailResult:
        return cls(
            status=EmailStatus.SENT,
            message_id=message_id,
            recipient=recipient,
            sent_at=datetime.now(UTC),
        )

    @classmethod
    def skipped(
        cls, recipient: str, message_id: str | None = None, reason: str = "Dev mode"
    ) -> EmailResult:
        return cls(
            status=EmailStatus.SKIPPED,
            message_id=message_id,
            recipient=recipient,
            error=reason,
            sent_at=datetime.now(UTC),
        )

    @classmethod
    def failed(cls, recipient: str, error: str, retriable: bool = False) -> EmailResult:
        return cls(
            status=EmailStatus.FAILED,
            recipient=recipient,
            error=error,
            retriable=retriable,
        )


class EmailPort(Protocol):
    """Email transport interface."""

    def send(self, message: EmailMessage) -> EmailResult:
        """
        Send an email message.

        Returns:
            EmailResult with send outcome. Must not raise for delivery
            failures; return a failed result instead.
        """
        ...


# --- Error Types ---


class EmailError(Exception):
    """Base exception for email-related errors."""

    pass


class EmailConfigError(EmailError):
    """Mail transport configuration is unusable."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class EmailSendError(EmailError):
    """Failed to send email."""

    def __init__(self, recipient: str, error: str, retriable: bool = True) -> None:
        self.recipient = recipient
        self.error = error
        self.retriable = retriable
        super().__init__(f"Failed to send email to {recipient}: {error}")
