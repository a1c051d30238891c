"""
Dev Email Adapter.

Logs emails instead of sending them. Used when MAIL_TRANSPORT=console and in
tests. Messages are kept in memory so tests can assert on what would have
been delivered.

Key behaviors:
- Logs recipient, subject and a body preview
- Returns SKIPPED status (not SENT) with a dev message id
- Safe to call from several dispatch worker threads
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from src.core.ports.email import EmailMessage, EmailResult

logger = logging.getLogger(__name__)


@dataclass
class SentEmail:
    """Record of a logged email for test assertions."""

    id: str
    recipient: str
    subject: str
    body_html: str
    body_text: str
    sender: str | None
    logged_at: datetime


@dataclass
class DevEmailAdapter:
    """Email transport that logs instead of sending."""

    sent_emails: list[SentEmail] = field(default_factory=list)

    log_level: int = logging.INFO
    log_body: bool = True
    body_preview_length: int = 100

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def send(self, message: EmailMessage) -> EmailResult:
        message_id = f"dev-{uuid4().hex[:12]}"
        sender_str = str(message.sender) if message.sender else None

        record = SentEmail(
            id=message_id,
            recipient=message.recipient.email,
            subject=message.subject,
            body_html=message.body_html,
            body_text=message.body_text,
            sender=sender_str,
            logged_at=datetime.now(UTC),
        )
        with self._lock:
            self.sent_emails.append(record)

        self._log_email(record)

        return EmailResult.skipped(
            recipient=message.recipient.email,
            message_id=message_id,
            reason="Dev mode - email logged, not sent",
        )

    def _log_email(self, email: SentEmail) -> None:
        parts = [
            f"EMAIL (dev): To={email.recipient}",
            f"Subject={email.subject}",
        ]

        if email.sender:
            parts.append(f"From={email.sender}")

        if self.log_body and email.body_html:
            preview = email.body_html[: self.body_preview_length]
            if len(email.body_html) > self.body_preview_length:
                preview += "..."
            parts.append(f"Body={preview}")

        parts.append(f"MessageID={email.id}")
        logger.log(self.log_level, ", ".join(parts))

    # --- Test Helper Methods ---

    def get_last_email(self) -> SentEmail | None:
        return self.sent_emails[-1] if self.sent_emails else None

    def get_emails_to(self, recipient: str) -> list[SentEmail]:
        return [e for e in self.sent_emails if e.recipient == recipient]

    def get_emails_with_subject(self, subject_contains: str) -> list[SentEmail]:
        return [e for e in self.sent_emails if subject_contains in e.subject]

    def clear(self) -> None:
        with self._lock:
            self.sent_emails.clear()

    @property
    def email_count(self) -> int:
        return len(self.sent_emails)
