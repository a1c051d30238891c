"""
Mailer component models.

Resolved mail configuration and the persisted email settings row.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class TransportKind(Enum):
    """Which transport a MailConfig selects."""

    SMTP = "smtp"
    CONSOLE = "console"


class ConfigSource(Enum):
    """Where the SMTP credentials came from."""

    SETTINGS = "settings"  # email_settings row
    ENVIRONMENT = "environment"  # EMAIL_SERVER / EMAIL_PORT / ...
    ETHEREAL = "ethereal"  # development fallback
    CONSOLE = "console"  # MAIL_TRANSPORT=console


@dataclass
class EmailSettings:
    """
    Persisted email settings (singleton row).

    Values are kept as entered; the port is validated when resolved.
    """

    id: int | None = None
    smtp_server: str | None = None
    smtp_port: str | None = None
    smtp_user: str | None = None
    smtp_password: str | None = None
    email_from: str | None = None
    admin_email: str | None = None
    send_auto_reply: bool = True
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def has_smtp(self) -> bool:
        return bool(self.smtp_server and self.smtp_port and self.smtp_user and self.smtp_password)


@dataclass(frozen=True)
class MailConfig:
    """Resolved transport configuration."""

    transport: TransportKind
    source: ConfigSource
    sender: str
    admin_email: str
    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    timeout: float = 30

    @property
    def use_ssl(self) -> bool:
        return self.port == 465

    @property
    def is_test_transport(self) -> bool:
        return self.source == ConfigSource.ETHEREAL
