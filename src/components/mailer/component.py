"""
Mailer component.

Selects a mail transport from settings and environment, and sends
individual messages through it.

Transport resolution order:
1. email_settings row with server, port, user and password
2. EMAIL_SERVER / EMAIL_PORT / EMAIL_USER / EMAIL_PASSWORD environment
3. Ethereal test SMTP (development fallback)

MAIL_TRANSPORT=console short-circuits to the logging transport.
"""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Mapping
from typing import Any

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.smtp_email import SMTPEmailAdapter
from src.components.mailer import templates
from src.components.mailer.models import (
    ConfigSource,
    EmailSettings,
    MailConfig,
    TransportKind,
)
from src.core.ports.email import (
    EmailAddress,
    EmailConfigError,
    EmailMessage,
    EmailPort,
    EmailResult,
    EmailSendError,
)
from src.rules.models import EmailRules

logger = logging.getLogger(__name__)

ETHEREAL_DEFAULT_USER = "ethereal.user@ethereal.email"
ETHEREAL_DEFAULT_PASSWORD = "ethereal_password"

_TAG_RE = re.compile(r"<[^>]+>")
_BLOCK_END_RE = re.compile(r"</(p|div|h[1-6]|li|ul|ol|tr)>|<br\s*/?>", re.IGNORECASE)
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")


# --- Pure Functions ---


def html_to_text(body: str) -> str:
    """Plain-text rendition of an HTML body: tags stripped, entities decoded."""
    text = _BLOCK_END_RE.sub("\n", body)
    text = _TAG_RE.sub("", text)
    text = html.unescape(text)
    lines = [line.strip() for line in text.splitlines()]
    return _BLANK_LINES_RE.sub("\n\n", "\n".join(lines)).strip()


def _parse_port(value: Any, field: str) -> int:
    try:
        port = int(str(value).strip())
    except (TypeError, ValueError):
        raise EmailConfigError(f"SMTP port must be a number, got {value!r}", field) from None
    if not 0 < port < 65536:
        raise EmailConfigError(f"SMTP port out of range: {port}", field)
    return port


def resolve_mail_config(
    settings: EmailSettings | None,
    env: Mapping[str, str],
    rules: EmailRules | None = None,
) -> MailConfig:
    """
    Decide which transport to use.

    Args:
        settings: The persisted email settings row, if any
        env: Environment mapping (usually os.environ)
        rules: Email rules for defaults

    Raises:
        EmailConfigError: MAIL_TRANSPORT=smtp without credentials, an
            unknown MAIL_TRANSPORT, or a non-numeric port
    """
    rules = rules or EmailRules()
    sender = (settings and settings.email_from) or env.get("EMAIL_FROM") or rules.default_from
    admin_email = (
        (settings and settings.admin_email) or env.get("ADMIN_EMAIL") or rules.default_admin_email
    )
    common: dict[str, Any] = {
        "sender": sender,
        "admin_email": admin_email,
        "timeout": rules.timeout_seconds,
    }

    mode = env.get("MAIL_TRANSPORT", "auto").strip().lower() or "auto"
    if mode not in ("auto", "smtp", "console"):
        raise EmailConfigError(f"Unknown MAIL_TRANSPORT: {mode}", "MAIL_TRANSPORT")

    if mode == "console":
        return MailConfig(transport=TransportKind.CONSOLE, source=ConfigSource.CONSOLE, **common)

    if settings is not None and settings.has_smtp:
        return MailConfig(
            transport=TransportKind.SMTP,
            source=ConfigSource.SETTINGS,
            host=settings.smtp_server,
            port=_parse_port(settings.smtp_port, "smtp_port"),
            username=settings.smtp_user,
            password=settings.smtp_password,
            **common,
        )

    env_keys = ("EMAIL_SERVER", "EMAIL_PORT", "EMAIL_USER", "EMAIL_PASSWORD")
    if all(env.get(k) for k in env_keys):
        return MailConfig(
            transport=TransportKind.SMTP,
            source=ConfigSource.ENVIRONMENT,
            host=env["EMAIL_SERVER"],
            port=_parse_port(env["EMAIL_PORT"], "EMAIL_PORT"),
            username=env["EMAIL_USER"],
            password=env["EMAIL_PASSWORD"],
            **common,
        )

    if mode == "smtp":
        raise EmailConfigError("MAIL_TRANSPORT=smtp but no SMTP credentials are configured")

    return MailConfig(
        transport=TransportKind.SMTP,
        source=ConfigSource.ETHEREAL,
        host=rules.ethereal_host,
        port=rules.ethereal_port,
        username=env.get("ETHEREAL_EMAIL") or ETHEREAL_DEFAULT_USER,
        password=env.get("ETHEREAL_PASSWORD") or ETHEREAL_DEFAULT_PASSWORD,
        **common,
    )


def settings_from_env(env: Mapping[str, str]) -> EmailSettings:
    """Initial settings row seeded from EMAIL_* environment variables."""
    return EmailSettings(
        smtp_server=env.get("EMAIL_SERVER") or None,
        smtp_port=env.get("EMAIL_PORT") or None,
        smtp_user=env.get("EMAIL_USER") or None,
        smtp_password=env.get("EMAIL_PASSWORD") or None,
        email_from=env.get("EMAIL_FROM") or None,
        admin_email=env.get("ADMIN_EMAIL") or None,
    )


def build_transport(config: MailConfig, **smtp_kwargs: Any) -> EmailPort:
    """Instantiate the transport a MailConfig selects."""
    if config.transport == TransportKind.CONSOLE:
        return DevEmailAdapter()
    assert config.host is not None and config.port is not None
    return SMTPEmailAdapter(
        config.host,
        config.port,
        config.username,
        config.password,
        default_sender=EmailAddress.parse(config.sender),
        timeout=config.timeout,
        **smtp_kwargs,
    )


# --- Dispatcher ---


class MailDispatcher:
    """
    Sends one message through the configured transport.

    deliver() returns the transport result on success and raises
    EmailSendError otherwise, carrying whether a retry may help.
    """

    def __init__(
        self,
        transport: EmailPort,
        config: MailConfig,
        environment: str = "development",
    ) -> None:
        self.transport = transport
        self.config = config
        self.environment = environment
        self._sender = EmailAddress.parse(config.sender)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def deliver(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
    ) -> EmailResult:
        try:
            message = EmailMessage(
                recipient=EmailAddress.parse(to),
                subject=subject,
                body_html=html_body,
                body_text=text_body if text_body is not None else html_to_text(html_body),
                sender=self._sender,
            )
        except ValueError as e:
            raise EmailSendError(to, str(e), retriable=False) from e

        result = self.transport.send(message)
        if not result.ok:
            raise EmailSendError(to, result.error or "Unknown error", retriable=result.retriable)

        if self.config.is_test_transport and not self.is_production:
            logger.info(
                "Test transport message %s accepted; preview it at https://ethereal.email/messages",
                result.message_id,
            )
        return result


class NewsletterEmailSender:
    """
    Transactional emails around the subscription lifecycle.

    Failures are logged and reported as False; they never propagate.
    """

    def __init__(self, dispatcher: MailDispatcher, site_name: str = "Portfolio") -> None:
        self.dispatcher = dispatcher
        self.site_name = site_name

    def _send(self, kind: str, to: str, rendered: templates.RenderedEmail) -> bool:
        subject, html_body, text_body = rendered
        try:
            self.dispatcher.deliver(to, subject, html_body, text_body)
        except EmailSendError as e:
            logger.warning("Could not send %s email: %s", kind, e.error)
            return False
        return True

    def send_confirmation_email(
        self, recipient_email: str, name: str | None, confirmation_url: str
    ) -> bool:
        return self._send(
            "confirmation",
            recipient_email,
            templates.confirmation_email(name, confirmation_url, self.site_name),
        )

    def send_welcome_email(self, recipient_email: str, name: str | None, manage_url: str) -> bool:
        return self._send(
            "welcome",
            recipient_email,
            templates.welcome_email(name, manage_url, self.site_name),
        )

    def send_manage_link_email(
        self, recipient_email: str, name: str | None, manage_url: str
    ) -> bool:
        return self._send(
            "manage-link",
            recipient_email,
            templates.manage_link_email(name, manage_url, self.site_name),
        )

    def send_unsubscribe_confirmation(self, recipient_email: str, name: str | None) -> bool:
        return self._send(
            "unsubscribe",
            recipient_email,
            templates.unsubscribe_email(name, self.site_name),
        )

    def send_test_email(self, recipient_email: str) -> EmailResult:
        """Send the settings check email. Raises EmailSendError on failure."""
        subject, html_body, text_body = templates.smtp_check_email(self.site_name)
        return self.dispatcher.deliver(recipient_email, subject, html_body, text_body)
