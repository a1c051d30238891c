"""
SMTP Email Adapter.

Sends email through an SMTP server with smtplib. Used both for the
configured production server and for the Ethereal development fallback.

Port 465 uses implicit TLS; other ports upgrade with STARTTLS when the
server offers it.

Failure classification (EmailResult.retriable):
- connection errors, timeouts, disconnects, 4xx replies -> retriable
- authentication failures, refused recipients, 5xx replies -> permanent
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from collections.abc import Callable
from email.message import EmailMessage as MIMEMessage
from email.utils import formatdate, make_msgid
from typing import Any

from src.core.ports.email import EmailAddress, EmailMessage, EmailResult

logger = logging.getLogger(__name__)

SMTPFactory = Callable[..., Any]


class SMTPEmailAdapter:
    """Email transport backed by smtplib."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str | None = None,
        password: str | None = None,
        *,
        default_sender: EmailAddress,
        timeout: float = 30,
        use_ssl: bool | None = None,
        smtp_factory: SMTPFactory | None = None,
        ssl_factory: SMTPFactory | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self._password = password
        self.default_sender = default_sender
        self.timeout = timeout
        self.use_ssl = port == 465 if use_ssl is None else use_ssl
        self._smtp_factory = smtp_factory or smtplib.SMTP
        self._ssl_factory = ssl_factory or smtplib.SMTP_SSL

    def __repr__(self) -> str:
        return f"SMTPEmailAdapter(host={self.host!r}, port={self.port}, user={self.username!r})"

    def build_mime(self, message: EmailMessage) -> MIMEMessage:
        sender = message.sender or self.default_sender
        domain = sender.email.rpartition("@")[2] or None

        mime = MIMEMessage()
        mime["From"] = str(sender)
        mime["To"] = str(message.recipient)
        mime["Subject"] = message.subject
        mime["Date"] = formatdate(localtime=False)
        mime["Message-ID"] = make_msgid(domain=domain)
        if message.reply_to:
            mime["Reply-To"] = str(message.reply_to)
        for name, value in message.headers.items():
            mime[name] = value

        if message.body_text:
            mime.set_content(message.body_text)
            if message.body_html:
                mime.add_alternative(message.body_html, subtype="html")
        else:
            mime.set_content(message.body_html, subtype="html")
        return mime

    def _connect(self) -> Any:
        if self.use_ssl:
            return self._ssl_factory(
                self.host,
                self.port,
                timeout=self.timeout,
                context=ssl.create_default_context(),
            )
        return self._smtp_factory(self.host, self.port, timeout=self.timeout)

    def send(self, message: EmailMessage) -> EmailResult:
        recipient = message.recipient.email
        mime = self.build_mime(message)
        message_id = mime["Message-ID"]

        try:
            with self._connect() as smtp:
                if not self.use_ssl:
                    smtp.ehlo()
                    if smtp.has_extn("starttls"):
                        smtp.starttls(context=ssl.create_default_context())
                        smtp.ehlo()
                if self.username:
                    smtp.login(self.username, self._password or "")
                smtp.send_message(mime)
        except smtplib.SMTPAuthenticationError as e:
            logger.error("SMTP authentication failed for %s@%s", self.username, self.host)
            return EmailResult.failed(recipient, f"Authentication failed ({e.smtp_code})")
        except smtplib.SMTPRecipientsRefused:
            logger.warning("SMTP server refused recipient %s", recipient)
            return EmailResult.failed(recipient, "Recipient refused")
        except smtplib.SMTPResponseException as e:
            retriable = 400 <= e.smtp_code < 500
            logger.warning("SMTP error %s sending to %s", e.smtp_code, recipient)
            return EmailResult.failed(
                recipient, f"SMTP error {e.smtp_code}: {_decode(e.smtp_error)}", retriable
            )
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("SMTP transport error sending to %s: %s", recipient, e)
            return EmailResult.failed(recipient, f"Transport error: {e}", retriable=True)

        logger.info("EMAIL (smtp): To=%s, Subject=%s, MessageID=%s", recipient,
                    message.subject, message_id)
        return EmailResult.success(recipient, message_id=message_id)


def _decode(value: bytes | str) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
