"""Unit tests for SMTPEmailAdapter with a fake smtplib connection."""

import smtplib
from typing import Any

import pytest

from src.adapters.smtp_email import SMTPEmailAdapter
from src.core.ports.email import EmailAddress, EmailMessage, EmailStatus


class FakeSMTP:
    """Stands in for smtplib.SMTP; records calls. Set the class-level errors to fail."""

    instances: list["FakeSMTP"] = []
    connect_error: Exception | None = None
    login_error: Exception | None = None
    send_error: Exception | None = None

    def __init__(self, host: str, port: int, timeout: float = 30, **kwargs: Any) -> None:
        self.host = host
        self.port = port
        self.kwargs = kwargs
        self.calls: list[str] = []
        self.sent: list[Any] = []
        FakeSMTP.instances.append(self)

    def __enter__(self) -> "FakeSMTP":
        if FakeSMTP.connect_error is not None:
            raise FakeSMTP.connect_error
        return self

    def __exit__(self, *exc: Any) -> None:
        self.calls.append("quit")

    def ehlo(self) -> None:
        self.calls.append("ehlo")

    def has_extn(self, name: str) -> bool:
        return name == "starttls"

    def starttls(self, context: Any = None) -> None:
        self.calls.append("starttls")

    def login(self, user: str, password: str) -> None:
        self.calls.append(f"login:{user}")
        if FakeSMTP.login_error is not None:
            raise FakeSMTP.login_error

    def send_message(self, mime: Any) -> None:
        if FakeSMTP.send_error is not None:
            raise FakeSMTP.send_error
        self.sent.append(mime)


@pytest.fixture(autouse=True)
def reset_fake() -> None:
    FakeSMTP.instances = []
    FakeSMTP.connect_error = None
    FakeSMTP.login_error = None
    FakeSMTP.send_error = None


def make_adapter(port: int = 587) -> SMTPEmailAdapter:
    return SMTPEmailAdapter(
        "smtp.example.com",
        port,
        "mailer",
        "secret",
        default_sender=EmailAddress("noreply@example.com", "Portfolio"),
        smtp_factory=FakeSMTP,
        ssl_factory=FakeSMTP,
    )


def make_message() -> EmailMessage:
    return EmailMessage(
        recipient=EmailAddress("reader@example.com"),
        subject="New Project: Site",
        body_html="<p>Hello</p>",
        body_text="Hello",
    )


class TestSend:
    def test_starttls_login_and_send(self) -> None:
        result = make_adapter().send(make_message())

        assert result.status == EmailStatus.SENT
        assert result.message_id is not None
        smtp = FakeSMTP.instances[0]
        assert smtp.calls[:4] == ["ehlo", "starttls", "ehlo", "login:mailer"]
        mime = smtp.sent[0]
        assert mime["To"] == "reader@example.com"
        assert mime["From"] == '"Portfolio" <noreply@example.com>'
        assert mime["Subject"] == "New Project: Site"
        assert mime["Message-ID"] == result.message_id

    def test_port_465_uses_implicit_tls(self) -> None:
        adapter = make_adapter(port=465)

        adapter.send(make_message())

        assert adapter.use_ssl
        assert "context" in FakeSMTP.instances[0].kwargs
        assert "starttls" not in FakeSMTP.instances[0].calls

    def test_multipart_body(self) -> None:
        mime = make_adapter().build_mime(make_message())

        assert mime.is_multipart()
        types = [part.get_content_type() for part in mime.iter_parts()]
        assert types == ["text/plain", "text/html"]

    def test_repr_hides_password(self) -> None:
        assert "secret" not in repr(make_adapter())


class TestFailureClassification:
    def test_connection_error_is_retriable(self) -> None:
        FakeSMTP.connect_error = ConnectionRefusedError("refused")

        result = make_adapter().send(make_message())

        assert result.status == EmailStatus.FAILED
        assert result.retriable

    def test_temporary_reply_is_retriable(self) -> None:
        FakeSMTP.send_error = smtplib.SMTPDataError(451, b"Try again later")

        result = make_adapter().send(make_message())

        assert result.retriable
        assert result.error == "SMTP error 451: Try again later"

    def test_permanent_reply_is_not_retriable(self) -> None:
        FakeSMTP.send_error = smtplib.SMTPDataError(554, b"Rejected")

        result = make_adapter().send(make_message())

        assert not result.retriable

    def test_auth_failure_is_not_retriable(self) -> None:
        FakeSMTP.login_error = smtplib.SMTPAuthenticationError(535, b"Bad credentials")

        result = make_adapter().send(make_message())

        assert not result.retriable
        assert "Authentication failed" in (result.error or "")

    def test_refused_recipient_is_not_retriable(self) -> None:
        FakeSMTP.send_error = smtplib.SMTPRecipientsRefused(
            {"reader@example.com": (550, b"No such user")}
        )

        result = make_adapter().send(make_message())

        assert not result.retriable
        assert result.error == "Recipient refused"
