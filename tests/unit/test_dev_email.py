"""
Unit tests for DevEmailAdapter.

The console transport logs instead of sending and keeps every message
in memory for assertions.
"""

import logging
import threading

import pytest

from src.adapters.dev_email import DevEmailAdapter
from src.core.ports.email import EmailAddress, EmailMessage, EmailStatus


def make_message(to: str = "user@example.com", subject: str = "Hello") -> EmailMessage:
    return EmailMessage(
        recipient=EmailAddress(to),
        subject=subject,
        body_html="<p>Body</p>",
        body_text="Body",
        sender=EmailAddress("noreply@example.com", "Portfolio"),
    )


class TestSend:
    def test_returns_skipped_with_dev_id(self) -> None:
        """Dev adapter returns SKIPPED, not SENT."""
        adapter = DevEmailAdapter()

        result = adapter.send(make_message())

        assert result.status == EmailStatus.SKIPPED
        assert result.ok
        assert result.message_id is not None
        assert result.message_id.startswith("dev-")
        assert result.recipient == "user@example.com"

    def test_result_statuses(self) -> None:
        assert {s.value for s in EmailStatus} == {"sent", "failed", "skipped"}

    def test_records_message(self) -> None:
        adapter = DevEmailAdapter()

        adapter.send(make_message())

        sent = adapter.get_last_email()
        assert sent is not None
        assert sent.recipient == "user@example.com"
        assert sent.body_text == "Body"
        assert sent.sender == '"Portfolio" <noreply@example.com>'

    def test_logs_subject(self, caplog: pytest.LogCaptureFixture) -> None:
        adapter = DevEmailAdapter()

        with caplog.at_level(logging.INFO, logger="src.adapters.dev_email"):
            adapter.send(make_message(subject="Logged subject"))

        assert "Subject=Logged subject" in caplog.text

    def test_concurrent_sends_all_recorded(self) -> None:
        adapter = DevEmailAdapter(log_body=False)

        threads = [
            threading.Thread(target=adapter.send, args=(make_message(f"u{i}@example.com"),))
            for i in range(20)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert adapter.email_count == 20


class TestHelpers:
    def test_filters_and_clear(self) -> None:
        adapter = DevEmailAdapter()
        adapter.send(make_message("a@example.com", "Welcome"))
        adapter.send(make_message("b@example.com", "Newsletter"))
        adapter.send(make_message("a@example.com", "Newsletter"))

        assert len(adapter.get_emails_to("a@example.com")) == 2
        assert len(adapter.get_emails_with_subject("News")) == 2

        adapter.clear()
        assert adapter.email_count == 0
        assert adapter.get_last_email() is None
