"""
End-to-end newsletter journeys through the HTTP API.

Subscribers go through double opt-in on the public endpoints; the admin
announces content and the mail captured by the console transport is
inspected.
"""

import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from fastapi.testclient import TestClient

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.sqlite_db import SQLiteNewsletterRepo, SQLiteSubscriberRepo
from src.api.deps import get_mail_dispatcher
from src.api.main import app
from src.components.content import ContentRepos
from src.components.mailer import MailDispatcher
from src.components.newsletter import Subscriber, create_subscriber
from src.core.ports.email import EmailMessage, EmailResult
from src.domain.entities import Career, Project, Skill

TOKEN_RE = re.compile(r"token=([A-Za-z0-9_-]+)")


def opt_in(client: TestClient, mailbox: DevEmailAdapter, email: str) -> str:
    """Subscribe and follow the confirmation link. Returns the token."""
    assert client.post("/api/newsletter/subscribe", json={"email": email}).status_code == 200
    confirmation = mailbox.get_emails_to(email)[-1]
    match = TOKEN_RE.search(confirmation.body_text)
    assert match is not None
    token = match.group(1)
    assert client.get("/api/newsletter/confirm", params={"token": token}).status_code == 200
    return token


def announce(client: TestClient, kind: str, content_id) -> dict:
    response = client.post(
        "/api/admin/newsletter/announce", json={"type": kind, "content_id": str(content_id)}
    )
    assert response.status_code == 200, response.text
    return response.json()


@dataclass
class FlakyTransport:
    """Fails each recipient's first attempt with a temporary error."""

    seen: Counter = field(default_factory=Counter)

    def send(self, message: EmailMessage) -> EmailResult:
        to = message.recipient.email
        self.seen[to] += 1
        if self.seen[to] == 1:
            return EmailResult.failed(to, "421 Service not available", retriable=True)
        return EmailResult.success(to, message_id=f"<{to}>")


def test_confirmed_subscriber_receives_skill_announcement(
    admin_client: TestClient,
    mailbox: DevEmailAdapter,
    content_repos: ContentRepos,
    newsletter_repo: SQLiteNewsletterRepo,
):
    token = opt_in(admin_client, mailbox, "a@example.com")
    skill = content_repos.skills.save(
        Skill(name="Kubernetes", category="Infrastructure", level="Advanced", years=3)
    )
    mailbox.clear()

    result = announce(admin_client, "skill", skill.id)

    assert result["sent_count"] == 1
    assert result["status"] == "completed"
    [email] = mailbox.get_emails_to("a@example.com")
    assert email.subject == "New Skill Added: Kubernetes"
    assert f"https://portfolio.test/unsubscribe?token={token}" in email.body_text
    assert f"https://portfolio.test/unsubscribe?token={token}" in email.body_html

    newsletter = newsletter_repo.list_recent()[0]
    assert newsletter.type == "skill"
    assert newsletter.sent_count == 1


def test_career_preference_excludes_subscriber(
    admin_client: TestClient,
    mailbox: DevEmailAdapter,
    content_repos: ContentRepos,
):
    opt_in(admin_client, mailbox, "a@example.com")
    token_b = opt_in(admin_client, mailbox, "b@example.com")
    admin_client.post(
        "/api/newsletter/preferences",
        json={"token": token_b, "preferences": {"careers": False}},
    )
    career = content_repos.careers.save(
        Career(position="CTO", company="Startup", start_date=datetime(2025, 5, 1, tzinfo=UTC))
    )
    mailbox.clear()

    result = announce(admin_client, "career", career.id)

    assert result["sent_count"] == 1
    assert [e.recipient for e in mailbox.sent_emails] == ["a@example.com"]


def test_project_preference_excludes_subscriber(
    admin_client: TestClient,
    mailbox: DevEmailAdapter,
    content_repos: ContentRepos,
):
    token = opt_in(admin_client, mailbox, "a@example.com")
    admin_client.post(
        "/api/newsletter/preferences",
        json={"token": token, "preferences": {"projects": False}},
    )
    project = content_repos.projects.save(Project(title="Compiler"))
    mailbox.clear()

    result = announce(admin_client, "project", project.id)

    assert result["recipient_count"] == 0
    assert result["status"] == "completed"
    assert mailbox.email_count == 0


def test_unconfirmed_subscriber_never_receives(
    admin_client: TestClient,
    mailbox: DevEmailAdapter,
    content_repos: ContentRepos,
):
    admin_client.post("/api/newsletter/subscribe", json={"email": "pending@example.com"})
    skill = content_repos.skills.save(Skill(name="SQL", category="Data", level="Expert"))
    mailbox.clear()

    result = announce(admin_client, "skill", skill.id)

    assert result["sent_count"] == 0
    assert mailbox.get_emails_to("pending@example.com") == []


def test_unsubscribed_subscriber_is_gone(
    admin_client: TestClient,
    mailbox: DevEmailAdapter,
    content_repos: ContentRepos,
    subscriber_repo: SQLiteSubscriberRepo,
):
    token = opt_in(admin_client, mailbox, "a@example.com")

    admin_client.post("/api/newsletter/unsubscribe", json={"token": token})

    assert admin_client.get("/api/newsletter/verify", params={"token": token}).status_code == 404
    assert subscriber_repo.count() == 0

    skill = content_repos.skills.save(Skill(name="SQL", category="Data", level="Expert"))
    mailbox.clear()
    assert announce(admin_client, "skill", skill.id)["recipient_count"] == 0
    assert mailbox.email_count == 0


def test_transient_failures_are_retried(
    admin_client: TestClient,
    mailbox: DevEmailAdapter,
    content_repos: ContentRepos,
    dispatcher: MailDispatcher,
    newsletter_repo: SQLiteNewsletterRepo,
):
    opt_in(admin_client, mailbox, "a@example.com")
    opt_in(admin_client, mailbox, "b@example.com")
    transport = FlakyTransport()
    app.dependency_overrides[get_mail_dispatcher] = lambda: MailDispatcher(
        transport, dispatcher.config, environment="test"
    )
    skill = content_repos.skills.save(Skill(name="Rust", category="Languages", level="Novice"))

    result = announce(admin_client, "skill", skill.id)

    assert result["status"] == "completed"
    assert result["sent_count"] == 2
    assert {d["attempts"] for d in result["deliveries"]} == {2}
    deliveries = newsletter_repo.list_deliveries(newsletter_repo.list_recent()[0].id)
    assert [d.message_id for d in deliveries] == ["<a@example.com>", "<b@example.com>"]


def test_announce_missing_content(admin_client: TestClient):
    response = admin_client.post(
        "/api/admin/newsletter/announce",
        json={"type": "project", "content_id": "00000000-0000-0000-0000-000000000000"},
    )

    assert response.status_code == 404


def lapsed_subscriber(repo: SQLiteSubscriberRepo, email: str) -> Subscriber:
    """Confirmed subscriber whose 365-day token ran out a month ago."""
    issued = datetime.now(UTC) - timedelta(days=400)
    subscriber = create_subscriber(email, now=issued, token_ttl_days=365)
    subscriber.is_confirmed = True
    subscriber.confirmed_at = issued
    return repo.save(subscriber)


def test_newsletter_link_works_for_lapsed_token(
    admin_client: TestClient,
    mailbox: DevEmailAdapter,
    subscriber_repo: SQLiteSubscriberRepo,
):
    old_token = lapsed_subscriber(subscriber_repo, "old@example.com").token

    response = admin_client.post(
        "/api/admin/newsletter/send",
        json={"subject": "June", "content": "<p>News</p>", "type": "project"},
    )

    assert response.status_code == 200, response.text
    assert response.json()["sent_count"] == 1
    [email] = mailbox.get_emails_to("old@example.com")
    token = TOKEN_RE.search(email.body_text).group(1)
    assert token != old_token
    assert admin_client.get("/api/newsletter/verify", params={"token": old_token}).status_code == 404

    response = admin_client.post("/api/newsletter/unsubscribe", json={"token": token})

    assert response.status_code == 200
    assert subscriber_repo.get_by_email("old@example.com") is None


def test_resubscribing_with_lapsed_token_mails_new_link(
    client: TestClient,
    mailbox: DevEmailAdapter,
    subscriber_repo: SQLiteSubscriberRepo,
):
    old_token = lapsed_subscriber(subscriber_repo, "old@example.com").token
    assert client.get("/api/newsletter/verify", params={"token": old_token}).status_code == 410

    response = client.post("/api/newsletter/subscribe", json={"email": "old@example.com"})

    assert response.status_code == 200
    [email] = mailbox.get_emails_to("old@example.com")
    assert email.subject == "Your Portfolio Newsletter Subscription"
    token = TOKEN_RE.search(email.body_text).group(1)
    assert token != old_token
    assert client.get("/api/newsletter/verify", params={"token": token}).status_code == 200
