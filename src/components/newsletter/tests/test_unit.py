"""
Newsletter component unit tests.

Covers email validation, token issue/expiry/revocation, the subscribe,
confirm, verify, preferences and unsubscribe handlers, and the
"no preferences row means receive everything" rule.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import UUID

import pytest

from src.components.newsletter import (
    VALID_TRANSITIONS,
    ConfirmInput,
    ConfirmOutput,
    NewsletterConfig,
    Subscriber,
    SubscribeInput,
    SubscribeOutput,
    SubscriberPreferences,
    SubscriberState,
    SubscriptionError,
    TokenExpiredError,
    TokenNotFoundError,
    UnsubscribeInput,
    UnsubscribeOutput,
    UpdatePreferencesInput,
    UpdatePreferencesOutput,
    VerifyInput,
    VerifyOutput,
    build_confirmation_url,
    build_unsubscribe_url,
    can_transition,
    create_subscriber,
    generate_token,
    is_token_expired,
    issue_token,
    regenerate_token,
    require_subscriber,
    resolve_token,
    run,
    token_needs_refresh,
    validate_email,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)

# --- Mock Repository ---


class MockSubscriberRepo:
    """In-memory subscriber repository for testing."""

    def __init__(self) -> None:
        self._subscribers: dict[UUID, Subscriber] = {}

    def get_by_id(self, subscriber_id: UUID) -> Subscriber | None:
        return self._subscribers.get(subscriber_id)

    def get_by_email(self, email: str) -> Subscriber | None:
        for s in self._subscribers.values():
            if s.email == email.lower():
                return s
        return None

    def get_by_token(self, token: str) -> Subscriber | None:
        for s in self._subscribers.values():
            if s.token == token:
                return s
        return None

    def save(self, subscriber: Subscriber) -> Subscriber:
        self._subscribers[subscriber.id] = subscriber
        return subscriber

    def delete(self, subscriber_id: UUID) -> bool:
        return self._subscribers.pop(subscriber_id, None) is not None

    def list_confirmed(self) -> list[Subscriber]:
        return [s for s in self._subscribers.values() if s.is_confirmed]

    @property
    def count(self) -> int:
        return len(self._subscribers)


class MockEmailSender:
    """Records transactional emails; can be told to fail."""

    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.sent_emails: list[dict[str, str | None]] = []

    def send_confirmation_email(
        self, recipient_email: str, name: str | None, confirmation_url: str
    ) -> bool:
        self.sent_emails.append(
            {"type": "confirmation", "recipient": recipient_email, "url": confirmation_url}
        )
        return self.succeed

    def send_welcome_email(self, recipient_email: str, name: str | None, manage_url: str) -> bool:
        self.sent_emails.append(
            {"type": "welcome", "recipient": recipient_email, "url": manage_url}
        )
        return self.succeed

    def send_manage_link_email(
        self, recipient_email: str, name: str | None, manage_url: str
    ) -> bool:
        self.sent_emails.append(
            {"type": "manage-link", "recipient": recipient_email, "url": manage_url}
        )
        return self.succeed

    def send_unsubscribe_confirmation(self, recipient_email: str, name: str | None) -> bool:
        self.sent_emails.append({"type": "unsubscribe", "recipient": recipient_email, "url": None})
        return self.succeed

    def of_type(self, kind: str) -> list[dict[str, str | None]]:
        return [e for e in self.sent_emails if e["type"] == kind]


class MockRateLimiter:
    """Mock rate limiter for testing."""

    def __init__(self, allow: bool = True) -> None:
        self._allow = allow
        self.attempts: list[str] = []

    def check_rate_limit(self, key: str, limit: int, window_seconds: int) -> tuple[bool, int]:
        return (self._allow, limit - len(self.attempts))

    def record_attempt(self, key: str) -> None:
        self.attempts.append(key)


# --- Fixtures ---


@pytest.fixture
def repo() -> MockSubscriberRepo:
    return MockSubscriberRepo()


@pytest.fixture
def sender() -> MockEmailSender:
    return MockEmailSender()


@pytest.fixture
def config() -> NewsletterConfig:
    return NewsletterConfig(
        token_ttl_days=30,
        site_name="Test Site",
        base_url="https://example.com",
    )


def _subscribe(repo, sender, config, email="a@example.com", now=NOW) -> SubscribeOutput:
    result = run(SubscribeInput(email=email), repo=repo, email_sender=sender, config=config, now=now)
    assert isinstance(result, SubscribeOutput)
    return result


def _token_for(repo: MockSubscriberRepo, email: str) -> str:
    subscriber = repo.get_by_email(email)
    assert subscriber is not None
    return subscriber.token


# --- Email Validation ---


class TestEmailValidation:
    def test_valid_email(self) -> None:
        result = validate_email("user@example.com")
        assert result.is_valid is True
        assert result.normalized_email == "user@example.com"
        assert result.errors == []

    def test_email_normalized(self) -> None:
        result = validate_email("  User@Example.COM ")
        assert result.normalized_email == "user@example.com"

    def test_empty_email_invalid(self) -> None:
        result = validate_email("")
        assert result.is_valid is False
        assert result.errors[0].code == "EMPTY_EMAIL"

    @pytest.mark.parametrize("email", ["userexample.com", "user@", "user@example"])
    def test_invalid_format(self, email: str) -> None:
        result = validate_email(email)
        assert result.is_valid is False

    def test_too_long_email(self) -> None:
        result = validate_email("a" * 245 + "@example.com")
        assert result.errors[0].code == "EMAIL_TOO_LONG"

    def test_disposable_email_rejected(self) -> None:
        result = validate_email("user@mailinator.com")
        assert result.is_valid is False
        assert result.is_disposable is True
        assert result.errors[0].code == "DISPOSABLE_EMAIL"

    def test_disposable_check_disabled(self) -> None:
        result = validate_email("user@mailinator.com", check_disposable=False)
        assert result.is_valid is True

    def test_custom_disposable_domains(self) -> None:
        result = validate_email("user@custom-temp.com", disposable_domains={"custom-temp.com"})
        assert result.is_disposable is True


# --- Tokens ---


class TestTokens:
    def test_generate_token_url_safe_and_unique(self) -> None:
        tokens = [generate_token() for _ in range(100)]
        assert len(set(tokens)) == 100
        for token in tokens:
            assert len(token) >= 40
            assert all(c.isalnum() or c in "-_" for c in token)

    def test_issue_token_with_ttl(self) -> None:
        issued = issue_token(NOW, ttl_days=7)
        assert issued.issued_at == NOW
        assert issued.expires_at == NOW + timedelta(days=7)

    def test_issue_token_without_ttl_never_expires(self) -> None:
        issued = issue_token(NOW, ttl_days=None)
        assert issued.expires_at is None

    def test_expiry_boundary(self) -> None:
        subscriber = create_subscriber("a@example.com", now=NOW, token_ttl_days=1)
        assert is_token_expired(subscriber, NOW + timedelta(hours=23)) is False
        assert is_token_expired(subscriber, NOW + timedelta(days=1)) is True

    def test_no_expiry_set(self) -> None:
        subscriber = create_subscriber("a@example.com", now=NOW, token_ttl_days=None)
        assert is_token_expired(subscriber, NOW + timedelta(days=10_000)) is False

    def test_needs_refresh_window(self) -> None:
        subscriber = create_subscriber("a@example.com", now=NOW, token_ttl_days=365)
        assert token_needs_refresh(subscriber, NOW + timedelta(days=300), within_days=30) is False
        assert token_needs_refresh(subscriber, NOW + timedelta(days=340), within_days=30) is True
        assert token_needs_refresh(subscriber, NOW + timedelta(days=340)) is False
        assert token_needs_refresh(subscriber, NOW + timedelta(days=365)) is True

    def test_require_subscriber_raises(self, repo: MockSubscriberRepo) -> None:
        subscriber = repo.save(create_subscriber("a@example.com", now=NOW, token_ttl_days=1))

        with pytest.raises(TokenNotFoundError):
            require_subscriber(repo, "nope", NOW)
        with pytest.raises(TokenExpiredError):
            require_subscriber(repo, subscriber.token, NOW + timedelta(days=2))
        assert require_subscriber(repo, subscriber.token, NOW) is subscriber

    def test_resolve_token_error_codes(self, repo: MockSubscriberRepo) -> None:
        subscriber = repo.save(create_subscriber("a@example.com", now=NOW, token_ttl_days=1))

        assert resolve_token(repo, "", NOW)[1].code == "MISSING_TOKEN"
        assert resolve_token(repo, "unknown", NOW)[1].code == "INVALID_TOKEN"
        assert resolve_token(repo, subscriber.token, NOW + timedelta(days=5))[1].code == (
            "TOKEN_EXPIRED"
        )
        found, error = resolve_token(repo, subscriber.token, NOW)
        assert found is subscriber
        assert error is None

    def test_regenerate_token_revokes_old(self, repo: MockSubscriberRepo) -> None:
        subscriber = repo.save(create_subscriber("a@example.com", now=NOW))
        old_token = subscriber.token

        repo.save(regenerate_token(subscriber, NOW + timedelta(days=1), ttl_days=10))

        assert subscriber.token != old_token
        assert subscriber.token_issued_at == NOW + timedelta(days=1)
        assert resolve_token(repo, old_token, NOW)[1].code == "INVALID_TOKEN"
        assert resolve_token(repo, subscriber.token, NOW)[0] is subscriber


# --- Lifecycle State ---


class TestStateMachine:
    def test_transitions(self) -> None:
        assert can_transition(SubscriberState.UNCONFIRMED, SubscriberState.CONFIRMED)
        assert can_transition(SubscriberState.CONFIRMED, SubscriberState.DELETED)
        assert not can_transition(SubscriberState.CONFIRMED, SubscriberState.UNCONFIRMED)
        assert VALID_TRANSITIONS[SubscriberState.DELETED] == set()

    def test_state_derived_from_record(self) -> None:
        subscriber = create_subscriber("a@example.com", now=NOW)
        assert subscriber.state == SubscriberState.UNCONFIRMED
        subscriber.is_confirmed = True
        assert subscriber.state == SubscriberState.CONFIRMED


# --- Preferences ---


class TestPreferences:
    def test_defaults_all_true(self) -> None:
        prefs = SubscriberPreferences()
        assert prefs.to_dict() == {
            "projects": True,
            "certificates": True,
            "skills": True,
            "careers": True,
        }

    def test_merged_is_partial(self) -> None:
        prefs = SubscriberPreferences().merged({"projects": False, "bogus": False, "skills": "no"})
        assert prefs.projects is False
        assert prefs.skills is True
        assert prefs.careers is True

    def test_missing_preferences_receive_everything(self) -> None:
        subscriber = create_subscriber("a@example.com", now=NOW)
        subscriber.preferences = None
        for kind in ("project", "certificate", "skill", "career"):
            assert subscriber.wants(kind) is True

    def test_wants_respects_flags(self) -> None:
        subscriber = create_subscriber("a@example.com", now=NOW)
        subscriber.preferences = SubscriberPreferences(careers=False)
        assert subscriber.wants("career") is False
        assert subscriber.wants("project") is True


# --- Subscribe ---


class TestSubscribe:
    def test_creates_unconfirmed_subscriber(self, repo, sender, config) -> None:
        result = _subscribe(repo, sender, config)

        assert result.success is True
        assert result.needs_confirmation is True
        subscriber = repo.get_by_id(result.subscriber_id)
        assert subscriber is not None
        assert subscriber.is_confirmed is False
        assert subscriber.preferences == SubscriberPreferences()
        assert subscriber.token_expires_at == NOW + timedelta(days=30)

    def test_sends_confirmation_link(self, repo, sender, config) -> None:
        _subscribe(repo, sender, config)

        token = _token_for(repo, "a@example.com")
        confirmations = sender.of_type("confirmation")
        assert len(confirmations) == 1
        assert confirmations[0]["url"] == (
            f"https://example.com/api/newsletter/confirm?token={token}"
        )

    def test_invalid_email_rejected(self, repo, sender, config) -> None:
        result = run(SubscribeInput(email="bad"), repo=repo, email_sender=sender, config=config)
        assert result.success is False
        assert repo.count == 0
        assert sender.sent_emails == []

    def test_second_subscribe_reuses_record(self, repo, sender, config) -> None:
        first = _subscribe(repo, sender, config)
        token = _token_for(repo, "a@example.com")

        second = _subscribe(repo, sender, config, email="A@Example.com")

        assert second.success is True
        assert second.resent is True
        assert second.subscriber_id == first.subscriber_id
        assert repo.count == 1
        assert _token_for(repo, "a@example.com") == token
        assert len(sender.of_type("confirmation")) == 2

    def test_resubscribe_refreshes_expired_token(self, repo, sender, config) -> None:
        _subscribe(repo, sender, config)
        old_token = _token_for(repo, "a@example.com")

        _subscribe(repo, sender, config, now=NOW + timedelta(days=60))

        assert _token_for(repo, "a@example.com") != old_token
        assert repo.count == 1

    def test_confirmed_subscriber_is_already_subscribed(self, repo, sender, config) -> None:
        _subscribe(repo, sender, config)
        run(ConfirmInput(token=_token_for(repo, "a@example.com")), repo=repo, now=NOW)
        sender.sent_emails.clear()

        result = _subscribe(repo, sender, config)

        assert result.success is True
        assert result.already_subscribed is True
        assert result.needs_confirmation is False
        assert sender.sent_emails == []

    def test_expired_confirmed_subscriber_gets_new_manage_link(self, repo, sender, config) -> None:
        _subscribe(repo, sender, config)
        old_token = _token_for(repo, "a@example.com")
        run(ConfirmInput(token=old_token), repo=repo, now=NOW)
        sender.sent_emails.clear()
        later = NOW + timedelta(days=60)

        result = _subscribe(repo, sender, config, now=later)

        new_token = _token_for(repo, "a@example.com")
        assert result.success is True
        assert result.already_subscribed is True
        assert result.resent is True
        assert new_token != old_token
        assert repo.get_by_token(old_token) is None
        assert repo.get_by_email("a@example.com").token_expires_at == later + timedelta(days=30)
        links = sender.of_type("manage-link")
        assert len(links) == 1
        assert links[0]["url"] == f"https://example.com/unsubscribe?token={new_token}"
        assert sender.of_type("confirmation") == []

    def test_concurrent_insert_reuses_winning_record(self, sender, config) -> None:
        class RacingRepo(MockSubscriberRepo):
            """Another request inserts the address between lookup and save."""

            def __init__(self) -> None:
                super().__init__()
                self.lookups = 0

            def get_by_email(self, email: str) -> Subscriber | None:
                self.lookups += 1
                if self.lookups == 1:
                    return None
                return super().get_by_email(email)

            def save(self, subscriber: Subscriber) -> Subscriber:
                for other in self._subscribers.values():
                    if other.email == subscriber.email and other.id != subscriber.id:
                        raise SubscriptionError(subscriber.email, "UNIQUE constraint failed")
                return super().save(subscriber)

        repo = RacingRepo()
        winner = repo.save(create_subscriber("a@example.com", now=NOW, token_ttl_days=30))

        result = _subscribe(repo, sender, config)

        assert result.success is True
        assert result.resent is True
        assert result.subscriber_id == winner.id
        assert repo.count == 1
        assert len(sender.of_type("confirmation")) == 1

    def test_rate_limited(self, repo, sender, config) -> None:
        result = run(
            SubscribeInput(email="a@example.com", ip_address="1.2.3.4"),
            repo=repo,
            email_sender=sender,
            rate_limiter=MockRateLimiter(allow=False),
            config=config,
        )
        assert result.success is False
        assert result.errors[0].code == "RATE_LIMIT"
        assert repo.count == 0

    def test_rate_limiter_records_attempt(self, repo, sender, config) -> None:
        limiter = MockRateLimiter()
        run(
            SubscribeInput(email="a@example.com", ip_address="1.2.3.4"),
            repo=repo,
            rate_limiter=limiter,
            config=config,
        )
        assert limiter.attempts == ["1.2.3.4"]

    def test_email_failure_does_not_fail_subscribe(self, repo, config) -> None:
        result = _subscribe(repo, MockEmailSender(succeed=False), config)
        assert result.success is True
        assert repo.count == 1


# --- Confirm ---


class TestConfirm:
    def test_confirm_marks_confirmed_and_sends_welcome(self, repo, sender, config) -> None:
        _subscribe(repo, sender, config)
        token = _token_for(repo, "a@example.com")

        result = run(ConfirmInput(token=token), repo=repo, email_sender=sender, config=config,
                     now=NOW)

        assert isinstance(result, ConfirmOutput)
        assert result.success is True
        subscriber = repo.get_by_email("a@example.com")
        assert subscriber.is_confirmed is True
        assert subscriber.confirmed_at == NOW
        welcome = sender.of_type("welcome")
        assert welcome[0]["url"] == f"https://example.com/unsubscribe?token={token}"

    def test_confirm_idempotent(self, repo, sender, config) -> None:
        _subscribe(repo, sender, config)
        token = _token_for(repo, "a@example.com")
        run(ConfirmInput(token=token), repo=repo, email_sender=sender, config=config, now=NOW)

        result = run(ConfirmInput(token=token), repo=repo, email_sender=sender, config=config,
                     now=NOW)

        assert result.success is True
        assert result.already_confirmed is True
        assert len(sender.of_type("welcome")) == 1

    def test_confirm_unknown_token(self, repo) -> None:
        result = run(ConfirmInput(token="nope"), repo=repo)
        assert result.success is False
        assert result.errors[0].code == "INVALID_TOKEN"

    def test_confirm_expired_token(self, repo, sender, config) -> None:
        _subscribe(repo, sender, config)
        token = _token_for(repo, "a@example.com")

        result = run(ConfirmInput(token=token), repo=repo, now=NOW + timedelta(days=31))

        assert result.errors[0].code == "TOKEN_EXPIRED"
        assert repo.get_by_email("a@example.com").is_confirmed is False


# --- Verify / Preferences / Unsubscribe ---


class TestTokenBoundActions:
    def test_verify_returns_email_and_preferences(self, repo, sender, config) -> None:
        _subscribe(repo, sender, config)
        token = _token_for(repo, "a@example.com")

        result = run(VerifyInput(token=token), repo=repo, now=NOW)

        assert isinstance(result, VerifyOutput)
        assert result.success is True
        assert result.email == "a@example.com"
        assert result.preferences == SubscriberPreferences()
        assert result.is_confirmed is False

    def test_verify_unknown_token(self, repo) -> None:
        result = run(VerifyInput(token="unknown"), repo=repo)
        assert result.success is False
        assert result.errors[0].code == "INVALID_TOKEN"

    def test_verify_defaults_missing_preferences(self, repo) -> None:
        subscriber = create_subscriber("a@example.com", now=NOW)
        subscriber.preferences = None
        repo.save(subscriber)

        result = run(VerifyInput(token=subscriber.token), repo=repo, now=NOW)

        assert result.preferences == SubscriberPreferences()

    def test_update_preferences_partial(self, repo, sender, config) -> None:
        _subscribe(repo, sender, config)
        token = _token_for(repo, "a@example.com")

        result = run(
            UpdatePreferencesInput(token=token, preferences={"projects": False}),
            repo=repo,
            now=NOW,
        )

        assert isinstance(result, UpdatePreferencesOutput)
        assert result.success is True
        assert result.preferences == SubscriberPreferences(projects=False)
        assert repo.get_by_email("a@example.com").wants("project") is False

    def test_update_preferences_creates_missing_row(self, repo) -> None:
        subscriber = create_subscriber("a@example.com", now=NOW)
        subscriber.preferences = None
        repo.save(subscriber)

        run(
            UpdatePreferencesInput(token=subscriber.token, preferences={"careers": False}),
            repo=repo,
            now=NOW,
        )

        assert subscriber.preferences == SubscriberPreferences(careers=False)

    def test_update_preferences_unknown_token(self, repo) -> None:
        result = run(UpdatePreferencesInput(token="x", preferences={}), repo=repo)
        assert result.success is False

    def test_unsubscribe_deletes_record(self, repo, sender, config) -> None:
        _subscribe(repo, sender, config)
        token = _token_for(repo, "a@example.com")

        result = run(UnsubscribeInput(token=token), repo=repo, email_sender=sender, now=NOW)

        assert isinstance(result, UnsubscribeOutput)
        assert result.success is True
        assert result.email == "a@example.com"
        assert repo.count == 0
        assert len(sender.of_type("unsubscribe")) == 1

    def test_verify_after_unsubscribe_not_found(self, repo, sender, config) -> None:
        _subscribe(repo, sender, config)
        token = _token_for(repo, "a@example.com")
        run(UnsubscribeInput(token=token), repo=repo, now=NOW)

        result = run(VerifyInput(token=token), repo=repo, now=NOW)

        assert result.errors[0].code == "INVALID_TOKEN"

    def test_unsubscribe_twice(self, repo, sender, config) -> None:
        _subscribe(repo, sender, config)
        token = _token_for(repo, "a@example.com")
        run(UnsubscribeInput(token=token), repo=repo, now=NOW)

        result = run(UnsubscribeInput(token=token), repo=repo, now=NOW)

        assert result.success is False


# --- URL Builders ---


class TestUrls:
    def test_confirmation_url(self) -> None:
        assert build_confirmation_url("https://example.com/", "abc") == (
            "https://example.com/api/newsletter/confirm?token=abc"
        )

    def test_unsubscribe_url(self) -> None:
        assert build_unsubscribe_url("https://example.com", "abc") == (
            "https://example.com/unsubscribe?token=abc"
        )


def test_run_unknown_input(repo) -> None:
    with pytest.raises(ValueError):
        run(object(), repo=repo)  # type: ignore[arg-type]

