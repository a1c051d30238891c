"""
Newsletter subscription component.

Functional core for the subscription lifecycle: subscribe, confirm, verify,
update preferences and unsubscribe. All management actions are authorized
by the subscriber's opaque token.

Key behaviors:
- Tokens from secrets.token_urlsafe, issued with an optional expiry
- Possession and freshness checked on every token-bound action
- Subscribing again with the same email reuses the existing record
- Unsubscribe deletes the record; the token stops resolving
- Missing preferences row means "receive every content kind"

Transactional email failures are logged and never fail the lifecycle step.
"""

from __future__ import annotations

import logging
import re
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from src.components.newsletter.models import (
    DEFAULT_PREFERENCES,
    ConfirmInput,
    ConfirmOutput,
    IssuedToken,
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
    ValidateEmailOutput,
    ValidationError,
    VerifyInput,
    VerifyOutput,
    can_transition,
)
from src.components.newsletter.ports import (
    NewsletterEmailSenderPort,
    RateLimiterPort,
    SubscriberRepoPort,
)

logger = logging.getLogger(__name__)

# --- Email Validation Regex (RFC 5322 simplified) ---

EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

DEFAULT_DISPOSABLE_DOMAINS: set[str] = {
    "10minutemail.com",
    "guerrillamail.com",
    "mailinator.com",
    "tempmail.com",
    "throwaway.email",
    "yopmail.com",
    "temp-mail.org",
    "fakeinbox.com",
    "sharklasers.com",
    "trashmail.com",
}

ERR_MISSING_TOKEN = ValidationError("MISSING_TOKEN", "Subscription token is required", "token")
ERR_INVALID_TOKEN = ValidationError("INVALID_TOKEN", "Invalid or unknown subscription link", "token")
ERR_TOKEN_EXPIRED = ValidationError("TOKEN_EXPIRED", "This subscription link has expired", "token")


# --- Pure Functions (Functional Core) ---


def validate_email(
    email: str,
    check_disposable: bool = True,
    disposable_domains: set[str] | None = None,
) -> ValidateEmailOutput:
    """
    Validate email format and optionally reject disposable domains.

    Returns the normalized (trimmed, lowercased) address when valid.
    """
    normalized = email.strip().lower() if email else ""

    if not normalized:
        return ValidateEmailOutput(
            is_valid=False,
            errors=[ValidationError("EMPTY_EMAIL", "Email address is required", "email")],
        )

    if len(normalized) > 254:
        return ValidateEmailOutput(
            is_valid=False,
            errors=[ValidationError("EMAIL_TOO_LONG", "Email address is too long", "email")],
        )

    if not EMAIL_REGEX.match(normalized):
        return ValidateEmailOutput(
            is_valid=False,
            errors=[ValidationError("INVALID_FORMAT", "Invalid email format", "email")],
        )

    is_disposable = False
    errors: list[ValidationError] = []
    if check_disposable:
        domains = disposable_domains or DEFAULT_DISPOSABLE_DOMAINS
        is_disposable = normalized.split("@")[1] in domains
        if is_disposable:
            errors.append(
                ValidationError(
                    "DISPOSABLE_EMAIL",
                    "Disposable email addresses are not allowed",
                    "email",
                )
            )

    return ValidateEmailOutput(
        is_valid=not errors,
        normalized_email=normalized,
        errors=errors,
        is_disposable=is_disposable,
    )


def generate_token(length: int = 32) -> str:
    """Generate a cryptographically secure URL-safe token."""
    return secrets.token_urlsafe(length)


def issue_token(now: datetime | None = None, ttl_days: int | None = None) -> IssuedToken:
    """Issue a management token; ttl_days=None means it never expires."""
    if now is None:
        now = datetime.now(UTC)
    expires_at = now + timedelta(days=ttl_days) if ttl_days is not None else None
    return IssuedToken(token=generate_token(), issued_at=now, expires_at=expires_at)


def is_token_expired(subscriber: Subscriber, now: datetime | None = None) -> bool:
    """True once the subscriber's token has passed its expiry time."""
    if subscriber.token_expires_at is None:
        return False
    if now is None:
        now = datetime.now(UTC)
    return now >= subscriber.token_expires_at


def token_needs_refresh(
    subscriber: Subscriber,
    now: datetime | None = None,
    within_days: int = 0,
) -> bool:
    """True when the token has expired or expires within `within_days`."""
    if subscriber.token_expires_at is None:
        return False
    if now is None:
        now = datetime.now(UTC)
    return now + timedelta(days=within_days) >= subscriber.token_expires_at


def require_subscriber(
    repo: SubscriberRepoPort,
    token: str,
    now: datetime | None = None,
) -> Subscriber:
    """
    Resolve a token to its subscriber.

    Raises:
        TokenNotFoundError: no subscriber holds this token
        TokenExpiredError: the token is past its expiry
    """
    subscriber = repo.get_by_token(token)
    if subscriber is None:
        raise TokenNotFoundError()
    if is_token_expired(subscriber, now):
        raise TokenExpiredError()
    return subscriber


def resolve_token(
    repo: SubscriberRepoPort,
    token: str | None,
    now: datetime | None = None,
) -> tuple[Subscriber | None, ValidationError | None]:
    """Token lookup for handlers: returns (subscriber, None) or (None, error)."""
    if not token:
        return None, ERR_MISSING_TOKEN
    try:
        return require_subscriber(repo, token, now), None
    except TokenExpiredError:
        return None, ERR_TOKEN_EXPIRED
    except TokenNotFoundError:
        return None, ERR_INVALID_TOKEN


def create_subscriber(
    email: str,
    name: str | None = None,
    *,
    now: datetime | None = None,
    token_ttl_days: int | None = None,
) -> Subscriber:
    """Create an unconfirmed subscriber opted in to every content kind."""
    if now is None:
        now = datetime.now(UTC)
    issued = issue_token(now, token_ttl_days)
    return Subscriber(
        id=uuid4(),
        email=email,
        name=name or None,
        token=issued.token,
        token_issued_at=issued.issued_at,
        token_expires_at=issued.expires_at,
        is_confirmed=False,
        preferences=SubscriberPreferences(),
        created_at=now,
    )


def confirm_subscriber(subscriber: Subscriber, now: datetime | None = None) -> Subscriber:
    """Mark a subscriber confirmed."""
    if now is None:
        now = datetime.now(UTC)
    subscriber.is_confirmed = True
    subscriber.confirmed_at = now
    return subscriber


def update_preferences(subscriber: Subscriber, updates: dict[str, Any]) -> Subscriber:
    """Apply a partial preferences update, creating the row if missing."""
    base = subscriber.preferences or SubscriberPreferences()
    subscriber.preferences = base.merged(updates)
    return subscriber


def regenerate_token(
    subscriber: Subscriber,
    now: datetime | None = None,
    ttl_days: int | None = None,
) -> Subscriber:
    """Replace the subscriber's token, revoking the previous one."""
    issued = issue_token(now, ttl_days)
    subscriber.token = issued.token
    subscriber.token_issued_at = issued.issued_at
    subscriber.token_expires_at = issued.expires_at
    return subscriber


def build_confirmation_url(base_url: str, token: str, path: str = "/api/newsletter/confirm") -> str:
    base = base_url.rstrip("/")
    return f"{base}{path}?token={token}"


def build_unsubscribe_url(base_url: str, token: str, path: str = "/unsubscribe") -> str:
    """Management link: the public page offers unsubscribe and preferences."""
    base = base_url.rstrip("/")
    return f"{base}{path}?token={token}"


# --- Run Handlers ---


def run_subscribe(
    inp: SubscribeInput,
    repo: SubscriberRepoPort,
    *,
    email_sender: NewsletterEmailSenderPort | None = None,
    rate_limiter: RateLimiterPort | None = None,
    config: NewsletterConfig | None = None,
    disposable_domains: set[str] | None = None,
    now: datetime | None = None,
) -> SubscribeOutput:
    """Handle a subscription request."""
    cfg = config or NewsletterConfig()
    now = now or datetime.now(UTC)

    validation = validate_email(inp.email, disposable_domains=disposable_domains)
    if not validation.is_valid or validation.normalized_email is None:
        return SubscribeOutput(success=False, errors=validation.errors)
    email = validation.normalized_email

    if rate_limiter and inp.ip_address:
        is_allowed, _ = rate_limiter.check_rate_limit(
            key=inp.ip_address,
            limit=cfg.rate_limit_per_ip_per_hour,
            window_seconds=3600,
        )
        if not is_allowed:
            return SubscribeOutput(
                success=False,
                errors=[ValidationError("RATE_LIMIT", "Too many attempts, please try later")],
            )
        rate_limiter.record_attempt(inp.ip_address)

    existing = repo.get_by_email(email)
    if existing is not None:
        return _resubscribe(existing, inp, repo, email_sender, cfg, now)

    subscriber = create_subscriber(email, inp.name, now=now, token_ttl_days=cfg.token_ttl_days)
    try:
        saved = repo.save(subscriber)
    except SubscriptionError:
        # A concurrent request inserted the same address first
        existing = repo.get_by_email(email)
        if existing is None:
            raise
        return _resubscribe(existing, inp, repo, email_sender, cfg, now)
    logger.info("New newsletter subscriber %s (unconfirmed)", saved.id)
    _send_confirmation(saved, email_sender, cfg)

    return SubscribeOutput(success=True, subscriber_id=saved.id)


def _resubscribe(
    existing: Subscriber,
    inp: SubscribeInput,
    repo: SubscriberRepoPort,
    email_sender: NewsletterEmailSenderPort | None,
    cfg: NewsletterConfig,
    now: datetime,
) -> SubscribeOutput:
    """Subscribe request for an address that already has a record."""
    if existing.is_confirmed:
        if not is_token_expired(existing, now):
            return SubscribeOutput(
                success=True,
                subscriber_id=existing.id,
                needs_confirmation=False,
                already_subscribed=True,
            )
        # Expired management link: mail a fresh one
        repo.save(regenerate_token(existing, now, cfg.token_ttl_days))
        logger.info("Reissued management token for subscriber %s", existing.id)
        if email_sender:
            url = build_unsubscribe_url(cfg.base_url, existing.token, cfg.unsubscribe_path)
            if not email_sender.send_manage_link_email(existing.email, existing.name, url):
                logger.warning("Management link for subscriber %s was not sent", existing.id)
        return SubscribeOutput(
            success=True,
            subscriber_id=existing.id,
            needs_confirmation=False,
            already_subscribed=True,
            resent=True,
        )

    # Reuse the pending record; an expired token is replaced first
    if is_token_expired(existing, now):
        regenerate_token(existing, now, cfg.token_ttl_days)
    if inp.name and not existing.name:
        existing.name = inp.name
    repo.save(existing)
    _send_confirmation(existing, email_sender, cfg)
    return SubscribeOutput(success=True, subscriber_id=existing.id, resent=True)


def run_confirm(
    inp: ConfirmInput,
    repo: SubscriberRepoPort,
    *,
    email_sender: NewsletterEmailSenderPort | None = None,
    config: NewsletterConfig | None = None,
    now: datetime | None = None,
) -> ConfirmOutput:
    """Handle a confirmation request."""
    cfg = config or NewsletterConfig()

    subscriber, error = resolve_token(repo, inp.token, now)
    if subscriber is None:
        return ConfirmOutput(success=False, errors=[error] if error else [])

    if subscriber.is_confirmed:
        return ConfirmOutput(success=True, subscriber_id=subscriber.id, already_confirmed=True)

    if not can_transition(subscriber.state, SubscriberState.CONFIRMED):
        return ConfirmOutput(
            success=False,
            errors=[ValidationError("INVALID_STATE", "Cannot confirm subscription in current state")],
        )

    confirmed = repo.save(confirm_subscriber(subscriber, now))
    logger.info("Newsletter subscriber %s confirmed", confirmed.id)

    if email_sender:
        url = build_unsubscribe_url(cfg.base_url, confirmed.token, cfg.unsubscribe_path)
        if not email_sender.send_welcome_email(confirmed.email, confirmed.name, url):
            logger.warning("Welcome email to subscriber %s was not sent", confirmed.id)

    return ConfirmOutput(success=True, subscriber_id=confirmed.id)


def run_verify(
    inp: VerifyInput,
    repo: SubscriberRepoPort,
    *,
    now: datetime | None = None,
) -> VerifyOutput:
    """Return the email and preferences behind a token."""
    subscriber, error = resolve_token(repo, inp.token, now)
    if subscriber is None:
        return VerifyOutput(success=False, errors=[error] if error else [])

    return VerifyOutput(
        success=True,
        email=subscriber.email,
        name=subscriber.name,
        preferences=subscriber.preferences or DEFAULT_PREFERENCES,
        is_confirmed=subscriber.is_confirmed,
    )


def run_update_preferences(
    inp: UpdatePreferencesInput,
    repo: SubscriberRepoPort,
    *,
    now: datetime | None = None,
) -> UpdatePreferencesOutput:
    """Update per-category preferences for the subscriber behind a token."""
    subscriber, error = resolve_token(repo, inp.token, now)
    if subscriber is None:
        return UpdatePreferencesOutput(success=False, errors=[error] if error else [])

    saved = repo.save(update_preferences(subscriber, inp.preferences))
    return UpdatePreferencesOutput(success=True, preferences=saved.preferences)


def run_unsubscribe(
    inp: UnsubscribeInput,
    repo: SubscriberRepoPort,
    *,
    email_sender: NewsletterEmailSenderPort | None = None,
    now: datetime | None = None,
) -> UnsubscribeOutput:
    """Delete the subscriber behind a token."""
    subscriber, error = resolve_token(repo, inp.token, now)
    if subscriber is None:
        return UnsubscribeOutput(success=False, errors=[error] if error else [])

    if not can_transition(subscriber.state, SubscriberState.DELETED):
        return UnsubscribeOutput(
            success=False,
            errors=[ValidationError("INVALID_STATE", "Cannot unsubscribe in current state")],
        )

    repo.delete(subscriber.id)
    logger.info("Newsletter subscriber %s unsubscribed", subscriber.id)

    if email_sender and not email_sender.send_unsubscribe_confirmation(
        subscriber.email, subscriber.name
    ):
        logger.warning("Unsubscribe confirmation for %s was not sent", subscriber.id)

    return UnsubscribeOutput(success=True, email=subscriber.email)


def _send_confirmation(
    subscriber: Subscriber,
    email_sender: NewsletterEmailSenderPort | None,
    cfg: NewsletterConfig,
) -> None:
    if email_sender is None:
        return
    url = build_confirmation_url(cfg.base_url, subscriber.token, cfg.confirm_path)
    if not email_sender.send_confirmation_email(subscriber.email, subscriber.name, url):
        logger.warning("Confirmation email to subscriber %s was not sent", subscriber.id)


NewsletterInput = (
    SubscribeInput | ConfirmInput | VerifyInput | UpdatePreferencesInput | UnsubscribeInput
)
NewsletterOutput = (
    SubscribeOutput | ConfirmOutput | VerifyOutput | UpdatePreferencesOutput | UnsubscribeOutput
)


def run(
    inp: NewsletterInput,
    *,
    repo: SubscriberRepoPort,
    email_sender: NewsletterEmailSenderPort | None = None,
    rate_limiter: RateLimiterPort | None = None,
    config: NewsletterConfig | None = None,
    disposable_domains: set[str] | None = None,
    now: datetime | None = None,
) -> NewsletterOutput:
    """
    Main component entry point.

    Args:
        inp: Input command
        repo: Subscriber repository (required)
        email_sender: Transactional email sender (optional)
        rate_limiter: Subscribe rate limiter (optional)
        config: Lifecycle configuration (optional)
        disposable_domains: Custom disposable domains (optional)
        now: Current time (for testing)
    """
    if isinstance(inp, SubscribeInput):
        return run_subscribe(
            inp,
            repo,
            email_sender=email_sender,
            rate_limiter=rate_limiter,
            config=config,
            disposable_domains=disposable_domains,
            now=now,
        )
    elif isinstance(inp, ConfirmInput):
        return run_confirm(inp, repo, email_sender=email_sender, config=config, now=now)
    elif isinstance(inp, VerifyInput):
        return run_verify(inp, repo, now=now)
    elif isinstance(inp, UpdatePreferencesInput):
        return run_update_preferences(inp, repo, now=now)
    elif isinstance(inp, UnsubscribeInput):
        return run_unsubscribe(inp, repo, email_sender=email_sender, now=now)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
