"""
Newsletter component models.

Data models for newsletter subscription management.

Lifecycle (derived from the subscriber record):
    [none] --subscribe--> UNCONFIRMED --confirm--> CONFIRMED
    UNCONFIRMED | CONFIRMED --unsubscribe--> DELETED (hard delete)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

# --- Lifecycle ---


class SubscriberState(Enum):
    """
    Newsletter subscriber lifecycle state.

    DELETED is only a transition target; deleted subscribers have no record.
    """

    UNCONFIRMED = "unconfirmed"
    CONFIRMED = "confirmed"
    DELETED = "deleted"


VALID_TRANSITIONS: dict[SubscriberState, set[SubscriberState]] = {
    SubscriberState.UNCONFIRMED: {SubscriberState.CONFIRMED, SubscriberState.DELETED},
    SubscriberState.CONFIRMED: {SubscriberState.DELETED},
    SubscriberState.DELETED: set(),  # Terminal
}


def can_transition(from_state: SubscriberState, to_state: SubscriberState) -> bool:
    """Check if a lifecycle transition is allowed."""
    return to_state in VALID_TRANSITIONS.get(from_state, set())


# --- Preferences ---

PREFERENCE_FIELDS: tuple[str, ...] = ("projects", "certificates", "skills", "careers")

# Content kind -> preference flag
KIND_TO_PREFERENCE: dict[str, str] = {
    "project": "projects",
    "certificate": "certificates",
    "skill": "skills",
    "career": "careers",
}


@dataclass(frozen=True)
class SubscriberPreferences:
    """Per-category opt-in flags. All categories are on by default."""

    projects: bool = True
    certificates: bool = True
    skills: bool = True
    careers: bool = True

    def allows(self, kind: str) -> bool:
        flag = KIND_TO_PREFERENCE.get(kind)
        if flag is None:
            return True
        return bool(getattr(self, flag))

    def merged(self, updates: dict[str, Any]) -> SubscriberPreferences:
        """Apply a partial update; unknown keys and non-bool values are ignored."""
        changes = {
            k: v for k, v in updates.items() if k in PREFERENCE_FIELDS and isinstance(v, bool)
        }
        return replace(self, **changes)

    def to_dict(self) -> dict[str, bool]:
        return {name: getattr(self, name) for name in PREFERENCE_FIELDS}


DEFAULT_PREFERENCES = SubscriberPreferences()


# --- Entity ---


@dataclass
class Subscriber:
    """
    Newsletter subscriber.

    The token is the only credential for managing the subscription.
    preferences=None means no preferences row exists; such subscribers
    receive every content kind.
    """

    id: UUID
    email: str
    token: str
    token_issued_at: datetime
    token_expires_at: datetime | None = None
    name: str | None = None
    is_confirmed: bool = False
    confirmed_at: datetime | None = None
    preferences: SubscriberPreferences | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def state(self) -> SubscriberState:
        return SubscriberState.CONFIRMED if self.is_confirmed else SubscriberState.UNCONFIRMED

    @property
    def effective_preferences(self) -> SubscriberPreferences:
        return self.preferences or DEFAULT_PREFERENCES

    def wants(self, kind: str) -> bool:
        if self.preferences is None:
            return True
        return self.preferences.allows(kind)


@dataclass(frozen=True)
class IssuedToken:
    """A freshly issued management token."""

    token: str
    issued_at: datetime
    expires_at: datetime | None = None


# --- Input Models ---


@dataclass(frozen=True)
class SubscribeInput:
    """Input for a subscription request."""

    email: str
    name: str | None = None
    ip_address: str | None = None  # For rate limiting


@dataclass(frozen=True)
class ConfirmInput:
    token: str


@dataclass(frozen=True)
class VerifyInput:
    token: str


@dataclass(frozen=True)
class UpdatePreferencesInput:
    """Partial preference update; omitted flags keep their value."""

    token: str
    preferences: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UnsubscribeInput:
    token: str


# --- Output Models ---


@dataclass(frozen=True)
class ValidationError:
    """Validation error detail."""

    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class ValidateEmailOutput:
    is_valid: bool
    normalized_email: str | None = None
    errors: list[ValidationError] = field(default_factory=list)
    is_disposable: bool = False


@dataclass(frozen=True)
class SubscribeOutput:
    success: bool
    subscriber_id: UUID | None = None
    needs_confirmation: bool = True
    already_subscribed: bool = False  # Email already confirmed
    resent: bool = False  # Confirmation resent for an existing record
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class ConfirmOutput:
    success: bool
    subscriber_id: UUID | None = None
    already_confirmed: bool = False
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class VerifyOutput:
    success: bool
    email: str | None = None
    name: str | None = None
    preferences: SubscriberPreferences | None = None
    is_confirmed: bool = False
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class UpdatePreferencesOutput:
    success: bool
    preferences: SubscriberPreferences | None = None
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class UnsubscribeOutput:
    success: bool
    email: str | None = None
    errors: list[ValidationError] = field(default_factory=list)


# --- Configuration ---


@dataclass(frozen=True)
class NewsletterConfig:
    """Newsletter lifecycle configuration."""

    token_ttl_days: int | None = 365
    rate_limit_per_ip_per_hour: int = 10
    site_name: str = "Portfolio"
    base_url: str = "http://localhost:3000"
    confirm_path: str = "/api/newsletter/confirm"
    unsubscribe_path: str = "/unsubscribe"


# --- Error Types ---


class NewsletterError(Exception):
    """Base newsletter error."""

    pass


class TokenError(NewsletterError):
    """Token validation failed."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Token error: {reason}")


class TokenExpiredError(TokenError):
    def __init__(self) -> None:
        super().__init__("Token has expired")


class TokenNotFoundError(TokenError):
    def __init__(self) -> None:
        super().__init__("Token not found")


class SubscriptionError(NewsletterError):
    """Subscription operation failed."""

    def __init__(self, email: str, reason: str) -> None:
        self.email = email
        self.reason = reason
        super().__init__(f"Subscription error for '{email}': {reason}")
