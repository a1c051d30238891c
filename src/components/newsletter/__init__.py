"""
Newsletter component.

Double opt-in subscription lifecycle managed through a single opaque token.
"""

from src.components.newsletter.component import (
    DEFAULT_DISPOSABLE_DOMAINS,
    EMAIL_REGEX,
    build_confirmation_url,
    build_unsubscribe_url,
    confirm_subscriber,
    create_subscriber,
    generate_token,
    is_token_expired,
    issue_token,
    regenerate_token,
    require_subscriber,
    resolve_token,
    run,
    run_confirm,
    run_subscribe,
    run_unsubscribe,
    run_update_preferences,
    run_verify,
    token_needs_refresh,
    update_preferences,
    validate_email,
)
from src.components.newsletter.models import (
    DEFAULT_PREFERENCES,
    KIND_TO_PREFERENCE,
    PREFERENCE_FIELDS,
    VALID_TRANSITIONS,
    ConfirmInput,
    ConfirmOutput,
    IssuedToken,
    NewsletterConfig,
    NewsletterError,
    Subscriber,
    SubscribeInput,
    SubscribeOutput,
    SubscriberPreferences,
    SubscriberState,
    SubscriptionError,
    TokenError,
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

__all__ = [
    # Component
    "run",
    "run_subscribe",
    "run_confirm",
    "run_verify",
    "token_needs_refresh",
    "run_update_preferences",
    "run_unsubscribe",
    # Pure functions
    "validate_email",
    "generate_token",
    "issue_token",
    "is_token_expired",
    "require_subscriber",
    "resolve_token",
    "create_subscriber",
    "confirm_subscriber",
    "update_preferences",
    "regenerate_token",
    "build_confirmation_url",
    "build_unsubscribe_url",
    # Constants
    "DEFAULT_DISPOSABLE_DOMAINS",
    "EMAIL_REGEX",
    "DEFAULT_PREFERENCES",
    "KIND_TO_PREFERENCE",
    "PREFERENCE_FIELDS",
    # Models
    "Subscriber",
    "SubscriberPreferences",
    "SubscriberState",
    "IssuedToken",
    "VALID_TRANSITIONS",
    "can_transition",
    "NewsletterConfig",
    # Input/Output
    "ValidateEmailOutput",
    "SubscribeInput",
    "SubscribeOutput",
    "ConfirmInput",
    "ConfirmOutput",
    "VerifyInput",
    "VerifyOutput",
    "UpdatePreferencesInput",
    "UpdatePreferencesOutput",
    "UnsubscribeInput",
    "UnsubscribeOutput",
    "ValidationError",
    # Errors
    "NewsletterError",
    "TokenError",
    "TokenExpiredError",
    "TokenNotFoundError",
    "SubscriptionError",
    # Ports
    "SubscriberRepoPort",
    "RateLimiterPort",
    "NewsletterEmailSenderPort",
]
