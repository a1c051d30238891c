"""
Mailer component.

Transport selection and message delivery for newsletters and
transactional emails.
"""

from src.components.mailer.component import (
    MailDispatcher,
    NewsletterEmailSender,
    build_transport,
    html_to_text,
    resolve_mail_config,
    settings_from_env,
)
from src.components.mailer.models import (
    ConfigSource,
    EmailSettings,
    MailConfig,
    TransportKind,
)
from src.components.mailer.ports import EmailSettingsRepoPort

__all__ = [
    "MailDispatcher",
    "NewsletterEmailSender",
    "build_transport",
    "html_to_text",
    "resolve_mail_config",
    "settings_from_env",
    "ConfigSource",
    "EmailSettings",
    "MailConfig",
    "TransportKind",
    "EmailSettingsRepoPort",
]
