"""
Dispatch component.

Newsletter fan-out with per-recipient delivery records.
"""

from src.components.dispatch.component import (
    TokenBucket,
    announce,
    backoff_delay,
    build_newsletter_bodies,
    deliver_with_retry,
    fan_out,
    refresh_expiring_tokens,
    final_status,
    run_dispatch,
    select_recipients,
)
from src.components.dispatch.models import (
    DeliveryOutcome,
    DeliveryStatus,
    DispatchConfig,
    DispatchInput,
    DispatchOutput,
    DispatchStatus,
    Newsletter,
    NewsletterDelivery,
)
from src.components.dispatch.ports import DeliveryPort, NewsletterRepoPort

__all__ = [
    "run_dispatch",
    "announce",
    "fan_out",
    "refresh_expiring_tokens",
    "deliver_with_retry",
    "select_recipients",
    "build_newsletter_bodies",
    "final_status",
    "backoff_delay",
    "TokenBucket",
    "DeliveryOutcome",
    "DeliveryStatus",
    "DispatchConfig",
    "DispatchInput",
    "DispatchOutput",
    "DispatchStatus",
    "Newsletter",
    "NewsletterDelivery",
    "DeliveryPort",
    "NewsletterRepoPort",
]
