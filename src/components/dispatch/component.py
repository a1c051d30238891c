"""
Newsletter dispatch component.

Fans one newsletter out to every confirmed subscriber whose preferences
allow its content kind.

Key behaviors:
- Send record persisted as PENDING, moved to SENDING before the first mail
- Bounded worker pool plus a shared token bucket limit the send rate
- Retriable failures are retried on the configured backoff schedule
- One recipient's failure never affects another (settle-all)
- Expired or nearly expired subscriber tokens are reissued before footers are built
- Each delivery row is stored as it settles; final status COMPLETED, PARTIAL or FAILED
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import UTC, datetime
from html import escape
from uuid import UUID

from src.components.content import ContentNotFoundError, ContentRepos, generate_content
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
from src.components.mailer.component import html_to_text
from src.components.newsletter.component import (
    build_unsubscribe_url,
    regenerate_token,
    token_needs_refresh,
)
from src.components.newsletter.models import Subscriber, ValidationError
from src.components.newsletter.ports import SubscriberRepoPort
from src.core.ports.email import EmailSendError
from src.domain.entities import CONTENT_KINDS
from src.rules.models import AnnouncementRules

logger = logging.getLogger(__name__)

Sleep = Callable[[float], None]

_FOOTER_STYLE = (
    "margin-top: 30px; padding-top: 15px; border-top: 1px solid #eee; "
    "font-size: 12px; color: #777;"
)


# --- Pure Functions ---


def select_recipients(subscribers: Iterable[Subscriber], kind: str) -> list[Subscriber]:
    """Confirmed subscribers who want this kind. No preferences row means yes."""
    return [s for s in subscribers if s.is_confirmed and s.wants(kind)]


def build_newsletter_bodies(content: str, unsubscribe_url: str) -> tuple[str, str]:
    """Wrap content with the personalized footer. Returns (html, text)."""
    url = escape(unsubscribe_url, quote=True)
    html_body = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f"{content}"
        f'<div style="{_FOOTER_STYLE}">'
        "<p>You're receiving this email because you subscribed to this newsletter.</p>"
        "<p>To unsubscribe or manage your preferences, "
        f'<a href="{url}" style="color: #5b21b6;">click here</a>.</p>'
        "</div></div>"
    )
    text_body = (
        f"{html_to_text(content)}\n\n"
        "You're receiving this email because you subscribed to this newsletter.\n"
        f"To unsubscribe or manage your preferences, visit: {unsubscribe_url}\n"
    )
    return html_body, text_body


def final_status(recipient_count: int, sent_count: int) -> DispatchStatus:
    if sent_count == recipient_count:
        return DispatchStatus.COMPLETED
    if sent_count == 0:
        return DispatchStatus.FAILED
    return DispatchStatus.PARTIAL


def backoff_delay(attempt: int, schedule: tuple[float, ...]) -> float:
    """Delay before retry number `attempt` (1-based); the last entry repeats."""
    if not schedule:
        return 0.0
    index = min(max(attempt - 1, 0), len(schedule) - 1)
    return float(schedule[index])


def _validate_input(inp: DispatchInput) -> list[ValidationError]:
    errors = []
    if not inp.subject or not inp.subject.strip():
        errors.append(ValidationError("VALIDATION_ERROR", "Subject is required", "subject"))
    if not inp.content or not inp.content.strip():
        errors.append(ValidationError("VALIDATION_ERROR", "Content is required", "content"))
    if inp.type not in CONTENT_KINDS:
        errors.append(
            ValidationError("VALIDATION_ERROR", f"Unknown newsletter type: {inp.type}", "type")
        )
    return errors


# --- Rate limiting ---


class TokenBucket:
    """
    Thread-safe token bucket.

    Holds up to `capacity` tokens (default: one second's worth) and
    refills at `rate` tokens per second.
    """

    def __init__(
        self,
        rate: float,
        capacity: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleep = time.sleep,
    ) -> None:
        if rate <= 0:
            raise ValueError("rate must be positive")
        self.rate = rate
        self.capacity = capacity if capacity is not None else max(1.0, rate)
        self._tokens = self.capacity
        self._clock = clock
        self._sleep = sleep
        self._updated = clock()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(self.capacity, self._tokens + (now - self._updated) * self.rate)
        self._updated = now

    def try_acquire(self) -> float:
        """Take a token if available. Returns 0, or the seconds to wait."""
        with self._lock:
            self._refill()
            if self._tokens >= 1:
                self._tokens -= 1
                return 0.0
            return (1 - self._tokens) / self.rate

    def acquire(self) -> None:
        while (wait := self.try_acquire()) > 0:
            self._sleep(wait)


# --- Fan-out ---


def deliver_with_retry(
    dispatcher: DeliveryPort,
    subscriber: Subscriber,
    subject: str,
    html_body: str,
    text_body: str,
    *,
    config: DispatchConfig,
    bucket: TokenBucket | None = None,
    sleep: Sleep = time.sleep,
) -> DeliveryOutcome:
    """Send to one subscriber, retrying retriable failures."""
    last_error = ""
    attempt = 0
    for attempt in range(1, config.max_attempts + 1):
        if bucket is not None:
            bucket.acquire()
        try:
            result = dispatcher.deliver(subscriber.email, subject, html_body, text_body)
        except EmailSendError as e:
            last_error = e.error
            if not e.retriable or attempt == config.max_attempts:
                break
            delay = backoff_delay(attempt, config.backoff_seconds)
            logger.info(
                "Retrying subscriber %s in %.1fs (attempt %d failed: %s)",
                subscriber.id,
                delay,
                attempt,
                e.error,
            )
            sleep(delay)
            continue
        return DeliveryOutcome(
            email=subscriber.email,
            subscriber_id=subscriber.id,
            status=DeliveryStatus.SENT,
            message_id=result.message_id,
            attempts=attempt,
        )

    logger.warning("Delivery to subscriber %s failed after %d attempt(s)", subscriber.id, attempt)
    return DeliveryOutcome(
        email=subscriber.email,
        subscriber_id=subscriber.id,
        status=DeliveryStatus.FAILED,
        error=last_error,
        attempts=attempt,
    )


def _deliver_settled(
    dispatcher: DeliveryPort,
    subscriber: Subscriber,
    inp: DispatchInput,
    *,
    config: DispatchConfig,
    base_url: str,
    bucket: TokenBucket,
    sleep: Sleep,
) -> DeliveryOutcome:
    """deliver_with_retry that reports unexpected errors as a failed delivery."""
    unsubscribe_url = build_unsubscribe_url(base_url, subscriber.token, config.unsubscribe_path)
    html_body, text_body = build_newsletter_bodies(inp.content, unsubscribe_url)
    try:
        return deliver_with_retry(
            dispatcher,
            subscriber,
            inp.subject,
            html_body,
            text_body,
            config=config,
            bucket=bucket,
            sleep=sleep,
        )
    except Exception as e:
        logger.exception("Unexpected error delivering to subscriber %s", subscriber.id)
        return DeliveryOutcome(
            email=subscriber.email,
            subscriber_id=subscriber.id,
            status=DeliveryStatus.FAILED,
            error=f"Unexpected error: {e}",
            attempts=1,
        )


def fan_out(
    recipients: list[Subscriber],
    inp: DispatchInput,
    *,
    dispatcher: DeliveryPort,
    config: DispatchConfig,
    base_url: str,
    sleep: Sleep = time.sleep,
    bucket: TokenBucket | None = None,
    on_settled: Callable[[DeliveryOutcome], None] | None = None,
) -> list[DeliveryOutcome]:
    """
    Deliver to all recipients; outcomes are returned in recipient order.

    on_settled runs in the calling thread as each recipient settles.
    """
    if not recipients:
        return []
    bucket = bucket or TokenBucket(config.sends_per_second, sleep=sleep)
    workers = min(config.max_concurrency, len(recipients))
    outcomes: list[DeliveryOutcome | None] = [None] * len(recipients)

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dispatch") as pool:
        futures = {
            pool.submit(
                _deliver_settled,
                dispatcher,
                subscriber,
                inp,
                config=config,
                base_url=base_url,
                bucket=bucket,
                sleep=sleep,
            ): index
            for index, subscriber in enumerate(recipients)
        }
        for future in as_completed(futures):
            outcome = future.result()
            outcomes[futures[future]] = outcome
            if on_settled is not None:
                on_settled(outcome)

    return [o for o in outcomes if o is not None]


def refresh_expiring_tokens(
    recipients: list[Subscriber],
    repo: SubscriberRepoPort,
    config: DispatchConfig,
    now: datetime,
) -> int:
    """Reissue tokens that have expired or are about to, so every footer link works."""
    refreshed = 0
    for subscriber in recipients:
        if token_needs_refresh(subscriber, now, config.token_refresh_days):
            repo.save(regenerate_token(subscriber, now, config.token_ttl_days))
            refreshed += 1
    if refreshed:
        logger.info("Reissued %d expiring subscriber token(s) before dispatch", refreshed)
    return refreshed


class DeliveryLedger:
    """
    Persists each delivery as it settles and keeps the send record's counts current.

    Counts follow actual delivery outcomes; a row that cannot be stored is
    logged and reported, and does not change what was sent.
    """

    def __init__(
        self,
        repo: NewsletterRepoPort,
        newsletter: Newsletter,
        clock: Callable[[], datetime],
    ) -> None:
        self.repo = repo
        self.newsletter = newsletter
        self.clock = clock
        self.unrecorded: list[str] = []

    def record(self, outcome: DeliveryOutcome) -> None:
        if outcome.status == DeliveryStatus.SENT:
            self.newsletter.sent_count += 1
        else:
            self.newsletter.failed_count += 1
        try:
            self.repo.add_deliveries(
                [
                    NewsletterDelivery(
                        newsletter_id=self.newsletter.id,
                        subscriber_id=outcome.subscriber_id,
                        email=outcome.email,
                        status=outcome.status,
                        attempts=outcome.attempts,
                        message_id=outcome.message_id,
                        error=outcome.error,
                        created_at=self.clock(),
                    )
                ]
            )
            self.repo.save(self.newsletter)
        except Exception:
            logger.exception(
                "Could not record delivery to %s for newsletter %s",
                outcome.email,
                self.newsletter.id,
            )
            self.unrecorded.append(outcome.email)


# --- Run Handlers ---


def run_dispatch(
    inp: DispatchInput,
    *,
    subscriber_repo: SubscriberRepoPort,
    newsletter_repo: NewsletterRepoPort,
    dispatcher: DeliveryPort,
    config: DispatchConfig | None = None,
    base_url: str,
    sleep: Sleep = time.sleep,
    now: Callable[[], datetime] | None = None,
) -> DispatchOutput:
    """
    Send a newsletter to every eligible subscriber.

    Args:
        inp: Subject, HTML content, kind and optional project id
        subscriber_repo: Source of confirmed subscribers
        newsletter_repo: Send history storage
        dispatcher: Mail delivery (raises EmailSendError on failure)
        config: Concurrency, rate, retry and token refresh policy
        base_url: Site URL for unsubscribe links
        sleep: Sleep function (for testing)
        now: Clock (for testing)
    """
    cfg = config or DispatchConfig()
    clock = now or (lambda: datetime.now(UTC))

    errors = _validate_input(inp)
    if errors:
        return DispatchOutput(success=False, errors=errors)

    newsletter: Newsletter | None = None
    ledger: DeliveryLedger | None = None
    outcomes: list[DeliveryOutcome] = []
    try:
        recipients = select_recipients(subscriber_repo.list_confirmed(), inp.type)
        refresh_expiring_tokens(recipients, subscriber_repo, cfg, clock())

        newsletter = newsletter_repo.save(
            Newsletter(
                subject=inp.subject,
                content=inp.content,
                type=inp.type,  # type: ignore[arg-type]
                project_id=inp.project_id,
                recipient_count=len(recipients),
                created_at=clock(),
            )
        )
        logger.info(
            "Dispatching %s newsletter %s to %d recipient(s)",
            inp.type,
            newsletter.id,
            len(recipients),
        )

        newsletter.status = DispatchStatus.SENDING
        newsletter_repo.save(newsletter)

        ledger = DeliveryLedger(newsletter_repo, newsletter, clock)
        outcomes = fan_out(
            recipients,
            inp,
            dispatcher=dispatcher,
            config=cfg,
            base_url=base_url,
            sleep=sleep,
            on_settled=ledger.record,
        )

        newsletter.status = final_status(len(recipients), newsletter.sent_count)
        newsletter.sent_at = clock()
        newsletter_repo.save(newsletter)
    except Exception as e:
        logger.exception("Newsletter dispatch aborted")
        if newsletter is not None:
            _mark_aborted(newsletter_repo, newsletter, clock)
        return DispatchOutput(
            success=False,
            newsletter_id=newsletter.id if newsletter else None,
            status=newsletter.status if newsletter else None,
            recipient_count=newsletter.recipient_count if newsletter else 0,
            sent_count=newsletter.sent_count if newsletter else 0,
            failed_count=newsletter.failed_count if newsletter else 0,
            deliveries=outcomes,
            errors=[ValidationError("DISPATCH_ERROR", f"Dispatch failed: {e}")],
        )

    logger.info(
        "Newsletter %s %s: %d sent, %d failed",
        newsletter.id,
        newsletter.status.value,
        newsletter.sent_count,
        newsletter.failed_count,
    )
    warnings = []
    if ledger.unrecorded:
        warnings.append(
            ValidationError(
                "DELIVERY_LOG_ERROR",
                f"{len(ledger.unrecorded)} delivery record(s) could not be stored",
            )
        )
    return DispatchOutput(
        success=newsletter.status != DispatchStatus.FAILED,
        newsletter_id=newsletter.id,
        status=newsletter.status,
        recipient_count=newsletter.recipient_count,
        sent_count=newsletter.sent_count,
        failed_count=newsletter.failed_count,
        deliveries=outcomes,
        errors=warnings,
    )


def _mark_aborted(
    repo: NewsletterRepoPort, newsletter: Newsletter, clock: Callable[[], datetime]
) -> None:
    """Settle an interrupted send: PARTIAL if any mail went out, else FAILED."""
    newsletter.status = (
        DispatchStatus.PARTIAL if newsletter.sent_count > 0 else DispatchStatus.FAILED
    )
    newsletter.sent_at = clock()
    try:
        repo.save(newsletter)
    except Exception:
        logger.exception("Could not mark newsletter %s as %s", newsletter.id, newsletter.status.value)


def announce(
    kind: str,
    content_id: UUID,
    *,
    repos: ContentRepos,
    announcements: AnnouncementRules,
    subscriber_repo: SubscriberRepoPort,
    newsletter_repo: NewsletterRepoPort,
    dispatcher: DeliveryPort,
    config: DispatchConfig | None = None,
    base_url: str,
    sleep: Sleep = time.sleep,
) -> DispatchOutput:
    """Generate content for a newly created record and dispatch it."""
    if kind not in CONTENT_KINDS:
        return DispatchOutput(
            success=False,
            errors=[ValidationError("VALIDATION_ERROR", f"Unknown content kind: {kind}", "type")],
        )
    if not announcements.is_enabled(kind):
        logger.info("Announcements for %s are disabled; skipping %s", kind, content_id)
        return DispatchOutput(
            success=False,
            errors=[
                ValidationError("ANNOUNCEMENTS_DISABLED", f"Announcements for {kind} are disabled")
            ],
        )

    try:
        content = generate_content(kind, content_id, repos=repos, base_url=base_url)
    except ContentNotFoundError as e:
        return DispatchOutput(success=False, errors=[ValidationError("NOT_FOUND", str(e))])

    return run_dispatch(
        DispatchInput(
            subject=content.subject,
            content=content.content,
            type=content.type,
            project_id=content.project_id,
        ),
        subscriber_repo=subscriber_repo,
        newsletter_repo=newsletter_repo,
        dispatcher=dispatcher,
        config=config,
        base_url=base_url,
        sleep=sleep,
    )
