"""
Admin newsletter API endpoints.

Endpoints:
- GET /api/admin/newsletter/subscribers - List subscribers
- GET /api/admin/newsletter/subscribers/{id} - Subscriber details
- PATCH /api/admin/newsletter/subscribers/{id} - Edit confirmation/preferences
- DELETE /api/admin/newsletter/subscribers - Bulk delete
- POST /api/admin/newsletter/subscribers/{id}/regenerate-token - Revoke token
- GET /api/admin/newsletter/subscribers/export/csv - Export CSV
- GET /api/admin/newsletter/stats - Subscriber and send counts
- POST /api/admin/newsletter/send - Dispatch a newsletter
- POST /api/admin/newsletter/preview - Generate content without sending
- POST /api/admin/newsletter/announce - Generate and dispatch
- GET /api/admin/newsletter/sends - Send history
- GET /api/admin/newsletter/sends/{id} - Send with per-recipient deliveries
"""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Callable
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from src.adapters.sqlite_db import SQLiteNewsletterRepo, SQLiteSubscriberRepo
from src.api.deps import (
    Settings,
    get_content_repos,
    get_current_user,
    get_dispatch_config,
    get_mail_dispatcher,
    get_newsletter_config,
    get_newsletter_repo,
    get_rules,
    get_settings,
    get_sleep,
    get_subscriber_repo,
)
from src.components.content import ContentNotFoundError, ContentRepos, generate_content
from src.components.dispatch import (
    DispatchConfig,
    DispatchInput,
    DispatchOutput,
    Newsletter,
    announce,
    run_dispatch,
)
from src.components.mailer import MailDispatcher
from src.components.newsletter import (
    NewsletterConfig,
    Subscriber,
    confirm_subscriber,
    regenerate_token,
    update_preferences,
)
from src.domain.entities import ContentKind, User
from src.rules.models import Rules

logger = logging.getLogger(__name__)

router = APIRouter()

EXPORT_LIMIT = 10000


# --- Request/Response Models ---


class SubscriberResponse(BaseModel):
    """Newsletter subscriber response (token hidden)."""

    id: str = Field(..., description="Subscriber ID")
    email: str = Field(..., description="Email address")
    name: str | None = Field(None, description="Display name")
    is_confirmed: bool = Field(..., description="Double opt-in completed")
    preferences: dict[str, bool] | None = Field(
        None, description="Per-kind flags; null receives every kind"
    )
    created_at: str = Field(..., description="Creation timestamp")
    confirmed_at: str | None = Field(None, description="Confirmation timestamp")
    token_expires_at: str | None = Field(None, description="Token expiry")


class SubscriberListResponse(BaseModel):
    """Paginated list of subscribers."""

    subscribers: list[SubscriberResponse]
    total: int = Field(..., description="Total matching subscribers")
    offset: int = Field(..., description="Current offset")
    limit: int = Field(..., description="Page size")


class SubscriberPatchRequest(BaseModel):
    is_confirmed: bool | None = Field(None, description="Set to true to confirm")
    preferences: dict[str, bool] | None = Field(None, description="Partial preference update")


class BulkDeleteRequest(BaseModel):
    ids: list[UUID] = Field(..., min_length=1, description="Subscriber IDs to delete")


class DeleteResponse(BaseModel):
    success: bool
    deleted: int
    message: str


class SendRequest(BaseModel):
    subject: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1, description="HTML body")
    type: ContentKind
    project_id: UUID | None = None


class ContentRequest(BaseModel):
    type: ContentKind
    content_id: UUID


class PreviewResponse(BaseModel):
    subject: str
    content: str
    type: str
    project_id: str | None = None


class DeliveryResponse(BaseModel):
    email: str
    status: str
    attempts: int
    message_id: str | None = None
    error: str | None = None


class ErrorDetail(BaseModel):
    code: str
    message: str


class SendResponse(BaseModel):
    success: bool
    newsletter_id: str | None = None
    status: str | None = None
    recipient_count: int = 0
    sent_count: int = 0
    failed_count: int = 0
    deliveries: list[DeliveryResponse] = Field(default_factory=list)
    errors: list[ErrorDetail] = Field(default_factory=list)


class NewsletterResponse(BaseModel):
    id: str
    subject: str
    type: str
    status: str
    recipient_count: int
    sent_count: int
    failed_count: int
    created_at: str
    sent_at: str | None = None


class NewsletterDetailResponse(NewsletterResponse):
    content: str
    project_id: str | None = None
    deliveries: list[DeliveryResponse]


class ErrorResponse(BaseModel):
    """Error response."""

    detail: str


# --- Helper Functions ---


def _subscriber_to_response(subscriber: Subscriber) -> SubscriberResponse:
    """Convert subscriber entity to response model (no token exposed)."""
    return SubscriberResponse(
        id=str(subscriber.id),
        email=subscriber.email,
        name=subscriber.name,
        is_confirmed=subscriber.is_confirmed,
        preferences=subscriber.preferences.to_dict() if subscriber.preferences else None,
        created_at=subscriber.created_at.isoformat(),
        confirmed_at=subscriber.confirmed_at.isoformat() if subscriber.confirmed_at else None,
        token_expires_at=(
            subscriber.token_expires_at.isoformat() if subscriber.token_expires_at else None
        ),
    )


def _newsletter_to_response(newsletter: Newsletter) -> NewsletterResponse:
    return NewsletterResponse(
        id=str(newsletter.id),
        subject=newsletter.subject,
        type=newsletter.type,
        status=newsletter.status.value,
        recipient_count=newsletter.recipient_count,
        sent_count=newsletter.sent_count,
        failed_count=newsletter.failed_count,
        created_at=newsletter.created_at.isoformat(),
        sent_at=newsletter.sent_at.isoformat() if newsletter.sent_at else None,
    )


# Dispatch error code -> HTTP status (codes not listed return 200 with the body)
DISPATCH_ERROR_STATUS: dict[str, int] = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ANNOUNCEMENTS_DISABLED": status.HTTP_409_CONFLICT,
    "DISPATCH_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _dispatch_to_response(result: DispatchOutput) -> SendResponse:
    for error in result.errors:
        code = DISPATCH_ERROR_STATUS.get(error.code)
        if code is not None:
            raise HTTPException(status_code=code, detail=error.message)

    return SendResponse(
        success=result.success,
        newsletter_id=str(result.newsletter_id) if result.newsletter_id else None,
        status=result.status.value if result.status else None,
        recipient_count=result.recipient_count,
        sent_count=result.sent_count,
        failed_count=result.failed_count,
        deliveries=[
            DeliveryResponse(
                email=d.email,
                status=d.status.value,
                attempts=d.attempts,
                message_id=d.message_id,
                error=d.error,
            )
            for d in result.deliveries
        ],
        errors=[ErrorDetail(code=e.code, message=e.message) for e in result.errors],
    )


def _get_subscriber_or_404(repo: SQLiteSubscriberRepo, subscriber_id: UUID) -> Subscriber:
    subscriber = repo.get_by_id(subscriber_id)
    if not subscriber:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Subscriber not found",
        )
    return subscriber


# --- Subscribers ---


@router.get(
    "/subscribers",
    response_model=SubscriberListResponse,
    responses={401: {"model": ErrorResponse}},
    summary="List newsletter subscribers",
)
def list_subscribers(
    confirmed: bool | None = Query(None, description="Filter by confirmation"),
    offset: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(50, ge=1, le=100, description="Page size"),
    user: User = Depends(get_current_user),
    repo: SQLiteSubscriberRepo = Depends(get_subscriber_repo),
) -> SubscriberListResponse:
    """List subscribers, newest first."""
    subscribers = repo.list_all(limit=limit, offset=offset, confirmed=confirmed)

    return SubscriberListResponse(
        subscribers=[_subscriber_to_response(s) for s in subscribers],
        total=repo.count(confirmed=confirmed),
        offset=offset,
        limit=limit,
    )


@router.get(
    "/subscribers/export/csv",
    responses={401: {"model": ErrorResponse}},
    summary="Export subscribers to CSV",
)
def export_subscribers_csv(
    confirmed: bool | None = Query(None, description="Filter by confirmation"),
    user: User = Depends(get_current_user),
    repo: SQLiteSubscriberRepo = Depends(get_subscriber_repo),
) -> StreamingResponse:
    """
    Export subscribers to CSV.

    Tokens are never included in the export.
    """
    subscribers = repo.list_all(
        limit=EXPORT_LIMIT, offset=0, confirmed=confirmed
    )

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(
        ["email", "name", "confirmed", "created_at", "confirmed_at",
         "projects", "certificates", "skills", "careers"]
    )
    for subscriber in subscribers:
        prefs = subscriber.effective_preferences
        writer.writerow([
            subscriber.email,
            subscriber.name or "",
            "yes" if subscriber.is_confirmed else "no",
            subscriber.created_at.isoformat(),
            subscriber.confirmed_at.isoformat() if subscriber.confirmed_at else "",
            prefs.projects,
            prefs.certificates,
            prefs.skills,
            prefs.careers,
        ])

    output.seek(0)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=newsletter_subscribers.csv"},
    )


@router.get(
    "/subscribers/{subscriber_id}",
    response_model=SubscriberResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Get subscriber details",
)
def get_subscriber(
    subscriber_id: UUID,
    user: User = Depends(get_current_user),
    repo: SQLiteSubscriberRepo = Depends(get_subscriber_repo),
) -> SubscriberResponse:
    return _subscriber_to_response(_get_subscriber_or_404(repo, subscriber_id))


@router.patch(
    "/subscribers/{subscriber_id}",
    response_model=SubscriberResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Edit subscriber",
)
def patch_subscriber(
    subscriber_id: UUID,
    body: SubscriberPatchRequest,
    user: User = Depends(get_current_user),
    repo: SQLiteSubscriberRepo = Depends(get_subscriber_repo),
) -> SubscriberResponse:
    """
    Confirm a subscriber or change their preferences.

    Confirmation cannot be withdrawn; delete the subscriber instead.
    """
    subscriber = _get_subscriber_or_404(repo, subscriber_id)

    if body.is_confirmed is False and subscriber.is_confirmed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A confirmed subscription cannot be unconfirmed",
        )
    if body.is_confirmed and not subscriber.is_confirmed:
        confirm_subscriber(subscriber)
    if body.preferences is not None:
        update_preferences(subscriber, body.preferences)

    repo.save(subscriber)
    logger.info("Admin %s edited subscriber %s", user.id, subscriber.id)
    return _subscriber_to_response(subscriber)


@router.delete(
    "/subscribers",
    response_model=DeleteResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Delete subscribers",
)
def delete_subscribers(
    body: BulkDeleteRequest,
    user: User = Depends(get_current_user),
    repo: SQLiteSubscriberRepo = Depends(get_subscriber_repo),
) -> DeleteResponse:
    """Permanently delete subscribers and their preferences."""
    deleted = repo.delete_many(body.ids)
    logger.info("Admin %s deleted %d subscriber(s)", user.id, deleted)
    return DeleteResponse(
        success=True,
        deleted=deleted,
        message=f"{deleted} subscriber(s) deleted",
    )


@router.post(
    "/subscribers/{subscriber_id}/regenerate-token",
    response_model=SubscriberResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Revoke a subscriber's token",
)
def regenerate_subscriber_token(
    subscriber_id: UUID,
    user: User = Depends(get_current_user),
    repo: SQLiteSubscriberRepo = Depends(get_subscriber_repo),
    config: NewsletterConfig = Depends(get_newsletter_config),
) -> SubscriberResponse:
    """Issue a new token. Links carrying the old token stop working."""
    subscriber = _get_subscriber_or_404(repo, subscriber_id)
    repo.save(regenerate_token(subscriber, ttl_days=config.token_ttl_days))
    logger.info("Admin %s regenerated token for subscriber %s", user.id, subscriber.id)
    return _subscriber_to_response(subscriber)


@router.get(
    "/stats",
    responses={401: {"model": ErrorResponse}},
    summary="Get newsletter stats",
)
def get_newsletter_stats(
    user: User = Depends(get_current_user),
    repo: SQLiteSubscriberRepo = Depends(get_subscriber_repo),
    newsletter_repo: SQLiteNewsletterRepo = Depends(get_newsletter_repo),
) -> dict[str, int]:
    """Subscriber counts by confirmation, and number of sends."""
    return {
        "total": repo.count(),
        "confirmed": repo.count(confirmed=True),
        "unconfirmed": repo.count(confirmed=False),
        "newsletters": newsletter_repo.count(),
    }


# --- Sending ---


@router.post(
    "/send",
    response_model=SendResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
    summary="Send a newsletter",
)
def send_newsletter(
    body: SendRequest,
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    subscriber_repo: SQLiteSubscriberRepo = Depends(get_subscriber_repo),
    newsletter_repo: SQLiteNewsletterRepo = Depends(get_newsletter_repo),
    dispatcher: MailDispatcher = Depends(get_mail_dispatcher),
    config: DispatchConfig = Depends(get_dispatch_config),
    sleep: Callable[[float], None] = Depends(get_sleep),
) -> SendResponse:
    """Send to every confirmed subscriber whose preferences allow the kind."""
    logger.info("Admin %s sending %s newsletter", user.id, body.type)
    result = run_dispatch(
        DispatchInput(
            subject=body.subject,
            content=body.content,
            type=body.type,
            project_id=body.project_id,
        ),
        subscriber_repo=subscriber_repo,
        newsletter_repo=newsletter_repo,
        dispatcher=dispatcher,
        config=config,
        base_url=settings.base_url,
        sleep=sleep,
    )
    return _dispatch_to_response(result)


@router.post(
    "/preview",
    response_model=PreviewResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Preview generated newsletter content",
)
def preview_newsletter(
    body: ContentRequest,
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    repos: ContentRepos = Depends(get_content_repos),
) -> PreviewResponse:
    try:
        content = generate_content(
            body.type, body.content_id, repos=repos, base_url=settings.base_url
        )
    except ContentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    return PreviewResponse(
        subject=content.subject,
        content=content.content,
        type=content.type,
        project_id=str(content.project_id) if content.project_id else None,
    )


@router.post(
    "/announce",
    response_model=SendResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse, "description": "Announcements disabled for kind"},
    },
    summary="Announce a content record to subscribers",
)
def announce_content(
    body: ContentRequest,
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
    repos: ContentRepos = Depends(get_content_repos),
    subscriber_repo: SQLiteSubscriberRepo = Depends(get_subscriber_repo),
    newsletter_repo: SQLiteNewsletterRepo = Depends(get_newsletter_repo),
    dispatcher: MailDispatcher = Depends(get_mail_dispatcher),
    config: DispatchConfig = Depends(get_dispatch_config),
    sleep: Callable[[float], None] = Depends(get_sleep),
) -> SendResponse:
    result = announce(
        body.type,
        body.content_id,
        repos=repos,
        announcements=rules.announcements,
        subscriber_repo=subscriber_repo,
        newsletter_repo=newsletter_repo,
        dispatcher=dispatcher,
        config=config,
        base_url=settings.base_url,
        sleep=sleep,
    )
    return _dispatch_to_response(result)


# --- History ---


@router.get(
    "/sends",
    response_model=list[NewsletterResponse],
    responses={401: {"model": ErrorResponse}},
    summary="List sent newsletters",
)
def list_sends(
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    newsletter_repo: SQLiteNewsletterRepo = Depends(get_newsletter_repo),
) -> list[NewsletterResponse]:
    return [
        _newsletter_to_response(n)
        for n in newsletter_repo.list_recent(limit=limit, offset=offset)
    ]


@router.get(
    "/sends/{newsletter_id}",
    response_model=NewsletterDetailResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Get a sent newsletter with deliveries",
)
def get_send(
    newsletter_id: UUID,
    user: User = Depends(get_current_user),
    newsletter_repo: SQLiteNewsletterRepo = Depends(get_newsletter_repo),
) -> NewsletterDetailResponse:
    newsletter = newsletter_repo.get_by_id(newsletter_id)
    if not newsletter:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Newsletter not found")

    return NewsletterDetailResponse(
        **_newsletter_to_response(newsletter).model_dump(),
        content=newsletter.content,
        project_id=str(newsletter.project_id) if newsletter.project_id else None,
        deliveries=[
            DeliveryResponse(
                email=d.email,
                status=d.status.value,
                attempts=d.attempts,
                message_id=d.message_id,
                error=d.error,
            )
            for d in newsletter_repo.list_deliveries(newsletter.id)
        ],
    )
