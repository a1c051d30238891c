"""
Public newsletter endpoints for subscription management.

Every management action is authorized by the subscriber's token; no
login is involved.

Endpoints:
- POST /api/newsletter/subscribe - Start double opt-in
- GET|POST /api/newsletter/confirm - Confirm subscription
- GET /api/newsletter/verify - Look up the subscription behind a token
- POST /api/newsletter/preferences - Update content preferences
- POST /api/newsletter/unsubscribe - Delete the subscription
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.adapters.rate_limit import InMemoryRateLimiter
from src.adapters.sqlite_db import SQLiteSubscriberRepo
from src.api.deps import (
    get_client_ip,
    get_disposable_domains,
    get_newsletter_config,
    get_optional_email_sender,
    get_rate_limiter,
    get_subscriber_repo,
)
from src.components.mailer import NewsletterEmailSender
from src.components.newsletter import (
    ConfirmInput,
    NewsletterConfig,
    SubscribeInput,
    UnsubscribeInput,
    UpdatePreferencesInput,
    ValidationError,
    VerifyInput,
    run,
)

router = APIRouter()

# Error code -> HTTP status
ERROR_STATUS: dict[str, int] = {
    "EMPTY_EMAIL": status.HTTP_400_BAD_REQUEST,
    "INVALID_FORMAT": status.HTTP_400_BAD_REQUEST,
    "EMAIL_TOO_LONG": status.HTTP_400_BAD_REQUEST,
    "DISPOSABLE_EMAIL": status.HTTP_400_BAD_REQUEST,
    "MISSING_TOKEN": status.HTTP_400_BAD_REQUEST,
    "INVALID_STATE": status.HTTP_400_BAD_REQUEST,
    "INVALID_TOKEN": status.HTTP_404_NOT_FOUND,
    "TOKEN_EXPIRED": status.HTTP_410_GONE,
    "RATE_LIMIT": status.HTTP_429_TOO_MANY_REQUESTS,
}


# --- Request/Response Models ---


class SubscribeRequest(BaseModel):
    """Request body for newsletter subscription."""

    email: str = Field(..., description="Email address to subscribe")
    name: str | None = Field(None, max_length=200, description="Optional display name")


class TokenRequest(BaseModel):
    token: str = Field("", description="Subscription token from an email link")


class PreferencesRequest(BaseModel):
    token: str = Field("", description="Subscription token from an email link")
    preferences: dict[str, bool] = Field(
        default_factory=dict,
        description="Flags to change: projects, certificates, skills, careers",
    )


class MessageResponse(BaseModel):
    message: str


class PreferencesBody(BaseModel):
    projects: bool
    certificates: bool
    skills: bool
    careers: bool


class VerifyResponse(BaseModel):
    email: str
    name: str | None
    preferences: PreferencesBody
    confirmed: bool


class PreferencesResponse(BaseModel):
    message: str
    preferences: PreferencesBody


class ErrorResponse(BaseModel):
    """Error response."""

    message: str
    code: str


# --- Helper Functions ---


def error_response(errors: list[ValidationError]) -> JSONResponse:
    """First error as a {message, code} body with the mapped status."""
    if not errors:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Request could not be processed", "code": "ERROR"},
        )
    error = errors[0]
    return JSONResponse(
        status_code=ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST),
        content={"message": error.message, "code": error.code},
    )


_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    404: {"model": ErrorResponse, "description": "Unknown token"},
    410: {"model": ErrorResponse, "description": "Expired token"},
}


# --- Endpoints ---


@router.post(
    "/subscribe",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid email"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    },
    summary="Subscribe to newsletter",
)
def subscribe(
    body: SubscribeRequest,
    request: Request,
    repo: SQLiteSubscriberRepo = Depends(get_subscriber_repo),
    email_sender: NewsletterEmailSender | None = Depends(get_optional_email_sender),
    rate_limiter: InMemoryRateLimiter = Depends(get_rate_limiter),
    config: NewsletterConfig = Depends(get_newsletter_config),
    disposable_domains: set[str] | None = Depends(get_disposable_domains),
) -> MessageResponse | JSONResponse:
    """
    Start the double opt-in flow.

    The response is the same whether the address is new, pending or
    already confirmed, so it does not reveal subscription status.
    """
    result = run(
        SubscribeInput(email=body.email, name=body.name, ip_address=get_client_ip(request)),
        repo=repo,
        email_sender=email_sender,
        rate_limiter=rate_limiter,
        config=config,
        disposable_domains=disposable_domains,
    )
    if not result.success:
        return error_response(result.errors)

    return MessageResponse(message="Please check your email to confirm your subscription")


@router.api_route(
    "/confirm",
    methods=["GET", "POST"],
    response_model=MessageResponse,
    responses=_ERROR_RESPONSES,
    summary="Confirm newsletter subscription",
)
def confirm(
    token: str = "",
    repo: SQLiteSubscriberRepo = Depends(get_subscriber_repo),
    email_sender: NewsletterEmailSender | None = Depends(get_optional_email_sender),
    config: NewsletterConfig = Depends(get_newsletter_config),
) -> MessageResponse | JSONResponse:
    """Confirm via the token from the confirmation email. Idempotent."""
    result = run(ConfirmInput(token=token), repo=repo, email_sender=email_sender, config=config)
    if not result.success:
        return error_response(result.errors)

    if result.already_confirmed:
        return MessageResponse(message="Your subscription was already confirmed")
    return MessageResponse(message="Your subscription is now confirmed. Welcome!")


@router.get(
    "/verify",
    response_model=VerifyResponse,
    responses=_ERROR_RESPONSES,
    summary="Look up a subscription by token",
)
def verify(
    token: str = "",
    repo: SQLiteSubscriberRepo = Depends(get_subscriber_repo),
) -> VerifyResponse | JSONResponse:
    result = run(VerifyInput(token=token), repo=repo)
    if not result.success or result.email is None or result.preferences is None:
        return error_response(result.errors)

    return VerifyResponse(
        email=result.email,
        name=result.name,
        preferences=PreferencesBody(**result.preferences.to_dict()),
        confirmed=result.is_confirmed,
    )


@router.post(
    "/preferences",
    response_model=PreferencesResponse,
    responses=_ERROR_RESPONSES,
    summary="Update newsletter preferences",
)
def update_preferences(
    body: PreferencesRequest,
    repo: SQLiteSubscriberRepo = Depends(get_subscriber_repo),
) -> PreferencesResponse | JSONResponse:
    """Partial update; flags that are not sent keep their value."""
    result = run(UpdatePreferencesInput(token=body.token, preferences=body.preferences), repo=repo)
    if not result.success or result.preferences is None:
        return error_response(result.errors)

    return PreferencesResponse(
        message="Your preferences have been updated",
        preferences=PreferencesBody(**result.preferences.to_dict()),
    )


@router.post(
    "/unsubscribe",
    response_model=MessageResponse,
    responses=_ERROR_RESPONSES,
    summary="Unsubscribe from newsletter",
)
def unsubscribe(
    body: TokenRequest,
    repo: SQLiteSubscriberRepo = Depends(get_subscriber_repo),
    email_sender: NewsletterEmailSender | None = Depends(get_optional_email_sender),
) -> MessageResponse | JSONResponse:
    """Delete the subscription. The token stops working afterwards."""
    result = run(UnsubscribeInput(token=body.token), repo=repo, email_sender=email_sender)
    if not result.success:
        return error_response(result.errors)

    return MessageResponse(message="You have been unsubscribed. Sorry to see you go!")
