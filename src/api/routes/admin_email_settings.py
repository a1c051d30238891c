"""
Admin email settings API.

The settings row holds the SMTP credentials used for all outgoing mail.
It is created from EMAIL_* environment variables on first read. The SMTP
password is write-only: responses only say whether one is set.
"""

import logging
import os
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from src.adapters.sqlite_db import SQLiteEmailSettingsRepo
from src.api.deps import get_current_user, get_email_settings_repo, get_newsletter_email_sender
from src.components.mailer import EmailSettings, NewsletterEmailSender, settings_from_env
from src.core.ports.email import EmailSendError
from src.domain.entities import User

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Request/Response Models ---


class EmailSettingsResponse(BaseModel):
    smtp_server: str | None
    smtp_port: str | None
    smtp_user: str | None
    has_password: bool
    email_from: str | None
    admin_email: str | None
    send_auto_reply: bool
    updated_at: str


class EmailSettingsUpdateRequest(BaseModel):
    """Fields left out (or null) keep their value; an empty password keeps it too."""

    smtp_server: str | None = None
    smtp_port: str | None = None
    smtp_user: str | None = None
    smtp_password: str | None = None
    email_from: str | None = None
    admin_email: str | None = None
    send_auto_reply: bool | None = None

    @field_validator("smtp_port")
    @classmethod
    def port_is_number(cls, v: str | None) -> str | None:
        if v is None or v.strip() == "":
            return v
        if not v.strip().isdigit() or not 0 < int(v) < 65536:
            raise ValueError("SMTP port must be a number between 1 and 65535")
        return v.strip()


class SendTestEmailRequest(BaseModel):
    email: str = Field(..., description="Address to send the test email to")


class SendTestEmailResponse(BaseModel):
    success: bool
    message: str
    message_id: str | None = None


# --- Helper Functions ---


def _to_response(settings: EmailSettings) -> EmailSettingsResponse:
    return EmailSettingsResponse(
        smtp_server=settings.smtp_server,
        smtp_port=settings.smtp_port,
        smtp_user=settings.smtp_user,
        has_password=bool(settings.smtp_password),
        email_from=settings.email_from,
        admin_email=settings.admin_email,
        send_auto_reply=settings.send_auto_reply,
        updated_at=settings.updated_at.isoformat(),
    )


def _get_or_create(repo: SQLiteEmailSettingsRepo) -> EmailSettings:
    settings = repo.get()
    if settings is None:
        settings = repo.save(settings_from_env(os.environ))
        logger.info("Created email settings from environment")
    return settings


# --- Endpoints ---


@router.get("", response_model=EmailSettingsResponse)
def get_email_settings(
    user: User = Depends(get_current_user),
    repo: SQLiteEmailSettingsRepo = Depends(get_email_settings_repo),
) -> EmailSettingsResponse:
    return _to_response(_get_or_create(repo))


@router.put("", response_model=EmailSettingsResponse)
def update_email_settings(
    body: EmailSettingsUpdateRequest,
    user: User = Depends(get_current_user),
    repo: SQLiteEmailSettingsRepo = Depends(get_email_settings_repo),
) -> EmailSettingsResponse:
    settings = _get_or_create(repo)

    updates = body.model_dump(exclude_none=True)
    if not updates.get("smtp_password"):
        updates.pop("smtp_password", None)
    for key, value in updates.items():
        if isinstance(value, str) and key != "smtp_password":
            value = value.strip() or None
        setattr(settings, key, value)
    settings.updated_at = datetime.now(UTC)

    repo.save(settings)
    logger.info("Admin %s updated email settings (%s)", user.id, ", ".join(sorted(updates)))
    return _to_response(settings)


@router.post("/test", response_model=SendTestEmailResponse)
def send_test_email(
    body: SendTestEmailRequest,
    user: User = Depends(get_current_user),
    sender: NewsletterEmailSender = Depends(get_newsletter_email_sender),
) -> SendTestEmailResponse:
    """Send a test email with the current settings."""
    try:
        result = sender.send_test_email(body.email)
    except EmailSendError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Test email failed: {e.error}",
        ) from e

    return SendTestEmailResponse(
        success=True,
        message=f"Test email sent to {body.email}",
        message_id=result.message_id,
    )
