import logging
import os
import time
from collections.abc import Callable
from functools import lru_cache
from pathlib import Path
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from src.adapters.rate_limit import InMemoryRateLimiter
from src.adapters.sqlite_db import (
    SQLiteCareerRepo,
    SQLiteCertificateRepo,
    SQLiteEmailSettingsRepo,
    SQLiteNewsletterRepo,
    SQLitePageViewRepo,
    SQLiteProjectRepo,
    SQLiteSkillRepo,
    SQLiteSubscriberRepo,
    SQLiteUserRepo,
)
from src.api.auth_utils import SESSION_COOKIE, decode_access_token
from src.components.content import ContentRepos
from src.components.dispatch import DispatchConfig
from src.components.mailer import (
    MailDispatcher,
    NewsletterEmailSender,
    build_transport,
    resolve_mail_config,
)
from src.components.newsletter import NewsletterConfig
from src.core.ports.email import EmailConfigError
from src.domain.entities import User
from src.rules.loader import load_rules
from src.rules.models import Rules

logger = logging.getLogger(__name__)


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("PORTFOLIO_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "portfolio.db")
        self.rules_path = Path(os.environ.get("PORTFOLIO_RULES_PATH", self.base_dir / "rules.yaml"))
        self.base_url = (
            os.environ.get("NEXT_PUBLIC_APP_URL")
            or os.environ.get("APP_URL")
            or "http://localhost:3000"
        )
        self.environment = os.environ.get("APP_ENV", "development")


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


# --- Repos ---
def get_subscriber_repo(settings: Settings = Depends(get_settings)) -> SQLiteSubscriberRepo:
    return SQLiteSubscriberRepo(settings.db_path)


def get_newsletter_repo(settings: Settings = Depends(get_settings)) -> SQLiteNewsletterRepo:
    return SQLiteNewsletterRepo(settings.db_path)


def get_email_settings_repo(
    settings: Settings = Depends(get_settings),
) -> SQLiteEmailSettingsRepo:
    return SQLiteEmailSettingsRepo(settings.db_path)


def get_page_view_repo(settings: Settings = Depends(get_settings)) -> SQLitePageViewRepo:
    return SQLitePageViewRepo(settings.db_path)


def get_user_repo(settings: Settings = Depends(get_settings)) -> SQLiteUserRepo:
    return SQLiteUserRepo(settings.db_path)


def get_content_repos(settings: Settings = Depends(get_settings)) -> ContentRepos:
    return ContentRepos(
        projects=SQLiteProjectRepo(settings.db_path),
        certificates=SQLiteCertificateRepo(settings.db_path),
        skills=SQLiteSkillRepo(settings.db_path),
        careers=SQLiteCareerRepo(settings.db_path),
    )


# --- Component Configuration ---
def get_newsletter_config(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> NewsletterConfig:
    return NewsletterConfig(
        token_ttl_days=rules.newsletter.token_ttl_days,
        rate_limit_per_ip_per_hour=rules.newsletter.rate_limit_per_ip_per_hour,
        site_name=rules.email.site_name,
        base_url=settings.base_url,
        confirm_path=rules.newsletter.confirm_path,
        unsubscribe_path=rules.newsletter.unsubscribe_path,
    )


def get_disposable_domains(rules: Rules = Depends(get_rules)) -> set[str] | None:
    """None falls back to the component's built-in list."""
    return set(rules.newsletter.disposable_email_domains) or None


def get_dispatch_config(rules: Rules = Depends(get_rules)) -> DispatchConfig:
    return DispatchConfig(
        max_concurrency=rules.dispatch.max_concurrency,
        sends_per_second=rules.dispatch.sends_per_second,
        max_attempts=rules.dispatch.max_attempts,
        backoff_seconds=tuple(rules.dispatch.backoff_seconds),
        unsubscribe_path=rules.newsletter.unsubscribe_path,
        token_ttl_days=rules.newsletter.token_ttl_days,
        token_refresh_days=rules.newsletter.token_refresh_days,
    )


def get_sleep() -> Callable[[float], None]:
    """Sleep used between delivery retries."""
    return time.sleep


# --- Mail ---
def get_mail_dispatcher(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
    email_settings_repo: SQLiteEmailSettingsRepo = Depends(get_email_settings_repo),
) -> MailDispatcher:
    """
    Dispatcher for the transport currently configured.

    Resolved per request so that saved email settings apply immediately.

    Raises:
        EmailConfigError: handled by the app's exception handler
    """
    config = resolve_mail_config(email_settings_repo.get(), os.environ, rules.email)
    return MailDispatcher(build_transport(config), config, environment=settings.environment)


def get_optional_mail_dispatcher(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
    email_settings_repo: SQLiteEmailSettingsRepo = Depends(get_email_settings_repo),
) -> MailDispatcher | None:
    """
    Dispatcher for subscriber-facing routes.

    An unusable mail configuration yields None; the lifecycle action still
    runs and only its notification email is skipped.
    """
    try:
        return get_mail_dispatcher(settings, rules, email_settings_repo)
    except EmailConfigError as e:
        logger.warning("Mail transport unavailable, skipping notification: %s", e)
        return None


def get_newsletter_email_sender(
    dispatcher: MailDispatcher = Depends(get_mail_dispatcher),
    rules: Rules = Depends(get_rules),
) -> NewsletterEmailSender:
    return NewsletterEmailSender(dispatcher, site_name=rules.email.site_name)


def get_optional_email_sender(
    dispatcher: MailDispatcher | None = Depends(get_optional_mail_dispatcher),
    rules: Rules = Depends(get_rules),
) -> NewsletterEmailSender | None:
    if dispatcher is None:
        return None
    return NewsletterEmailSender(dispatcher, site_name=rules.email.site_name)


# Rate limiter singleton (per process)
_rate_limiter_instance: InMemoryRateLimiter | None = None


def get_rate_limiter() -> InMemoryRateLimiter:
    """Get subscribe rate limiter singleton."""
    global _rate_limiter_instance
    if _rate_limiter_instance is None:
        _rate_limiter_instance = InMemoryRateLimiter()
    return _rate_limiter_instance


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    # Check X-Forwarded-For header (proxy)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


# --- Auth ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def get_current_user(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
) -> User:
    # 1. Cookie first (HttpOnly)
    cookie_token = request.cookies.get(SESSION_COOKIE)
    if cookie_token and cookie_token.startswith("Bearer "):
        token = cookie_token.split(" ")[1]

    # 2. Otherwise the Authorization header, via oauth2_scheme
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 3. Decode
    payload = decode_access_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if user_id is None or not isinstance(user_id, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    # 4. Fetch User
    user = user_repo.get_by_id(UUID(user_id))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if user.status != "active":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user",
        )

    return user
