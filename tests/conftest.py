from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.rate_limit import InMemoryRateLimiter
from src.adapters.sqlite.migrator import SQLiteMigrator
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
from src.api import deps
from src.api.main import app
from src.components.content import ContentRepos
from src.components.dispatch import DispatchConfig
from src.components.mailer import ConfigSource, MailConfig, MailDispatcher, TransportKind
from src.domain.entities import User
from src.rules.loader import load_rules
from src.rules.models import Rules

ROOT = Path(__file__).resolve().parents[1]
BASE_URL = "https://portfolio.test"
FAST_DISPATCH = DispatchConfig(
    max_concurrency=4,
    sends_per_second=1000,
    max_attempts=3,
    backoff_seconds=(1, 5),
)


@pytest.fixture
def db_path(tmp_path) -> str:
    """Temporary database with all migrations applied."""
    path = str(tmp_path / "portfolio.db")
    SQLiteMigrator(path, str(ROOT / "migrations")).run_migrations()
    return path


@pytest.fixture
def rules() -> Rules:
    return load_rules(ROOT / "rules.yaml")


@pytest.fixture
def settings(db_path) -> deps.Settings:
    s = deps.Settings()
    s.db_path = db_path
    s.base_url = BASE_URL
    s.environment = "test"
    return s


# --- Repositories ---


@pytest.fixture
def subscriber_repo(db_path) -> SQLiteSubscriberRepo:
    return SQLiteSubscriberRepo(db_path)


@pytest.fixture
def newsletter_repo(db_path) -> SQLiteNewsletterRepo:
    return SQLiteNewsletterRepo(db_path)


@pytest.fixture
def email_settings_repo(db_path) -> SQLiteEmailSettingsRepo:
    return SQLiteEmailSettingsRepo(db_path)


@pytest.fixture
def page_view_repo(db_path) -> SQLitePageViewRepo:
    return SQLitePageViewRepo(db_path)


@pytest.fixture
def user_repo(db_path) -> SQLiteUserRepo:
    return SQLiteUserRepo(db_path)


@pytest.fixture
def content_repos(db_path) -> ContentRepos:
    return ContentRepos(
        projects=SQLiteProjectRepo(db_path),
        certificates=SQLiteCertificateRepo(db_path),
        skills=SQLiteSkillRepo(db_path),
        careers=SQLiteCareerRepo(db_path),
    )


# --- Mail ---


@pytest.fixture
def mailbox() -> DevEmailAdapter:
    """Logging transport; every message that would be sent is kept here."""
    return DevEmailAdapter()


@pytest.fixture
def dispatcher(mailbox) -> MailDispatcher:
    config = MailConfig(
        transport=TransportKind.CONSOLE,
        source=ConfigSource.CONSOLE,
        sender="Portfolio <noreply@example.com>",
        admin_email="admin@example.com",
    )
    return MailDispatcher(mailbox, config, environment="test")


# --- App ---


@pytest.fixture
def admin_user(user_repo) -> User:
    return user_repo.save(
        User(email="admin@example.com", display_name="Admin", password_hash="unused")
    )


@pytest.fixture
def client(
    settings: deps.Settings,
    rules: Rules,
    dispatcher: MailDispatcher,
) -> Generator[TestClient, None, None]:
    """Unauthenticated client on the temporary database, mail captured in `mailbox`."""
    app.dependency_overrides[deps.get_settings] = lambda: settings
    app.dependency_overrides[deps.get_rules] = lambda: rules
    app.dependency_overrides[deps.get_mail_dispatcher] = lambda: dispatcher
    app.dependency_overrides[deps.get_optional_mail_dispatcher] = lambda: dispatcher
    app.dependency_overrides[deps.get_dispatch_config] = lambda: FAST_DISPATCH
    app.dependency_overrides[deps.get_sleep] = lambda: (lambda seconds: None)

    limiter = InMemoryRateLimiter()
    app.dependency_overrides[deps.get_rate_limiter] = lambda: limiter

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(client: TestClient, admin_user: User) -> TestClient:
    """Client authenticated as admin_user."""
    app.dependency_overrides[deps.get_current_user] = lambda: admin_user
    return client


@pytest.fixture
def subscribe(client: TestClient) -> Callable[..., str]:
    """Subscribe through the API; returns the address."""

    def _subscribe(email: str, name: str | None = None) -> str:
        body = {"email": email}
        if name:
            body["name"] = name
        response = client.post("/api/newsletter/subscribe", json=body)
        assert response.status_code == 200, response.text
        return email

    return _subscribe
