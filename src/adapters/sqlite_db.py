"""
SQLite Database Adapter.

Implements the component repository ports using SQLite.

Datetimes are stored as UTC ISO-8601 strings so that range filters can
compare them as text.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from src.components.dispatch.models import (
    DeliveryStatus,
    DispatchStatus,
    Newsletter,
    NewsletterDelivery,
)
from src.components.mailer.models import EmailSettings
from src.components.newsletter.models import (
    Subscriber,
    SubscriberPreferences,
    SubscriptionError,
)
from src.domain.entities import (
    Career,
    Certificate,
    PageView,
    Project,
    ProjectFeature,
    Skill,
    User,
)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def to_iso(dt: datetime | None) -> str | None:
    """Serialize as UTC ISO string. Naive datetimes are taken as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat()


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


def parse_uuid(s: str | None) -> UUID | None:
    """Parse UUID string."""
    return UUID(s) if s else None


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        """
        Connection for one repository call.

        Owned connections are committed on success, rolled back on error
        and closed. An external (unit of work) connection is left alone.
        """
        conn = self._get_conn()
        try:
            yield conn
            if self._should_close():
                conn.commit()
        except Exception:
            if self._should_close():
                conn.rollback()
            raise
        finally:
            if self._should_close():
                conn.close()


# -----------------------------------------------------------------------------
# Subscribers
# -----------------------------------------------------------------------------

_SUBSCRIBER_SELECT = """
    SELECT s.*, p.subscriber_id AS pref_subscriber_id,
           p.projects, p.certificates, p.skills, p.careers
    FROM subscribers s
    LEFT JOIN subscriber_preferences p ON p.subscriber_id = s.id
"""


class SQLiteSubscriberRepo(SQLiteRepoBase):
    """SQLite implementation of SubscriberRepoPort. Preferences are joined in."""

    def get_by_id(self, subscriber_id: UUID) -> Subscriber | None:
        return self._get_one("s.id = ?", str(subscriber_id))

    def get_by_email(self, email: str) -> Subscriber | None:
        return self._get_one("s.email = ?", email.strip().lower())

    def get_by_token(self, token: str) -> Subscriber | None:
        return self._get_one("s.token = ?", token)

    def _get_one(self, where: str, value: str) -> Subscriber | None:
        with self._session() as conn:
            row = conn.execute(f"{_SUBSCRIBER_SELECT} WHERE {where}", (value,)).fetchone()
            return self._map_row(row) if row else None

    def save(self, subscriber: Subscriber) -> Subscriber:
        """
        Insert or update subscriber and preferences.

        Raises:
            SubscriptionError: the email belongs to another subscriber
        """
        try:
            with self._session() as conn:
                conn.execute(
                    """
                    INSERT INTO subscribers (
                        id, email, name, token, token_issued_at, token_expires_at,
                        is_confirmed, confirmed_at, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        email=excluded.email,
                        name=excluded.name,
                        token=excluded.token,
                        token_issued_at=excluded.token_issued_at,
                        token_expires_at=excluded.token_expires_at,
                        is_confirmed=excluded.is_confirmed,
                        confirmed_at=excluded.confirmed_at
                    """,
                    (
                        str(subscriber.id),
                        subscriber.email.lower(),
                        subscriber.name,
                        subscriber.token,
                        to_iso(subscriber.token_issued_at),
                        to_iso(subscriber.token_expires_at),
                        int(subscriber.is_confirmed),
                        to_iso(subscriber.confirmed_at),
                        to_iso(subscriber.created_at),
                    ),
                )
                prefs = subscriber.preferences
                if prefs is None:
                    conn.execute(
                        "DELETE FROM subscriber_preferences WHERE subscriber_id = ?",
                        (str(subscriber.id),),
                    )
                else:
                    conn.execute(
                        """
                        INSERT INTO subscriber_preferences (
                            subscriber_id, projects, certificates, skills, careers
                        ) VALUES (?, ?, ?, ?, ?)
                        ON CONFLICT(subscriber_id) DO UPDATE SET
                            projects=excluded.projects,
                            certificates=excluded.certificates,
                            skills=excluded.skills,
                            careers=excluded.careers
                        """,
                        (
                            str(subscriber.id),
                            int(prefs.projects),
                            int(prefs.certificates),
                            int(prefs.skills),
                            int(prefs.careers),
                        ),
                    )
        except sqlite3.IntegrityError as e:
            raise SubscriptionError(subscriber.email, f"Could not save subscriber: {e}") from e
        return subscriber

    def delete(self, subscriber_id: UUID) -> bool:
        with self._session() as conn:
            cursor = conn.execute("DELETE FROM subscribers WHERE id = ?", (str(subscriber_id),))
            return cursor.rowcount > 0

    def delete_many(self, subscriber_ids: Iterable[UUID]) -> int:
        ids = [str(i) for i in subscriber_ids]
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        with self._session() as conn:
            cursor = conn.execute(f"DELETE FROM subscribers WHERE id IN ({placeholders})", ids)
            return cursor.rowcount

    def list_confirmed(self) -> list[Subscriber]:
        with self._session() as conn:
            rows = conn.execute(
                f"{_SUBSCRIBER_SELECT} WHERE s.is_confirmed = 1 ORDER BY s.created_at"
            ).fetchall()
            return [self._map_row(r) for r in rows]

    def list_all(
        self,
        limit: int = 100,
        offset: int = 0,
        confirmed: bool | None = None,
    ) -> list[Subscriber]:
        """Newest first."""
        where, params = self._confirmed_filter(confirmed)
        with self._session() as conn:
            rows = conn.execute(
                f"{_SUBSCRIBER_SELECT} {where} ORDER BY s.created_at DESC LIMIT ? OFFSET ?",
                (*params, limit, offset),
            ).fetchall()
            return [self._map_row(r) for r in rows]

    def count(self, confirmed: bool | None = None) -> int:
        where, params = self._confirmed_filter(confirmed)
        with self._session() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS n FROM subscribers s {where}", params).fetchone()
            return int(row["n"])

    @staticmethod
    def _confirmed_filter(confirmed: bool | None) -> tuple[str, tuple[Any, ...]]:
        if confirmed is None:
            return "", ()
        return "WHERE s.is_confirmed = ?", (int(confirmed),)

    def _map_row(self, row: dict[str, Any]) -> Subscriber:
        preferences = None
        if row["pref_subscriber_id"] is not None:
            preferences = SubscriberPreferences(
                projects=bool(row["projects"]),
                certificates=bool(row["certificates"]),
                skills=bool(row["skills"]),
                careers=bool(row["careers"]),
            )
        return Subscriber(
            id=UUID(row["id"]),
            email=row["email"],
            name=row["name"],
            token=row["token"],
            token_issued_at=datetime.fromisoformat(row["token_issued_at"]),
            token_expires_at=parse_dt(row["token_expires_at"]),
            is_confirmed=bool(row["is_confirmed"]),
            confirmed_at=parse_dt(row["confirmed_at"]),
            preferences=preferences,
            created_at=datetime.fromisoformat(row["created_at"]),
        )


# -----------------------------------------------------------------------------
# Newsletters
# -----------------------------------------------------------------------------


class SQLiteNewsletterRepo(SQLiteRepoBase):
    """SQLite implementation of NewsletterRepoPort."""

    def save(self, newsletter: Newsletter) -> Newsletter:
        with self._session() as conn:
            conn.execute(
                """
                INSERT INTO newsletters (
                    id, subject, content, type, project_id, status,
                    recipient_count, sent_count, failed_count, created_at, sent_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    status=excluded.status,
                    recipient_count=excluded.recipient_count,
                    sent_count=excluded.sent_count,
                    failed_count=excluded.failed_count,
                    sent_at=excluded.sent_at
                """,
                (
                    str(newsletter.id),
                    newsletter.subject,
                    newsletter.content,
                    newsletter.type,
                    str(newsletter.project_id) if newsletter.project_id else None,
                    newsletter.status.value,
                    newsletter.recipient_count,
                    newsletter.sent_count,
                    newsletter.failed_count,
                    to_iso(newsletter.created_at),
                    to_iso(newsletter.sent_at),
                ),
            )
        return newsletter

    def get_by_id(self, newsletter_id: UUID) -> Newsletter | None:
        with self._session() as conn:
            row = conn.execute(
                "SELECT * FROM newsletters WHERE id = ?", (str(newsletter_id),)
            ).fetchone()
            return self._map_row(row) if row else None

    def list_recent(self, limit: int = 50, offset: int = 0) -> list[Newsletter]:
        with self._session() as conn:
            rows = conn.execute(
                "SELECT * FROM newsletters ORDER BY created_at DESC LIMIT ? OFFSET ?",
                (limit, offset),
            ).fetchall()
            return [self._map_row(r) for r in rows]

    def count(self) -> int:
        with self._session() as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM newsletters").fetchone()
            return int(row["n"])

    def add_deliveries(self, deliveries: list[NewsletterDelivery]) -> None:
        with self._session() as conn:
            conn.executemany(
                """
                INSERT INTO newsletter_deliveries (
                    id, newsletter_id, subscriber_id, email, status,
                    message_id, error, attempts, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        str(d.id),
                        str(d.newsletter_id),
                        str(d.subscriber_id) if d.subscriber_id else None,
                        d.email,
                        d.status.value,
                        d.message_id,
                        d.error,
                        d.attempts,
                        to_iso(d.created_at),
                    )
                    for d in deliveries
                ],
            )

    def list_deliveries(self, newsletter_id: UUID) -> list[NewsletterDelivery]:
        with self._session() as conn:
            rows = conn.execute(
                "SELECT * FROM newsletter_deliveries WHERE newsletter_id = ? ORDER BY email",
                (str(newsletter_id),),
            ).fetchall()
            return [
                NewsletterDelivery(
                    id=UUID(r["id"]),
                    newsletter_id=UUID(r["newsletter_id"]),
                    subscriber_id=parse_uuid(r["subscriber_id"]),
                    email=r["email"],
                    status=DeliveryStatus(r["status"]),
                    message_id=r["message_id"],
                    error=r["error"],
                    attempts=r["attempts"],
                    created_at=datetime.fromisoformat(r["created_at"]),
                )
                for r in rows
            ]

    def _map_row(self, row: dict[str, Any]) -> Newsletter:
        return Newsletter(
            id=UUID(row["id"]),
            subject=row["subject"],
            content=row["content"],
            type=row["type"],
            project_id=parse_uuid(row["project_id"]),
            status=DispatchStatus(row["status"]),
            recipient_count=row["recipient_count"],
            sent_count=row["sent_count"],
            failed_count=row["failed_count"],
            created_at=datetime.fromisoformat(row["created_at"]),
            sent_at=parse_dt(row["sent_at"]),
        )


# -----------------------------------------------------------------------------
# Email settings (singleton)
# -----------------------------------------------------------------------------


class SQLiteEmailSettingsRepo(SQLiteRepoBase):
    """SQLite implementation of EmailSettingsRepoPort."""

    def get(self) -> EmailSettings | None:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM email_settings ORDER BY id LIMIT 1").fetchone()
            if not row:
                return None
            return EmailSettings(
                id=row["id"],
                smtp_server=row["smtp_server"] or None,
                smtp_port=row["smtp_port"] or None,
                smtp_user=row["smtp_user"] or None,
                smtp_password=row["smtp_password"] or None,
                email_from=row["email_from"] or None,
                admin_email=row["admin_email"] or None,
                send_auto_reply=bool(row["send_auto_reply"]),
                updated_at=datetime.fromisoformat(row["updated_at"]),
            )

    def save(self, settings: EmailSettings) -> EmailSettings:
        values = (
            settings.smtp_server or "",
            settings.smtp_port or "",
            settings.smtp_user or "",
            settings.smtp_password or "",
            settings.email_from or "",
            settings.admin_email or "",
            int(settings.send_auto_reply),
            to_iso(settings.updated_at),
        )
        with self._session() as conn:
            if settings.id is None:
                cursor = conn.execute(
                    """
                    INSERT INTO email_settings (
                        smtp_server, smtp_port, smtp_user, smtp_password,
                        email_from, admin_email, send_auto_reply, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    values,
                )
                settings.id = cursor.lastrowid
            else:
                conn.execute(
                    """
                    UPDATE email_settings SET
                        smtp_server = ?, smtp_port = ?, smtp_user = ?, smtp_password = ?,
                        email_from = ?, admin_email = ?, send_auto_reply = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (*values, settings.id),
                )
        return settings


# -----------------------------------------------------------------------------
# Portfolio content (read by the newsletter generators)
# -----------------------------------------------------------------------------


class SQLiteProjectRepo(SQLiteRepoBase):
    def get_by_id(self, project_id: UUID) -> Project | None:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM projects WHERE id = ?", (str(project_id),)).fetchone()
            if not row:
                return None
            features = conn.execute(
                "SELECT * FROM project_features WHERE project_id = ? ORDER BY position",
                (row["id"],),
            ).fetchall()
            return self._map_row(row, features)

    def save(self, project: Project) -> Project:
        with self._session() as conn:
            conn.execute(
                """
                INSERT INTO projects (
                    id, title, description, technologies_json, image_url, created_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title=excluded.title,
                    description=excluded.description,
                    technologies_json=excluded.technologies_json,
                    image_url=excluded.image_url
                """,
                (
                    str(project.id),
                    project.title,
                    project.description,
                    json.dumps(project.technologies),
                    project.image_url,
                    to_iso(project.created_at),
                ),
            )
            conn.execute("DELETE FROM project_features WHERE project_id = ?", (str(project.id),))
            conn.executemany(
                """INSERT INTO project_features
                (id, project_id, position, name, description) VALUES (?, ?, ?, ?, ?)""",
                [
                    (str(uuid4()), str(project.id), i, f.name, f.description)
                    for i, f in enumerate(project.features)
                ],
            )
        return project

    def _map_row(self, row: dict[str, Any], features: list[dict[str, Any]]) -> Project:
        return Project(
            id=UUID(row["id"]),
            title=row["title"],
            description=row["description"],
            technologies=json.loads(row["technologies_json"] or "[]"),
            image_url=row["image_url"],
            features=[ProjectFeature(name=f["name"], description=f["description"]) for f in features],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteCertificateRepo(SQLiteRepoBase):
    def get_by_id(self, certificate_id: UUID) -> Certificate | None:
        with self._session() as conn:
            row = conn.execute(
                "SELECT * FROM certificates WHERE id = ?", (str(certificate_id),)
            ).fetchone()
            if not row:
                return None
            return Certificate(
                id=UUID(row["id"]),
                name=row["name"],
                issuer=row["issuer"],
                date=datetime.fromisoformat(row["date"]),
                image_url=row["image_url"],
                link=row["link"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )

    def save(self, certificate: Certificate) -> Certificate:
        with self._session() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO certificates (
                    id, name, issuer, date, image_url, link, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(certificate.id),
                    certificate.name,
                    certificate.issuer,
                    to_iso(certificate.date),
                    certificate.image_url,
                    certificate.link,
                    to_iso(certificate.created_at),
                ),
            )
        return certificate


class SQLiteSkillRepo(SQLiteRepoBase):
    def get_by_id(self, skill_id: UUID) -> Skill | None:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM skills WHERE id = ?", (str(skill_id),)).fetchone()
            if not row:
                return None
            return Skill(
                id=UUID(row["id"]),
                name=row["name"],
                category=row["category"],
                level=row["level"],
                years=row["years"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )

    def save(self, skill: Skill) -> Skill:
        with self._session() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO skills (id, name, category, level, years, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    str(skill.id),
                    skill.name,
                    skill.category,
                    skill.level,
                    skill.years,
                    to_iso(skill.created_at),
                ),
            )
        return skill


class SQLiteCareerRepo(SQLiteRepoBase):
    def get_by_id(self, career_id: UUID) -> Career | None:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM careers WHERE id = ?", (str(career_id),)).fetchone()
            if not row:
                return None
            return Career(
                id=UUID(row["id"]),
                position=row["position"],
                company=row["company"],
                start_date=datetime.fromisoformat(row["start_date"]),
                end_date=parse_dt(row["end_date"]),
                location=row["location"],
                description=row["description"],
                logo_url=row["logo_url"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )

    def save(self, career: Career) -> Career:
        with self._session() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO careers (
                    id, position, company, start_date, end_date, location,
                    description, logo_url, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(career.id),
                    career.position,
                    career.company,
                    to_iso(career.start_date),
                    to_iso(career.end_date),
                    career.location,
                    career.description,
                    career.logo_url,
                    to_iso(career.created_at),
                ),
            )
        return career


# -----------------------------------------------------------------------------
# Analytics
# -----------------------------------------------------------------------------

# metric -> table; every table has a created_at column
METRIC_TABLES: dict[str, str] = {
    "pageviews": "page_views",
    "subscribers": "subscribers",
    "newsletters": "newsletters",
    "projects": "projects",
    "certificates": "certificates",
    "skills": "skills",
    "careers": "careers",
}


class SQLitePageViewRepo(SQLiteRepoBase):
    """PageViewRepoPort and MetricCounterPort."""

    def save(self, view: PageView) -> PageView:
        with self._session() as conn:
            conn.execute(
                "INSERT INTO page_views (id, path, created_at) VALUES (?, ?, ?)",
                (str(view.id), view.path, to_iso(view.created_at)),
            )
        return view

    def count(
        self,
        metric: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        table = METRIC_TABLES.get(metric)
        if table is None:
            raise ValueError(f"Unknown metric: {metric}")

        clauses: list[str] = []
        params: list[str] = []
        if start is not None:
            clauses.append("created_at >= ?")
            params.append(to_iso(start) or "")
        if end is not None:
            clauses.append("created_at < ?")
            params.append(to_iso(end) or "")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._session() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS n FROM {table} {where}", params).fetchone()
            return int(row["n"])

    def top_paths(self, start: datetime, end: datetime, limit: int = 10) -> list[tuple[str, int]]:
        with self._session() as conn:
            rows = conn.execute(
                """
                SELECT path, COUNT(*) AS n FROM page_views
                WHERE created_at >= ? AND created_at < ?
                GROUP BY path ORDER BY n DESC, path LIMIT ?
                """,
                (to_iso(start), to_iso(end), limit),
            ).fetchall()
            return [(r["path"], int(r["n"])) for r in rows]


# -----------------------------------------------------------------------------
# Users
# -----------------------------------------------------------------------------


class SQLiteUserRepo(SQLiteRepoBase):
    """Admin users."""

    def get_by_id(self, user_id: UUID) -> User | None:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (str(user_id),)).fetchone()
            return self._map_row(row) if row else None

    def get_by_email(self, email: str) -> User | None:
        with self._session() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?", (email.strip().lower(),)
            ).fetchone()
            return self._map_row(row) if row else None

    def save(self, user: User) -> User:
        with self._session() as conn:
            conn.execute(
                """
                INSERT INTO users (
                    id, email, display_name, password_hash, status,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    email=excluded.email,
                    display_name=excluded.display_name,
                    password_hash=excluded.password_hash,
                    status=excluded.status,
                    updated_at=excluded.updated_at
                """,
                (
                    str(user.id),
                    user.email.lower(),
                    user.display_name,
                    user.password_hash,
                    user.status,
                    to_iso(user.created_at),
                    to_iso(user.updated_at),
                ),
            )
        return user

    def list_all(self) -> list[User]:
        with self._session() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY email").fetchall()
            return [self._map_row(r) for r in rows]

    def _map_row(self, row: dict[str, Any]) -> User:
        return User(
            id=UUID(row["id"]),
            email=row["email"],
            display_name=row["display_name"],
            password_hash=row["password_hash"],
            status=row["status"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


# -----------------------------------------------------------------------------
# Unit of Work
# -----------------------------------------------------------------------------


class SQLiteUnitOfWork:
    """
    SQLite Unit of Work implementation.

    Repositories obtained from a unit of work share one connection; nothing
    is written until commit().
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def __enter__(self) -> SQLiteUnitOfWork:
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = dict_factory
        self._conn.execute("PRAGMA foreign_keys = ON;")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if exc_type is not None:
            self.rollback()
        if self._conn:
            self._conn.close()
            self._conn = None

    def commit(self) -> None:
        if self._conn:
            self._conn.commit()

    def rollback(self) -> None:
        if self._conn:
            self._conn.rollback()

    @property
    def users(self) -> SQLiteUserRepo:
        return SQLiteUserRepo(self.db_path, self._conn)

    @property
    def subscribers(self) -> SQLiteSubscriberRepo:
        return SQLiteSubscriberRepo(self.db_path, self._conn)

    @property
    def projects(self) -> SQLiteProjectRepo:
        return SQLiteProjectRepo(self.db_path, self._conn)

    @property
    def certificates(self) -> SQLiteCertificateRepo:
        return SQLiteCertificateRepo(self.db_path, self._conn)

    @property
    def skills(self) -> SQLiteSkillRepo:
        return SQLiteSkillRepo(self.db_path, self._conn)

    @property
    def careers(self) -> SQLiteCareerRepo:
        return SQLiteCareerRepo(self.db_path, self._conn)
