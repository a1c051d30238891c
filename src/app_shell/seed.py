"""
Development seed data: an admin user and one record of each content kind.

Everything is written in a single unit of work; re-running is a no-op once
the admin user exists.
"""

import logging
from datetime import UTC, datetime

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite_db import SQLiteUnitOfWork
from src.api.auth_utils import get_password_hash
from src.domain.entities import Career, Certificate, Project, ProjectFeature, Skill, User

logger = logging.getLogger(__name__)

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "changeme"


def seed(db_path: str) -> bool:
    """Returns False when the database was already seeded."""
    SQLiteMigrator(db_path).run_migrations()

    with SQLiteUnitOfWork(db_path) as uow:
        if uow.users.get_by_email(ADMIN_EMAIL):
            logger.info("User %s already exists; skipping seed", ADMIN_EMAIL)
            return False

        uow.users.save(
            User(
                email=ADMIN_EMAIL,
                display_name="Admin",
                password_hash=get_password_hash(ADMIN_PASSWORD),
            )
        )
        uow.projects.save(
            Project(
                title="Portfolio Site",
                description="Personal site with a newsletter for new work.",
                technologies=["Python", "FastAPI", "SQLite"],
                features=[
                    ProjectFeature(name="Newsletter", description="Double opt-in subscriptions"),
                    ProjectFeature(name="Analytics", description="Page view counts"),
                ],
            )
        )
        uow.certificates.save(
            Certificate(
                name="Cloud Practitioner",
                issuer="Example Academy",
                date=datetime(2024, 3, 15, tzinfo=UTC),
            )
        )
        uow.skills.save(Skill(name="Python", category="Languages", level="Expert", years=8))
        uow.careers.save(
            Career(
                position="Software Engineer",
                company="Example Corp",
                start_date=datetime(2021, 6, 1, tzinfo=UTC),
                location="Remote",
                description="Backend services and tooling.",
            )
        )
        uow.commit()

    logger.info("Seeded %s (admin: %s / %s)", db_path, ADMIN_EMAIL, ADMIN_PASSWORD)
    return True
