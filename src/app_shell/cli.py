import argparse
import getpass
import logging
import os
import sys
from uuid import UUID

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite_db import (
    SQLiteCareerRepo,
    SQLiteCertificateRepo,
    SQLiteEmailSettingsRepo,
    SQLiteNewsletterRepo,
    SQLiteProjectRepo,
    SQLiteSkillRepo,
    SQLiteSubscriberRepo,
    SQLiteUserRepo,
)
from src.api.auth_utils import get_password_hash
from src.api.deps import Settings, get_dispatch_config
from src.app_shell.seed import seed
from src.components.content import ContentRepos
from src.components.dispatch import announce
from src.components.mailer import (
    MailDispatcher,
    NewsletterEmailSender,
    build_transport,
    resolve_mail_config,
)
from src.core.ports.email import EmailError
from src.domain.entities import CONTENT_KINDS, User
from src.rules.loader import load_rules
from src.rules.models import Rules

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("cli")


def get_rules(settings: Settings) -> Rules:
    if not settings.rules_path.exists():
        logger.error(f"Rules file {settings.rules_path} not found.")
        sys.exit(1)
    return load_rules(settings.rules_path)


def build_dispatcher(settings: Settings, rules: Rules) -> MailDispatcher:
    config = resolve_mail_config(
        SQLiteEmailSettingsRepo(settings.db_path).get(), os.environ, rules.email
    )
    logger.info(f"Mail transport: {config.transport.value} ({config.source.value})")
    return MailDispatcher(build_transport(config), config, environment=settings.environment)


def handle_migrate(settings: Settings, args: argparse.Namespace) -> None:
    applied = SQLiteMigrator(settings.db_path).run_migrations()
    print(f"Applied {len(applied)} migration(s) to {settings.db_path}.")


def handle_seed(settings: Settings, args: argparse.Namespace) -> None:
    if seed(settings.db_path):
        print(f"Seeded {settings.db_path}.")
    else:
        print("Database already seeded.")


def handle_create_admin(settings: Settings, args: argparse.Namespace) -> None:
    repo = SQLiteUserRepo(settings.db_path)
    if repo.get_by_email(args.email):
        logger.error(f"User {args.email} already exists.")
        sys.exit(1)

    password = args.password or getpass.getpass("Password: ")
    if len(password) < 8:
        logger.error("Password must be at least 8 characters.")
        sys.exit(1)

    user = repo.save(
        User(
            email=args.email.strip().lower(),
            display_name=args.name or args.email.split("@")[0],
            password_hash=get_password_hash(password),
        )
    )
    print(f"Admin user created: {user.email} ({user.id})")


def handle_announce(settings: Settings, args: argparse.Namespace) -> None:
    try:
        content_id = UUID(args.content_id)
    except ValueError:
        logger.error(f"Not a valid id: {args.content_id}")
        sys.exit(1)

    rules = get_rules(settings)
    result = announce(
        args.kind,
        content_id,
        repos=ContentRepos(
            projects=SQLiteProjectRepo(settings.db_path),
            certificates=SQLiteCertificateRepo(settings.db_path),
            skills=SQLiteSkillRepo(settings.db_path),
            careers=SQLiteCareerRepo(settings.db_path),
        ),
        announcements=rules.announcements,
        subscriber_repo=SQLiteSubscriberRepo(settings.db_path),
        newsletter_repo=SQLiteNewsletterRepo(settings.db_path),
        dispatcher=build_dispatcher(settings, rules),
        config=get_dispatch_config(rules),
        base_url=settings.base_url,
    )

    for error in result.errors:
        logger.error(f"{error.code}: {error.message}")
    if result.status is not None:
        print(
            f"Newsletter {result.newsletter_id}: {result.status.value}, "
            f"{result.sent_count} sent, {result.failed_count} failed"
        )
    if not result.success:
        sys.exit(1)


def handle_send_test_email(settings: Settings, args: argparse.Namespace) -> None:
    rules = get_rules(settings)
    try:
        sender = NewsletterEmailSender(build_dispatcher(settings, rules), rules.email.site_name)
        result = sender.send_test_email(args.address)
    except EmailError as e:
        logger.error(f"Test email failed: {e}")
        sys.exit(1)
    print(f"Test email sent to {args.address} (message id: {result.message_id})")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Portfolio newsletter CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # seed
    subparsers.add_parser("seed", help="Create a dev admin user and sample content")

    # create-admin
    admin_parser = subparsers.add_parser("create-admin", help="Create an admin user")
    admin_parser.add_argument("email", help="Login email")
    admin_parser.add_argument("--name", help="Display name")
    admin_parser.add_argument("--password", help="Password (prompted if omitted)")

    # announce
    announce_parser = subparsers.add_parser(
        "announce", help="Send a newsletter about a content record"
    )
    announce_parser.add_argument("kind", choices=CONTENT_KINDS, help="Content kind")
    announce_parser.add_argument("content_id", help="Record id")

    # send-test-email
    test_parser = subparsers.add_parser(
        "send-test-email", help="Check mail settings by sending a test email"
    )
    test_parser.add_argument("address", help="Recipient address")

    args = parser.parse_args(argv)
    settings = Settings()

    if args.command == "migrate":
        handle_migrate(settings, args)
    elif args.command == "seed":
        handle_seed(settings, args)
    elif args.command == "create-admin":
        handle_create_admin(settings, args)
    elif args.command == "announce":
        handle_announce(settings, args)
    elif args.command == "send-test-email":
        handle_send_test_email(settings, args)


if __name__ == "__main__":
    main()
