"""CLI tools for Company Hub administration."""

import logging

import click

from companyhub.core.config import settings
from companyhub.core.errors import CompanyHubError
from companyhub.db.enums import Role
from companyhub.db.session import SessionLocal
from companyhub.services import (
    company_service,
    membership_service,
    notification_service,
    user_service,
)


@click.group()
def cli():
    """Company Hub CLI tools."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--name", required=True, help="Company name")
@click.option("--slug", required=True, help="URL-friendly slug (lowercase, no spaces)")
@click.option("--admin-email", default=None, help="Existing user to make the first admin")
def create_company(name: str, slug: str, admin_email: str | None):
    """
    Create a company, optionally with an initial admin.

    This is the bootstrap command for setting up a new tenant.

    Example:
        companyhub create-company --name "Acme Corp" --slug "acme" --admin-email "admin@acme.com"
    """
    db = SessionLocal()
    try:
        admin = None
        if admin_email:
            admin = user_service.get_user_by_email(db, admin_email)
            if not admin:
                click.echo(f"❌ User not found: {admin_email}")
                raise SystemExit(1)

        company = company_service.create_company(db, name=name, slug=slug)
        if admin:
            membership_service.add_member(db, admin.id, company.id, Role.ADMIN)
        db.commit()

        click.echo(f"✓ Created company: {company.name}")
        click.echo(f"  ID: {company.id}")
        click.echo(f"  Slug: {company.slug}")
        if admin:
            click.echo(f"✓ Added {admin.email} with role: admin")

    except CompanyHubError as e:
        db.rollback()
        click.echo(f"❌ Error: {e.message}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email address")
@click.option("--display-name", required=True, help="Name shown to other members")
def create_user(email: str, display_name: str):
    """
    Create a user account.

    Example:
        companyhub create-user --email "jane@acme.com" --display-name "Jane Doe"
    """
    db = SessionLocal()
    try:
        user = user_service.create_user(db, email=email, display_name=display_name)
        db.commit()

        click.echo(f"✓ Created user: {user.email}")
        click.echo(f"  ID: {user.id}")

    except CompanyHubError as e:
        db.rollback()
        click.echo(f"❌ Error: {e.message}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--company-slug", required=True, help="Company slug")
@click.option("--email", required=True, help="User email address")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.MEMBER.value,
    show_default=True,
    help="Role within the company",
)
def add_member(company_slug: str, email: str, role: str):
    """
    Add an existing user to a company.

    Example:
        companyhub add-member --company-slug "acme" --email "jane@acme.com" --role manager
    """
    from companyhub.db.models import Company

    db = SessionLocal()
    try:
        company = db.query(Company).filter(Company.slug == company_slug.lower()).first()
        if not company:
            click.echo(f"❌ Company not found: {company_slug}")
            raise SystemExit(1)

        user = user_service.get_user_by_email(db, email)
        if not user:
            click.echo(f"❌ User not found: {email}")
            raise SystemExit(1)

        membership_service.add_member(db, user.id, company.id, Role(role))
        db.commit()

        click.echo(f"✓ Added {user.email} to {company.name} with role: {role}")

    except CompanyHubError as e:
        db.rollback()
        click.echo(f"❌ Error: {e.message}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a user by bumping their token_version.

    Example:
        companyhub revoke-sessions --email "user@example.com"
    """
    db = SessionLocal()
    try:
        user = user_service.get_user_by_email(db, email)
        if not user:
            click.echo(f"❌ User not found: {email}")
            raise SystemExit(1)

        old_version = user.token_version
        user.token_version += 1
        db.commit()

        click.echo(f"✓ Revoked all sessions for {user.email}")
        click.echo(f"  Token version: {old_version} → {user.token_version}")

    finally:
        db.close()


@cli.command()
@click.option(
    "--days",
    type=click.IntRange(min=1),
    default=settings.NOTIFICATION_RETENTION_DAYS,
    show_default=True,
    help="Delete read/dismissed notifications older than this many days",
)
def cleanup_notifications(days: int):
    """
    Delete old read and dismissed notifications across all companies.

    Unread notifications are never deleted. Intended to run from cron.

    Example:
        companyhub cleanup-notifications --days 30
    """
    db = SessionLocal()
    try:
        deleted = notification_service.cleanup(db, days)
        db.commit()
        click.echo(f"✓ Deleted {deleted} notification(s) older than {days} day(s)")

    except CompanyHubError as e:
        db.rollback()
        click.echo(f"❌ Error: {e.message}")
        raise SystemExit(1)
    finally:
        db.close()


if __name__ == "__main__":
    cli()
