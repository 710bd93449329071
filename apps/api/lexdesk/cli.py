"""CLI tools for LexDesk administration."""

import asyncio

import click

from lexdesk.db.enums import Role
from lexdesk.db.models import Membership, Organization, User
from lexdesk.db.session import SessionLocal
from lexdesk.services import calendar_service
from lexdesk.utils.normalization import normalize_email


@click.group()
def cli():
    """LexDesk CLI tools."""
    pass


@cli.command()
@click.option("--name", required=True, help="Organization (firm) name")
@click.option("--slug", required=True, help="URL-friendly slug (lowercase, no spaces)")
@click.option("--admin-email", required=True, help="Admin email address")
@click.option("--admin-name", default=None, help="Admin display name (defaults to email)")
@click.option("--timezone", "tz", default="America/New_York", help="Firm timezone")
def create_org(name: str, slug: str, admin_email: str, admin_name: str | None, tz: str):
    """
    Create organization and its first admin user.

    This is the bootstrap command for setting up a new firm.

    Example:
        python -m lexdesk.cli create-org --name "Acme Law" --slug "acme" --admin-email "admin@acme.com"
    """
    db = SessionLocal()
    try:
        slug = slug.lower().strip()
        if not slug.replace("-", "").replace("_", "").isalnum():
            click.echo("❌ Slug must be alphanumeric (with optional hyphens/underscores)")
            return

        existing = db.query(Organization).filter(Organization.slug == slug).first()
        if existing:
            click.echo(f"❌ Organization with slug '{slug}' already exists")
            return

        email = normalize_email(admin_email)
        org = Organization(name=name, slug=slug, timezone=tz)
        db.add(org)
        db.flush()

        user = db.query(User).filter(User.email == email).first()
        if not user:
            user = User(email=email, display_name=admin_name or email)
            db.add(user)
            db.flush()

        db.add(Membership(organization_id=org.id, user_id=user.id, role=Role.ADMIN.value))
        db.commit()

        click.echo(f"✓ Created organization: {name}")
        click.echo(f"  ID: {org.id}")
        click.echo(f"  Slug: {slug}")
        click.echo(f"✓ Added {email} as admin")

    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
def process_reminders():
    """Run one calendar reminder sweep across all organizations."""
    db = SessionLocal()
    try:
        result = calendar_service.process_event_reminders(db)
        click.echo(f"✓ Events checked: {result.events_checked}")
        click.echo(f"  Reminders fired: {result.reminders_fired}")
        click.echo(f"  Marked missed: {result.reminders_marked_missed}")
        if result.notify_failures:
            click.echo(f"  Notification failures: {result.notify_failures}")
        for error in result.errors:
            click.echo(f"❌ Org {error['org_id']}: {error['error']}")
    finally:
        db.close()


@cli.command()
@click.option("--limit", default=None, type=int, help="Max jobs to process")
def process_jobs(limit: int | None):
    """Process one batch of pending background jobs."""
    from lexdesk.worker import process_pending_jobs

    db = SessionLocal()
    try:
        stats = asyncio.run(process_pending_jobs(db, limit=limit))
        click.echo(
            f"✓ Processed {stats['processed']} jobs "
            f"({stats['completed']} completed, {stats['failed']} failed)"
        )
    finally:
        db.close()


if __name__ == "__main__":
    cli()
