"""Tests for the admin CLI."""

from click.testing import CliRunner

from lexdesk.cli import cli
from lexdesk.db.enums import Role
from lexdesk.db.models import Membership, Organization, User


def test_create_org(db):
    runner = CliRunner()
    result = runner.invoke(cli, [
        "create-org",
        "--name", "Acme Law",
        "--slug", "Acme-Law",
        "--admin-email", "Admin@Acme.com",
    ])

    assert result.exit_code == 0, result.output
    assert "✓ Created organization: Acme Law" in result.output

    org = db.query(Organization).filter(Organization.slug == "acme-law").one()
    user = db.query(User).filter(User.email == "admin@acme.com").one()
    membership = db.query(Membership).filter(Membership.organization_id == org.id).one()
    assert membership.user_id == user.id
    assert membership.role == Role.ADMIN.value


def test_create_org_duplicate_slug(db, test_org):
    db.commit()
    runner = CliRunner()
    result = runner.invoke(cli, [
        "create-org", "--name", "Dup", "--slug", test_org.slug, "--admin-email", "a@b.com",
    ])
    assert "already exists" in result.output


def test_create_org_bad_slug(db):
    result = CliRunner().invoke(cli, [
        "create-org", "--name", "Bad", "--slug", "bad slug!", "--admin-email", "a@b.com",
    ])
    assert "Slug must be alphanumeric" in result.output


def test_process_jobs_empty(db):
    result = CliRunner().invoke(cli, ["process-jobs"])
    assert result.exit_code == 0, result.output
    assert "Processed 0 jobs" in result.output
