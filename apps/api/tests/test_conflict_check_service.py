"""Tests for conflict checks and lead conversion."""

import uuid

import pytest

from lexdesk.core.errors import NotFoundError, UnresolvedConflictsError, ValidationFailedError
from lexdesk.db.enums import (
    AuditEventType,
    ConflictCheckStatus,
    ConflictResolution,
    LeadStatus,
    NotificationType,
)
from lexdesk.db.models import AuditLog, Client, ConflictCheck, Lead
from lexdesk.services import conflict_check_service, lead_service
from lexdesk.utils.dates import utc_now


def _lead(db, org, **kwargs):
    lead = Lead(
        id=uuid.uuid4(),
        organization_id=org.id,
        first_name=kwargs.pop("first_name", "Jane"),
        last_name=kwargs.pop("last_name", "Doe"),
        email=kwargs.pop("email", "jane@example.com"),
        practice_area=kwargs.pop("practice_area", "Personal Injury"),
        **kwargs,
    )
    db.add(lead)
    db.commit()
    return lead


def _client(db, org, **kwargs):
    client = Client(id=uuid.uuid4(), organization_id=org.id, **kwargs)
    db.add(client)
    db.commit()
    return client


# =============================================================================
# Conflict checks
# =============================================================================

def test_clear_check(db, test_org, test_user, publisher):
    lead = _lead(db, test_org)

    check = conflict_check_service.run_conflict_check(
        db, test_org.id, lead.id, test_user.id, publisher=publisher
    )

    assert check.status == ConflictCheckStatus.NO_CONFLICT.value
    assert check.confidence_score == 100
    assert check.results == {"status": "clear", "conflicts": []}
    assert check.search_terms == {"name": "Jane Doe", "email": "jane@example.com"}
    assert publisher.events == []


def test_name_match_is_case_insensitive(db, test_org, test_user, publisher):
    _client(db, test_org, first_name="JANE", last_name="doe")
    lead = _lead(db, test_org, email=None)

    check = conflict_check_service.run_conflict_check(
        db, test_org.id, lead.id, test_user.id, publisher=publisher
    )

    assert check.status == ConflictCheckStatus.CONFLICT_FOUND.value
    assert check.confidence_score == 95
    conflicts = check.results["conflicts"]
    assert [c["match_type"] for c in conflicts] == ["name"]
    assert publisher.events[0].event_type == NotificationType.CONFLICT_FOUND


def test_email_and_company_matches(db, test_org, test_user, publisher):
    _client(db, test_org, first_name="Other", email="JANE@example.com")
    _client(db, test_org, company_name="Acme Trucking")
    lead = _lead(db, test_org, company_name="acme  trucking")

    check = conflict_check_service.run_conflict_check(
        db, test_org.id, lead.id, test_user.id, publisher=publisher
    )
    match_types = sorted(c["match_type"] for c in check.results["conflicts"])
    assert match_types == ["company", "email"]


def test_other_org_clients_do_not_match(db, test_org, other_org, test_user, publisher):
    _client(db, other_org, first_name="Jane", last_name="Doe")
    lead = _lead(db, test_org)

    check = conflict_check_service.run_conflict_check(
        db, test_org.id, lead.id, test_user.id, publisher=publisher
    )
    assert check.status == ConflictCheckStatus.NO_CONFLICT.value


def test_rerun_replaces_open_checks_but_keeps_resolved(db, test_org, test_user, publisher):
    _client(db, test_org, first_name="Jane", last_name="Doe")
    lead = _lead(db, test_org)

    first = conflict_check_service.run_conflict_check(db, test_org.id, lead.id, test_user.id, publisher=publisher)
    conflict_check_service.resolve_conflict(
        db, test_org.id, first.id, test_user.id, ConflictResolution.NOT_A_CONFLICT
    )
    conflict_check_service.run_conflict_check(db, test_org.id, lead.id, test_user.id, publisher=publisher)
    conflict_check_service.run_conflict_check(db, test_org.id, lead.id, test_user.id, publisher=publisher)

    checks = conflict_check_service.list_conflict_checks_for_lead(db, test_org.id, lead.id)
    statuses = sorted(c.status for c in checks)
    assert statuses == [ConflictCheckStatus.CONFLICT_FOUND.value, ConflictCheckStatus.RESOLVED.value]


def test_run_check_for_missing_lead(db, test_org, test_user):
    with pytest.raises(NotFoundError):
        conflict_check_service.run_conflict_check(db, test_org.id, uuid.uuid4(), test_user.id)


def test_resolve_twice_is_rejected(db, test_org, test_user, publisher):
    _client(db, test_org, first_name="Jane", last_name="Doe")
    lead = _lead(db, test_org)
    check = conflict_check_service.run_conflict_check(db, test_org.id, lead.id, test_user.id, publisher=publisher)

    resolved = conflict_check_service.resolve_conflict(
        db, test_org.id, check.id, test_user.id, ConflictResolution.WAIVER_OBTAINED, notes="Signed waiver on file"
    )
    assert resolved.resolution == "waiver_obtained"
    assert resolved.resolved_by_user_id == test_user.id
    assert resolved.resolved_at is not None

    with pytest.raises(ValidationFailedError):
        conflict_check_service.resolve_conflict(
            db, test_org.id, check.id, test_user.id, ConflictResolution.NOT_A_CONFLICT
        )


# =============================================================================
# Lead conversion
# =============================================================================

def test_convert_lead_runs_check_and_creates_client(db, test_org, test_user, publisher):
    lead = _lead(db, test_org, phone="+15551234567")

    result = lead_service.convert_lead_to_client(
        db, test_org.id, lead.id, test_user.id, case_title="Doe v. Acme", publisher=publisher
    )

    assert result.lead.status == LeadStatus.CONVERTED.value
    assert result.lead.client_id == result.client.id
    assert result.lead.converted_at is not None
    assert result.client.full_name == "Jane Doe"
    assert result.client.phone == "+15551234567"
    assert result.case.case_number == f"{utc_now().year}-0001"
    assert result.case.practice_area == "Personal Injury"

    assert conflict_check_service.has_any_check(db, test_org.id, lead.id)
    assert publisher.events[-1].event_type == NotificationType.CLIENT_CONVERSION

    audit = db.query(AuditLog).filter(
        AuditLog.event_type == AuditEventType.LEAD_CONVERTED_TO_CLIENT.value
    ).one()
    assert audit.details["client_id"] == str(result.client.id)


def test_case_numbers_increment(db, test_org, test_user, publisher):
    first = _lead(db, test_org, first_name="A", email="a@example.com")
    second = _lead(db, test_org, first_name="B", email="b@example.com")

    lead_service.convert_lead_to_client(db, test_org.id, first.id, test_user.id, case_title="One", publisher=publisher)
    result = lead_service.convert_lead_to_client(
        db, test_org.id, second.id, test_user.id, case_title="Two", publisher=publisher
    )
    assert result.case.case_number.endswith("-0002")


def test_convert_without_case_title(db, test_org, test_user, publisher):
    lead = _lead(db, test_org)
    result = lead_service.convert_lead_to_client(db, test_org.id, lead.id, test_user.id, publisher=publisher)
    assert result.case is None


def test_conflict_blocks_conversion_until_resolved(db, test_org, test_user, publisher):
    _client(db, test_org, first_name="Jane", last_name="Doe")
    lead = _lead(db, test_org)

    with pytest.raises(UnresolvedConflictsError):
        lead_service.convert_lead_to_client(db, test_org.id, lead.id, test_user.id, publisher=publisher)

    db.refresh(lead)
    assert lead.status == LeadStatus.NEW.value
    assert db.query(Client).filter(Client.organization_id == test_org.id).count() == 1

    check = db.query(ConflictCheck).filter(ConflictCheck.entity_id == lead.id).one()
    conflict_check_service.resolve_conflict(
        db, test_org.id, check.id, test_user.id, ConflictResolution.NOT_A_CONFLICT
    )

    result = lead_service.convert_lead_to_client(db, test_org.id, lead.id, test_user.id, publisher=publisher)
    assert result.lead.status == LeadStatus.CONVERTED.value


def test_convert_twice_is_rejected(db, test_org, test_user, publisher):
    lead = _lead(db, test_org)
    lead_service.convert_lead_to_client(db, test_org.id, lead.id, test_user.id, publisher=publisher)

    with pytest.raises(ValidationFailedError):
        lead_service.convert_lead_to_client(db, test_org.id, lead.id, test_user.id, publisher=publisher)


def test_convert_other_org_lead(db, test_org, other_org, test_user):
    lead = _lead(db, other_org)
    with pytest.raises(NotFoundError):
        lead_service.convert_lead_to_client(db, test_org.id, lead.id, test_user.id)


def test_list_leads_by_score(db, test_org):
    low = _lead(db, test_org, first_name="Low", lead_score=10)
    high = _lead(db, test_org, first_name="High", lead_score=90)

    leads = lead_service.list_leads(db, test_org.id)
    assert [lead.id for lead in leads] == [high.id, low.id]
