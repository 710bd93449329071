"""Tests for working leads through the pipeline."""

import uuid

import pytest

from lexdesk.core.errors import IllegalTransitionError, NotFoundError, ValidationFailedError
from lexdesk.db.enums import AuditEventType, LeadStatus, NotificationType
from lexdesk.db.models import AuditLog, Lead, User
from lexdesk.services import lead_service


def _lead(db, org, **kwargs):
    lead = Lead(
        id=uuid.uuid4(),
        organization_id=org.id,
        first_name="Jane",
        last_name="Doe",
        email="jane@example.com",
        practice_area="Personal Injury",
        **kwargs,
    )
    db.add(lead)
    db.commit()
    return lead


def _audit(db, event_type):
    return db.query(AuditLog).filter(AuditLog.event_type == event_type.value).all()


# =============================================================================
# Assignment
# =============================================================================

def test_assign_lead_notifies_assignee(db, test_org, test_user, publisher):
    lead = _lead(db, test_org)

    lead = lead_service.assign_lead(db, test_org.id, lead.id, test_user.id, test_user.id, publisher=publisher)

    assert lead.assigned_to_user_id == test_user.id
    event = publisher.events[-1]
    assert event.event_type == NotificationType.LEAD_ASSIGNED
    assert event.recipient_id == test_user.id
    assert event.title == "Lead Assigned"

    audit = _audit(db, AuditEventType.LEAD_ASSIGNED)
    assert len(audit) == 1
    assert audit[0].details == {"previous_user_id": None, "assigned_to_user_id": str(test_user.id)}


def test_assigned_lead_conversion_targets_assignee(db, test_org, test_user, publisher):
    lead = _lead(db, test_org)
    lead_service.assign_lead(db, test_org.id, lead.id, test_user.id, test_user.id, publisher=publisher)

    lead_service.convert_lead_to_client(db, test_org.id, lead.id, test_user.id, publisher=publisher)

    assert publisher.events[-1].event_type == NotificationType.CLIENT_CONVERSION
    assert publisher.events[-1].recipient_id == test_user.id


def test_reassign_to_same_user_is_a_no_op(db, test_org, test_user, publisher):
    lead = _lead(db, test_org, assigned_to_user_id=test_user.id)

    lead_service.assign_lead(db, test_org.id, lead.id, test_user.id, test_user.id, publisher=publisher)

    assert publisher.events == []
    assert _audit(db, AuditEventType.LEAD_ASSIGNED) == []


def test_assign_to_non_member_is_rejected(db, test_org, test_user, publisher):
    outsider = User(id=uuid.uuid4(), email="outsider@test.com", display_name="Outsider")
    db.add(outsider)
    lead = _lead(db, test_org)

    with pytest.raises(ValidationFailedError):
        lead_service.assign_lead(db, test_org.id, lead.id, outsider.id, test_user.id, publisher=publisher)

    db.refresh(lead)
    assert lead.assigned_to_user_id is None
    assert publisher.events == []


def test_assign_other_org_lead(db, test_org, other_org, test_user):
    lead = _lead(db, other_org)
    with pytest.raises(NotFoundError):
        lead_service.assign_lead(db, test_org.id, lead.id, test_user.id, test_user.id)


# =============================================================================
# Status changes
# =============================================================================

def test_lead_moves_through_pipeline(db, test_org, test_user, publisher):
    lead = _lead(db, test_org, assigned_to_user_id=test_user.id)

    lead_service.mark_contacted(db, test_org.id, lead.id, test_user.id, notes="Left voicemail", publisher=publisher)
    lead = lead_service.mark_qualified(db, test_org.id, lead.id, test_user.id, publisher=publisher)

    assert lead.status == LeadStatus.QUALIFIED.value
    assert lead.notes == "Left voicemail"

    audit = _audit(db, AuditEventType.LEAD_STATUS_CHANGED)
    assert sorted((a.details["from"], a.details["to"]) for a in audit) == [
        ("contacted", "qualified"),
        ("new", "contacted"),
    ]
    assert [e.event_type for e in publisher.events] == [NotificationType.LEAD_STATUS_CHANGED] * 2
    assert publisher.events[-1].recipient_id == test_user.id
    assert publisher.events[-1].payload == {"from": "contacted", "to": "qualified"}


def test_skipping_contacted_is_rejected(db, test_org, test_user, publisher):
    lead = _lead(db, test_org)

    with pytest.raises(IllegalTransitionError) as exc:
        lead_service.mark_qualified(db, test_org.id, lead.id, test_user.id, publisher=publisher)

    assert (exc.value.current, exc.value.target) == ("new", "qualified")
    db.refresh(lead)
    assert lead.status == LeadStatus.NEW.value
    assert publisher.events == []


def test_converted_lead_cannot_change_status(db, test_org, test_user, publisher):
    lead = _lead(db, test_org)
    lead_service.convert_lead_to_client(db, test_org.id, lead.id, test_user.id, publisher=publisher)

    with pytest.raises(IllegalTransitionError):
        lead_service.mark_lost(db, test_org.id, lead.id, test_user.id, reason="Hired other counsel")


def test_mark_lost_records_reason_and_blocks_conversion(db, test_org, test_user, publisher):
    lead = _lead(db, test_org)

    lead = lead_service.mark_lost(db, test_org.id, lead.id, test_user.id, reason="Hired other counsel",
                                  publisher=publisher)

    assert lead.status == LeadStatus.LOST.value
    assert lead.lost_reason == "Hired other counsel"
    assert publisher.events[-1].recipient_id is None

    with pytest.raises(ValidationFailedError):
        lead_service.convert_lead_to_client(db, test_org.id, lead.id, test_user.id, publisher=publisher)
    with pytest.raises(IllegalTransitionError):
        lead_service.mark_contacted(db, test_org.id, lead.id, test_user.id, publisher=publisher)


def test_status_change_other_org_lead(db, test_org, other_org, test_user):
    lead = _lead(db, other_org)
    with pytest.raises(NotFoundError):
        lead_service.mark_contacted(db, test_org.id, lead.id, test_user.id)
