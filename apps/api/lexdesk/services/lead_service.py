"""Lead service - building leads from intake, working the pipeline and converting to clients."""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from lexdesk.core.errors import (
    IllegalTransitionError,
    NotFoundError,
    UnresolvedConflictsError,
    ValidationFailedError,
)
from lexdesk.core.intake_rules import can_transition_lead
from lexdesk.db.enums import (
    DEFAULT_PRACTICE_AREA,
    AuditEventType,
    CaseStatus,
    ClientStatus,
    LeadSource,
    LeadStatus,
    NotificationType,
    UrgencyLevel,
)
from lexdesk.db.models import Client, IntakeForm, IntakeSubmission, Lead, LegalCase, Membership
from lexdesk.schemas.intake import SubmissionFields, has_value
from lexdesk.services import audit_service, conflict_check_service
from lexdesk.services.notification_events import (
    NotificationEvent,
    NotificationPublisher,
    OutboxPublisher,
    publish_safely,
)
from lexdesk.utils.dates import utc_now
from lexdesk.utils.normalization import normalize_email, normalize_name, normalize_phone_lenient

logger = logging.getLogger(__name__)


def resolve_practice_area(db: Session, submission: IntakeSubmission, fields: SubmissionFields) -> str:
    """Payload value, else the form's practice area, else GENERAL."""
    if has_value(fields.practice_area):
        return fields.practice_area.strip()
    if submission.form_id:
        form = db.query(IntakeForm).filter(
            IntakeForm.id == submission.form_id,
            IntakeForm.organization_id == submission.organization_id,
        ).first()
        if form and form.practice_area:
            return form.practice_area
    return DEFAULT_PRACTICE_AREA


def _urgency(fields: SubmissionFields) -> str:
    if has_value(fields.urgency):
        value = fields.urgency.strip().upper()
        if value in UrgencyLevel.__members__:
            return value
    return UrgencyLevel.MEDIUM.value


def build_lead_from_submission(
    db: Session,
    submission: IntakeSubmission,
    fields: SubmissionFields,
) -> Lead:
    """Create (flush, not commit) a Lead from a validated submission payload."""
    lead = Lead(
        organization_id=submission.organization_id,
        first_name=normalize_name(fields.first_name),
        last_name=normalize_name(fields.last_name),
        email=normalize_email(fields.email),
        phone=normalize_phone_lenient(fields.phone),
        company_name=normalize_name(fields.company_name),
        practice_area=resolve_practice_area(db, submission, fields),
        status=LeadStatus.NEW.value,
        source=LeadSource.WEBSITE.value,
        lead_score=submission.priority_score,
        initial_inquiry=fields.inquiry,
        urgency_level=_urgency(fields),
    )
    db.add(lead)
    db.flush()
    return lead


def get_lead(db: Session, org_id: UUID, lead_id: UUID) -> Lead:
    lead = db.query(Lead).filter(
        Lead.id == lead_id,
        Lead.organization_id == org_id,
    ).first()
    if not lead:
        raise NotFoundError("Lead", lead_id)
    return lead


def list_leads(
    db: Session,
    org_id: UUID,
    status: LeadStatus | None = None,
    limit: int = 50,
) -> list[Lead]:
    query = db.query(Lead).filter(Lead.organization_id == org_id)
    if status:
        query = query.filter(Lead.status == status.value)
    return query.order_by(Lead.lead_score.desc(), Lead.created_at.desc()).limit(limit).all()


# =============================================================================
# Pipeline
# =============================================================================


def assign_lead(
    db: Session,
    org_id: UUID,
    lead_id: UUID,
    assignee_user_id: UUID,
    actor_user_id: UUID | None,
    publisher: NotificationPublisher | None = None,
) -> Lead:
    """
    Assign (or reassign) a lead to a member of the organization.

    Raises:
        NotFoundError: lead missing or in another org
        ValidationFailedError: assignee is not a member of the org
    """
    lead = get_lead(db, org_id, lead_id)
    is_member = db.query(Membership.id).filter(
        Membership.organization_id == org_id,
        Membership.user_id == assignee_user_id,
    ).first()
    if not is_member:
        raise ValidationFailedError("Assignee is not a member of this organization")

    previous = lead.assigned_to_user_id
    if previous == assignee_user_id:
        return lead

    lead.assigned_to_user_id = assignee_user_id
    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=AuditEventType.LEAD_ASSIGNED,
        actor_user_id=actor_user_id,
        target_type="lead",
        target_id=lead.id,
        details={
            "previous_user_id": str(previous) if previous else None,
            "assigned_to_user_id": str(assignee_user_id),
        },
    )
    db.commit()
    db.refresh(lead)

    publish_safely(
        publisher or OutboxPublisher(db),
        NotificationEvent(
            org_id=org_id,
            event_type=NotificationType.LEAD_ASSIGNED,
            title="Lead Reassigned" if previous else "Lead Assigned",
            message=f"{lead.full_name or 'A lead'} has been assigned to you.",
            recipient_id=assignee_user_id,
            entity_type="lead",
            entity_id=lead.id,
        ),
    )
    return lead


def update_lead_status(
    db: Session,
    org_id: UUID,
    lead_id: UUID,
    status: LeadStatus,
    actor_user_id: UUID | None,
    notes: str | None = None,
    lost_reason: str | None = None,
    publisher: NotificationPublisher | None = None,
) -> Lead:
    """
    Move a lead along the pipeline (see LEAD_TRANSITIONS).

    Notifies the assigned attorney, or the whole org when unassigned.

    Raises:
        NotFoundError: lead missing or in another org
        IllegalTransitionError: status change not allowed
    """
    lead = get_lead(db, org_id, lead_id)
    if not can_transition_lead(lead.status, status):
        raise IllegalTransitionError(lead.status, status.value)

    previous = lead.status
    lead.status = status.value
    if status == LeadStatus.LOST:
        lead.lost_reason = lost_reason
    if notes is not None:
        lead.notes = notes

    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=AuditEventType.LEAD_STATUS_CHANGED,
        actor_user_id=actor_user_id,
        target_type="lead",
        target_id=lead.id,
        details={"from": previous, "to": status.value},
    )
    db.commit()
    db.refresh(lead)

    logger.info("Lead %s moved from %s to %s", lead.id, previous, status.value)
    publish_safely(
        publisher or OutboxPublisher(db),
        NotificationEvent(
            org_id=org_id,
            event_type=NotificationType.LEAD_STATUS_CHANGED,
            title="Lead Status Updated",
            message=f"{lead.full_name or 'A lead'} moved from {previous} to {status.value}.",
            recipient_id=lead.assigned_to_user_id,
            entity_type="lead",
            entity_id=lead.id,
            payload={"from": previous, "to": status.value},
        ),
    )
    return lead


def mark_contacted(db: Session, org_id: UUID, lead_id: UUID, actor_user_id: UUID | None, **kwargs) -> Lead:
    return update_lead_status(db, org_id, lead_id, LeadStatus.CONTACTED, actor_user_id, **kwargs)


def mark_qualified(db: Session, org_id: UUID, lead_id: UUID, actor_user_id: UUID | None, **kwargs) -> Lead:
    return update_lead_status(db, org_id, lead_id, LeadStatus.QUALIFIED, actor_user_id, **kwargs)


def mark_lost(
    db: Session,
    org_id: UUID,
    lead_id: UUID,
    actor_user_id: UUID | None,
    reason: str,
    publisher: NotificationPublisher | None = None,
) -> Lead:
    return update_lead_status(
        db, org_id, lead_id, LeadStatus.LOST, actor_user_id, lost_reason=reason, publisher=publisher
    )


@dataclass
class ConversionResult:
    lead: Lead
    client: Client
    case: LegalCase | None = None


def _next_case_number(db: Session, org_id: UUID) -> str:
    year = utc_now().year
    count = db.query(LegalCase).filter(LegalCase.organization_id == org_id).count()
    return f"{year}-{count + 1:04d}"


def convert_lead_to_client(
    db: Session,
    org_id: UUID,
    lead_id: UUID,
    actor_user_id: UUID,
    case_title: str | None = None,
    publisher: NotificationPublisher | None = None,
) -> ConversionResult:
    """
    Convert a lead into a client (and optionally open a case).

    Runs a conflict check if none exists yet. Refuses while any check for
    the lead is still CONFLICT_FOUND.

    Raises:
        NotFoundError: lead missing or in another org
        ValidationFailedError: lead already converted or lost
        UnresolvedConflictsError: open conflicts
    """
    lead = get_lead(db, org_id, lead_id)
    if lead.status == LeadStatus.CONVERTED.value:
        raise ValidationFailedError("Lead is already converted")
    if lead.status == LeadStatus.LOST.value:
        raise ValidationFailedError("Lead is marked as lost")

    if not conflict_check_service.has_any_check(db, org_id, lead_id):
        conflict_check_service.run_conflict_check(
            db, org_id, lead_id, checked_by_user_id=actor_user_id, publisher=publisher
        )
    if conflict_check_service.has_unresolved_conflicts(db, org_id, lead_id):
        raise UnresolvedConflictsError("Cannot convert lead due to unresolved conflicts")

    client = Client(
        organization_id=org_id,
        first_name=lead.first_name,
        last_name=lead.last_name,
        company_name=lead.company_name,
        email=lead.email,
        phone=lead.phone,
        status=ClientStatus.ACTIVE.value,
    )
    db.add(client)
    db.flush()

    case = None
    if case_title:
        case = LegalCase(
            organization_id=org_id,
            client_id=client.id,
            case_number=_next_case_number(db, org_id),
            title=case_title,
            practice_area=lead.practice_area,
            status=CaseStatus.OPEN.value,
        )
        db.add(case)
        db.flush()

    lead.status = LeadStatus.CONVERTED.value
    lead.client_id = client.id
    lead.converted_at = utc_now()

    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=AuditEventType.LEAD_CONVERTED_TO_CLIENT,
        actor_user_id=actor_user_id,
        target_type="lead",
        target_id=lead.id,
        details={
            "client_id": str(client.id),
            "case_id": str(case.id) if case else None,
        },
    )
    db.commit()
    db.refresh(lead)
    db.refresh(client)

    logger.info("Converted lead %s to client %s", lead.id, client.id)
    publish_safely(
        publisher or OutboxPublisher(db),
        NotificationEvent(
            org_id=org_id,
            event_type=NotificationType.CLIENT_CONVERSION,
            title="Lead Converted to Client",
            message=f"{lead.full_name or 'A lead'} is now a client.",
            recipient_id=lead.assigned_to_user_id,
            entity_type="client",
            entity_id=client.id,
        ),
    )
    return ConversionResult(lead=lead, client=client, case=case)
