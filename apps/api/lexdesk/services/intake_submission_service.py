"""Intake submission service - lifecycle of public intake form answers.

Status changes go through lexdesk.core.intake_rules.can_transition. Each
change is committed together with its audit entry; the notification is
published afterwards and a publish failure never undoes the change.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from lexdesk.core.config import settings
from lexdesk.core.errors import IllegalTransitionError, NotFoundError, ValidationFailedError
from lexdesk.core.intake_rules import can_transition
from lexdesk.db.enums import AuditEventType, NotificationType, SubmissionStatus
from lexdesk.db.models import IntakeForm, IntakeSubmission, Lead
from lexdesk.schemas.intake import SubmissionFields, has_value, parse_submission_fields
from lexdesk.services import audit_service, lead_service
from lexdesk.services.notification_events import (
    NotificationEvent,
    NotificationPublisher,
    OutboxPublisher,
    publish_safely,
)
from lexdesk.services.priority_scoring import score_submission
from lexdesk.utils.dates import utc_now
from lexdesk.utils.normalization import normalize_tags
from lexdesk.utils.pagination import PaginationParams, paginate_query

logger = logging.getLogger(__name__)

TARGET_TYPE = "intake_submission"
DEFAULT_NOTIFICATION_PRACTICE_AREA = "General"


@dataclass(frozen=True)
class _TransitionEffect:
    audit_event: AuditEventType
    notification_type: NotificationType
    title: str
    verb: str


_EFFECTS: dict[SubmissionStatus, _TransitionEffect] = {
    SubmissionStatus.REVIEWED: _TransitionEffect(
        AuditEventType.INTAKE_SUBMISSION_REVIEWED,
        NotificationType.SUBMISSION_REVIEWED,
        "Submission Reviewed",
        "has been reviewed",
    ),
    SubmissionStatus.REJECTED: _TransitionEffect(
        AuditEventType.INTAKE_SUBMISSION_REJECTED,
        NotificationType.SUBMISSION_REJECTED,
        "Submission Rejected",
        "has been rejected",
    ),
    SubmissionStatus.SPAM: _TransitionEffect(
        AuditEventType.INTAKE_SUBMISSION_SPAM,
        NotificationType.SUBMISSION_SPAM,
        "Submission Marked as Spam",
        "has been marked as spam",
    ),
}


# =============================================================================
# Helpers
# =============================================================================


def validate_submission_data(submission_data: Any) -> bool:
    """True if the payload is an object carrying an email or a phone."""
    try:
        fields = parse_submission_fields(submission_data)
    except ValidationFailedError:
        return False
    return fields.has_contact


def _practice_area_label(submission: IntakeSubmission, fallback: str | None = None) -> str:
    try:
        fields = parse_submission_fields(submission.submission_data)
    except ValidationFailedError:
        return fallback or DEFAULT_NOTIFICATION_PRACTICE_AREA
    if has_value(fields.practice_area):
        return fields.practice_area.strip()
    return fallback or DEFAULT_NOTIFICATION_PRACTICE_AREA


def _publisher(db: Session, publisher: NotificationPublisher | None) -> NotificationPublisher:
    return publisher or OutboxPublisher(db)


def _require_transition(submission: IntakeSubmission, target: SubmissionStatus) -> None:
    if not can_transition(submission.status, target):
        raise IllegalTransitionError(submission.status, target.value)


def _stamp_review(
    submission: IntakeSubmission,
    target: SubmissionStatus,
    actor_user_id: UUID | None,
    notes: str | None,
    now: datetime,
) -> None:
    submission.status = target.value
    submission.reviewed_by_user_id = actor_user_id
    submission.reviewed_at = now
    submission.notes = notes


def _status_event(submission: IntakeSubmission, target: SubmissionStatus) -> NotificationEvent:
    effect = _EFFECTS[target]
    practice_area = _practice_area_label(submission)
    return NotificationEvent(
        org_id=submission.organization_id,
        event_type=effect.notification_type,
        title=effect.title,
        message=f"Intake submission for {practice_area} {effect.verb}",
        entity_type=TARGET_TYPE,
        entity_id=submission.id,
        payload={"submission_id": str(submission.id), "practice_area": practice_area},
    )


def _conversion_event(submission: IntakeSubmission, lead: Lead) -> NotificationEvent:
    practice_area = _practice_area_label(submission, fallback=lead.practice_area)
    return NotificationEvent(
        org_id=submission.organization_id,
        event_type=NotificationType.LEAD_CONVERSION,
        title="Submission Converted to Lead",
        message=f"Intake submission successfully converted to {practice_area} lead: {lead.full_name}".strip(),
        entity_type="lead",
        entity_id=lead.id,
        payload={
            "submission_id": str(submission.id),
            "lead_id": str(lead.id),
            "practice_area": practice_area,
        },
    )


def _new_submission_event(submission: IntakeSubmission) -> NotificationEvent:
    practice_area = _practice_area_label(submission)
    urgency = "MEDIUM"
    try:
        fields = parse_submission_fields(submission.submission_data)
        if has_value(fields.urgency):
            urgency = fields.urgency.strip().upper()
    except ValidationFailedError:
        pass
    suffix = f" - {urgency} priority" if urgency in ("URGENT", "HIGH") else ""
    return NotificationEvent(
        org_id=submission.organization_id,
        event_type=NotificationType.NEW_SUBMISSION,
        title="New Intake Submission",
        message=f"New {practice_area} intake submission received{suffix}",
        entity_type=TARGET_TYPE,
        entity_id=submission.id,
        payload={
            "submission_id": str(submission.id),
            "practice_area": practice_area,
            "urgency": urgency,
            "priority_score": submission.priority_score,
        },
    )


# =============================================================================
# Queries
# =============================================================================


def get_submission(db: Session, org_id: UUID, submission_id: UUID) -> IntakeSubmission:
    """
    Load a submission scoped to the org.

    Raises NotFoundError for both missing and foreign-org submissions.
    """
    submission = db.query(IntakeSubmission).filter(
        IntakeSubmission.id == submission_id,
        IntakeSubmission.organization_id == org_id,
    ).first()
    if not submission:
        raise NotFoundError("IntakeSubmission", submission_id)
    return submission


def list_submissions(
    db: Session,
    org_id: UUID,
    status: SubmissionStatus | None = None,
    form_id: UUID | None = None,
    pagination: PaginationParams | None = None,
) -> tuple[list[IntakeSubmission], int]:
    """List submissions newest first. Returns (items, total)."""
    query = db.query(IntakeSubmission).filter(IntakeSubmission.organization_id == org_id)
    if status:
        query = query.filter(IntakeSubmission.status == status.value)
    if form_id:
        query = query.filter(IntakeSubmission.form_id == form_id)
    query = query.order_by(IntakeSubmission.created_at.desc())
    return paginate_query(query, pagination or PaginationParams())


def list_pending_by_priority(db: Session, org_id: UUID, limit: int = 50) -> list[IntakeSubmission]:
    """Pending submissions, highest priority first, oldest first within a score."""
    return (
        db.query(IntakeSubmission)
        .filter(
            IntakeSubmission.organization_id == org_id,
            IntakeSubmission.status == SubmissionStatus.PENDING.value,
        )
        .order_by(IntakeSubmission.priority_score.desc(), IntakeSubmission.created_at.asc())
        .limit(limit)
        .all()
    )


def list_high_priority(
    db: Session,
    org_id: UUID,
    min_score: int | None = None,
) -> list[IntakeSubmission]:
    """Open (pending or reviewed) submissions at or above the threshold."""
    threshold = settings.HIGH_PRIORITY_THRESHOLD if min_score is None else min_score
    return (
        db.query(IntakeSubmission)
        .filter(
            IntakeSubmission.organization_id == org_id,
            IntakeSubmission.status.in_([
                SubmissionStatus.PENDING.value,
                SubmissionStatus.REVIEWED.value,
            ]),
            IntakeSubmission.priority_score >= threshold,
        )
        .order_by(IntakeSubmission.priority_score.desc(), IntakeSubmission.created_at.asc())
        .all()
    )


def count_by_status(db: Session, org_id: UUID) -> dict[str, int]:
    """Submission counts keyed by status value (every status present)."""
    counts = {status.value: 0 for status in SubmissionStatus}
    rows = (
        db.query(IntakeSubmission.status, func.count(IntakeSubmission.id))
        .filter(IntakeSubmission.organization_id == org_id)
        .group_by(IntakeSubmission.status)
        .all()
    )
    for status, count in rows:
        counts[status] = count
    return counts


# =============================================================================
# Create / update
# =============================================================================


def create_submission(
    db: Session,
    org_id: UUID,
    submission_data: Mapping[str, Any],
    form_id: UUID | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    referrer: str | None = None,
    publisher: NotificationPublisher | None = None,
) -> IntakeSubmission:
    """Store a new PENDING submission with its priority score."""
    if not isinstance(submission_data, Mapping):
        raise ValidationFailedError("Submission data must be an object")
    if form_id:
        form = db.query(IntakeForm).filter(
            IntakeForm.id == form_id,
            IntakeForm.organization_id == org_id,
        ).first()
        if not form:
            raise NotFoundError("IntakeForm", form_id)

    submission = IntakeSubmission(
        organization_id=org_id,
        form_id=form_id,
        submission_data=dict(submission_data),
        status=SubmissionStatus.PENDING.value,
        priority_score=score_submission(submission_data),
        tags=[],
        ip_address=ip_address,
        user_agent=user_agent[:500] if user_agent else None,
        referrer=referrer[:500] if referrer else None,
    )
    db.add(submission)
    db.flush()

    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=AuditEventType.INTAKE_SUBMISSION_CREATED,
        target_type=TARGET_TYPE,
        target_id=submission.id,
        details={
            "form_id": str(form_id) if form_id else None,
            "priority_score": submission.priority_score,
        },
    )
    db.commit()
    db.refresh(submission)

    logger.info("Intake submission %s created (score=%s)", submission.id, submission.priority_score)
    publish_safely(_publisher(db, publisher), _new_submission_event(submission))
    return submission


def update_submission_data(
    db: Session,
    org_id: UUID,
    submission_id: UUID,
    submission_data: Mapping[str, Any],
    actor_user_id: UUID | None = None,
) -> IntakeSubmission:
    """Replace the payload and recompute the priority score."""
    if not isinstance(submission_data, Mapping):
        raise ValidationFailedError("Submission data must be an object")
    submission = get_submission(db, org_id, submission_id)

    old_score = submission.priority_score
    submission.submission_data = dict(submission_data)
    submission.priority_score = score_submission(submission_data)

    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=AuditEventType.INTAKE_SUBMISSION_UPDATED,
        actor_user_id=actor_user_id,
        target_type=TARGET_TYPE,
        target_id=submission.id,
        details={"old_score": old_score, "new_score": submission.priority_score},
    )
    db.commit()
    db.refresh(submission)
    return submission


def update_priority_score(
    db: Session,
    org_id: UUID,
    submission_id: UUID,
    priority_score: int,
) -> IntakeSubmission:
    """Manual override of the computed score."""
    if not 0 <= priority_score <= 100:
        raise ValidationFailedError("Priority score must be between 0 and 100")
    submission = get_submission(db, org_id, submission_id)
    submission.priority_score = priority_score
    db.commit()
    db.refresh(submission)
    return submission


def update_notes(
    db: Session,
    org_id: UUID,
    submission_id: UUID,
    notes: str | None,
) -> IntakeSubmission:
    submission = get_submission(db, org_id, submission_id)
    submission.notes = notes
    db.commit()
    db.refresh(submission)
    return submission


def add_tags(db: Session, org_id: UUID, submission_id: UUID, tags: list[str]) -> IntakeSubmission:
    submission = get_submission(db, org_id, submission_id)
    # Reassign so the JSON column is marked dirty
    submission.tags = normalize_tags(list(submission.tags or []) + list(tags))
    db.commit()
    db.refresh(submission)
    return submission


def remove_tags(db: Session, org_id: UUID, submission_id: UUID, tags: list[str]) -> IntakeSubmission:
    submission = get_submission(db, org_id, submission_id)
    remove = set(normalize_tags(tags))
    submission.tags = [tag for tag in submission.tags or [] if tag not in remove]
    db.commit()
    db.refresh(submission)
    return submission


def link_to_lead(db: Session, org_id: UUID, submission_id: UUID, lead_id: UUID) -> IntakeSubmission:
    """Attach an existing lead (same org) without changing status."""
    submission = get_submission(db, org_id, submission_id)
    lead_service.get_lead(db, org_id, lead_id)
    submission.lead_id = lead_id
    db.commit()
    db.refresh(submission)
    return submission


def unlink_from_lead(db: Session, org_id: UUID, submission_id: UUID) -> IntakeSubmission:
    submission = get_submission(db, org_id, submission_id)
    submission.lead_id = None
    db.commit()
    db.refresh(submission)
    return submission


def delete_submission(
    db: Session,
    org_id: UUID,
    submission_id: UUID,
    actor_user_id: UUID | None = None,
) -> None:
    """Administrative hard delete."""
    submission = get_submission(db, org_id, submission_id)
    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=AuditEventType.INTAKE_SUBMISSION_DELETED,
        actor_user_id=actor_user_id,
        target_type=TARGET_TYPE,
        target_id=submission.id,
        details={"status": submission.status},
    )
    db.delete(submission)
    db.commit()


# =============================================================================
# Lifecycle transitions
# =============================================================================


def _transition(
    db: Session,
    org_id: UUID,
    submission_id: UUID,
    target: SubmissionStatus,
    actor_user_id: UUID | None,
    notes: str | None,
    publisher: NotificationPublisher | None,
) -> IntakeSubmission:
    submission = get_submission(db, org_id, submission_id)
    _require_transition(submission, target)

    previous = submission.status
    _stamp_review(submission, target, actor_user_id, notes, utc_now())
    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=_EFFECTS[target].audit_event,
        actor_user_id=actor_user_id,
        target_type=TARGET_TYPE,
        target_id=submission.id,
        details={"from": previous, "to": target.value},
    )
    db.commit()
    db.refresh(submission)

    publish_safely(_publisher(db, publisher), _status_event(submission, target))
    return submission


def review(
    db: Session,
    org_id: UUID,
    submission_id: UUID,
    actor_user_id: UUID | None,
    notes: str | None = None,
    publisher: NotificationPublisher | None = None,
) -> IntakeSubmission:
    """Mark a submission as reviewed."""
    return _transition(db, org_id, submission_id, SubmissionStatus.REVIEWED, actor_user_id, notes, publisher)


def reject(
    db: Session,
    org_id: UUID,
    submission_id: UUID,
    actor_user_id: UUID | None,
    notes: str | None = None,
    publisher: NotificationPublisher | None = None,
) -> IntakeSubmission:
    """Reject a submission. Terminal."""
    return _transition(db, org_id, submission_id, SubmissionStatus.REJECTED, actor_user_id, notes, publisher)


def mark_spam(
    db: Session,
    org_id: UUID,
    submission_id: UUID,
    actor_user_id: UUID | None,
    notes: str | None = None,
    publisher: NotificationPublisher | None = None,
) -> IntakeSubmission:
    """Mark a submission as spam. Terminal."""
    return _transition(db, org_id, submission_id, SubmissionStatus.SPAM, actor_user_id, notes, publisher)


def _convert_one(
    db: Session,
    submission: IntakeSubmission,
    fields: SubmissionFields,
    actor_user_id: UUID | None,
    notes: str | None,
) -> Lead:
    """Create the lead and stamp the submission (flush only)."""
    previous = submission.status
    lead = lead_service.build_lead_from_submission(db, submission, fields)
    _stamp_review(submission, SubmissionStatus.CONVERTED_TO_LEAD, actor_user_id, notes, utc_now())
    submission.lead_id = lead.id

    audit_service.log_event(
        db=db,
        org_id=submission.organization_id,
        event_type=AuditEventType.LEAD_CREATED,
        actor_user_id=actor_user_id,
        target_type="lead",
        target_id=lead.id,
        details={"submission_id": str(submission.id), "lead_score": lead.lead_score},
    )
    audit_service.log_event(
        db=db,
        org_id=submission.organization_id,
        event_type=AuditEventType.INTAKE_SUBMISSION_CONVERTED,
        actor_user_id=actor_user_id,
        target_type=TARGET_TYPE,
        target_id=submission.id,
        details={"from": previous, "lead_id": str(lead.id)},
    )
    return lead


def _contact_fields(submission: IntakeSubmission) -> SubmissionFields:
    fields = parse_submission_fields(submission.submission_data)
    if not fields.has_contact:
        raise ValidationFailedError("Submission needs an email or phone to become a lead")
    return fields


def convert_to_lead(
    db: Session,
    org_id: UUID,
    submission_id: UUID,
    actor_user_id: UUID | None,
    notes: str | None = None,
    publisher: NotificationPublisher | None = None,
) -> IntakeSubmission:
    """
    Create a Lead from the submission payload and link it back.

    Raises:
        NotFoundError: submission missing or in another org
        IllegalTransitionError: submission already terminal
        ValidationFailedError: payload lacks both email and phone
    """
    submission = get_submission(db, org_id, submission_id)
    _require_transition(submission, SubmissionStatus.CONVERTED_TO_LEAD)
    fields = _contact_fields(submission)

    try:
        lead = _convert_one(db, submission, fields, actor_user_id, notes)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(submission)

    logger.info("Submission %s converted to lead %s", submission.id, lead.id)
    publish_safely(_publisher(db, publisher), _conversion_event(submission, lead))
    return submission


# =============================================================================
# Bulk transitions
# =============================================================================


def _load_many(db: Session, org_id: UUID, submission_ids: list[UUID]) -> list[IntakeSubmission]:
    if not submission_ids:
        return []
    return (
        db.query(IntakeSubmission)
        .filter(
            IntakeSubmission.id.in_(submission_ids),
            IntakeSubmission.organization_id == org_id,
        )
        .order_by(IntakeSubmission.created_at.asc())
        .all()
    )


def _bulk_transition(
    db: Session,
    org_id: UUID,
    submission_ids: list[UUID],
    target: SubmissionStatus,
    actor_user_id: UUID | None,
    notes: str | None,
    publisher: NotificationPublisher | None,
) -> list[IntakeSubmission]:
    updated: list[IntakeSubmission] = []
    now = utc_now()
    for submission in _load_many(db, org_id, submission_ids):
        if not can_transition(submission.status, target):
            logger.debug("Bulk %s skipped submission %s (%s)", target.value, submission.id, submission.status)
            continue
        previous = submission.status
        _stamp_review(submission, target, actor_user_id, notes, now)
        audit_service.log_event(
            db=db,
            org_id=org_id,
            event_type=_EFFECTS[target].audit_event,
            actor_user_id=actor_user_id,
            target_type=TARGET_TYPE,
            target_id=submission.id,
            details={"from": previous, "to": target.value, "bulk": True},
        )
        updated.append(submission)

    if not updated:
        return []
    db.commit()

    sink = _publisher(db, publisher)
    for submission in updated:
        db.refresh(submission)
        publish_safely(sink, _status_event(submission, target))
    return updated


def bulk_review(
    db: Session,
    org_id: UUID,
    submission_ids: list[UUID],
    actor_user_id: UUID | None,
    notes: str | None = None,
    publisher: NotificationPublisher | None = None,
) -> list[IntakeSubmission]:
    """Review many submissions; ids in other orgs or in terminal states are skipped."""
    return _bulk_transition(db, org_id, submission_ids, SubmissionStatus.REVIEWED, actor_user_id, notes, publisher)


def bulk_reject(
    db: Session,
    org_id: UUID,
    submission_ids: list[UUID],
    actor_user_id: UUID | None,
    notes: str | None = None,
    publisher: NotificationPublisher | None = None,
) -> list[IntakeSubmission]:
    return _bulk_transition(db, org_id, submission_ids, SubmissionStatus.REJECTED, actor_user_id, notes, publisher)


def bulk_mark_spam(
    db: Session,
    org_id: UUID,
    submission_ids: list[UUID],
    actor_user_id: UUID | None,
    notes: str | None = None,
    publisher: NotificationPublisher | None = None,
) -> list[IntakeSubmission]:
    return _bulk_transition(db, org_id, submission_ids, SubmissionStatus.SPAM, actor_user_id, notes, publisher)


def bulk_convert_to_lead(
    db: Session,
    org_id: UUID,
    submission_ids: list[UUID],
    actor_user_id: UUID | None,
    notes: str | None = None,
    publisher: NotificationPublisher | None = None,
) -> list[IntakeSubmission]:
    """Convert many submissions; terminal ones and ones without contact info are skipped."""
    converted: list[tuple[IntakeSubmission, Lead]] = []
    try:
        for submission in _load_many(db, org_id, submission_ids):
            if not can_transition(submission.status, SubmissionStatus.CONVERTED_TO_LEAD):
                continue
            try:
                fields = _contact_fields(submission)
            except ValidationFailedError as e:
                logger.info("Bulk conversion skipped submission %s: %s", submission.id, e)
                continue
            lead = _convert_one(db, submission, fields, actor_user_id, notes)
            converted.append((submission, lead))
        if not converted:
            return []
        db.commit()
    except Exception:
        db.rollback()
        raise

    sink = _publisher(db, publisher)
    for submission, lead in converted:
        db.refresh(submission)
        publish_safely(sink, _conversion_event(submission, lead))
    return [submission for submission, _ in converted]
