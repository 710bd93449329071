"""Conflict check service - search existing clients before taking on a lead.

Each run writes a fresh ConflictCheck. Earlier unresolved checks for the
same subject are deleted first, so at most one open check exists per lead.
Resolved checks are kept as the record of who cleared what.
"""

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from lexdesk.core.errors import NotFoundError, ValidationFailedError
from lexdesk.db.enums import (
    AuditEventType,
    ConflictCheckStatus,
    ConflictCheckType,
    ConflictResolution,
    NotificationType,
)
from lexdesk.db.models import Client, ConflictCheck, Lead
from lexdesk.services import audit_service
from lexdesk.services.notification_events import (
    NotificationEvent,
    NotificationPublisher,
    OutboxPublisher,
    publish_safely,
)
from lexdesk.utils.dates import utc_now
from lexdesk.utils.normalization import normalize_email, normalize_search_text

logger = logging.getLogger(__name__)

ENTITY_TYPE_LEAD = "lead"
CLEAR_CONFIDENCE = 100
MATCH_CONFIDENCE = 95


def build_search_terms(lead: Lead) -> dict[str, str]:
    """Terms recorded on the check (what we searched for)."""
    terms: dict[str, str] = {}
    if lead.full_name:
        terms["name"] = lead.full_name
    if lead.email:
        terms["email"] = lead.email
    if lead.phone:
        terms["phone"] = lead.phone
    if lead.company_name:
        terms["company"] = lead.company_name
    return terms


def find_conflicts(db: Session, org_id: UUID, lead: Lead) -> list[dict]:
    """Return one match description per existing client hit."""
    matches: list[dict] = []

    first = normalize_search_text(lead.first_name)
    last = normalize_search_text(lead.last_name)
    if first or last:
        query = db.query(Client).filter(Client.organization_id == org_id)
        query = query.filter(func.lower(func.coalesce(Client.first_name, "")) == (first or ""))
        query = query.filter(func.lower(func.coalesce(Client.last_name, "")) == (last or ""))
        for client in query.all():
            matches.append({
                "match_type": "name",
                "client_id": str(client.id),
                "description": (
                    f'A client named "{client.full_name}" already exists. '
                    "This may be the same person or a different client with the same name."
                ),
            })

    email = normalize_email(lead.email)
    if email:
        clients = db.query(Client).filter(
            Client.organization_id == org_id,
            func.lower(Client.email) == email,
        ).all()
        for client in clients:
            matches.append({
                "match_type": "email",
                "client_id": str(client.id),
                "description": f'A client with email "{client.email}" already exists.',
            })

    company = normalize_search_text(lead.company_name)
    if company:
        clients = db.query(Client).filter(
            Client.organization_id == org_id,
            func.lower(Client.company_name) == company,
        ).all()
        for client in clients:
            matches.append({
                "match_type": "company",
                "client_id": str(client.id),
                "description": f'A client company "{client.company_name}" already exists.',
            })

    return matches


def _clear_unresolved(db: Session, org_id: UUID, lead_id: UUID) -> int:
    return db.query(ConflictCheck).filter(
        ConflictCheck.organization_id == org_id,
        ConflictCheck.entity_type == ENTITY_TYPE_LEAD,
        ConflictCheck.entity_id == lead_id,
        ConflictCheck.status != ConflictCheckStatus.RESOLVED.value,
    ).delete(synchronize_session=False)


def run_conflict_check(
    db: Session,
    org_id: UUID,
    lead_id: UUID,
    checked_by_user_id: UUID | None,
    check_type: ConflictCheckType = ConflictCheckType.CONVERSION_CLIENT,
    publisher: NotificationPublisher | None = None,
) -> ConflictCheck:
    """Run a fresh conflict check for a lead and persist the result."""
    lead = db.query(Lead).filter(
        Lead.id == lead_id,
        Lead.organization_id == org_id,
    ).first()
    if not lead:
        raise NotFoundError("Lead", lead_id)

    cleared = _clear_unresolved(db, org_id, lead_id)
    if cleared:
        logger.info("Cleared %s open conflict checks for lead %s", cleared, lead_id)

    matches = find_conflicts(db, org_id, lead)
    check = ConflictCheck(
        organization_id=org_id,
        entity_type=ENTITY_TYPE_LEAD,
        entity_id=lead_id,
        check_type=check_type.value,
        search_terms=build_search_terms(lead),
        checked_by_user_id=checked_by_user_id,
        checked_at=utc_now(),
    )
    if matches:
        check.status = ConflictCheckStatus.CONFLICT_FOUND.value
        check.confidence_score = MATCH_CONFIDENCE
        check.results = {"status": "conflicts_found", "conflicts": matches}
    else:
        check.status = ConflictCheckStatus.NO_CONFLICT.value
        check.confidence_score = CLEAR_CONFIDENCE
        check.results = {"status": "clear", "conflicts": []}
    db.add(check)
    db.flush()

    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=AuditEventType.CONFLICT_CHECK_RUN,
        actor_user_id=checked_by_user_id,
        target_type="conflict_check",
        target_id=check.id,
        details={"lead_id": str(lead_id), "status": check.status, "match_count": len(matches)},
    )
    db.commit()
    db.refresh(check)

    if matches:
        publish_safely(
            publisher or OutboxPublisher(db),
            NotificationEvent(
                org_id=org_id,
                event_type=NotificationType.CONFLICT_FOUND,
                title="Potential Conflict Found",
                message=f"{len(matches)} potential conflict(s) found for lead {lead.full_name or lead_id}.",
                recipient_id=lead.assigned_to_user_id,
                entity_type=ENTITY_TYPE_LEAD,
                entity_id=lead_id,
                payload={"conflict_check_id": str(check.id)},
            ),
        )
    return check


def get_conflict_check(db: Session, org_id: UUID, check_id: UUID) -> ConflictCheck:
    check = db.query(ConflictCheck).filter(
        ConflictCheck.id == check_id,
        ConflictCheck.organization_id == org_id,
    ).first()
    if not check:
        raise NotFoundError("ConflictCheck", check_id)
    return check


def list_conflict_checks_for_lead(db: Session, org_id: UUID, lead_id: UUID) -> list[ConflictCheck]:
    return (
        db.query(ConflictCheck)
        .filter(
            ConflictCheck.organization_id == org_id,
            ConflictCheck.entity_type == ENTITY_TYPE_LEAD,
            ConflictCheck.entity_id == lead_id,
        )
        .order_by(ConflictCheck.checked_at.desc())
        .all()
    )


def resolve_conflict(
    db: Session,
    org_id: UUID,
    check_id: UUID,
    resolved_by_user_id: UUID,
    resolution: ConflictResolution,
    notes: str | None = None,
) -> ConflictCheck:
    """Mark a flagged check as resolved."""
    check = get_conflict_check(db, org_id, check_id)
    if check.status == ConflictCheckStatus.RESOLVED.value:
        raise ValidationFailedError("Conflict check is already resolved")

    check.status = ConflictCheckStatus.RESOLVED.value
    check.resolution = resolution.value
    check.resolution_notes = notes
    check.resolved_by_user_id = resolved_by_user_id
    check.resolved_at = utc_now()

    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=AuditEventType.CONFLICT_RESOLVED,
        actor_user_id=resolved_by_user_id,
        target_type="conflict_check",
        target_id=check.id,
        details={"resolution": resolution.value},
    )
    db.commit()
    db.refresh(check)
    return check


def has_unresolved_conflicts(db: Session, org_id: UUID, lead_id: UUID) -> bool:
    return db.query(ConflictCheck.id).filter(
        ConflictCheck.organization_id == org_id,
        ConflictCheck.entity_type == ENTITY_TYPE_LEAD,
        ConflictCheck.entity_id == lead_id,
        ConflictCheck.status == ConflictCheckStatus.CONFLICT_FOUND.value,
    ).first() is not None


def has_any_check(db: Session, org_id: UUID, lead_id: UUID) -> bool:
    return db.query(ConflictCheck.id).filter(
        ConflictCheck.organization_id == org_id,
        ConflictCheck.entity_type == ENTITY_TYPE_LEAD,
        ConflictCheck.entity_id == lead_id,
    ).first() is not None
