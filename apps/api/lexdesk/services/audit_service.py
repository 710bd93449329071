"""Audit logging service - compliance event tracking.

Entries form a per-organization hash chain: each row stores the hash of
the previous row so tampering with any stored column is detectable.

Guidelines:
- NEVER log secrets (API keys, tokens)
- Hash PII in details (use hash_email for emails)
- Use IDs instead of raw data where possible

log_event() flushes but does not commit; the entry joins the caller's
transaction so it is written or rolled back together with the change.
"""

import hashlib
import json
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from lexdesk.db.enums import AuditEventType
from lexdesk.db.models import AuditLog
from lexdesk.utils.dates import ensure_utc

GENESIS_HASH = "0" * 64  # All zeros for first entry


def hash_email(email: str | None) -> str:
    """Hash email for audit log (prefix + SHA256 suffix for debugging)."""
    if not email:
        return ""
    prefix = email.split("@")[0][:3] if "@" in email else email[:3]
    suffix = hashlib.sha256(email.lower().encode()).hexdigest()[:12]
    return f"{prefix}...@[hash:{suffix}]"


def canonical_json(obj: dict | None) -> str:
    """
    Serialize object to canonical JSON for consistent hashing.

    Uses sorted keys, compact separators, and str() for non-JSON types.
    """
    return json.dumps(obj or {}, sort_keys=True, separators=(",", ":"), default=str)


def compute_audit_hash(
    prev_hash: str,
    entry_id: str,
    org_id: str,
    event_type: str,
    created_at: str,
    details_json: str,
    actor_user_id: str = "",
    target_type: str = "",
    target_id: str = "",
) -> str:
    """Hash = SHA256(all immutable fields joined with |)."""
    data = "|".join([
        prev_hash,
        entry_id,
        org_id,
        event_type,
        created_at,
        details_json,
        actor_user_id,
        target_type,
        target_id,
    ])
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def _hash_entry(entry: AuditLog, prev_hash: str) -> str:
    created_at = ensure_utc(entry.created_at)
    return compute_audit_hash(
        prev_hash=prev_hash,
        entry_id=str(entry.id),
        org_id=str(entry.organization_id),
        event_type=entry.event_type,
        created_at=created_at.isoformat() if created_at else "",
        details_json=canonical_json(entry.details),
        actor_user_id=str(entry.actor_user_id) if entry.actor_user_id else "",
        target_type=entry.target_type or "",
        target_id=str(entry.target_id) if entry.target_id else "",
    )


def get_last_audit_hash(db: Session, org_id: UUID) -> str:
    """Get the hash of the most recent audit log entry for an org.

    Uses created_at + id for deterministic ordering.
    """
    result = db.execute(
        select(AuditLog.entry_hash)
        .where(AuditLog.organization_id == org_id)
        .where(AuditLog.entry_hash.isnot(None))
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(1)
    ).scalar()
    return result or GENESIS_HASH


def log_event(
    db: Session,
    org_id: UUID,
    event_type: AuditEventType,
    actor_user_id: UUID | None = None,
    target_type: str | None = None,
    target_id: UUID | None = None,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    """
    Log an audit event with hash chain.

    Args:
        db: Database session
        org_id: Organization context
        event_type: Type of event (from AuditEventType)
        actor_user_id: User who performed the action (None for system)
        target_type: Type of entity affected (e.g., 'intake_submission', 'lead')
        target_id: ID of the affected entity
        details: Additional context (must be redacted - no secrets/raw PII)

    Returns:
        The created audit log entry with computed hash chain
    """
    prev_hash = get_last_audit_hash(db, org_id)

    entry = AuditLog(
        organization_id=org_id,
        actor_user_id=actor_user_id,
        event_type=event_type.value,
        target_type=target_type,
        target_id=target_id,
        details=details,
        prev_hash=prev_hash,
    )
    db.add(entry)
    db.flush()  # Get ID and created_at

    entry.entry_hash = _hash_entry(entry, prev_hash)
    db.flush()
    return entry


def list_events(
    db: Session,
    org_id: UUID,
    target_type: str | None = None,
    target_id: UUID | None = None,
    actor_user_id: UUID | None = None,
    event_types: list[AuditEventType] | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    limit: int = 100,
) -> list[AuditLog]:
    """List audit entries for an org, newest first."""
    query = db.query(AuditLog).filter(AuditLog.organization_id == org_id)
    if target_type:
        query = query.filter(AuditLog.target_type == target_type)
    if target_id:
        query = query.filter(AuditLog.target_id == target_id)
    if actor_user_id:
        query = query.filter(AuditLog.actor_user_id == actor_user_id)
    if event_types:
        query = query.filter(AuditLog.event_type.in_([e.value for e in event_types]))
    if since:
        query = query.filter(AuditLog.created_at >= since)
    if until:
        query = query.filter(AuditLog.created_at <= until)
    return (
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )


def verify_chain(db: Session, org_id: UUID) -> tuple[bool, UUID | None]:
    """
    Walk an org's audit chain from the genesis hash along prev_hash links.

    Returns:
        (True, None) if intact, else (False, id of the first broken entry)
    """
    entries = (
        db.query(AuditLog)
        .filter(AuditLog.organization_id == org_id)
        .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())
        .all()
    )
    by_prev: dict[str | None, list[AuditLog]] = {}
    for entry in entries:
        by_prev.setdefault(entry.prev_hash, []).append(entry)

    visited: set[UUID] = set()
    prev_hash = GENESIS_HASH
    while True:
        successors = by_prev.get(prev_hash, [])
        if not successors:
            break
        if len(successors) > 1:
            return False, successors[1].id
        entry = successors[0]
        if entry.entry_hash != _hash_entry(entry, prev_hash):
            return False, entry.id
        visited.add(entry.id)
        prev_hash = entry.entry_hash

    for entry in entries:
        if entry.id not in visited:
            return False, entry.id
    return True, None
