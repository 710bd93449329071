"""Notification service - in-app notifications for users."""

from datetime import timedelta
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from lexdesk.db.enums import NotificationType
from lexdesk.db.models import Membership, Notification
from lexdesk.utils.dates import utc_now

DEDUPE_WINDOW_HOURS = 24


def create_notification(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    type: NotificationType,
    title: str,
    body: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    dedupe_key: Optional[str] = None,
    commit: bool = True,
) -> Optional[Notification]:
    """
    Create a notification.

    Dedupes by dedupe_key + org_id + user_id within DEDUPE_WINDOW_HOURS.
    Returns None when a duplicate exists.
    """
    if dedupe_key:
        window_start = utc_now() - timedelta(hours=DEDUPE_WINDOW_HOURS)
        existing = db.query(Notification).filter(
            Notification.dedupe_key == dedupe_key,
            Notification.organization_id == org_id,
            Notification.user_id == user_id,
            Notification.created_at > window_start,
        ).first()

        if existing:
            return None

    notification = Notification(
        organization_id=org_id,
        user_id=user_id,
        type=type.value,
        title=title,
        body=body,
        entity_type=entity_type,
        entity_id=entity_id,
        dedupe_key=dedupe_key,
    )
    db.add(notification)
    if commit:
        db.commit()
        db.refresh(notification)
    else:
        db.flush()
    return notification


def get_org_member_ids(db: Session, org_id: UUID) -> list[UUID]:
    rows = db.query(Membership.user_id).filter(Membership.organization_id == org_id).all()
    return [row[0] for row in rows]


def deliver_event_payload(db: Session, org_id: UUID, payload: dict[str, Any]) -> list[Notification]:
    """
    Materialize a queued notification event as in-app notifications.

    A payload without recipient_id is broadcast to every org member.
    """
    recipient = payload.get("recipient_id")
    if recipient:
        recipients = [UUID(str(recipient))]
    else:
        recipients = get_org_member_ids(db, org_id)

    entity_id = payload.get("entity_id")
    created: list[Notification] = []
    for user_id in recipients:
        notification = create_notification(
            db,
            org_id=org_id,
            user_id=user_id,
            type=NotificationType(payload["type"]),
            title=payload.get("title") or "Notification",
            body=payload.get("message"),
            entity_type=payload.get("entity_type"),
            entity_id=UUID(str(entity_id)) if entity_id else None,
            dedupe_key=payload.get("dedupe_key"),
            commit=False,
        )
        if notification:
            created.append(notification)
    db.commit()
    return created


def get_notifications(
    db: Session,
    user_id: UUID,
    org_id: UUID,
    unread_only: bool = False,
    notification_types: list[str] | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[Notification]:
    """Get notifications for user."""
    query = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.organization_id == org_id,
    )

    if unread_only:
        query = query.filter(Notification.read_at.is_(None))

    if notification_types:
        query = query.filter(Notification.type.in_(notification_types))

    return query.order_by(Notification.created_at.desc()).offset(offset).limit(limit).all()


def get_unread_count(db: Session, user_id: UUID, org_id: UUID) -> int:
    """Get count of unread notifications."""
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.organization_id == org_id,
        Notification.read_at.is_(None),
    ).count()


def mark_read(
    db: Session,
    notification_id: UUID,
    user_id: UUID,
    org_id: UUID,
) -> Optional[Notification]:
    """Mark a notification as read (scoped by org for tenant isolation)."""
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
        Notification.organization_id == org_id,
    ).first()

    if notification and not notification.read_at:
        notification.read_at = utc_now()
        db.commit()
        db.refresh(notification)

    return notification


def mark_all_read(db: Session, user_id: UUID, org_id: UUID) -> int:
    """Mark all notifications as read. Returns count updated."""
    count = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.organization_id == org_id,
        Notification.read_at.is_(None),
    ).update({"read_at": utc_now()}, synchronize_session=False)
    db.commit()
    return count
