"""Notification events and publishers.

Domain services describe what happened with a NotificationEvent and hand
it to a NotificationPublisher after their own transaction has committed.
The default publisher writes a notification job to the outbox; the worker
turns it into in-app notifications.

Publishing never undoes the caller's change: use publish_safely(), which
logs and swallows any failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lexdesk.core.errors import ExternalDependencyFailedError
from lexdesk.core.structured_logging import build_log_context
from lexdesk.db.enums import JobType, NotificationChannel, NotificationType

logger = logging.getLogger(__name__)


@dataclass
class NotificationEvent:
    """Something a user should hear about."""

    org_id: UUID
    event_type: NotificationType
    title: str
    message: str
    recipient_id: UUID | None = None  # None = every member of the org
    entity_type: str | None = None
    entity_id: UUID | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    channels: tuple[NotificationChannel, ...] = (NotificationChannel.IN_APP,)
    dedupe_key: str | None = None

    def to_job_payload(self) -> dict[str, Any]:
        return {
            "type": self.event_type.value,
            "title": self.title,
            "message": self.message,
            "recipient_id": str(self.recipient_id) if self.recipient_id else None,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "channels": [c.value for c in self.channels],
            "data": self.payload,
            "dedupe_key": self.dedupe_key,
        }


class NotificationPublisher(Protocol):
    def publish(self, event: NotificationEvent) -> None: ...


class OutboxPublisher:
    """Writes notification events to the jobs table in their own transaction."""

    def __init__(self, db: Session):
        self.db = db

    def publish(self, event: NotificationEvent) -> None:
        from lexdesk.services import job_service

        try:
            job_service.schedule_job(
                self.db,
                org_id=event.org_id,
                job_type=JobType.NOTIFICATION,
                payload=event.to_job_payload(),
                idempotency_key=event.dedupe_key,
            )
        except IntegrityError:
            # Same dedupe_key already queued
            self.db.rollback()
            logger.info("Notification %s already queued", event.dedupe_key)
        except Exception as e:
            self.db.rollback()
            raise ExternalDependencyFailedError(
                f"Failed to enqueue {event.event_type.value} notification"
            ) from e


def publish_safely(publisher: NotificationPublisher, event: NotificationEvent) -> bool:
    """Publish an event; log and swallow failures. Returns True on success."""
    try:
        publisher.publish(event)
        return True
    except Exception as e:
        logger.warning(
            "Notification publish failed (%s): %s",
            event.event_type.value,
            type(e).__name__,
            extra=build_log_context(
                org_id=str(event.org_id),
                entity_type=event.entity_type,
                entity_id=str(event.entity_id) if event.entity_id else None,
            ),
        )
        return False
