"""Notification job handlers."""

from __future__ import annotations

import logging

from lexdesk.db.enums import NotificationType
from lexdesk.services import notification_service

logger = logging.getLogger(__name__)


async def process_notification(db, job) -> None:
    """Process notification job - create in-app notification records."""
    logger.info("Processing notification job %s", job.id)
    payload = job.payload or {}

    raw_type = payload.get("type")
    try:
        NotificationType(raw_type)
    except ValueError:
        # Not retryable; drop it instead of burning attempts
        logger.warning("Unknown notification type '%s' in job %s", raw_type, job.id)
        return

    created = notification_service.deliver_event_payload(db, job.organization_id, payload)
    logger.info("Created %d notifications for job %s", len(created), job.id)
