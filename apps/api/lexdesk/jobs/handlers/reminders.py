"""Reminder job handlers."""

from __future__ import annotations

import logging

from lexdesk.core.structured_logging import build_log_context
from lexdesk.services import calendar_service

logger = logging.getLogger(__name__)


async def process_event_reminder_sweep(db, job) -> None:
    """
    Sweep calendar reminders for the job's organization.

    Queued per organization by the internal scheduler endpoint. Errors
    propagate so the worker retries the job.
    """
    result = calendar_service.process_event_reminders_for_org(db, job.organization_id)
    logger.info(
        "Reminder sweep job %s: checked=%d fired=%d missed=%d notify_failures=%d",
        job.id,
        result.events_checked,
        result.reminders_fired,
        result.reminders_marked_missed,
        result.notify_failures,
        extra=build_log_context(org_id=str(job.organization_id)),
    )
