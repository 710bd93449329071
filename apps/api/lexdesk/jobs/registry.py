"""Job handler registry."""

from __future__ import annotations

from typing import Awaitable, Callable, Mapping

from lexdesk.db.enums import JobType
from lexdesk.jobs.handlers import notifications, reminders

JobHandler = Callable[[object, object], Awaitable[None]]

JOB_HANDLERS: Mapping[str, JobHandler] = {
    JobType.NOTIFICATION.value: notifications.process_notification,
    JobType.EVENT_REMINDER_SWEEP.value: reminders.process_event_reminder_sweep,
}


def resolve_job_handler(job_type: str) -> JobHandler:
    handler = JOB_HANDLERS.get(job_type)
    if not handler:
        raise ValueError(f"Unknown job type: {job_type}")
    return handler
