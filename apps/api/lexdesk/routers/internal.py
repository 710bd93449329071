"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from an external cron every minute or so.
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from lexdesk.core.config import settings
from lexdesk.core.deps import get_db, verify_internal_secret
from lexdesk.db.enums import JobType
from lexdesk.db.models import CalendarEvent
from lexdesk.schemas.calendar import ReminderSweepQueued, ReminderSweepResult
from lexdesk.services import calendar_service, job_service
from lexdesk.utils.dates import utc_now

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/internal/scheduled",
    tags=["internal"],
    dependencies=[Depends(verify_internal_secret)],
)


@router.post("/event-reminders", response_model=ReminderSweepResult)
def sweep_event_reminders(db: Session = Depends(get_db)):
    """
    Fire due calendar event reminders for all organizations.

    Reminders whose window has passed are marked sent without notifying.
    Safe to call repeatedly; each reminder fires at most once.
    """
    result = calendar_service.process_event_reminders(db)
    logger.info(
        "Event reminder sweep: fired=%d missed=%d errors=%d",
        result.reminders_fired,
        result.reminders_marked_missed,
        len(result.errors),
    )
    return result


@router.post("/event-reminders/queue", response_model=ReminderSweepQueued)
def queue_event_reminder_sweeps(db: Session = Depends(get_db)):
    """
    Queue one reminder sweep job per organization with recent or upcoming events.

    The worker runs the sweeps; a failed organization is retried on its own.
    """
    lookback = utc_now() - timedelta(hours=settings.REMINDER_LOOKBACK_HOURS)
    org_ids = db.execute(
        select(CalendarEvent.organization_id)
        .where(CalendarEvent.start_time >= lookback)
        .distinct()
    ).scalars().all()

    for org_id in org_ids:
        job_service.schedule_job(
            db,
            org_id,
            JobType.EVENT_REMINDER_SWEEP,
            payload={"org_id": str(org_id)},
            commit=False,
        )
    db.commit()

    logger.info("Queued event reminder sweeps for %d organization(s)", len(org_ids))
    return ReminderSweepQueued(orgs_queued=len(org_ids))
