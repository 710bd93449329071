"""Reminder window evaluation for calendar events.

Pure decision logic: no I/O, no locking. Each (event, lead-time) pair is
evaluated on its own.

A reminder whose trigger time was more than the grace window ago (for
example because the sweep was not running) is marked fired without a
notification, as is any reminder for an event that already started.
"""

from datetime import datetime, timedelta

from lexdesk.core.config import settings
from lexdesk.db.enums import ReminderDecision
from lexdesk.utils.dates import ensure_utc


def trigger_time(start_time: datetime, lead_minutes: int) -> datetime:
    return ensure_utc(start_time) - timedelta(minutes=lead_minutes)


def evaluate_reminder(
    start_time: datetime,
    lead_minutes: int,
    now: datetime,
    already_fired: bool = False,
    window_minutes: int | None = None,
) -> ReminderDecision:
    """
    Decide what to do with one reminder.

    Order:
    1. already fired -> SKIP
    2. event started -> MARK_FIRED_WITHOUT_NOTIFYING
    3. trigger in the future -> SKIP
    4. trigger within the window (now - window <= trigger <= now) -> FIRE
    5. trigger before the window -> MARK_FIRED_WITHOUT_NOTIFYING
    """
    if already_fired:
        return ReminderDecision.SKIP

    start = ensure_utc(start_time)
    now = ensure_utc(now)
    if start < now:
        return ReminderDecision.MARK_FIRED_WITHOUT_NOTIFYING

    trigger = trigger_time(start, lead_minutes)
    if trigger > now:
        return ReminderDecision.SKIP

    window = timedelta(
        minutes=settings.REMINDER_WINDOW_MINUTES if window_minutes is None else window_minutes
    )
    if trigger >= now - window:
        return ReminderDecision.FIRE
    return ReminderDecision.MARK_FIRED_WITHOUT_NOTIFYING
