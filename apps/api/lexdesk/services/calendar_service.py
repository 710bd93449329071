"""Calendar service - events, reminder sweeps and iCalendar export."""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from lexdesk.core.config import settings
from lexdesk.core.errors import NotFoundError, ValidationFailedError
from lexdesk.core.structured_logging import build_log_context
from lexdesk.db.enums import (
    AuditEventType,
    EventType,
    NotificationChannel,
    NotificationType,
    ReminderDecision,
)
from lexdesk.db.models import CalendarEvent
from lexdesk.schemas.calendar import EventCreate, EventUpdate, ReminderSweepResult
from lexdesk.services import audit_service
from lexdesk.services.notification_events import (
    NotificationEvent,
    NotificationPublisher,
    OutboxPublisher,
    publish_safely,
)
from lexdesk.services.reminder_evaluator import evaluate_reminder
from lexdesk.utils.dates import ensure_utc, utc_now

logger = logging.getLogger(__name__)

TARGET_TYPE = "calendar_event"


def _normalize_reminders(event: CalendarEvent) -> None:
    """Drop additional lead-times equal to the primary; keep only live fired entries."""
    additional = [m for m in event.additional_reminders or [] if m != event.reminder_minutes]
    event.additional_reminders = list(dict.fromkeys(additional))
    event.reminders_sent = [m for m in event.reminders_sent or [] if m in event.additional_reminders]


# =============================================================================
# CRUD
# =============================================================================


def create_event(
    db: Session,
    org_id: UUID,
    data: EventCreate,
    actor_user_id: UUID | None = None,
) -> CalendarEvent:
    event = CalendarEvent(
        organization_id=org_id,
        owner_user_id=data.owner_user_id or actor_user_id,
        case_id=data.case_id,
        title=data.title,
        event_type=data.event_type.value,
        start_time=ensure_utc(data.start_time),
        end_time=ensure_utc(data.end_time),
        location=data.location,
        description=data.description,
        reminder_minutes=data.reminder_minutes,
        reminder_sent=False,
        additional_reminders=list(data.additional_reminders),
        reminders_sent=[],
        email_notification=data.email_notification,
        push_notification=data.push_notification,
    )
    _normalize_reminders(event)
    db.add(event)
    db.flush()

    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=AuditEventType.EVENT_CREATED,
        actor_user_id=actor_user_id,
        target_type=TARGET_TYPE,
        target_id=event.id,
        details={"event_type": event.event_type},
    )
    db.commit()
    db.refresh(event)
    return event


def get_event(db: Session, org_id: UUID, event_id: UUID) -> CalendarEvent:
    event = db.query(CalendarEvent).filter(
        CalendarEvent.id == event_id,
        CalendarEvent.organization_id == org_id,
    ).first()
    if not event:
        raise NotFoundError("CalendarEvent", event_id)
    return event


def list_events(
    db: Session,
    org_id: UUID,
    start: datetime | None = None,
    end: datetime | None = None,
    owner_user_id: UUID | None = None,
    case_id: UUID | None = None,
    event_type: EventType | None = None,
) -> list[CalendarEvent]:
    """Events ordered by start time, optionally bounded to [start, end)."""
    query = db.query(CalendarEvent).filter(CalendarEvent.organization_id == org_id)
    if start:
        query = query.filter(CalendarEvent.start_time >= ensure_utc(start))
    if end:
        query = query.filter(CalendarEvent.start_time < ensure_utc(end))
    if owner_user_id:
        query = query.filter(CalendarEvent.owner_user_id == owner_user_id)
    if case_id:
        query = query.filter(CalendarEvent.case_id == case_id)
    if event_type:
        query = query.filter(CalendarEvent.event_type == event_type.value)
    return query.order_by(CalendarEvent.start_time.asc()).all()


def list_upcoming_events(
    db: Session,
    org_id: UUID,
    days: int = 7,
    owner_user_id: UUID | None = None,
    now: datetime | None = None,
) -> list[CalendarEvent]:
    now = ensure_utc(now) or utc_now()
    return list_events(
        db, org_id, start=now, end=now + timedelta(days=days), owner_user_id=owner_user_id
    )


def update_event(
    db: Session,
    org_id: UUID,
    event_id: UUID,
    data: EventUpdate,
    actor_user_id: UUID | None = None,
) -> CalendarEvent:
    """
    Apply a partial update.

    Reminder bookkeeping:
    - new start time: every reminder becomes pending again
    - new primary lead-time: the primary becomes pending again, unless that
      lead-time already fired as an additional reminder
    - new additional list: fired entries that are still listed stay fired
    - a fired primary lead-time moved into the additional list stays fired
    """
    event = get_event(db, org_id, event_id)
    updates = data.model_dump(exclude_unset=True)

    fired_additional = set(event.reminders_sent or [])
    old_primary, old_primary_fired = event.reminder_minutes, event.reminder_sent
    rescheduled = False
    if "start_time" in updates and updates["start_time"] is not None:
        new_start = ensure_utc(updates.pop("start_time"))
        if new_start != ensure_utc(event.start_time):
            event.start_time = new_start
            rescheduled = True
    else:
        updates.pop("start_time", None)

    if "end_time" in updates:
        event.end_time = ensure_utc(updates.pop("end_time"))
    if event.end_time and ensure_utc(event.end_time) < ensure_utc(event.start_time):
        db.rollback()
        raise ValidationFailedError("end_time must be after start_time")

    if "reminder_minutes" in updates:
        new_primary = updates.pop("reminder_minutes")
        if new_primary != event.reminder_minutes:
            event.reminder_minutes = new_primary
            event.reminder_sent = new_primary in fired_additional

    if "additional_reminders" in updates:
        event.additional_reminders = list(updates.pop("additional_reminders") or [])

    if "event_type" in updates and updates["event_type"] is not None:
        event.event_type = updates.pop("event_type").value
    else:
        updates.pop("event_type", None)

    for field, value in updates.items():
        if field == "title" and value is None:
            continue
        if field in ("email_notification", "push_notification") and value is None:
            continue
        setattr(event, field, value)

    if rescheduled:
        event.reminder_sent = False
        event.reminders_sent = []
    elif (
        old_primary_fired
        and old_primary is not None
        and old_primary != event.reminder_minutes
        and old_primary in (event.additional_reminders or [])
    ):
        event.reminders_sent = [*(event.reminders_sent or []), old_primary]
    _normalize_reminders(event)

    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=AuditEventType.EVENT_UPDATED,
        actor_user_id=actor_user_id,
        target_type=TARGET_TYPE,
        target_id=event.id,
        details={"fields": sorted(data.model_fields_set), "rescheduled": rescheduled},
    )
    db.commit()
    db.refresh(event)
    return event


def delete_event(db: Session, org_id: UUID, event_id: UUID, actor_user_id: UUID | None = None) -> None:
    event = get_event(db, org_id, event_id)
    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=AuditEventType.EVENT_DELETED,
        actor_user_id=actor_user_id,
        target_type=TARGET_TYPE,
        target_id=event.id,
    )
    db.delete(event)
    db.commit()


# =============================================================================
# Reminder sweep
# =============================================================================


def describe_lead_time(minutes: int) -> str:
    if minutes == 0:
        return "now"
    if minutes % 1440 == 0:
        days = minutes // 1440
        return f"in {days} day{'s' if days != 1 else ''}"
    if minutes % 60 == 0:
        hours = minutes // 60
        return f"in {hours} hour{'s' if hours != 1 else ''}"
    return f"in {minutes} minute{'s' if minutes != 1 else ''}"


def _channels(event: CalendarEvent) -> tuple[NotificationChannel, ...]:
    channels = [NotificationChannel.IN_APP]
    if event.email_notification:
        channels.append(NotificationChannel.EMAIL)
    if event.push_notification:
        channels.append(NotificationChannel.PUSH)
    return tuple(channels)


def _reminder_event(event: CalendarEvent, lead_minutes: int) -> NotificationEvent:
    start = ensure_utc(event.start_time)
    when = start.strftime("%Y-%m-%d %H:%M UTC")
    message = f"{event.title} starts {describe_lead_time(lead_minutes)} ({when})"
    if event.location:
        message += f" at {event.location}"
    return NotificationEvent(
        org_id=event.organization_id,
        event_type=NotificationType.EVENT_REMINDER,
        title=f"Reminder: {event.title}",
        message=message,
        recipient_id=event.owner_user_id,
        entity_type=TARGET_TYPE,
        entity_id=event.id,
        payload={
            "event_id": str(event.id),
            "event_type": event.event_type,
            "start_time": start.isoformat(),
            "lead_minutes": lead_minutes,
        },
        channels=_channels(event),
        dedupe_key=(
            f"event_reminder:{event.id}:{lead_minutes}:{start.isoformat()}:{event.reminder_generation or 0}"
        ),
    )


def _has_pending_reminders(event: CalendarEvent) -> bool:
    if event.reminder_minutes is not None and not event.reminder_sent:
        return True
    fired = set(event.reminders_sent or [])
    return any(m not in fired for m in event.additional_reminders or [])


def _evaluate_event(
    event: CalendarEvent,
    now: datetime,
    result: ReminderSweepResult,
) -> list[int]:
    """Apply decisions to the event's bookkeeping. Returns lead-times to notify."""
    to_fire: list[int] = []

    if event.reminder_minutes is not None:
        decision = evaluate_reminder(
            event.start_time, event.reminder_minutes, now, already_fired=event.reminder_sent
        )
        if decision == ReminderDecision.FIRE:
            to_fire.append(event.reminder_minutes)
            event.reminder_sent = True
        elif decision == ReminderDecision.MARK_FIRED_WITHOUT_NOTIFYING:
            event.reminder_sent = True
            result.reminders_marked_missed += 1

    fired = list(event.reminders_sent or [])
    for lead_minutes in event.additional_reminders or []:
        decision = evaluate_reminder(
            event.start_time, lead_minutes, now, already_fired=lead_minutes in fired
        )
        if decision == ReminderDecision.FIRE:
            to_fire.append(lead_minutes)
            fired.append(lead_minutes)
        elif decision == ReminderDecision.MARK_FIRED_WITHOUT_NOTIFYING:
            fired.append(lead_minutes)
            result.reminders_marked_missed += 1
    # Reassign so the JSON column is marked dirty
    event.reminders_sent = fired
    return to_fire


def _process_events(
    db: Session,
    events: list[CalendarEvent],
    now: datetime,
    publisher: NotificationPublisher | None,
) -> ReminderSweepResult:
    result = ReminderSweepResult()
    pending: list[tuple[CalendarEvent, int]] = []

    for event in events:
        result.events_checked += 1
        for lead_minutes in _evaluate_event(event, now, result):
            pending.append((event, lead_minutes))

    # Fired bookkeeping is committed before any notification is published
    db.commit()

    sink = publisher or OutboxPublisher(db)
    for event, lead_minutes in pending:
        result.reminders_fired += 1
        if not publish_safely(sink, _reminder_event(event, lead_minutes)):
            result.notify_failures += 1
    return result


def process_event_reminders_for_org(
    db: Session,
    org_id: UUID,
    now: datetime | None = None,
    publisher: NotificationPublisher | None = None,
) -> ReminderSweepResult:
    """Evaluate every pending reminder for one organization."""
    now = ensure_utc(now) or utc_now()
    lookback = now - timedelta(hours=settings.REMINDER_LOOKBACK_HOURS)
    candidates = (
        db.query(CalendarEvent)
        .filter(
            CalendarEvent.organization_id == org_id,
            CalendarEvent.start_time >= lookback,
        )
        .order_by(CalendarEvent.start_time.asc())
        .all()
    )
    events = [event for event in candidates if _has_pending_reminders(event)]
    result = _process_events(db, events, now, publisher)
    if result.reminders_fired or result.reminders_marked_missed:
        logger.info(
            "Reminder sweep: fired=%s missed=%s",
            result.reminders_fired,
            result.reminders_marked_missed,
            extra=build_log_context(org_id=str(org_id)),
        )
    return result


def process_event_reminders(
    db: Session,
    now: datetime | None = None,
    publisher: NotificationPublisher | None = None,
) -> ReminderSweepResult:
    """
    Sweep reminders for every organization with upcoming events.

    Entry point for the cron endpoint, worker job and CLI. A failing
    organization is rolled back and recorded in errors; others continue.
    """
    now = ensure_utc(now) or utc_now()
    lookback = now - timedelta(hours=settings.REMINDER_LOOKBACK_HOURS)
    org_ids = db.execute(
        select(CalendarEvent.organization_id)
        .where(CalendarEvent.start_time >= lookback)
        .distinct()
    ).scalars().all()

    total = ReminderSweepResult()
    for org_id in org_ids:
        try:
            total.merge(process_event_reminders_for_org(db, org_id, now=now, publisher=publisher))
        except Exception as e:
            db.rollback()
            logger.exception(
                "Reminder sweep failed for org",
                extra=build_log_context(org_id=str(org_id)),
            )
            total.errors.append({"org_id": str(org_id), "error": str(e)})
    return total


def reprocess_event_reminders(
    db: Session,
    org_id: UUID,
    event_id: UUID,
    actor_user_id: UUID | None = None,
    now: datetime | None = None,
    publisher: NotificationPublisher | None = None,
) -> ReminderSweepResult:
    """Administrative re-run: clear fired bookkeeping and evaluate once."""
    now = ensure_utc(now) or utc_now()
    event = get_event(db, org_id, event_id)
    if ensure_utc(event.start_time) < now:
        raise ValidationFailedError("Cannot reprocess reminders for an event that already started")

    event.reminder_sent = False
    event.reminders_sent = []
    event.reminder_generation = (event.reminder_generation or 0) + 1
    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=AuditEventType.EVENT_REMINDERS_REPROCESSED,
        actor_user_id=actor_user_id,
        target_type=TARGET_TYPE,
        target_id=event.id,
        details={"generation": event.reminder_generation},
    )
    return _process_events(db, [event], now, publisher)


# =============================================================================
# iCalendar export
# =============================================================================


def _ics_escape(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def _ics_time(value: datetime) -> str:
    return ensure_utc(value).strftime("%Y%m%dT%H%M%SZ")


def _fold(line: str) -> list[str]:
    """Fold content lines longer than 75 octets (RFC 5545 3.1)."""
    encoded = line.encode("utf-8")
    if len(encoded) <= 75:
        return [line]
    parts: list[str] = []
    current = ""
    for char in line:
        if len((current + char).encode("utf-8")) > 75:
            parts.append(current)
            current = " " + char
        else:
            current += char
    parts.append(current)
    return parts


def generate_icalendar(
    events: list[CalendarEvent],
    calendar_name: str = "LexDesk Calendar",
    now: datetime | None = None,
) -> str:
    """Render events as a VCALENDAR document with one VALARM per reminder."""
    stamp = _ics_time(ensure_utc(now) or utc_now())
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//LexDesk//Calendar//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{_ics_escape(calendar_name)}",
    ]
    for event in events:
        lines.extend([
            "BEGIN:VEVENT",
            f"UID:{event.id}@lexdesk",
            f"DTSTAMP:{stamp}",
            f"DTSTART:{_ics_time(event.start_time)}",
        ])
        if event.end_time:
            lines.append(f"DTEND:{_ics_time(event.end_time)}")
        lines.append(f"SUMMARY:{_ics_escape(event.title)}")
        if event.description:
            lines.append(f"DESCRIPTION:{_ics_escape(event.description)}")
        if event.location:
            lines.append(f"LOCATION:{_ics_escape(event.location)}")
        lines.append(f"CATEGORIES:{event.event_type.upper()}")

        lead_times = []
        if event.reminder_minutes is not None:
            lead_times.append(event.reminder_minutes)
        lead_times.extend(event.additional_reminders or [])
        for minutes in lead_times:
            lines.extend([
                "BEGIN:VALARM",
                "ACTION:DISPLAY",
                f"DESCRIPTION:{_ics_escape(event.title)}",
                f"TRIGGER:-PT{minutes}M",
                "END:VALARM",
            ])
        lines.append("END:VEVENT")
    lines.append("END:VCALENDAR")

    folded: list[str] = []
    for line in lines:
        folded.extend(_fold(line))
    return "\r\n".join(folded) + "\r\n"
