"""Schemas for calendar events."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from lexdesk.db.enums import DEFAULT_EVENT_TYPE, EventType
from lexdesk.utils.dates import ensure_utc


def _clean_lead_times(values: list[int] | None) -> list[int]:
    seen: set[int] = set()
    result: list[int] = []
    for value in values or []:
        if value < 0:
            raise ValueError("Reminder minutes must be >= 0")
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    event_type: EventType = DEFAULT_EVENT_TYPE
    start_time: datetime
    end_time: datetime | None = None
    location: str | None = Field(None, max_length=500)
    description: str | None = None
    owner_user_id: UUID | None = None
    case_id: UUID | None = None
    reminder_minutes: int | None = Field(None, ge=0)
    additional_reminders: list[int] = Field(default_factory=list)
    email_notification: bool = True
    push_notification: bool = False

    @field_validator("additional_reminders")
    @classmethod
    def _dedupe_reminders(cls, value: list[int]) -> list[int]:
        return _clean_lead_times(value)

    @model_validator(mode="after")
    def _check_times(self) -> "EventCreate":
        if self.end_time and ensure_utc(self.end_time) < ensure_utc(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class EventUpdate(BaseModel):
    """Partial update. Only fields explicitly set are applied."""

    title: str | None = Field(None, min_length=1, max_length=255)
    event_type: EventType | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    location: str | None = Field(None, max_length=500)
    description: str | None = None
    owner_user_id: UUID | None = None
    case_id: UUID | None = None
    reminder_minutes: int | None = Field(None, ge=0)
    additional_reminders: list[int] | None = None
    email_notification: bool | None = None
    push_notification: bool | None = None

    @field_validator("additional_reminders")
    @classmethod
    def _dedupe_reminders(cls, value: list[int] | None) -> list[int] | None:
        if value is None:
            return None
        return _clean_lead_times(value)


class ReminderSweepResult(BaseModel):
    events_checked: int = 0
    reminders_fired: int = 0
    reminders_marked_missed: int = 0
    notify_failures: int = 0
    errors: list[dict] = Field(default_factory=list)

    def merge(self, other: "ReminderSweepResult") -> None:
        self.events_checked += other.events_checked
        self.reminders_fired += other.reminders_fired
        self.reminders_marked_missed += other.reminders_marked_missed
        self.notify_failures += other.notify_failures
        self.errors.extend(other.errors)


class ReminderSweepQueued(BaseModel):
    orgs_queued: int
