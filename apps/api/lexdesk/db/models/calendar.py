"""SQLAlchemy ORM models for calendar events."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from lexdesk.db.base import Base
from lexdesk.db.enums import DEFAULT_EVENT_TYPE
from lexdesk.utils.dates import utc_now


class CalendarEvent(Base):
    """
    A scheduled hearing, meeting or deadline.

    Reminder bookkeeping:
    - reminder_minutes / reminder_sent: primary lead-time and its fired flag
    - additional_reminders: extra lead-times in minutes (never equal to the primary)
    - reminders_sent: additional lead-times that already fired
    - reminder_generation: bumped by each reprocess so re-sent reminders get fresh outbox keys
    """

    __tablename__ = "calendar_events"
    __table_args__ = (
        Index("idx_calendar_events_org_start", "organization_id", "start_time"),
        Index("idx_calendar_events_owner", "owner_user_id", "start_time"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    owner_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    case_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("legal_cases.id", ondelete="SET NULL"), nullable=True
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    event_type: Mapped[str] = mapped_column(String(30), nullable=False, default=DEFAULT_EVENT_TYPE.value)
    start_time: Mapped[datetime] = mapped_column(nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(nullable=True)
    location: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    reminder_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reminder_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    additional_reminders: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    reminders_sent: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    reminder_generation: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    email_notification: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    push_notification: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        default=utc_now, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, onupdate=utc_now, server_default=func.now(), nullable=False
    )
