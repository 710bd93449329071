"""Calendar and reminder enums."""

from enum import Enum


class EventType(str, Enum):
    HEARING = "hearing"
    MEETING = "meeting"
    DEADLINE = "deadline"
    CONSULTATION = "consultation"
    OTHER = "other"


class ReminderDecision(str, Enum):
    """Outcome of evaluating one (event, lead-time) pair."""

    SKIP = "skip"
    FIRE = "fire"
    MARK_FIRED_WITHOUT_NOTIFYING = "mark_fired_without_notifying"
