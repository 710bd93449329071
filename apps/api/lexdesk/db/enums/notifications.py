"""Notification enums."""

from enum import Enum


class NotificationType(str, Enum):
    NEW_SUBMISSION = "new_submission"
    SUBMISSION_REVIEWED = "submission_reviewed"
    SUBMISSION_REJECTED = "submission_rejected"
    SUBMISSION_SPAM = "submission_spam"
    LEAD_CONVERSION = "lead_conversion"
    LEAD_ASSIGNED = "lead_assigned"
    LEAD_STATUS_CHANGED = "lead_status_changed"
    CLIENT_CONVERSION = "client_conversion"
    CONFLICT_FOUND = "conflict_found"
    EVENT_REMINDER = "event_reminder"
    DOCUMENT_GENERATED = "document_generated"


class NotificationChannel(str, Enum):
    IN_APP = "in_app"
    EMAIL = "email"
    PUSH = "push"
