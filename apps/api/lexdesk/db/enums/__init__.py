"""Enum definitions for application constants."""

from lexdesk.db.enums.audit import AuditEventType
from lexdesk.db.enums.auth import Role
from lexdesk.db.enums.calendar import EventType, ReminderDecision
from lexdesk.db.enums.conflicts import (
    ConflictCheckStatus,
    ConflictCheckType,
    ConflictResolution,
)
from lexdesk.db.enums.damages import (
    DamageElementType,
    NON_ECONOMIC_TYPES,
    PainSufferingMethod,
)
from lexdesk.db.enums.defaults import (
    DEFAULT_EVENT_TYPE,
    DEFAULT_JOB_STATUS,
    DEFAULT_LEAD_SOURCE,
    DEFAULT_LEAD_STATUS,
    DEFAULT_PRACTICE_AREA,
    DEFAULT_SUBMISSION_STATUS,
    DEFAULT_URGENCY,
)
from lexdesk.db.enums.documents import DocumentStatus, DocumentType
from lexdesk.db.enums.intake import (
    CaseStatus,
    ClientStatus,
    LeadSource,
    LeadStatus,
    SubmissionStatus,
    UrgencyLevel,
)
from lexdesk.db.enums.jobs import JobStatus, JobType
from lexdesk.db.enums.notifications import NotificationChannel, NotificationType

__all__ = [
    "AuditEventType",
    "CaseStatus",
    "ClientStatus",
    "ConflictCheckStatus",
    "ConflictCheckType",
    "ConflictResolution",
    "DEFAULT_EVENT_TYPE",
    "DEFAULT_JOB_STATUS",
    "DEFAULT_LEAD_SOURCE",
    "DEFAULT_LEAD_STATUS",
    "DEFAULT_PRACTICE_AREA",
    "DEFAULT_SUBMISSION_STATUS",
    "DEFAULT_URGENCY",
    "DamageElementType",
    "DocumentStatus",
    "DocumentType",
    "EventType",
    "JobStatus",
    "JobType",
    "LeadSource",
    "LeadStatus",
    "NON_ECONOMIC_TYPES",
    "NotificationChannel",
    "NotificationType",
    "PainSufferingMethod",
    "ReminderDecision",
    "Role",
    "SubmissionStatus",
    "UrgencyLevel",
]
