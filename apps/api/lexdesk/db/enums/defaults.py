"""Centralized defaults for enums."""

from lexdesk.db.enums.calendar import EventType
from lexdesk.db.enums.intake import LeadSource, LeadStatus, SubmissionStatus, UrgencyLevel
from lexdesk.db.enums.jobs import JobStatus


DEFAULT_SUBMISSION_STATUS: SubmissionStatus = SubmissionStatus.PENDING
DEFAULT_LEAD_STATUS: LeadStatus = LeadStatus.NEW
DEFAULT_LEAD_SOURCE: LeadSource = LeadSource.WEBSITE
DEFAULT_URGENCY: UrgencyLevel = UrgencyLevel.MEDIUM
DEFAULT_EVENT_TYPE: EventType = EventType.OTHER
DEFAULT_JOB_STATUS: JobStatus = JobStatus.PENDING
DEFAULT_PRACTICE_AREA = "GENERAL"
