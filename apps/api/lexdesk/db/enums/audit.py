"""Audit and compliance enums."""

from enum import Enum


class AuditEventType(str, Enum):
    """
    Audit events.

    Groups:
    - INTAKE_*: Submission lifecycle
    - LEAD_*: Lead and client conversion
    - CONFLICT_*: Conflict checks
    - EVENT_*: Calendar
    - DAMAGES_*: Personal injury calculations
    - DOCUMENT_*: AI document generation
    """

    # Intake
    INTAKE_SUBMISSION_CREATED = "intake_submission_created"
    INTAKE_SUBMISSION_UPDATED = "intake_submission_updated"
    INTAKE_SUBMISSION_REVIEWED = "intake_submission_reviewed"
    INTAKE_SUBMISSION_CONVERTED = "intake_submission_converted"
    INTAKE_SUBMISSION_REJECTED = "intake_submission_rejected"
    INTAKE_SUBMISSION_SPAM = "intake_submission_spam"
    INTAKE_SUBMISSION_DELETED = "intake_submission_deleted"

    # Leads / clients
    LEAD_CREATED = "lead_created"
    LEAD_ASSIGNED = "lead_assigned"
    LEAD_STATUS_CHANGED = "lead_status_changed"
    LEAD_CONVERTED_TO_CLIENT = "lead_converted_to_client"

    # Conflicts
    CONFLICT_CHECK_RUN = "conflict_check_run"
    CONFLICT_RESOLVED = "conflict_resolved"

    # Calendar
    EVENT_CREATED = "event_created"
    EVENT_UPDATED = "event_updated"
    EVENT_DELETED = "event_deleted"
    EVENT_REMINDERS_REPROCESSED = "event_reminders_reprocessed"

    # Damages
    DAMAGES_ELEMENT_ADDED = "damages_element_added"
    DAMAGES_ELEMENT_DELETED = "damages_element_deleted"
    DAMAGES_CALCULATED = "damages_calculated"

    # AI documents
    DOCUMENT_GENERATED = "document_generated"
    DOCUMENT_GENERATION_FAILED = "document_generation_failed"
