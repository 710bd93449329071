"""SQLAlchemy ORM models."""

from lexdesk.db.models.audit import AuditLog
from lexdesk.db.models.calendar import CalendarEvent
from lexdesk.db.models.conflicts import ConflictCheck
from lexdesk.db.models.damages import DamageCalculation, DamageElement
from lexdesk.db.models.documents import GeneratedDocument
from lexdesk.db.models.intake import Client, IntakeForm, IntakeSubmission, Lead, LegalCase
from lexdesk.db.models.jobs import Job
from lexdesk.db.models.notifications import Notification
from lexdesk.db.models.tenants import Membership, Organization, User

__all__ = [
    "AuditLog",
    "CalendarEvent",
    "Client",
    "ConflictCheck",
    "DamageCalculation",
    "DamageElement",
    "GeneratedDocument",
    "IntakeForm",
    "IntakeSubmission",
    "Job",
    "Lead",
    "LegalCase",
    "Membership",
    "Notification",
    "Organization",
    "User",
]
