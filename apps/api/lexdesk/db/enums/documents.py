"""AI document generation enums."""

from enum import Enum


class DocumentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class DocumentType(str, Enum):
    DEMAND_LETTER = "demand_letter"
    ENGAGEMENT_LETTER = "engagement_letter"
    MOTION_FOR_CONTINUANCE = "motion_for_continuance"
    INTAKE_SUMMARY = "intake_summary"
    DAMAGES_NARRATIVE = "damages_narrative"
