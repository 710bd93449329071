"""Intake and lead enums."""

from enum import Enum


class SubmissionStatus(str, Enum):
    """Lifecycle of a public intake submission."""

    PENDING = "pending"
    REVIEWED = "reviewed"
    CONVERTED_TO_LEAD = "converted_to_lead"
    REJECTED = "rejected"
    SPAM = "spam"


class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    CONVERTED = "converted"
    LOST = "lost"


class LeadSource(str, Enum):
    WEBSITE = "website"
    REFERRAL = "referral"
    PHONE = "phone"
    WALK_IN = "walk_in"
    OTHER = "other"


class UrgencyLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class ClientStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class CaseStatus(str, Enum):
    OPEN = "open"
    PENDING = "pending"
    CLOSED = "closed"
