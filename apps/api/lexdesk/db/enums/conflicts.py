"""Conflict check enums."""

from enum import Enum


class ConflictCheckStatus(str, Enum):
    NO_CONFLICT = "no_conflict"
    CONFLICT_FOUND = "conflict_found"
    RESOLVED = "resolved"


class ConflictCheckType(str, Enum):
    CONVERSION_CLIENT = "conversion_client"
    NEW_MATTER = "new_matter"
    MANUAL = "manual"


class ConflictResolution(str, Enum):
    """How a flagged conflict was cleared."""

    NOT_A_CONFLICT = "not_a_conflict"
    WAIVER_OBTAINED = "waiver_obtained"
    DECLINED = "declined"
