"""Personal injury damages enums."""

from enum import Enum


class DamageElementType(str, Enum):
    PAST_MEDICAL = "past_medical"
    FUTURE_MEDICAL = "future_medical"
    LOST_WAGES = "lost_wages"
    EARNING_CAPACITY = "earning_capacity"
    HOUSEHOLD_SERVICES = "household_services"
    PAIN_SUFFERING = "pain_suffering"
    MILEAGE = "mileage"
    OTHER = "other"


NON_ECONOMIC_TYPES = frozenset({DamageElementType.PAIN_SUFFERING})


class PainSufferingMethod(str, Enum):
    MULTIPLIER = "multiplier"  # economic base x multiplier
    PER_DIEM = "per_diem"  # daily rate x days
    DIRECT = "direct"  # fixed amount
