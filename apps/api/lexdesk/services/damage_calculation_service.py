"""Personal injury damages - line items and case-level totals.

Money is Decimal throughout and rounded to cents (half-up) when stored.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from lexdesk.core.config import settings
from lexdesk.core.errors import NotFoundError, ValidationFailedError
from lexdesk.db.enums import (
    NON_ECONOMIC_TYPES,
    AuditEventType,
    DamageElementType,
    PainSufferingMethod,
)
from lexdesk.db.models import DamageCalculation, DamageElement, LegalCase
from lexdesk.services import audit_service
from lexdesk.utils.dates import utc_now

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
ZERO = Decimal("0")
LOW_FACTOR = Decimal("0.75")
HIGH_FACTOR = Decimal("1.25")


def to_money(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def _non_negative(name: str, value: Decimal | int | float | None) -> Decimal:
    if value is None:
        raise ValidationFailedError(f"{name} is required")
    amount = Decimal(str(value))
    if amount < 0:
        raise ValidationFailedError(f"{name} must not be negative")
    return amount


# =============================================================================
# Calculators (pure)
# =============================================================================


def calculate_mileage(miles: Decimal | float, rate_per_mile: Decimal | None = None) -> Decimal:
    """Medical travel at the IRS rate unless a rate is given."""
    rate = settings.IRS_MILEAGE_RATE if rate_per_mile is None else _non_negative("rate_per_mile", rate_per_mile)
    return to_money(_non_negative("miles", miles) * rate)


def calculate_lost_wages(hourly_rate: Decimal, hours: Decimal | int) -> Decimal:
    return to_money(_non_negative("hourly_rate", hourly_rate) * _non_negative("hours", hours))


def calculate_household_services(monthly_value: Decimal, months: Decimal | int) -> Decimal:
    return to_money(_non_negative("monthly_value", monthly_value) * _non_negative("months", months))


def calculate_pain_suffering(
    method: PainSufferingMethod,
    economic_base: Decimal | None = None,
    multiplier: Decimal | None = None,
    per_diem_rate: Decimal | None = None,
    days: int | None = None,
    amount: Decimal | None = None,
) -> Decimal:
    """
    Pain & suffering by one of three methods:

    - MULTIPLIER: economic_base x multiplier
    - PER_DIEM: per_diem_rate x days
    - DIRECT: amount as given
    """
    if method == PainSufferingMethod.MULTIPLIER:
        return to_money(_non_negative("economic_base", economic_base) * _non_negative("multiplier", multiplier))
    if method == PainSufferingMethod.PER_DIEM:
        return to_money(_non_negative("per_diem_rate", per_diem_rate) * _non_negative("days", days))
    return to_money(_non_negative("amount", amount))


@dataclass
class DamagesBreakdown:
    totals: dict[DamageElementType, Decimal] = field(default_factory=dict)
    economic: Decimal = ZERO
    non_economic: Decimal = ZERO
    gross: Decimal = ZERO
    comparative_negligence_percent: Decimal = ZERO
    adjusted: Decimal = ZERO
    low: Decimal = ZERO
    mid: Decimal = ZERO
    high: Decimal = ZERO


def summarize(elements: list[DamageElement]) -> dict[DamageElementType, Decimal]:
    """Total per element type; every type is present."""
    totals = {element_type: ZERO for element_type in DamageElementType}
    for element in elements:
        element_type = DamageElementType(element.element_type)
        totals[element_type] += Decimal(element.amount or 0)
    return {k: to_money(v) for k, v in totals.items()}


def compute_damages(
    elements: list[DamageElement],
    comparative_negligence_percent: Decimal | int = 0,
) -> DamagesBreakdown:
    """
    Aggregate damages.

    economic = everything except pain & suffering
    gross = economic + non-economic
    adjusted = gross x (1 - negligence% / 100)
    low/mid/high = 0.75x / 1x / 1.25x adjusted
    """
    percent = Decimal(str(comparative_negligence_percent))
    if percent < 0 or percent > 100:
        raise ValidationFailedError("Comparative negligence must be between 0 and 100")

    totals = summarize(elements)
    non_economic = sum((v for k, v in totals.items() if k in NON_ECONOMIC_TYPES), ZERO)
    economic = sum((v for k, v in totals.items() if k not in NON_ECONOMIC_TYPES), ZERO)
    gross = economic + non_economic
    adjusted = gross
    if percent > 0:
        adjusted = gross * (Decimal("1") - percent / Decimal("100"))

    mid = to_money(adjusted)
    return DamagesBreakdown(
        totals=totals,
        economic=to_money(economic),
        non_economic=to_money(non_economic),
        gross=to_money(gross),
        comparative_negligence_percent=percent,
        adjusted=mid,
        low=to_money(mid * LOW_FACTOR),
        mid=mid,
        high=to_money(mid * HIGH_FACTOR),
    )


# =============================================================================
# Elements
# =============================================================================


def _get_case(db: Session, org_id: UUID, case_id: UUID) -> LegalCase:
    case = db.query(LegalCase).filter(
        LegalCase.id == case_id,
        LegalCase.organization_id == org_id,
    ).first()
    if not case:
        raise NotFoundError("LegalCase", case_id)
    return case


def add_damage_element(
    db: Session,
    org_id: UUID,
    case_id: UUID,
    element_type: DamageElementType,
    description: str,
    amount: Decimal,
    actor_user_id: UUID | None = None,
    calculation_method: str | None = None,
    provider_name: str | None = None,
    incurred_on: date | None = None,
    notes: str | None = None,
) -> DamageElement:
    _get_case(db, org_id, case_id)
    if not description or not description.strip():
        raise ValidationFailedError("Description is required")

    element = DamageElement(
        organization_id=org_id,
        case_id=case_id,
        element_type=element_type.value,
        description=description.strip(),
        amount=to_money(_non_negative("amount", amount)),
        calculation_method=calculation_method,
        provider_name=provider_name,
        incurred_on=incurred_on,
        notes=notes,
        created_by_user_id=actor_user_id,
    )
    db.add(element)
    db.flush()

    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=AuditEventType.DAMAGES_ELEMENT_ADDED,
        actor_user_id=actor_user_id,
        target_type="damage_element",
        target_id=element.id,
        details={"case_id": str(case_id), "element_type": element_type.value, "amount": str(element.amount)},
    )
    db.commit()
    db.refresh(element)
    return element


def add_mileage_element(
    db: Session,
    org_id: UUID,
    case_id: UUID,
    miles: Decimal | float,
    rate_per_mile: Decimal | None = None,
    actor_user_id: UUID | None = None,
    notes: str | None = None,
) -> DamageElement:
    return add_damage_element(
        db, org_id, case_id,
        element_type=DamageElementType.MILEAGE,
        description="Medical Travel Mileage",
        amount=calculate_mileage(miles, rate_per_mile),
        actor_user_id=actor_user_id,
        calculation_method="irs_rate" if rate_per_mile is None else "custom_rate",
        notes=notes,
    )


def add_lost_wages_element(
    db: Session,
    org_id: UUID,
    case_id: UUID,
    hourly_rate: Decimal,
    hours: Decimal | int,
    employer_name: str | None = None,
    actor_user_id: UUID | None = None,
    notes: str | None = None,
) -> DamageElement:
    return add_damage_element(
        db, org_id, case_id,
        element_type=DamageElementType.LOST_WAGES,
        description="Lost Wages",
        amount=calculate_lost_wages(hourly_rate, hours),
        actor_user_id=actor_user_id,
        calculation_method="hourly",
        provider_name=employer_name,
        notes=notes,
    )


def add_household_services_element(
    db: Session,
    org_id: UUID,
    case_id: UUID,
    monthly_value: Decimal,
    months: Decimal | int,
    actor_user_id: UUID | None = None,
    notes: str | None = None,
) -> DamageElement:
    return add_damage_element(
        db, org_id, case_id,
        element_type=DamageElementType.HOUSEHOLD_SERVICES,
        description="Household Services Loss",
        amount=calculate_household_services(monthly_value, months),
        actor_user_id=actor_user_id,
        calculation_method="monthly_rate",
        notes=notes,
    )


def add_pain_suffering_element(
    db: Session,
    org_id: UUID,
    case_id: UUID,
    method: PainSufferingMethod,
    economic_base: Decimal | None = None,
    multiplier: Decimal | None = None,
    per_diem_rate: Decimal | None = None,
    days: int | None = None,
    amount: Decimal | None = None,
    actor_user_id: UUID | None = None,
    notes: str | None = None,
) -> DamageElement:
    total = calculate_pain_suffering(
        method,
        economic_base=economic_base,
        multiplier=multiplier,
        per_diem_rate=per_diem_rate,
        days=days,
        amount=amount,
    )
    if method == PainSufferingMethod.MULTIPLIER:
        description = f"Pain & Suffering ({multiplier}x Multiplier)"
    elif method == PainSufferingMethod.PER_DIEM:
        description = f"Pain & Suffering (${per_diem_rate}/day)"
    else:
        description = "Pain & Suffering"
    return add_damage_element(
        db, org_id, case_id,
        element_type=DamageElementType.PAIN_SUFFERING,
        description=description,
        amount=total,
        actor_user_id=actor_user_id,
        calculation_method=method.value,
        notes=notes,
    )


def list_damage_elements(
    db: Session,
    org_id: UUID,
    case_id: UUID,
    element_type: DamageElementType | None = None,
) -> list[DamageElement]:
    query = db.query(DamageElement).filter(
        DamageElement.organization_id == org_id,
        DamageElement.case_id == case_id,
    )
    if element_type:
        query = query.filter(DamageElement.element_type == element_type.value)
    return query.order_by(DamageElement.created_at.asc()).all()


def delete_damage_element(
    db: Session,
    org_id: UUID,
    element_id: UUID,
    actor_user_id: UUID | None = None,
) -> None:
    element = db.query(DamageElement).filter(
        DamageElement.id == element_id,
        DamageElement.organization_id == org_id,
    ).first()
    if not element:
        raise NotFoundError("DamageElement", element_id)

    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=AuditEventType.DAMAGES_ELEMENT_DELETED,
        actor_user_id=actor_user_id,
        target_type="damage_element",
        target_id=element.id,
        details={"case_id": str(element.case_id)},
    )
    db.delete(element)
    db.commit()


def summary_by_type(db: Session, org_id: UUID, case_id: UUID) -> dict[str, Decimal]:
    totals = summarize(list_damage_elements(db, org_id, case_id))
    return {k.value: v for k, v in totals.items()}


# =============================================================================
# Case calculation
# =============================================================================

_TOTAL_COLUMNS = {
    DamageElementType.PAST_MEDICAL: "past_medical_total",
    DamageElementType.FUTURE_MEDICAL: "future_medical_total",
    DamageElementType.LOST_WAGES: "lost_wages_total",
    DamageElementType.EARNING_CAPACITY: "earning_capacity_total",
    DamageElementType.HOUSEHOLD_SERVICES: "household_services_total",
    DamageElementType.PAIN_SUFFERING: "pain_suffering_total",
    DamageElementType.MILEAGE: "mileage_total",
    DamageElementType.OTHER: "other_total",
}


def get_calculation(db: Session, org_id: UUID, case_id: UUID) -> DamageCalculation | None:
    return db.query(DamageCalculation).filter(
        DamageCalculation.organization_id == org_id,
        DamageCalculation.case_id == case_id,
    ).first()


def calculate_damages(
    db: Session,
    org_id: UUID,
    case_id: UUID,
    comparative_negligence_percent: Decimal | int | None = None,
    actor_user_id: UUID | None = None,
) -> DamageCalculation:
    """
    Recompute and store the case's damages summary.

    When comparative_negligence_percent is None the previously stored
    percentage is reused (0 for a first calculation).
    """
    _get_case(db, org_id, case_id)
    calculation = get_calculation(db, org_id, case_id)
    if comparative_negligence_percent is None:
        comparative_negligence_percent = (
            calculation.comparative_negligence_percent if calculation is not None else ZERO
        )

    breakdown = compute_damages(
        list_damage_elements(db, org_id, case_id), comparative_negligence_percent
    )
    if calculation is None:
        calculation = DamageCalculation(organization_id=org_id, case_id=case_id)
        db.add(calculation)
    for element_type, column in _TOTAL_COLUMNS.items():
        setattr(calculation, column, breakdown.totals[element_type])
    calculation.economic_damages = breakdown.economic
    calculation.non_economic_damages = breakdown.non_economic
    calculation.gross_damages = breakdown.gross
    calculation.comparative_negligence_percent = breakdown.comparative_negligence_percent
    calculation.adjusted_damages = breakdown.adjusted
    calculation.low_estimate = breakdown.low
    calculation.mid_estimate = breakdown.mid
    calculation.high_estimate = breakdown.high
    calculation.calculated_by_user_id = actor_user_id
    calculation.calculated_at = utc_now()
    db.flush()

    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=AuditEventType.DAMAGES_CALCULATED,
        actor_user_id=actor_user_id,
        target_type="legal_case",
        target_id=case_id,
        details={"adjusted": str(breakdown.adjusted)},
    )
    db.commit()
    db.refresh(calculation)
    logger.info("Damage calculation for case %s: adjusted=%s", case_id, breakdown.adjusted)
    return calculation
