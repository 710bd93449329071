"""Tests for personal injury damages."""

from decimal import Decimal

import pytest

from lexdesk.core.errors import NotFoundError, ValidationFailedError
from lexdesk.db.enums import DamageElementType, PainSufferingMethod
from lexdesk.db.models import DamageCalculation, DamageElement
from lexdesk.services import damage_calculation_service as damages


def _element(element_type, amount):
    return DamageElement(element_type=element_type.value, description="x", amount=Decimal(amount))


# =============================================================================
# Calculators
# =============================================================================

def test_mileage_uses_irs_rate():
    assert damages.calculate_mileage(Decimal("100")) == Decimal("67.00")
    assert damages.calculate_mileage(Decimal("10"), rate_per_mile=Decimal("0.5")) == Decimal("5.00")


def test_money_rounds_half_up():
    assert damages.to_money("1.005") == Decimal("1.01")
    assert damages.to_money("2.004") == Decimal("2.00")


def test_lost_wages_and_household():
    assert damages.calculate_lost_wages(Decimal("25.50"), 40) == Decimal("1020.00")
    assert damages.calculate_household_services(Decimal("300"), 6) == Decimal("1800.00")


@pytest.mark.parametrize("kwargs,expected", [
    ({"method": PainSufferingMethod.MULTIPLIER, "economic_base": Decimal("10000"), "multiplier": Decimal("2.5")},
     Decimal("25000.00")),
    ({"method": PainSufferingMethod.PER_DIEM, "per_diem_rate": Decimal("150"), "days": 90},
     Decimal("13500.00")),
    ({"method": PainSufferingMethod.DIRECT, "amount": Decimal("5000")},
     Decimal("5000.00")),
])
def test_pain_suffering_methods(kwargs, expected):
    assert damages.calculate_pain_suffering(**kwargs) == expected


def test_pain_suffering_requires_inputs():
    with pytest.raises(ValidationFailedError):
        damages.calculate_pain_suffering(PainSufferingMethod.MULTIPLIER, economic_base=Decimal("100"))


def test_negative_inputs_rejected():
    with pytest.raises(ValidationFailedError):
        damages.calculate_mileage(Decimal("-1"))
    with pytest.raises(ValidationFailedError):
        damages.calculate_lost_wages(Decimal("20"), -5)


# =============================================================================
# Aggregation
# =============================================================================

def test_compute_damages_with_negligence():
    elements = [
        _element(DamageElementType.PAST_MEDICAL, "8000"),
        _element(DamageElementType.FUTURE_MEDICAL, "2000"),
        _element(DamageElementType.LOST_WAGES, "5000"),
        _element(DamageElementType.PAIN_SUFFERING, "25000"),
    ]

    result = damages.compute_damages(elements, comparative_negligence_percent=20)

    assert result.totals[DamageElementType.PAST_MEDICAL] == Decimal("8000.00")
    assert result.totals[DamageElementType.MILEAGE] == Decimal("0.00")
    assert result.economic == Decimal("15000.00")
    assert result.non_economic == Decimal("25000.00")
    assert result.gross == Decimal("40000.00")
    assert result.adjusted == Decimal("32000.00")
    assert result.low == Decimal("24000.00")
    assert result.mid == Decimal("32000.00")
    assert result.high == Decimal("40000.00")


def test_compute_damages_empty():
    result = damages.compute_damages([])
    assert result.gross == Decimal("0.00")
    assert result.high == Decimal("0.00")


@pytest.mark.parametrize("percent", [-1, 101, Decimal("100.01")])
def test_negligence_out_of_range(percent):
    with pytest.raises(ValidationFailedError):
        damages.compute_damages([], comparative_negligence_percent=percent)


def test_full_negligence_zeroes_award():
    result = damages.compute_damages([_element(DamageElementType.OTHER, "1000")], 100)
    assert result.adjusted == Decimal("0.00")


# =============================================================================
# Persistence
# =============================================================================

def test_add_elements_and_summary(db, test_org, test_user, test_case):
    damages.add_damage_element(
        db, test_org.id, test_case.id, DamageElementType.PAST_MEDICAL,
        "ER visit", Decimal("1200.456"), actor_user_id=test_user.id, provider_name="St. Mary's",
    )
    mileage = damages.add_mileage_element(db, test_org.id, test_case.id, Decimal("50"))
    wages = damages.add_lost_wages_element(
        db, test_org.id, test_case.id, Decimal("30"), 8, employer_name="Acme"
    )

    assert mileage.amount == Decimal("33.50")
    assert mileage.calculation_method == "irs_rate"
    assert wages.provider_name == "Acme"

    summary = damages.summary_by_type(db, test_org.id, test_case.id)
    assert summary["past_medical"] == Decimal("1200.46")
    assert summary["mileage"] == Decimal("33.50")
    assert summary["lost_wages"] == Decimal("240.00")
    assert summary["pain_suffering"] == Decimal("0.00")


def test_pain_suffering_element_description(db, test_org, test_case):
    element = damages.add_pain_suffering_element(
        db, test_org.id, test_case.id,
        PainSufferingMethod.MULTIPLIER,
        economic_base=Decimal("1000"),
        multiplier=Decimal("3"),
    )
    assert element.description == "Pain & Suffering (3x Multiplier)"
    assert element.amount == Decimal("3000.00")
    assert element.calculation_method == "multiplier"


def test_add_element_requires_description(db, test_org, test_case):
    with pytest.raises(ValidationFailedError):
        damages.add_damage_element(db, test_org.id, test_case.id, DamageElementType.OTHER, "  ", Decimal("1"))


def test_add_element_to_other_org_case(db, other_org, test_case):
    with pytest.raises(NotFoundError):
        damages.add_damage_element(db, other_org.id, test_case.id, DamageElementType.OTHER, "x", Decimal("1"))


def test_delete_element(db, test_org, test_case):
    element = damages.add_damage_element(
        db, test_org.id, test_case.id, DamageElementType.OTHER, "Rental car", Decimal("400")
    )
    damages.delete_damage_element(db, test_org.id, element.id)
    assert damages.list_damage_elements(db, test_org.id, test_case.id) == []


def test_calculate_damages_upserts_and_reuses_percent(db, test_org, test_user, test_case):
    damages.add_damage_element(db, test_org.id, test_case.id, DamageElementType.PAST_MEDICAL, "ER", Decimal("10000"))

    first = damages.calculate_damages(
        db, test_org.id, test_case.id, comparative_negligence_percent=10, actor_user_id=test_user.id
    )
    assert first.adjusted_damages == Decimal("9000.00")

    damages.add_damage_element(db, test_org.id, test_case.id, DamageElementType.PAIN_SUFFERING, "P&S", Decimal("10000"))
    second = damages.calculate_damages(db, test_org.id, test_case.id)

    assert second.id == first.id
    assert Decimal(second.comparative_negligence_percent) == Decimal("10")
    assert second.gross_damages == Decimal("20000.00")
    assert second.adjusted_damages == Decimal("18000.00")
    assert second.high_estimate == Decimal("22500.00")
    assert db.query(DamageCalculation).count() == 1


def test_first_calculation_defaults_to_no_negligence(db, test_org, test_case):
    damages.add_damage_element(db, test_org.id, test_case.id, DamageElementType.OTHER, "x", Decimal("100"))
    calculation = damages.calculate_damages(db, test_org.id, test_case.id)
    assert calculation.adjusted_damages == Decimal("100.00")


def test_invalid_percent_leaves_no_calculation(db, test_org, test_case):
    with pytest.raises(ValidationFailedError):
        damages.calculate_damages(db, test_org.id, test_case.id, comparative_negligence_percent=150)
    assert damages.get_calculation(db, test_org.id, test_case.id) is None
