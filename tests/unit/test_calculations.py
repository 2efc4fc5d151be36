"""Unit tests for finance calculations"""

import pytest

from farm_finance.domain.calculations import (
    calculate_adjusted_land_price,
    calculate_land_interest_rate,
    calculate_lease_interest_rate,
    calculate_lease_payment,
    calculate_monthly_payment,
    calculate_payoff_amount,
    calculate_remaining_months,
    calculate_residual_value,
    calculate_security_deposit,
    calculate_total_cost,
    calculate_vehicle_interest_rate,
    meets_minimum_amount,
    normalize_term_months,
    validate_finance_params,
    validate_lease_params,
)
from farm_finance.domain.models import FinanceCategory


def test_zero_rate_payment_is_exact_division():
    assert calculate_monthly_payment(1000, 0, 10) == (100, 0)


@pytest.mark.parametrize("principal", [0, 1, 999, 2_500, 80_000, 1_234_567])
@pytest.mark.parametrize("rate", [0, 0.00005, 0.035, 0.15])
@pytest.mark.parametrize("term", [1, 12, 60, 360])
def test_payment_schedule_always_covers_principal(principal, rate, term):
    """Payments are never negative and always retire the principal"""
    monthly, total_interest = calculate_monthly_payment(principal, rate, term)
    assert monthly >= 0
    assert monthly * term >= principal
    assert total_interest >= 0


def test_amortized_payment_rounds_up():
    """10,000 at 6% over a year is 860.66, billed as 861"""
    monthly, total_interest = calculate_monthly_payment(10_000, 0.06, 12)
    assert monthly == 861
    assert total_interest == 861 * 12 - 10_000


def test_payment_degenerate_inputs():
    assert calculate_monthly_payment(0, 0.05, 60) == (0, 0)
    assert calculate_monthly_payment(-500, 0.05, 60) == (0, 0)
    assert calculate_monthly_payment(1000.4, 0.05, 0) == (1001, 0)


def test_normalize_term_months_substitutes_default():
    assert normalize_term_months(0) == 60
    assert normalize_term_months(-12) == 60
    assert normalize_term_months(None) == 60
    assert normalize_term_months("abc") == 60
    assert normalize_term_months(36) == 36


def test_vehicle_interest_rate_components():
    # Excellent credit, standard term, 20% down
    assert calculate_vehicle_interest_rate(800, 60, 0.20) == pytest.approx(3.0)
    # Very poor credit, 20-year term, 5% down
    assert calculate_vehicle_interest_rate(450, 240, 0.05) == pytest.approx(10.0)
    # Floor
    assert calculate_vehicle_interest_rate(800, 12, 0.50) == pytest.approx(2.0)


def test_vehicle_interest_rate_normalizes_score():
    assert calculate_vehicle_interest_rate(None, 60, 0.2) == calculate_vehicle_interest_rate(650, 60, 0.2)
    assert calculate_vehicle_interest_rate(9999, 60, 0.2) == calculate_vehicle_interest_rate(850, 60, 0.2)


def test_rates_ignore_credit_tier_when_credit_disabled():
    assert calculate_vehicle_interest_rate(800, 60, 0.20, credit_enabled=False) == pytest.approx(4.5)
    assert calculate_vehicle_interest_rate(450, 60, 0.20, credit_enabled=False) == pytest.approx(4.5)
    assert calculate_lease_interest_rate(800, 0.20, credit_enabled=False) == pytest.approx(5.0)
    assert calculate_land_interest_rate(450, 10, 0.20, credit_enabled=False) == pytest.approx(3.5)


def test_land_interest_rate_bounds():
    # 3.5 - 1.0 (excellent) - 0.5 (30% down) clamps to the 2.5 floor
    assert calculate_land_interest_rate(800, 10, 0.30) == pytest.approx(2.5)
    # 3.5 + 1.5 (poor) + 1.0 (over 20 years) + 1.0 (under 10% down)
    assert calculate_land_interest_rate(450, 25, 0.05) == pytest.approx(7.0)
    # Fair, 20 years, 20% down
    assert calculate_land_interest_rate(630, 20, 0.20) == pytest.approx(4.5)


def test_lease_interest_rate():
    assert calculate_lease_interest_rate(650, 0.20) == pytest.approx(5.5)
    assert calculate_lease_interest_rate(450, 0.0) == pytest.approx(9.5)


def test_meets_minimum_amount_land_boundary_inclusive():
    assert meets_minimum_amount(9_999, "LAND_FINANCE") == (False, 10_000)
    assert meets_minimum_amount(10_000, "LAND_FINANCE") == (True, 10_000)
    assert meets_minimum_amount(10_001, FinanceCategory.LAND_FINANCE) == (True, 10_000)


def test_land_minimum_exceeds_repair_minimum():
    _, land_minimum = meets_minimum_amount(0, FinanceCategory.LAND_FINANCE)
    _, repair_minimum = meets_minimum_amount(0, FinanceCategory.REPAIR_FINANCE)
    assert land_minimum > repair_minimum
    assert meets_minimum_amount(500, "REPAIR") == (True, 500)


def test_adjusted_land_price_by_tier():
    assert calculate_adjusted_land_price(100_000, 800) == (95_000, -5_000, -5, "Excellent")
    assert calculate_adjusted_land_price(100_000, 630) == (100_000, 0, 0, "Fair")
    assert calculate_adjusted_land_price(100_000, 450) == (110_000, 10_000, 10, "Very Poor")


def test_security_deposit_steps_with_credit():
    assert calculate_security_deposit(500, 800) == (0, 0, "Excellent")
    assert calculate_security_deposit(500, 700) == (500, 1, "Good")
    assert calculate_security_deposit(500, 620) == (1_000, 2, "Fair")
    assert calculate_security_deposit(500, 450) == (3_000, 6, "Very Poor")


def test_residual_value_depreciation():
    assert calculate_residual_value(100_000, 12) == pytest.approx(82_000)
    assert calculate_residual_value(100_000, 36) == pytest.approx(60_400)
    # Long leases stop at 75% depreciation
    assert calculate_residual_value(100_000, 600) == pytest.approx(25_000)


def test_lease_payment_covers_depreciation_and_rent():
    monthly = calculate_lease_payment(54_000, 36_240, 0.055, 36)
    depreciation = (54_000 - 36_240) / 36
    rent = (54_000 + 36_240) / 2 * 0.055 / 12
    assert monthly == 701
    assert depreciation + rent <= monthly < depreciation + rent + 1


def test_total_cost():
    assert calculate_total_cost(1_000, 100, 12) == (1_200, 200)


def test_payoff_amount_penalty():
    assert calculate_payoff_amount(10_000, 0, 60) == pytest.approx((10_200, 200))
    # Inside the final year the penalty halves
    assert calculate_payoff_amount(10_000, 50, 60) == pytest.approx((10_100, 100))


def test_remaining_months():
    assert calculate_remaining_months(1_000, 100, 0) == 10
    assert calculate_remaining_months(0, 100, 0.05) == 0
    # Payment below monthly interest never retires the balance
    assert calculate_remaining_months(100_000, 100, 0.12) is None
    monthly, _ = calculate_monthly_payment(10_000, 0.06, 12)
    assert calculate_remaining_months(10_000, monthly, 0.06) == 12


def test_validate_finance_params():
    assert validate_finance_params(100_000, 20_000, 60, "vehicle") == (True, None)
    assert validate_finance_params(100_000, 60_000, 60, "vehicle")[0] is False
    assert validate_finance_params(100_000, 45_000, 60, "land")[0] is False
    assert validate_finance_params(100_000, 0, 360, "land") == (True, None)
    assert validate_finance_params(100_000, 0, 360, "vehicle")[0] is False
    assert validate_finance_params(100_000, 0, 6, "vehicle")[0] is False
    assert validate_finance_params(0, 0, 60, "vehicle")[0] is False


def test_validate_lease_params():
    assert validate_lease_params(60_000, 12_000, 36) == (True, None)
    assert validate_lease_params(60_000, 12_001, 36)[0] is False
    assert validate_lease_params(60_000, 0, 72)[0] is False
