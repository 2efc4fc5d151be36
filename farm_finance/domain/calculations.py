"""
Finance calculations - pure, side-effect-free math used by live previews and deal creation.

Every function returns the same output for the same input and never raises on
bad input: invalid terms, prices or scores fall back to safe defaults so a
preview can be recomputed on every slider movement.
"""

import math
from typing import Dict, Optional, Tuple

from farm_finance.domain.credit_score import get_interest_adjustment, get_tier
from farm_finance.domain.models import CreditTier, FinanceCategory

DEFAULT_TERM_MONTHS = 60

MINIMUM_AMOUNTS: Dict[FinanceCategory, int] = {
    FinanceCategory.VEHICLE_FINANCE: 2_500,
    FinanceCategory.VEHICLE_LEASE: 5_000,
    FinanceCategory.CASH_LOAN: 1_000,
    FinanceCategory.REPAIR_FINANCE: 500,
    FinanceCategory.LAND_FINANCE: 10_000,
}

LAND_CREDIT_ADJUSTMENTS: Dict[CreditTier, float] = {
    CreditTier.EXCELLENT: -1.0,
    CreditTier.GOOD: 0.0,
    CreditTier.FAIR: 0.5,
    CreditTier.POOR: 1.5,
    CreditTier.VERY_POOR: 1.5,
}

# (multiplier, percent)
LAND_PRICE_MODIFIERS: Dict[CreditTier, Tuple[float, int]] = {
    CreditTier.EXCELLENT: (0.95, -5),
    CreditTier.GOOD: (0.98, -2),
    CreditTier.FAIR: (1.00, 0),
    CreditTier.POOR: (1.05, 5),
    CreditTier.VERY_POOR: (1.10, 10),
}

SECURITY_DEPOSIT_MONTHS: Dict[CreditTier, int] = {
    CreditTier.EXCELLENT: 0,
    CreditTier.GOOD: 1,
    CreditTier.FAIR: 2,
    CreditTier.POOR: 3,
    CreditTier.VERY_POOR: 6,
}

# Lease residual: monthly depreciation by age band
RESIDUAL_DEPRECIATION = ((12, 0.015), (24, 0.010), (36, 0.008))
RESIDUAL_DEPRECIATION_LATE = 0.006
MAX_LEASE_DEPRECIATION = 0.75


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def normalize_term_months(term_months: Optional[float], default: int = DEFAULT_TERM_MONTHS) -> int:
    """Whole-month term, substituting the default for missing or non-positive values"""
    try:
        months = int(term_months)
    except (TypeError, ValueError):
        return default
    return months if months > 0 else default


def meets_minimum_amount(price: float, category: "FinanceCategory | str") -> Tuple[bool, int]:
    """Minimum financeable amount per product; the boundary itself qualifies"""
    parsed = FinanceCategory.parse(category)
    minimum = MINIMUM_AMOUNTS.get(parsed, MINIMUM_AMOUNTS[FinanceCategory.VEHICLE_FINANCE])
    return price >= minimum, minimum


def calculate_monthly_payment(principal: float, annual_rate: float, term_months: int) -> Tuple[float, float]:
    """
    Standard amortized payment.

    Args:
        principal: Amount financed (after down payment)
        annual_rate: Annual rate as a decimal fraction (0.065 for 6.5%)
        term_months: Number of monthly payments

    Returns:
        (monthly_payment, total_interest); the payment is rounded up to whole
        currency so the schedule always retires the principal.

    Example:
        calculate_monthly_payment(1000, 0, 10) -> (100, 0)
    """
    if principal <= 0:
        return 0, 0
    if term_months <= 0:
        # Nothing to amortize over: the full amount is due now
        return math.ceil(principal), 0

    monthly_rate = max(0.0, annual_rate) / 12
    if monthly_rate > 0.0001:
        factor = (1 + monthly_rate) ** term_months
        monthly = principal * (monthly_rate * factor) / (factor - 1)
    else:
        monthly = principal / term_months

    monthly = math.ceil(round(monthly, 6))
    total_interest = max(0, monthly * term_months - principal)
    return monthly, total_interest


def calculate_vehicle_interest_rate(
    credit_score: Optional[float], term_months: int, down_payment_percent: float, credit_enabled: bool = True
) -> float:
    """
    Vehicle/equipment rate in percent.

    4.5% base + credit tier (-1.5..+3.0) + term (0..+1.5) + down payment (-1.0..+1.0),
    clamped to 2.0-15.0%. The credit tier is skipped when credit is disabled.
    """
    term_months = normalize_term_months(term_months)
    rate = 4.5
    if credit_enabled:
        rate += get_interest_adjustment(credit_score)

    if term_months > 180:
        rate += 1.5
    elif term_months > 120:
        rate += 1.0
    elif term_months > 60:
        rate += 0.5

    if down_payment_percent >= 0.40:
        rate -= 1.0
    elif down_payment_percent >= 0.25:
        rate -= 0.5
    elif down_payment_percent < 0.10:
        rate += 1.0

    return _clamp(rate, 2.0, 15.0)


def calculate_land_interest_rate(
    credit_score: Optional[float], term_years: float, down_payment_percent: float, credit_enabled: bool = True
) -> float:
    """
    Land rate in percent. Land holds its value, so the base (3.5%) sits below vehicles.

    Credit tier -1.0..+1.5, terms over 15/20 years +0.5/+1.0, 30%+ down -0.5,
    under 10% down +1.0; clamped to 2.5-8.0%.
    """
    if term_years is None or term_years <= 0:
        term_years = DEFAULT_TERM_MONTHS / 12
    rate = 3.5
    if credit_enabled:
        rate += LAND_CREDIT_ADJUSTMENTS[get_tier(credit_score)]

    if term_years > 20:
        rate += 1.0
    elif term_years > 15:
        rate += 0.5

    if down_payment_percent >= 0.30:
        rate -= 0.5
    elif down_payment_percent < 0.10:
        rate += 1.0

    return _clamp(rate, 2.5, 8.0)


def calculate_lease_interest_rate(
    credit_score: Optional[float], down_payment_percent: float, credit_enabled: bool = True
) -> float:
    """Lease rate in percent: 5.5% base, clamped to 3.0-12.0%"""
    rate = 5.5
    if credit_enabled:
        rate += get_interest_adjustment(credit_score)
    rate += -0.5 if down_payment_percent >= 0.15 else 1.0
    return _clamp(rate, 3.0, 12.0)


def calculate_residual_value(base_price: float, term_months: int) -> float:
    """End-of-lease value: steep first-year depreciation flattening out, capped at 75%"""
    term_months = normalize_term_months(term_months)
    depreciation = 0.0
    for month in range(1, term_months + 1):
        rate = RESIDUAL_DEPRECIATION_LATE
        for band_end, band_rate in RESIDUAL_DEPRECIATION:
            if month <= band_end:
                rate = band_rate
                break
        depreciation += rate

    depreciation = min(depreciation, MAX_LEASE_DEPRECIATION)
    return base_price * (1.0 - depreciation)


def calculate_lease_payment(price: float, residual_value: float, annual_rate: float, term_months: int) -> float:
    """Depreciation share plus rent charge on the average of price and residual"""
    if price <= 0 or term_months <= 0:
        return 0
    depreciation = (price - residual_value) / term_months
    rent_charge = (price + residual_value) / 2 * (annual_rate / 12)
    return math.ceil(round(depreciation + rent_charge, 6))


def calculate_lease_rent_charge(price: float, residual_value: float, annual_rate: float) -> float:
    """Interest portion of every lease payment"""
    return (price + residual_value) / 2 * (annual_rate / 12)


def calculate_adjusted_land_price(base_price: float, credit_score: Optional[float]) -> Tuple[float, float, int, str]:
    """
    Credit-adjusted land price: reliable buyers negotiate a discount, risky buyers pay a premium.

    Returns:
        (adjusted_price, adjustment_amount, adjustment_percent, tier_name);
        a negative adjustment is a discount.
    """
    tier = get_tier(credit_score)
    multiplier, percent = LAND_PRICE_MODIFIERS[tier]
    adjusted = math.floor(max(0.0, base_price) * multiplier)
    return adjusted, adjusted - base_price, percent, tier.label


def get_security_deposit_months(credit_score: Optional[float]) -> Tuple[int, str]:
    tier = get_tier(credit_score)
    return SECURITY_DEPOSIT_MONTHS[tier], tier.label


def calculate_security_deposit(monthly_payment: float, credit_score: Optional[float]) -> Tuple[float, int, str]:
    """Lease deposit as a credit-tiered number of monthly payments"""
    months, tier_name = get_security_deposit_months(credit_score)
    return max(0.0, monthly_payment) * months, months, tier_name


def calculate_total_cost(principal: float, monthly_payment: float, term_months: int) -> Tuple[float, float]:
    total_paid = monthly_payment * max(0, term_months)
    return total_paid, total_paid - principal


def calculate_payoff_amount(current_balance: float, months_paid: int, term_months: int) -> Tuple[float, float]:
    """Early payoff including prepayment penalty (2%, or 1% inside the final year)"""
    remaining = term_months - months_paid
    penalty_rate = 0.01 if remaining <= 12 else 0.02
    penalty = current_balance * penalty_rate
    return current_balance + penalty, penalty


def calculate_remaining_months(balance: float, payment: float, annual_rate: float) -> Optional[int]:
    """Months to retire a balance at a fixed payment; None if the payment never catches up"""
    if balance <= 0:
        return 0
    if payment <= 0:
        return None

    monthly_rate = annual_rate / 12
    if monthly_rate <= 0:
        return math.ceil(balance / payment)

    ratio = monthly_rate * balance / payment
    if ratio >= 1:
        return None
    return math.ceil(-math.log(1 - ratio) / math.log(1 + monthly_rate))


def validate_finance_params(price: float, down_payment: float, term_months: int, item_type: str) -> Tuple[bool, Optional[str]]:
    """Down payment up to 50% (40% for land); term 1-20 years (30 for land)"""
    is_land = item_type == "land"
    if price <= 0:
        return False, "Price must be greater than zero"
    if down_payment < 0:
        return False, "Down payment cannot be negative"
    max_down = 0.40 if is_land else 0.50
    if down_payment > price * max_down:
        return False, f"Down payment cannot exceed {int(max_down * 100)}% of the price"

    max_years = 30 if is_land else 20
    if term_months < 12 or term_months > max_years * 12:
        return False, f"Term must be between 1 and {max_years} years"
    return True, None


def validate_lease_params(price: float, down_payment: float, term_months: int) -> Tuple[bool, Optional[str]]:
    """Leases allow at most 20% down and a 1-5 year term"""
    if price <= 0:
        return False, "Price must be greater than zero"
    if down_payment < 0:
        return False, "Down payment cannot be negative"
    if down_payment > price * 0.20:
        return False, "Lease down payment cannot exceed 20% of the price"
    if term_months < 12 or term_months > 60:
        return False, "Lease term must be between 1 and 5 years"
    return True, None
