"""POST /v1/preview/* - Side-effect-free quotes recomputed on every slider movement"""

from typing import Optional

from fastapi import APIRouter, Depends

from farm_finance.api.dependencies import get_context
from farm_finance.api.v1.schemas import (
    LandPreviewRequest,
    LandPreviewResponse,
    LeasePreviewRequest,
    LeasePreviewResponse,
    PaymentPreviewRequest,
    PaymentPreviewResponse,
)
from farm_finance.domain import calculations
from farm_finance.domain.context import EngineContext
from farm_finance.domain.credit_score import get_max_cash_back, normalize_score
from farm_finance.domain.models import FinanceCategory

router = APIRouter()

PREVIEW_CATEGORIES = {
    "land": FinanceCategory.LAND_FINANCE,
    "loan": FinanceCategory.CASH_LOAN,
    "repair": FinanceCategory.REPAIR_FINANCE,
}


def resolve_score(context: EngineContext, credit_score: Optional[int], farm_id: Optional[int]) -> int:
    """Explicit score wins; otherwise the farm's live score; otherwise the default"""
    if credit_score is not None:
        return normalize_score(credit_score)
    if farm_id is not None:
        return context.credit_score.calculate(farm_id)
    return normalize_score(None)


@router.post("/preview/payment", response_model=PaymentPreviewResponse)
def preview_payment(body: PaymentPreviewRequest, context: EngineContext = Depends(get_context)):
    score = resolve_score(context, body.credit_score, body.farm_id)
    term_months = calculations.normalize_term_months(body.term_months)
    cash_back = min(body.cash_back, get_max_cash_back(body.down_payment))
    amount_financed = max(0.0, body.price - body.down_payment + cash_back)

    annual_rate = calculations.calculate_vehicle_interest_rate(
        score, term_months, body.down_payment / body.price, context.config.credit_enabled
    )
    monthly, total_interest = calculations.calculate_monthly_payment(amount_financed, annual_rate / 100, term_months)
    total_cost, _ = calculations.calculate_total_cost(amount_financed, monthly, term_months)
    category = PREVIEW_CATEGORIES.get(body.item_type, FinanceCategory.VEHICLE_FINANCE)
    meets_minimum, minimum = calculations.meets_minimum_amount(amount_financed, category)

    return PaymentPreviewResponse(
        credit_score=score,
        annual_rate=annual_rate,
        amount_financed=amount_financed,
        monthly_payment=monthly,
        total_interest=total_interest,
        total_cost=total_cost + body.down_payment,
        max_cash_back=get_max_cash_back(body.down_payment),
        meets_minimum=meets_minimum,
        minimum_amount=minimum,
    )


@router.post("/preview/land", response_model=LandPreviewResponse)
def preview_land(body: LandPreviewRequest, context: EngineContext = Depends(get_context)):
    """Land quote: credit-adjusted price first, then the land rate on the remainder"""
    score = resolve_score(context, body.credit_score, body.farm_id)
    adjusted, adjustment, percent, tier_name = calculations.calculate_adjusted_land_price(body.base_price, score)
    term_months = calculations.normalize_term_months(body.term_years * 12)

    down_payment_percent = body.down_payment / adjusted if adjusted > 0 else 0.0
    annual_rate = calculations.calculate_land_interest_rate(
        score, body.term_years, down_payment_percent, context.config.credit_enabled
    )
    monthly, total_interest = calculations.calculate_monthly_payment(
        max(0.0, adjusted - body.down_payment), annual_rate / 100, term_months
    )
    return LandPreviewResponse(
        credit_score=score,
        adjusted_price=adjusted,
        adjustment_amount=adjustment,
        adjustment_percent=percent,
        tier_name=tier_name,
        annual_rate=annual_rate,
        monthly_payment=monthly,
        total_interest=total_interest,
    )


@router.post("/preview/lease", response_model=LeasePreviewResponse)
def preview_lease(body: LeasePreviewRequest, context: EngineContext = Depends(get_context)):
    score = resolve_score(context, body.credit_score, body.farm_id)
    term_months = calculations.normalize_term_months(body.term_months, 36)
    capitalized_cost = max(0.0, body.price - body.down_payment)

    annual_rate = calculations.calculate_lease_interest_rate(
        score, body.down_payment / body.price, context.config.credit_enabled
    )
    residual = min(calculations.calculate_residual_value(body.price, term_months), capitalized_cost)
    monthly = calculations.calculate_lease_payment(capitalized_cost, residual, annual_rate / 100, term_months)
    deposit, months, tier_name = calculations.calculate_security_deposit(monthly, score)

    return LeasePreviewResponse(
        credit_score=score,
        annual_rate=annual_rate,
        residual_value=residual,
        monthly_payment=monthly,
        security_deposit=deposit,
        deposit_months=months,
        tier_name=tier_name,
        due_at_signing=body.down_payment + deposit,
    )
