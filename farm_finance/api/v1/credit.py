"""GET /v1/farms/{farm_id}/credit - Credit score, eligibility and history"""

from fastapi import APIRouter, Depends, HTTPException, Query

from farm_finance.api.dependencies import get_context
from farm_finance.api.v1.schemas import (
    CreditHistoryItem,
    CreditHistoryResponse,
    CreditScoreResponse,
    EligibilityResponse,
)
from farm_finance.domain.context import EngineContext

router = APIRouter()


@router.get("/farms/{farm_id}/credit", response_model=CreditScoreResponse)
def get_credit(farm_id: int, context: EngineContext = Depends(get_context)):
    """
    Current credit score for a farm.

    Returns:
        Score (300-850), display rating, multiplier tier and the rate adjustment it earns
    """
    if context.host.get_farm_by_id(farm_id) is None:
        raise HTTPException(status_code=404, detail="Farm not found")

    record = context.credit_score.calculate_record(farm_id)
    return CreditScoreResponse(
        farm_id=farm_id,
        score=record.score,
        rating=record.rating,
        tier=int(record.tier),
        tier_label=record.tier.label,
        interest_adjustment=context.credit_score.get_interest_adjustment(record.score),
        history_adjustment=context.credit_history.get_score_adjustment(farm_id),
        on_time_rate=context.credit_history.get_on_time_rate(farm_id),
    )


@router.get("/farms/{farm_id}/credit/eligibility", response_model=EligibilityResponse)
def get_eligibility(
    farm_id: int,
    category: str = Query(..., description="Finance category, e.g. VEHICLE_FINANCE"),
    context: EngineContext = Depends(get_context),
):
    result = context.credit_score.can_finance(farm_id, category)
    return EligibilityResponse(
        farm_id=farm_id,
        category=category,
        ok=result.ok,
        min_score_required=result.min_score_required,
        current_score=result.current_score,
        message=result.message,
    )


@router.get("/farms/{farm_id}/credit/history", response_model=CreditHistoryResponse)
def get_credit_history(
    farm_id: int,
    limit: int = Query(20, ge=1, le=500),
    context: EngineContext = Depends(get_context),
):
    """Credit ledger entries, newest first, with lifetime summary"""
    history = context.credit_history
    summary = history.get_summary(farm_id)
    return CreditHistoryResponse(
        farm_id=farm_id,
        net_change=summary.net_change,
        payments_on_time=summary.payments_on_time,
        payments_missed=summary.payments_missed,
        deals_completed=summary.deals_completed,
        total_events=summary.total_events,
        entries=[CreditHistoryItem.model_validate(entry) for entry in history.get_entries(farm_id, limit)],
    )
