"""POST /v1/finance, /v1/lease - Deal creation; deal queries, player payments and the monthly tick"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from farm_finance.api.dependencies import get_context, get_host_event_client, get_request_id, raise_for_rejection
from farm_finance.api.v1.schemas import (
    DealEventSchema,
    DealResponse,
    DealSchema,
    DealsResponse,
    ExtraPaymentRequest,
    FinanceRequestSchema,
    MonthTickResponse,
    MultiplierRequest,
    TickRequest,
)
from farm_finance.domain.context import EngineContext
from farm_finance.domain.finance import infer_deal_type
from farm_finance.domain.models import DealType, FinanceRequest, FinanceResult
from farm_finance.infrastructure.clients.host_events import HostEventClient, deal_event_payload
from farm_finance.infrastructure.observability.logging import log_deal_event
from farm_finance.infrastructure.observability.metrics import record_deal_events, record_deal_request

router = APIRouter()


def to_domain_request(body: FinanceRequestSchema, deal_type: Optional[DealType] = None) -> FinanceRequest:
    return FinanceRequest(
        farm_id=body.farm_id,
        item_type=body.item_type,
        item_id=body.item_id,
        item_name=body.item_name,
        price=body.base_price,
        down_payment=body.down_payment,
        term_months=body.resolved_term_months,
        cash_back=body.cash_back,
        deal_type=deal_type,
    )


def deal_response(result: FinanceResult, deal_type: DealType, request_id: str) -> DealResponse:
    reason = result.reason.value if result.reason else ""
    amount = result.deal.amount_financed if result.deal else 0.0
    record_deal_request(deal_type, result.ok, reason, amount)
    if not result.ok:
        logging.warning(
            f"Deal rejected: {result.message}",
            extra={"request_id": request_id, "reason": reason},
        )
    raise_for_rejection(result)
    return DealResponse(deal=DealSchema.model_validate(result.deal), amount=result.amount)


@router.post("/finance", response_model=DealResponse, status_code=201)
def create_finance(body: FinanceRequestSchema, request: Request, context: EngineContext = Depends(get_context)):
    """
    Create a financing deal from a confirmed purchase dialog.

    Flow:
    1. Validate terms and cash back
    2. Minimum-amount and credit gates
    3. Funds gate on the down payment (net of cash back)
    4. Debit, transfer land ownership, register the deal
    """
    result = context.finance_manager.create_finance_deal(to_domain_request(body))
    return deal_response(result, infer_deal_type(body.item_type), get_request_id(request))


@router.post("/lease", response_model=DealResponse, status_code=201)
def create_lease(body: FinanceRequestSchema, request: Request, context: EngineContext = Depends(get_context)):
    result = context.finance_manager.create_lease_deal(to_domain_request(body, DealType.LEASE))
    return deal_response(result, DealType.LEASE, get_request_id(request))


@router.get("/farms/{farm_id}/deals", response_model=DealsResponse)
def get_deals(farm_id: int, context: EngineContext = Depends(get_context)):
    """All deals for a farm, active and historical"""
    finance = context.finance_manager
    return DealsResponse(
        farm_id=farm_id,
        total_debt=finance.get_total_debt(farm_id),
        monthly_obligations=finance.get_total_monthly_obligations(farm_id),
        deals=[DealSchema.model_validate(deal) for deal in finance.get_deals_for_farm(farm_id)],
    )


@router.get("/deals/{deal_id}", response_model=DealSchema)
def get_deal(deal_id: str, context: EngineContext = Depends(get_context)):
    deal = context.finance_manager.get_deal(deal_id)
    if deal is None:
        raise HTTPException(status_code=404, detail="Deal not found")
    return DealSchema.model_validate(deal)


@router.post("/deals/{deal_id}/payment", response_model=DealResponse)
def make_payment(deal_id: str, body: ExtraPaymentRequest, context: EngineContext = Depends(get_context)):
    """Extra payment toward principal; enough to cover the payoff figure closes the deal"""
    result = context.finance_manager.make_payment(deal_id, body.amount)
    raise_for_rejection(result)
    return DealResponse(deal=DealSchema.model_validate(result.deal), amount=result.amount)


@router.put("/deals/{deal_id}/multiplier", response_model=DealResponse)
def set_multiplier(deal_id: str, body: MultiplierRequest, context: EngineContext = Depends(get_context)):
    result = context.finance_manager.set_payment_multiplier(deal_id, body.multiplier)
    raise_for_rejection(result)
    return DealResponse(deal=DealSchema.model_validate(result.deal))


@router.post("/ticks/month", response_model=MonthTickResponse)
def advance_month(
    body: TickRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    context: EngineContext = Depends(get_context),
    host_events: HostEventClient = Depends(get_host_event_client),
):
    """Collect one month of payments; a tick already processed is a no-op"""
    request_id = get_request_id(request)
    events = context.finance_manager.advance(body.tick)

    record_deal_events(events)
    for event in events:
        log_deal_event(event, request_id)
    if events:
        background_tasks.add_task(host_events.send_events, [deal_event_payload(e) for e in events])

    return MonthTickResponse(tick=body.tick, events=[DealEventSchema.model_validate(e) for e in events])
