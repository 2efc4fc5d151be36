"""POST /v1/sales - Vehicle listings, offer decisions and the hourly tick"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from farm_finance.api.dependencies import get_context, get_host_event_client, get_request_id, raise_for_rejection
from farm_finance.api.v1.schemas import (
    HourTickResponse,
    ListingRequest,
    ListingResponse,
    ListingSchema,
    ListingsResponse,
    SaleEventSchema,
    TickRequest,
)
from farm_finance.domain.context import EngineContext
from farm_finance.infrastructure.clients.host_events import HostEventClient, sale_event_payload
from farm_finance.infrastructure.observability.logging import log_sale_event
from farm_finance.infrastructure.observability.metrics import listing_counter, record_sale, record_sale_events, sale_event_counter

router = APIRouter()


@router.post("/sales", response_model=ListingResponse, status_code=201)
def create_listing(body: ListingRequest, context: EngineContext = Depends(get_context)):
    """
    Place a vehicle with a sales agent.

    Rejected when the vehicle is missing, already listed or financed, the
    farm has too many open listings, or the price tier's condition
    requirements are not met.
    """
    result = context.sale_manager.create_listing(body.farm_id, body.vehicle_id, body.agent_tier, body.price_tier)
    outcome = "listed" if result.ok else result.reason.value
    listing_counter.labels(agent_tier=body.agent_tier.name.lower(), outcome=outcome).inc()
    raise_for_rejection(result)
    return ListingResponse(listing=ListingSchema.model_validate(result.listing))


@router.get("/farms/{farm_id}/sales", response_model=ListingsResponse)
def get_listings(farm_id: int, open_only: bool = False, context: EngineContext = Depends(get_context)):
    listings = context.sale_manager.get_listings_for_farm(farm_id, include_closed=not open_only)
    return ListingsResponse(farm_id=farm_id, listings=[ListingSchema.model_validate(listing) for listing in listings])


@router.get("/sales/{listing_id}", response_model=ListingSchema)
def get_listing(listing_id: str, context: EngineContext = Depends(get_context)):
    listing = context.sale_manager.get_listing(listing_id)
    if listing is None:
        raise HTTPException(status_code=404, detail="Listing not found")
    return ListingSchema.model_validate(listing)


@router.post("/sales/{listing_id}/accept", response_model=ListingResponse)
def accept_offer(listing_id: str, context: EngineContext = Depends(get_context)):
    """Sell at the pending offer; the agent fee is deducted from the proceeds"""
    result = context.sale_manager.accept_offer(listing_id)
    raise_for_rejection(result)
    record_sale(result.net)
    return ListingResponse(
        listing=ListingSchema.model_validate(result.listing), gross=result.gross, fee=result.fee, net=result.net
    )


@router.post("/sales/{listing_id}/decline", response_model=ListingResponse)
def decline_offer(listing_id: str, context: EngineContext = Depends(get_context)):
    result = context.sale_manager.decline_offer(listing_id)
    raise_for_rejection(result)
    sale_event_counter.labels(kind="declined").inc()
    return ListingResponse(listing=ListingSchema.model_validate(result.listing))


@router.post("/sales/{listing_id}/cancel", response_model=ListingResponse)
def cancel_listing(listing_id: str, context: EngineContext = Depends(get_context)):
    result = context.sale_manager.cancel_listing(listing_id)
    raise_for_rejection(result)
    sale_event_counter.labels(kind="cancelled").inc()
    return ListingResponse(listing=ListingSchema.model_validate(result.listing))


@router.post("/ticks/hour", response_model=HourTickResponse)
def advance_hour(
    body: TickRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    context: EngineContext = Depends(get_context),
    host_events: HostEventClient = Depends(get_host_event_client),
):
    """Advance every open listing by one hour; an hour already processed is a no-op"""
    request_id = get_request_id(request)
    events = context.sale_manager.advance(body.tick)

    record_sale_events(events)
    for event in events:
        log_sale_event(event, request_id)
    if events:
        background_tasks.add_task(host_events.send_events, [sale_event_payload(e) for e in events])

    return HourTickResponse(hour=body.tick, events=[SaleEventSchema.model_validate(e) for e in events])
