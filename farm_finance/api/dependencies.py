"""Dependency injection for FastAPI endpoints"""

from fastapi import HTTPException, Request

from farm_finance.api.v1.schemas import RejectionDetail
from farm_finance.domain.context import EngineContext
from farm_finance.domain.models import FinanceResult, RejectionReason, SaleResult
from farm_finance.infrastructure.clients.host_events import HostEventClient

REJECTION_STATUS = {
    RejectionReason.NOT_FOUND: 404,
    RejectionReason.INSUFFICIENT_FUNDS: 409,
    RejectionReason.INVALID_STATE: 409,
    RejectionReason.INELIGIBLE: 422,
    RejectionReason.INVALID_REQUEST: 422,
}


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_context(request: Request) -> EngineContext:
    """Provide the engine context owned by the application"""
    return request.app.state.context


def get_host_event_client() -> HostEventClient:
    """Provide host webhook client instance"""
    return HostEventClient()


def raise_for_rejection(result: "FinanceResult | SaleResult") -> None:
    """Turn a rejected engine result into an HTTP error carrying the rejection detail"""
    if result.ok:
        return
    detail = RejectionDetail(reason=result.reason, message=result.message)
    if isinstance(result, FinanceResult):
        detail.required, detail.current, detail.shortfall = result.required, result.current, result.shortfall
    raise HTTPException(status_code=REJECTION_STATUS[result.reason], detail=detail.model_dump(mode="json"))
