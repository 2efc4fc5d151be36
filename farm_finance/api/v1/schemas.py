"""Pydantic schemas for API request/response validation"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from farm_finance.domain.models import (
    AgentTier,
    CreditEvent,
    CreditRating,
    DealEventKind,
    DealStatus,
    DealType,
    ListingStatus,
    PriceTier,
    RejectionReason,
    SaleEventKind,
)


# Farms


class VehicleSchema(BaseModel):
    vehicle_id: str = Field(..., min_length=1)
    name: str
    sell_price: float = Field(..., ge=0)
    repair_percent: int = Field(100, ge=0, le=100)
    paint_percent: int = Field(100, ge=0, le=100)
    operating_hours: float = Field(0.0, ge=0)


class FarmlandSchema(BaseModel):
    farmland_id: int
    name: str
    price: float = Field(..., ge=0)
    area_ha: float = Field(0.0, ge=0)


class FarmUpsertRequest(BaseModel):
    """Request body for PUT /v1/farms/{farm_id}"""

    money: float
    loan: float = Field(0.0, ge=0, description="Legacy bank loan balance")
    vehicles: List[VehicleSchema] = []
    farmlands: List[FarmlandSchema] = []
    user_ids: List[str] = []


class FarmResponse(BaseModel):
    farm_id: int
    money: float
    loan: float
    vehicles: List[VehicleSchema]
    farmlands: List[FarmlandSchema]


# Credit


class CreditScoreResponse(BaseModel):
    """Response for GET /v1/farms/{farm_id}/credit"""

    farm_id: int
    score: int
    rating: CreditRating
    tier: int
    tier_label: str
    interest_adjustment: float
    history_adjustment: int
    on_time_rate: int


class EligibilityResponse(BaseModel):
    farm_id: int
    category: str
    ok: bool
    min_score_required: int
    current_score: int
    message: str


class CreditHistoryItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    timestamp: int
    event: CreditEvent
    score_delta: int
    deal_id: Optional[str] = None
    details: str = ""


class CreditHistoryResponse(BaseModel):
    """Response for GET /v1/farms/{farm_id}/credit/history"""

    farm_id: int
    net_change: int
    payments_on_time: int
    payments_missed: int
    deals_completed: int
    total_events: int
    entries: List[CreditHistoryItem]


# Previews


class PaymentPreviewRequest(BaseModel):
    """Request body for POST /v1/preview/payment; score is taken from farm_id when not given"""

    price: float = Field(..., gt=0)
    down_payment: float = Field(0.0, ge=0)
    term_months: int = 60
    cash_back: float = Field(0.0, ge=0)
    item_type: str = "vehicle"
    credit_score: Optional[int] = None
    farm_id: Optional[int] = None


class PaymentPreviewResponse(BaseModel):
    credit_score: int
    annual_rate: float
    amount_financed: float
    monthly_payment: float
    total_interest: float
    total_cost: float
    max_cash_back: int
    meets_minimum: bool
    minimum_amount: int


class LandPreviewRequest(BaseModel):
    """Request body for POST /v1/preview/land"""

    base_price: float = Field(..., gt=0)
    down_payment: float = Field(0.0, ge=0)
    term_years: float = 20
    credit_score: Optional[int] = None
    farm_id: Optional[int] = None


class LandPreviewResponse(BaseModel):
    credit_score: int
    adjusted_price: float
    adjustment_amount: float
    adjustment_percent: int
    tier_name: str
    annual_rate: float
    monthly_payment: float
    total_interest: float


class LeasePreviewRequest(BaseModel):
    """Request body for POST /v1/preview/lease"""

    price: float = Field(..., gt=0)
    down_payment: float = Field(0.0, ge=0)
    term_months: int = 36
    credit_score: Optional[int] = None
    farm_id: Optional[int] = None


class LeasePreviewResponse(BaseModel):
    credit_score: int
    annual_rate: float
    residual_value: float
    monthly_payment: float
    security_deposit: float
    deposit_months: int
    tier_name: str
    due_at_signing: float


# Deals


class FinanceRequestSchema(BaseModel):
    """Finance request event payload; accepts camelCase keys as sent by the game client"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    farm_id: int
    item_type: str = "vehicle"
    item_id: str
    item_name: str = ""
    base_price: float
    down_payment: float = 0.0
    term_years: Optional[float] = None
    term_months: Optional[int] = None
    cash_back: float = 0.0

    @property
    def resolved_term_months(self) -> int:
        if self.term_months:
            return self.term_months
        if self.term_years:
            return int(round(self.term_years * 12))
        return 0


class DealSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    farm_id: int
    deal_type: DealType
    item_type: str
    item_id: str
    item_name: str
    price: float
    down_payment: float
    term_months: int
    annual_rate: float
    cash_back: float
    monthly_payment: float
    current_balance: float
    amount_financed: float
    total_interest_paid: float
    status: DealStatus
    residual_value: float
    security_deposit: float
    months_paid: int
    missed_payments: int
    accrued_interest: float
    payment_multiplier: float


class DealResponse(BaseModel):
    deal: DealSchema
    amount: float = Field(0.0, description="Funds moved by the operation")


class DealsResponse(BaseModel):
    """Response for GET /v1/farms/{farm_id}/deals"""

    farm_id: int
    total_debt: float
    monthly_obligations: float
    deals: List[DealSchema]


class ExtraPaymentRequest(BaseModel):
    amount: float = Field(..., gt=0)


class MultiplierRequest(BaseModel):
    multiplier: float


class StatisticsResponse(BaseModel):
    """Response for GET /v1/farms/{farm_id}/statistics"""

    farm_id: int
    deals_created: int
    deals_completed: int
    deals_defaulted: int
    total_amount_financed: float
    total_interest_paid: float
    sales_listed: int
    sales_completed: int
    sales_cancelled: int
    sales_expired: int
    total_sale_proceeds: float
    total_agent_fees: float


# Sales


class ListingRequest(BaseModel):
    """Request body for POST /v1/sales"""

    farm_id: int
    vehicle_id: str
    agent_tier: AgentTier = AgentTier.LOCAL
    price_tier: PriceTier = PriceTier.MARKET


class ListingSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    farm_id: int
    vehicle_id: str
    vehicle_name: str
    agent_tier: AgentTier
    price_tier: PriceTier
    vanilla_sell_price: float
    expected_min_price: float
    expected_max_price: float
    duration_hours: int
    hours_remaining: int
    status: ListingStatus
    current_offer: Optional[float] = None
    offer_expires_in: int
    offers_received: int
    offers_declined: int
    final_sale_price: float
    agent_fee_paid: float


class ListingResponse(BaseModel):
    listing: ListingSchema
    gross: float = 0.0
    fee: float = 0.0
    net: float = 0.0


class ListingsResponse(BaseModel):
    """Response for GET /v1/farms/{farm_id}/sales"""

    farm_id: int
    listings: List[ListingSchema]


# Ticks


class TickRequest(BaseModel):
    tick: int = Field(..., ge=0)


class DealEventSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    deal_id: str
    farm_id: int
    kind: DealEventKind
    tick: int
    amount: float


class SaleEventSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    listing_id: str
    farm_id: int
    kind: SaleEventKind
    hour: int
    amount: float


class MonthTickResponse(BaseModel):
    tick: int
    events: List[DealEventSchema]


class HourTickResponse(BaseModel):
    hour: int
    events: List[SaleEventSchema]


# State


class StateRequest(BaseModel):
    slot: str = Field("default", min_length=1, max_length=64)


class StateResponse(BaseModel):
    slot: str
    deals: int
    listings: int
    credit_entries: int


class RejectionDetail(BaseModel):
    """Body of a rejected mutation (404/409/422)"""

    reason: RejectionReason
    message: str
    required: Optional[float] = None
    current: Optional[float] = None
    shortfall: Optional[float] = None


