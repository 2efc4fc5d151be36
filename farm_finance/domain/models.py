"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, List, Optional


# Host-side entities


class MoneyType(str, Enum):
    """Reason codes attached to every funds mutation sent to the host"""

    SHOP_VEHICLE_BUY = "shop_vehicle_buy"
    SHOP_PROPERTY_BUY = "shop_property_buy"
    LEASING_COSTS = "leasing_costs"
    LOAN = "loan"
    FINANCE_PAYMENT = "finance_payment"
    VEHICLE_SELL = "vehicle_sell"


@dataclass
class OwnedVehicle:
    """Vehicle owned by a farm, valued at its current sell price"""

    vehicle_id: str
    name: str
    sell_price: float
    repair_percent: int = 100
    paint_percent: int = 100
    operating_hours: float = 0.0


@dataclass
class Farmland:
    """Farmland parcel metadata"""

    farmland_id: int
    name: str
    price: float
    area_ha: float = 0.0
    owner_farm_id: int = 0


@dataclass
class Farm:
    """Farm as seen by the engine (owned and mutated by the host game)"""

    farm_id: int
    money: float
    loan: float = 0.0  # Legacy lump-sum bank loan
    vehicles: List[OwnedVehicle] = field(default_factory=list)
    farmlands: List[Farmland] = field(default_factory=list)
    user_ids: List[str] = field(default_factory=list)

    def get_vehicle(self, vehicle_id: str) -> Optional[OwnedVehicle]:
        for vehicle in self.vehicles:
            if vehicle.vehicle_id == vehicle_id:
                return vehicle
        return None


# Credit


class CreditRating(str, Enum):
    """Four-band display rating"""

    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"


class CreditTier(IntEnum):
    """Five-tier banding used by every multiplier table (1 is best)"""

    EXCELLENT = 1
    GOOD = 2
    FAIR = 3
    POOR = 4
    VERY_POOR = 5

    @property
    def label(self) -> str:
        return TIER_LABELS[self]

    @property
    def rating(self) -> CreditRating:
        return TIER_RATINGS[self]


TIER_LABELS: Dict[CreditTier, str] = {
    CreditTier.EXCELLENT: "Excellent",
    CreditTier.GOOD: "Good",
    CreditTier.FAIR: "Fair",
    CreditTier.POOR: "Poor",
    CreditTier.VERY_POOR: "Very Poor",
}

# Very Poor is a multiplier tier only; it displays as Poor
TIER_RATINGS: Dict[CreditTier, CreditRating] = {
    CreditTier.EXCELLENT: CreditRating.EXCELLENT,
    CreditTier.GOOD: CreditRating.GOOD,
    CreditTier.FAIR: CreditRating.FAIR,
    CreditTier.POOR: CreditRating.POOR,
    CreditTier.VERY_POOR: CreditRating.POOR,
}


class FinanceCategory(str, Enum):
    """Financing product, used for credit and minimum-amount gates"""

    REPAIR_FINANCE = "REPAIR_FINANCE"
    VEHICLE_FINANCE = "VEHICLE_FINANCE"
    VEHICLE_LEASE = "VEHICLE_LEASE"
    CASH_LOAN = "CASH_LOAN"
    LAND_FINANCE = "LAND_FINANCE"

    @classmethod
    def parse(cls, value: "FinanceCategory | str | None") -> Optional["FinanceCategory"]:
        """Lenient lookup; returns None for unknown values"""
        if isinstance(value, cls):
            return value
        if not value:
            return None
        key = str(value).strip().upper()
        if key == "REPAIR":
            return cls.REPAIR_FINANCE
        try:
            return cls(key)
        except ValueError:
            return None


@dataclass
class CreditScoreRecord:
    """Credit score snapshot, always derived from current inputs"""

    farm_id: int
    score: int
    rating: CreditRating
    tier: CreditTier


class PaymentOutcome(str, Enum):
    ON_TIME = "on_time"
    MISSED = "missed"


class CreditEvent(str, Enum):
    PAYMENT_ON_TIME = "payment_on_time"
    PAYMENT_MISSED = "payment_missed"
    DEAL_PAID_OFF = "deal_paid_off"


CREDIT_EVENT_DELTAS: Dict[CreditEvent, int] = {
    CreditEvent.PAYMENT_ON_TIME: 2,  # Slow to gain
    CreditEvent.PAYMENT_MISSED: -50,  # Quick to lose
    CreditEvent.DEAL_PAID_OFF: 15,
}


@dataclass
class CreditHistoryEntry:
    """Single append-only credit ledger entry"""

    farm_id: int
    timestamp: int  # Game tick
    event: CreditEvent
    score_delta: int
    deal_id: Optional[str] = None
    details: str = ""

    @property
    def outcome(self) -> Optional[PaymentOutcome]:
        if self.event == CreditEvent.PAYMENT_ON_TIME:
            return PaymentOutcome.ON_TIME
        if self.event == CreditEvent.PAYMENT_MISSED:
            return PaymentOutcome.MISSED
        return None


@dataclass
class CreditHistorySummary:
    """Aggregate of a farm's credit ledger"""

    net_change: int = 0
    payments_on_time: int = 0
    payments_missed: int = 0
    deals_completed: int = 0
    total_events: int = 0


@dataclass
class PaymentStats:
    """Payment track record used for score qualification caps"""

    total_payments: int = 0
    on_time_payments: int = 0
    missed_payments: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    payments_since_last_miss: Optional[int] = None  # None when never missed


@dataclass
class EligibilityResult:
    """Outcome of a credit gate"""

    ok: bool
    min_score_required: int
    current_score: int
    message: str = ""


# Financing


class DealType(IntEnum):
    VEHICLE = 1
    LEASE = 2
    CASH_LOAN = 3
    LAND = 4


class DealStatus(str, Enum):
    ACTIVE = "active"
    PAID_OFF = "paid_off"
    DEFAULTED = "defaulted"


@dataclass
class FinanceDeal:
    """A financing obligation; retained after payoff for lifetime statistics"""

    id: str
    farm_id: int
    deal_type: DealType
    item_type: str
    item_id: str
    item_name: str
    price: float
    down_payment: float
    term_months: int
    annual_rate: float  # Percent, e.g. 6.5
    cash_back: float
    monthly_payment: float
    current_balance: float
    amount_financed: float
    total_interest_paid: float = 0.0
    status: DealStatus = DealStatus.ACTIVE
    residual_value: float = 0.0
    security_deposit: float = 0.0
    months_paid: int = 0
    missed_payments: int = 0  # Consecutive
    total_missed_payments: int = 0
    accrued_interest: float = 0.0
    payment_multiplier: float = 1.0
    created_tick: int = 0
    last_processed_tick: Optional[int] = None

    @property
    def is_lease(self) -> bool:
        return self.deal_type == DealType.LEASE

    @property
    def monthly_rate(self) -> float:
        return self.annual_rate / 100 / 12

    @property
    def effective_balance(self) -> float:
        return self.current_balance + self.accrued_interest


@dataclass
class FinanceRequest:
    """Deal-creation request as carried by finance events"""

    farm_id: int
    item_type: str
    item_id: str
    item_name: str
    price: float
    down_payment: float = 0.0
    term_months: int = 0
    cash_back: float = 0.0
    deal_type: Optional[DealType] = None


class RejectionReason(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_REQUEST = "invalid_request"
    INELIGIBLE = "ineligible"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INVALID_STATE = "invalid_state"


@dataclass
class FinanceResult:
    """Outcome of a mutating finance operation"""

    ok: bool
    deal: Optional[FinanceDeal] = None
    reason: Optional[RejectionReason] = None
    message: str = ""
    required: Optional[float] = None
    current: Optional[float] = None
    shortfall: Optional[float] = None
    amount: float = 0.0


class DealEventKind(str, Enum):
    PAYMENT_COLLECTED = "payment_collected"
    PAYMENT_MISSED = "payment_missed"
    PAID_OFF = "paid_off"
    DEFAULTED = "defaulted"


@dataclass
class DealEvent:
    """Something that happened to a deal during a monthly advance"""

    deal_id: str
    farm_id: int
    kind: DealEventKind
    tick: int
    amount: float = 0.0


# Vehicle sales


class AgentTier(IntEnum):
    PRIVATE = 0
    LOCAL = 1
    REGIONAL = 2
    NATIONAL = 3


@dataclass(frozen=True)
class AgentTierConfig:
    name: str
    fee_percent: float
    min_months: int
    max_months: int
    base_success_rate: float
    allows_premium: bool = True


AGENT_TIERS: Dict[AgentTier, AgentTierConfig] = {
    AgentTier.PRIVATE: AgentTierConfig("Private Sale", 0.00, 3, 6, 0.50, allows_premium=False),
    AgentTier.LOCAL: AgentTierConfig("Local Agent", 0.02, 1, 2, 0.70),
    AgentTier.REGIONAL: AgentTierConfig("Regional Agent", 0.04, 2, 4, 0.85),
    AgentTier.NATIONAL: AgentTierConfig("National Agent", 0.06, 4, 6, 0.95),
}


class PriceTier(IntEnum):
    QUICK = 1
    MARKET = 2
    PREMIUM = 3


@dataclass(frozen=True)
class PriceTierConfig:
    name: str
    price_multiplier_min: float
    price_multiplier_max: float
    success_modifier: float
    requires_condition: int = 0
    requires_paint: int = 0


PRICE_TIERS: Dict[PriceTier, PriceTierConfig] = {
    PriceTier.QUICK: PriceTierConfig("Quick Sale", 0.75, 0.85, 0.15),
    PriceTier.MARKET: PriceTierConfig("Market Price", 0.95, 1.05, 0.00),
    PriceTier.PREMIUM: PriceTierConfig("Premium Price", 1.15, 1.30, -0.20, requires_condition=95, requires_paint=80),
}


class ListingStatus(str, Enum):
    ACTIVE = "active"
    OFFER_PENDING = "offer_pending"
    SOLD = "sold"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


@dataclass
class VehicleSaleListing:
    """A vehicle placed with a sales agent"""

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
    offer_chance_per_hour: float
    status: ListingStatus = ListingStatus.ACTIVE
    current_offer: Optional[float] = None
    offer_expires_in: int = 0
    hours_elapsed: int = 0
    offers_received: int = 0
    offers_declined: int = 0
    final_sale_price: float = 0.0
    agent_fee_paid: float = 0.0
    created_hour: int = 0
    last_processed_hour: Optional[int] = None

    @property
    def agent_config(self) -> AgentTierConfig:
        return AGENT_TIERS[self.agent_tier]

    @property
    def price_config(self) -> PriceTierConfig:
        return PRICE_TIERS[self.price_tier]

    @property
    def is_open(self) -> bool:
        return self.status in (ListingStatus.ACTIVE, ListingStatus.OFFER_PENDING)

    @property
    def has_pending_offer(self) -> bool:
        return self.status == ListingStatus.OFFER_PENDING and self.current_offer is not None


@dataclass
class SaleResult:
    """Outcome of a mutating sale operation"""

    ok: bool
    listing: Optional[VehicleSaleListing] = None
    reason: Optional[RejectionReason] = None
    message: str = ""
    gross: float = 0.0
    fee: float = 0.0
    net: float = 0.0


class SaleEventKind(str, Enum):
    OFFER_RECEIVED = "offer_received"
    OFFER_EXPIRED = "offer_expired"
    LISTING_EXPIRED = "listing_expired"


@dataclass
class SaleEvent:
    """Something that happened to a listing during an hourly advance"""

    listing_id: str
    farm_id: int
    kind: SaleEventKind
    hour: int
    amount: float = 0.0
