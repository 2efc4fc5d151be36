"""Credit scoring engine - derives a 300-850 score from assets, debt and payment history"""

import logging
from typing import Callable, Dict, Iterable, Optional, Tuple

from farm_finance.config import Settings, settings as default_settings
from farm_finance.domain.credit_history import CreditHistory
from farm_finance.domain.models import (
    CreditScoreRecord,
    CreditTier,
    DealStatus,
    DealType,
    EligibilityResult,
    Farm,
    FinanceCategory,
    FinanceDeal,
)
from farm_finance.infrastructure.host import FarmHost

logger = logging.getLogger(__name__)

MIN_SCORE = 300
MAX_SCORE = 850
BASE_SCORE = 500
DEFAULT_SCORE = 650

# Lower bound of each tier, best first
TIER_THRESHOLDS: Tuple[Tuple[int, CreditTier], ...] = (
    (750, CreditTier.EXCELLENT),
    (670, CreditTier.GOOD),
    (580, CreditTier.FAIR),
    (500, CreditTier.POOR),
)

INTEREST_ADJUSTMENTS: Dict[CreditTier, float] = {
    CreditTier.EXCELLENT: -1.5,
    CreditTier.GOOD: -0.5,
    CreditTier.FAIR: 0.5,
    CreditTier.POOR: 1.5,
    CreditTier.VERY_POOR: 3.0,
}

CASH_BACK_MULTIPLIERS: Dict[CreditTier, float] = {
    CreditTier.EXCELLENT: 2.0,
    CreditTier.GOOD: 1.5,
    CreditTier.FAIR: 1.0,
    CreditTier.POOR: 0.5,
    CreditTier.VERY_POOR: 0.25,
}

MIN_CREDIT_FOR_FINANCING: Dict[FinanceCategory, int] = {
    FinanceCategory.REPAIR_FINANCE: 500,
    FinanceCategory.VEHICLE_FINANCE: 550,
    FinanceCategory.CASH_LOAN: 550,
    FinanceCategory.VEHICLE_LEASE: 600,
    FinanceCategory.LAND_FINANCE: 620,
}
UNKNOWN_CATEGORY_MIN_SCORE = 600

CATEGORY_NAMES: Dict[FinanceCategory, str] = {
    FinanceCategory.REPAIR_FINANCE: "repair financing",
    FinanceCategory.VEHICLE_FINANCE: "vehicle financing",
    FinanceCategory.VEHICLE_LEASE: "vehicle leasing",
    FinanceCategory.CASH_LOAN: "a cash loan",
    FinanceCategory.LAND_FINANCE: "land financing",
}

# Score caps that require a proven payment record
GOOD_CAP = 669
EXCELLENT_CAP = 749
GOOD_MIN_ON_TIME = 12
EXCELLENT_MIN_ON_TIME = 36
EXCELLENT_MIN_STREAK = 18


def normalize_score(score: Optional[float]) -> int:
    """Coerce a score into 300-850; missing or non-numeric input becomes 650"""
    if score is None:
        return DEFAULT_SCORE
    try:
        value = int(score)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_SCORE
    return max(MIN_SCORE, min(MAX_SCORE, value))


def get_tier(score: Optional[float]) -> CreditTier:
    value = normalize_score(score)
    for threshold, tier in TIER_THRESHOLDS:
        if value >= threshold:
            return tier
    return CreditTier.VERY_POOR


def get_rating(score: Optional[float]) -> Tuple[str, int]:
    """
    Map a score to its display rating and multiplier tier.

    Display bands: >=750 Excellent, 670-749 Good, 580-669 Fair, below 580 Poor.
    Tier 5 (Very Poor, below 500) still displays as Poor.
    """
    tier = get_tier(score)
    return tier.rating.value, int(tier)


def get_cash_back_multiplier(score: Optional[float]) -> float:
    return CASH_BACK_MULTIPLIERS[get_tier(score)]


def get_max_cash_back(down_payment: float) -> int:
    """Cash back is limited to half of the down payment"""
    return int(max(0.0, down_payment) * 0.5)


def debt_to_asset_points(assets: float, debt: float) -> int:
    """Asset/debt factor, -75 to +75 before the collateral bonus cap"""
    if assets <= 0:
        return -75 if debt > 0 else 0

    ratio = debt / assets
    if ratio == 0:
        points = 60
    elif ratio < 0.2:
        points = 50
    elif ratio < 0.4:
        points = 35
    elif ratio < 0.6:
        points = 20
    elif ratio < 0.8:
        points = 0
    elif ratio < 1.0:
        points = -25
    else:
        points = -50

    # Substantial collateral signals stability
    if assets > 500_000:
        points += 15
    elif assets > 200_000:
        points += 10
    elif assets > 100_000:
        points += 5

    return max(-75, min(75, points))


def cash_reserve_points(money: float) -> int:
    if money > 100_000:
        return 25
    if money > 50_000:
        return 15
    if money > 25_000:
        return 5
    return 0


def clean_slate_points(assets: float) -> int:
    """One-time trust for collateral before any payment history exists"""
    if assets > 500_000:
        return 40
    if assets > 200_000:
        return 35
    if assets > 100_000:
        return 30
    if assets > 50_000:
        return 20
    return 0


class CreditScore:
    """Credit score service over the host's farms, the deal ledger and credit history"""

    def __init__(
        self,
        host: FarmHost,
        history: CreditHistory,
        deals_for_farm: Optional[Callable[[int], Iterable[FinanceDeal]]] = None,
        config: Optional[Settings] = None,
    ):
        self.host = host
        self.history = history
        self.deals_for_farm = deals_for_farm or (lambda farm_id: [])
        self.config = config or default_settings

    def _active_deals(self, farm_id: int) -> list[FinanceDeal]:
        return [deal for deal in self.deals_for_farm(farm_id) if deal.status == DealStatus.ACTIVE]

    def calculate_assets(self, farm: Farm) -> float:
        """Cash plus wholly owned land and vehicles; financed items are excluded"""
        financed_vehicles = set()
        financed_land = set()
        for deal in self._active_deals(farm.farm_id):
            if deal.deal_type == DealType.LAND:
                financed_land.add(str(deal.item_id))
            elif deal.deal_type in (DealType.VEHICLE, DealType.LEASE):
                financed_vehicles.add(str(deal.item_id))

        total = farm.money
        total += sum(land.price for land in farm.farmlands if str(land.farmland_id) not in financed_land)
        total += sum(v.sell_price for v in farm.vehicles if str(v.vehicle_id) not in financed_vehicles)
        return total

    def calculate_debt(self, farm: Farm) -> float:
        """Legacy bank loan plus every active deal's outstanding balance"""
        total = max(0.0, farm.loan)
        total += sum(deal.effective_balance for deal in self._active_deals(farm.farm_id))
        return total

    def calculate(self, farm_id: int) -> int:
        """
        Calculate credit score for a farm.

        Components:
        - 500 base
        - Credit history adjustment (+/-200)
        - Asset/debt factor (-75 to +75)
        - Cash reserves (0 to +25)
        - Clean slate bonus (0 to +40) for farms with collateral, no debt and no payments yet

        Good (670+) needs 12 on-time payments and Excellent (750+) needs 36
        with a current streak of 18 and no miss in the last 18 payments.
        """
        if not self.config.credit_enabled:
            return normalize_score(self.config.starting_credit_score)

        farm = self.host.get_farm_by_id(farm_id)
        if farm is None:
            logger.warning("Farm not found for credit score, using default", extra={"farm_id": farm_id})
            return DEFAULT_SCORE

        assets = self.calculate_assets(farm)
        debt = self.calculate_debt(farm)
        stats = self.history.get_payment_stats(farm_id)

        score = BASE_SCORE
        score += self.history.get_score_adjustment(farm_id)
        score += debt_to_asset_points(assets, debt)
        score += cash_reserve_points(farm.money)

        if stats.total_payments == 0 and assets > 0 and debt == 0:
            score += clean_slate_points(assets)

        qualifies_for_excellent = (
            stats.on_time_payments >= EXCELLENT_MIN_ON_TIME
            and stats.current_streak >= EXCELLENT_MIN_STREAK
            and (stats.payments_since_last_miss is None or stats.payments_since_last_miss >= EXCELLENT_MIN_STREAK)
        )
        if not qualifies_for_excellent:
            score = min(score, EXCELLENT_CAP)
        if stats.on_time_payments < GOOD_MIN_ON_TIME:
            score = min(score, GOOD_CAP)

        return int(max(MIN_SCORE, min(MAX_SCORE, score)))

    def calculate_record(self, farm_id: int) -> CreditScoreRecord:
        score = self.calculate(farm_id)
        tier = get_tier(score)
        return CreditScoreRecord(farm_id=farm_id, score=score, rating=tier.rating, tier=tier)

    def get_interest_adjustment(self, score: Optional[float]) -> float:
        """Percentage points added to a base rate; lower for better scores"""
        if not self.config.credit_enabled:
            return 0.0
        return INTEREST_ADJUSTMENTS[get_tier(score)]

    def can_finance(self, farm_id: int, category: "FinanceCategory | str") -> EligibilityResult:
        current_score = self.calculate(farm_id)
        parsed = FinanceCategory.parse(category)
        if parsed is None:
            logger.warning("Unknown finance category", extra={"category": str(category)})
            min_required = UNKNOWN_CATEGORY_MIN_SCORE
            category_name = str(category)
        else:
            min_required = MIN_CREDIT_FOR_FINANCING[parsed]
            category_name = CATEGORY_NAMES[parsed]

        if current_score >= min_required:
            return EligibilityResult(ok=True, min_score_required=min_required, current_score=current_score)

        rating, _ = get_rating(current_score)
        message = (
            f"Your credit score of {current_score} ({rating}) is below the {min_required} "
            f"required for {category_name}. Make on-time payments and reduce debt to improve it."
        )
        return EligibilityResult(
            ok=False, min_score_required=min_required, current_score=current_score, message=message
        )


def get_interest_adjustment(score: Optional[float]) -> float:
    """Tier interest adjustment, ignoring the credit toggle (used by pure rate math)"""
    return INTEREST_ADJUSTMENTS[get_tier(score)]
