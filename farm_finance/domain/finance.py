"""Finance deal ledger - deal creation, monthly payment collection, payoff and default"""

import logging
from collections import defaultdict
from dataclasses import dataclass, fields
from typing import Dict, List, Optional

from farm_finance.config import Settings, settings as default_settings
from farm_finance.domain import calculations
from farm_finance.domain.credit_history import CreditHistory
from farm_finance.domain.credit_score import CreditScore, get_max_cash_back
from farm_finance.domain.exceptions import (
    DealNotFoundError,
    DomainException,
    FarmNotFoundError,
    IneligibleError,
    InsufficientFundsError,
    InvalidListingStateError,
    InvalidRequestError,
    ListingNotFoundError,
    VehicleNotFoundError,
)
from farm_finance.domain.models import (
    DealEvent,
    DealEventKind,
    DealStatus,
    DealType,
    Farm,
    FinanceCategory,
    FinanceDeal,
    FinanceRequest,
    FinanceResult,
    MoneyType,
    PaymentOutcome,
    RejectionReason,
)
from farm_finance.infrastructure.host import FarmHost

logger = logging.getLogger(__name__)

PAID_OFF_TOLERANCE = 0.01
MIN_PAYMENT_MULTIPLIER = 1.0
MAX_PAYMENT_MULTIPLIER = 5.0


@dataclass
class FarmStatistics:
    """Lifetime counters shown on the financial dashboard"""

    deals_created: int = 0
    deals_completed: int = 0
    deals_defaulted: int = 0
    total_amount_financed: float = 0.0
    total_interest_paid: float = 0.0
    sales_listed: int = 0
    sales_completed: int = 0
    sales_cancelled: int = 0
    sales_expired: int = 0
    total_sale_proceeds: float = 0.0
    total_agent_fees: float = 0.0


def rejection_reason(exc: DomainException) -> RejectionReason:
    """Map a domain exception onto the rejection taxonomy reported to callers"""
    if isinstance(exc, (FarmNotFoundError, DealNotFoundError, ListingNotFoundError, VehicleNotFoundError)):
        return RejectionReason.NOT_FOUND
    if isinstance(exc, InsufficientFundsError):
        return RejectionReason.INSUFFICIENT_FUNDS
    if isinstance(exc, IneligibleError):
        return RejectionReason.INELIGIBLE
    if isinstance(exc, InvalidListingStateError):
        return RejectionReason.INVALID_STATE
    return RejectionReason.INVALID_REQUEST


def rejected(exc: DomainException) -> FinanceResult:
    result = FinanceResult(ok=False, reason=rejection_reason(exc), message=str(exc))
    if isinstance(exc, InsufficientFundsError):
        result.required, result.current, result.shortfall = exc.required, exc.available, exc.shortfall
    elif isinstance(exc, IneligibleError):
        result.required, result.current = exc.required, exc.current
    return result


def infer_deal_type(item_type: str) -> DealType:
    if item_type == "land":
        return DealType.LAND
    if item_type == "loan":
        return DealType.CASH_LOAN
    if item_type == "lease":
        return DealType.LEASE
    return DealType.VEHICLE


def finance_category(deal_type: DealType, item_type: str) -> FinanceCategory:
    if deal_type == DealType.LAND:
        return FinanceCategory.LAND_FINANCE
    if deal_type == DealType.CASH_LOAN:
        return FinanceCategory.CASH_LOAN
    if deal_type == DealType.LEASE:
        return FinanceCategory.VEHICLE_LEASE
    if item_type == "repair":
        return FinanceCategory.REPAIR_FINANCE
    return FinanceCategory.VEHICLE_FINANCE


class FinanceManager:
    """
    Owns every financing obligation, grouped by farm.

    advance() is driven once per game month by the host; a tick at or before
    the last processed tick is ignored, so a duplicated period event never
    charges twice. Deals are never removed: paid-off and defaulted deals stay
    queryable for lifetime statistics.
    """

    def __init__(
        self,
        host: FarmHost,
        history: CreditHistory,
        credit_score: Optional[CreditScore] = None,
        config: Optional[Settings] = None,
    ):
        self.host = host
        self.history = history
        self.config = config or default_settings
        self.credit_score = credit_score or CreditScore(host, history, self.get_deals_for_farm, self.config)

        self.deals: Dict[str, FinanceDeal] = {}
        self.deals_by_farm: Dict[int, List[FinanceDeal]] = defaultdict(list)
        self.statistics_by_farm: Dict[int, FarmStatistics] = {}
        self.next_deal_id = 1
        self.last_processed_tick: Optional[int] = None

    @property
    def current_tick(self) -> int:
        return self.last_processed_tick or 0

    # Statistics

    def get_statistics(self, farm_id: int) -> FarmStatistics:
        """Farm totals; a farm with no activity gets zeroes without being recorded"""
        return self.statistics_by_farm.get(farm_id) or FarmStatistics()

    def increment_statistic(self, farm_id: int, name: str, amount: float = 1) -> None:
        if name not in {f.name for f in fields(FarmStatistics)}:
            logger.warning("Unknown statistic", extra={"statistic": name})
            return
        stats = self.statistics_by_farm.setdefault(farm_id, FarmStatistics())
        setattr(stats, name, getattr(stats, name) + amount)

    # Registration

    def generate_deal_id(self) -> str:
        deal_id = f"DEAL_{self.next_deal_id:08d}"
        self.next_deal_id += 1
        return deal_id

    def add_deal(self, deal: FinanceDeal) -> bool:
        """Register a new obligation; returns False if the id is already taken"""
        if not deal.id:
            deal.id = self.generate_deal_id()
        if deal.id in self.deals:
            logger.warning("Duplicate deal id rejected", extra={"deal_id": deal.id})
            return False

        deal.created_tick = self.current_tick
        if deal.last_processed_tick is None:
            deal.last_processed_tick = self.last_processed_tick

        self.restore_deal(deal)
        self.increment_statistic(deal.farm_id, "deals_created")
        self.increment_statistic(deal.farm_id, "total_amount_financed", deal.amount_financed)

        logger.info(
            "Deal registered",
            extra={
                "deal_id": deal.id,
                "farm_id": deal.farm_id,
                "deal_type": deal.deal_type.name,
                "amount_financed": deal.amount_financed,
                "annual_rate": deal.annual_rate,
                "term_months": deal.term_months,
            },
        )
        return True

    def restore_deal(self, deal: FinanceDeal) -> None:
        """Index a deal without touching statistics (used when loading saved state)"""
        self.deals[deal.id] = deal
        self.deals_by_farm[deal.farm_id].append(deal)
        if deal.id.startswith("DEAL_") and deal.id[5:].isdigit():
            self.next_deal_id = max(self.next_deal_id, int(deal.id[5:]) + 1)

    # Queries

    def get_deal(self, deal_id: str) -> Optional[FinanceDeal]:
        return self.deals.get(deal_id)

    def get_deals_for_farm(self, farm_id: int) -> List[FinanceDeal]:
        return list(self.deals_by_farm.get(farm_id, []))

    def get_active_deals(self, farm_id: int) -> List[FinanceDeal]:
        return [deal for deal in self.deals_by_farm.get(farm_id, []) if deal.status == DealStatus.ACTIVE]

    def get_total_monthly_obligations(self, farm_id: int) -> float:
        return sum(deal.monthly_payment * deal.payment_multiplier for deal in self.get_active_deals(farm_id))

    def get_total_debt(self, farm_id: int) -> float:
        return sum(deal.effective_balance for deal in self.get_active_deals(farm_id))

    def has_active_deal_for_item(self, farm_id: int, item_id: str) -> bool:
        return any(str(deal.item_id) == str(item_id) for deal in self.get_active_deals(farm_id))

    # Deal creation

    def _require_farm(self, farm_id: int) -> Farm:
        farm = self.host.get_farm_by_id(farm_id)
        if farm is None:
            raise FarmNotFoundError(farm_id)
        return farm

    def _check_gates(self, farm_id: int, category: FinanceCategory, amount: float) -> int:
        """Minimum-amount and credit gates; returns the current score"""
        meets_minimum, minimum = calculations.meets_minimum_amount(amount, category)
        if not meets_minimum:
            raise IneligibleError(
                f"Amount {amount:,.0f} is below the {minimum:,} minimum for {category.value}",
                required=minimum,
                current=amount,
            )

        eligibility = self.credit_score.can_finance(farm_id, category)
        if not eligibility.ok:
            raise IneligibleError(
                eligibility.message,
                required=eligibility.min_score_required,
                current=eligibility.current_score,
            )
        return eligibility.current_score

    def create_finance_deal(self, request: FinanceRequest) -> FinanceResult:
        """
        Create a vehicle, repair, land or cash-loan deal from a confirmed request.

        Every check runs before any funds or ownership change, so a rejected
        request leaves farm and ledger untouched.
        """
        try:
            return self._create_finance_deal(request)
        except DomainException as exc:
            logger.warning(
                "Finance request rejected",
                extra={"farm_id": request.farm_id, "item_id": request.item_id, "reason": str(exc)},
            )
            return rejected(exc)

    def _create_finance_deal(self, request: FinanceRequest) -> FinanceResult:
        farm = self._require_farm(request.farm_id)
        deal_type = request.deal_type or infer_deal_type(request.item_type)
        if deal_type == DealType.LEASE:
            raise InvalidRequestError("Use create_lease_deal for leases")

        term_months = calculations.normalize_term_months(request.term_months, self.config.default_term_months)
        category = finance_category(deal_type, request.item_type)

        price = request.price
        score = self.credit_score.calculate(request.farm_id)
        if deal_type == DealType.LAND:
            price, _, _, _ = calculations.calculate_adjusted_land_price(request.price, score)

        valid, error = calculations.validate_finance_params(price, request.down_payment, term_months, request.item_type)
        if not valid:
            raise InvalidRequestError(error)
        if request.cash_back < 0 or request.cash_back > get_max_cash_back(request.down_payment):
            raise InvalidRequestError("Cash back cannot exceed half of the down payment")

        amount_financed = price - request.down_payment + request.cash_back
        score = self._check_gates(request.farm_id, category, amount_financed)

        upfront = 0.0 if deal_type == DealType.CASH_LOAN else request.down_payment - request.cash_back
        if upfront > farm.money:
            raise InsufficientFundsError(upfront, farm.money)

        down_payment_percent = request.down_payment / price
        if deal_type == DealType.LAND:
            annual_rate = calculations.calculate_land_interest_rate(
                score, term_months / 12, down_payment_percent, self.config.credit_enabled
            )
        else:
            annual_rate = calculations.calculate_vehicle_interest_rate(
                score, term_months, down_payment_percent, self.config.credit_enabled
            )
        monthly_payment, _ = calculations.calculate_monthly_payment(amount_financed, annual_rate / 100, term_months)

        deal = FinanceDeal(
            id=self.generate_deal_id(),
            farm_id=request.farm_id,
            deal_type=deal_type,
            item_type=request.item_type,
            item_id=str(request.item_id),
            item_name=request.item_name,
            price=price,
            down_payment=request.down_payment,
            term_months=term_months,
            annual_rate=annual_rate,
            cash_back=request.cash_back,
            monthly_payment=monthly_payment,
            current_balance=amount_financed,
            amount_financed=amount_financed,
        )

        if deal_type == DealType.CASH_LOAN:
            self.host.add_money(request.farm_id, amount_financed, MoneyType.LOAN)
        elif upfront != 0:
            money_type = MoneyType.SHOP_PROPERTY_BUY if deal_type == DealType.LAND else MoneyType.SHOP_VEHICLE_BUY
            self.host.add_money(request.farm_id, -upfront, money_type)

        if deal_type == DealType.LAND and str(request.item_id).isdigit():
            self.host.set_land_owner(int(request.item_id), request.farm_id)

        self.add_deal(deal)
        return FinanceResult(ok=True, deal=deal, amount=upfront)

    def create_lease_deal(self, request: FinanceRequest) -> FinanceResult:
        """Lease: payments cover depreciation to the residual plus rent; a credit-tiered deposit is due upfront"""
        try:
            return self._create_lease_deal(request)
        except DomainException as exc:
            logger.warning(
                "Lease request rejected",
                extra={"farm_id": request.farm_id, "item_id": request.item_id, "reason": str(exc)},
            )
            return rejected(exc)

    def _create_lease_deal(self, request: FinanceRequest) -> FinanceResult:
        farm = self._require_farm(request.farm_id)
        term_months = calculations.normalize_term_months(request.term_months, 36)

        valid, error = calculations.validate_lease_params(request.price, request.down_payment, term_months)
        if not valid:
            raise InvalidRequestError(error)

        capitalized_cost = request.price - request.down_payment
        score = self._check_gates(request.farm_id, FinanceCategory.VEHICLE_LEASE, request.price)

        annual_rate = calculations.calculate_lease_interest_rate(
            score, request.down_payment / request.price, self.config.credit_enabled
        )
        residual = calculations.calculate_residual_value(request.price, term_months)
        residual = min(residual, capitalized_cost)
        monthly_payment = calculations.calculate_lease_payment(capitalized_cost, residual, annual_rate / 100, term_months)
        deposit, _, _ = calculations.calculate_security_deposit(monthly_payment, score)

        upfront = request.down_payment + deposit
        if upfront > farm.money:
            raise InsufficientFundsError(upfront, farm.money)

        deal = FinanceDeal(
            id=self.generate_deal_id(),
            farm_id=request.farm_id,
            deal_type=DealType.LEASE,
            item_type=request.item_type or "vehicle",
            item_id=str(request.item_id),
            item_name=request.item_name,
            price=request.price,
            down_payment=request.down_payment,
            term_months=term_months,
            annual_rate=annual_rate,
            cash_back=0.0,
            monthly_payment=monthly_payment,
            current_balance=monthly_payment * term_months,
            amount_financed=capitalized_cost,
            residual_value=residual,
            security_deposit=deposit,
        )

        if upfront > 0:
            self.host.add_money(request.farm_id, -upfront, MoneyType.LEASING_COSTS)
        self.add_deal(deal)
        return FinanceResult(ok=True, deal=deal, amount=upfront)

    # Monthly processing

    def advance(self, tick: int) -> List[DealEvent]:
        """Collect one period's payment on every active deal"""
        if self.last_processed_tick is not None and tick <= self.last_processed_tick:
            logger.info("Finance tick already processed", extra={"tick": tick, "last_tick": self.last_processed_tick})
            return []
        self.last_processed_tick = tick

        events: List[DealEvent] = []
        for farm_id, deals in self.deals_by_farm.items():
            farm = self.host.get_farm_by_id(farm_id)
            if farm is None:
                logger.warning("Farm not found for payment processing", extra={"farm_id": farm_id})
                continue

            for deal in deals:
                if deal.status != DealStatus.ACTIVE:
                    continue
                if deal.last_processed_tick is not None and tick <= deal.last_processed_tick:
                    continue
                deal.last_processed_tick = tick
                events.extend(self._collect_payment(farm, deal, tick))

        logger.info("Finance tick processed", extra={"tick": tick, "events": len(events)})
        return events

    def _collect_payment(self, farm: Farm, deal: FinanceDeal, tick: int) -> List[DealEvent]:
        if deal.is_lease:
            interest_due = calculations.calculate_lease_rent_charge(
                deal.amount_financed, deal.residual_value, deal.annual_rate / 100
            )
            period_interest = 0.0  # Rent is already inside the scheduled balance
            amount_owed = deal.current_balance
            scheduled = deal.monthly_payment
        else:
            period_interest = deal.current_balance * deal.monthly_rate
            interest_due = period_interest + deal.accrued_interest
            amount_owed = deal.current_balance + interest_due
            scheduled = deal.monthly_payment * deal.payment_multiplier

        minimum_due = min(deal.monthly_payment, amount_owed)
        if farm.money < minimum_due:
            return self._miss_payment(deal, period_interest, tick)

        payment = max(minimum_due, min(scheduled, amount_owed, farm.money))
        interest_paid = min(payment, interest_due)

        if deal.is_lease:
            deal.current_balance = round(deal.current_balance - payment, 2)
        else:
            principal = payment - interest_paid
            deal.accrued_interest = round(interest_due - interest_paid, 2)
            deal.current_balance = round(deal.current_balance - principal, 2)
        deal.current_balance = max(0.0, deal.current_balance)

        deal.months_paid += 1
        deal.missed_payments = 0
        deal.total_interest_paid += interest_paid
        self.host.add_money(deal.farm_id, -payment, MoneyType.FINANCE_PAYMENT)
        self.increment_statistic(deal.farm_id, "total_interest_paid", interest_paid)
        self.history.record_payment(deal.farm_id, tick, PaymentOutcome.ON_TIME, deal.id, deal.item_name)

        events = [DealEvent(deal.id, deal.farm_id, DealEventKind.PAYMENT_COLLECTED, tick, payment)]
        if deal.current_balance <= PAID_OFF_TOLERANCE and deal.accrued_interest <= PAID_OFF_TOLERANCE:
            events.append(self._mark_paid_off(deal, tick))
        return events

    def _miss_payment(self, deal: FinanceDeal, period_interest: float, tick: int) -> List[DealEvent]:
        deal.missed_payments += 1
        deal.total_missed_payments += 1
        deal.accrued_interest = round(deal.accrued_interest + period_interest, 2)
        self.history.record_payment(deal.farm_id, tick, PaymentOutcome.MISSED, deal.id, deal.item_name)

        logger.warning(
            "Payment missed",
            extra={"deal_id": deal.id, "farm_id": deal.farm_id, "consecutive_missed": deal.missed_payments},
        )
        events = [DealEvent(deal.id, deal.farm_id, DealEventKind.PAYMENT_MISSED, tick, deal.monthly_payment)]

        if deal.missed_payments >= self.config.missed_payments_to_default:
            deal.status = DealStatus.DEFAULTED
            self.increment_statistic(deal.farm_id, "deals_defaulted")
            logger.warning("Deal defaulted", extra={"deal_id": deal.id, "farm_id": deal.farm_id})
            events.append(DealEvent(deal.id, deal.farm_id, DealEventKind.DEFAULTED, tick, deal.effective_balance))
        return events

    def _mark_paid_off(self, deal: FinanceDeal, tick: int) -> DealEvent:
        deal.current_balance = 0.0
        deal.accrued_interest = 0.0
        deal.status = DealStatus.PAID_OFF
        self.increment_statistic(deal.farm_id, "deals_completed")
        self.history.record_payoff(deal.farm_id, tick, deal.id, deal.item_name)
        logger.info("Deal paid off", extra={"deal_id": deal.id, "farm_id": deal.farm_id})
        return DealEvent(deal.id, deal.farm_id, DealEventKind.PAID_OFF, tick)

    # Player-initiated changes

    def make_payment(self, deal_id: str, amount: float) -> FinanceResult:
        """Extra principal payment; amounts at or above the payoff figure close the deal"""
        try:
            return self._make_payment(deal_id, amount)
        except DomainException as exc:
            return rejected(exc)

    def _make_payment(self, deal_id: str, amount: float) -> FinanceResult:
        deal = self.deals.get(deal_id)
        if deal is None:
            raise DealNotFoundError(deal_id)
        if deal.status != DealStatus.ACTIVE:
            raise InvalidRequestError(f"Deal {deal_id} is {deal.status.value}")
        if deal.is_lease:
            raise InvalidRequestError("Lease payments cannot be prepaid")
        if amount <= 0:
            raise InvalidRequestError("Payment must be greater than zero")
        farm = self._require_farm(deal.farm_id)

        payoff, penalty = calculations.calculate_payoff_amount(deal.effective_balance, deal.months_paid, deal.term_months)
        amount = min(amount, payoff)
        if amount > farm.money:
            raise InsufficientFundsError(amount, farm.money)

        self.host.add_money(deal.farm_id, -amount, MoneyType.FINANCE_PAYMENT)
        if amount >= payoff:
            interest_paid = deal.accrued_interest + penalty
            deal.total_interest_paid += interest_paid
            self.increment_statistic(deal.farm_id, "total_interest_paid", interest_paid)
            self._mark_paid_off(deal, self.current_tick)
        else:
            to_accrued = min(amount, deal.accrued_interest)
            deal.accrued_interest = round(deal.accrued_interest - to_accrued, 2)
            deal.total_interest_paid += to_accrued
            deal.current_balance = round(max(0.0, deal.current_balance - (amount - to_accrued)), 2)

        logger.info("Extra payment applied", extra={"deal_id": deal.id, "amount": amount})
        return FinanceResult(ok=True, deal=deal, amount=amount)

    def set_payment_multiplier(self, deal_id: str, multiplier: float) -> FinanceResult:
        deal = self.deals.get(deal_id)
        if deal is None:
            return rejected(DealNotFoundError(deal_id))
        if not MIN_PAYMENT_MULTIPLIER <= multiplier <= MAX_PAYMENT_MULTIPLIER:
            return rejected(InvalidRequestError("Payment multiplier must be between 1.0 and 5.0"))
        deal.payment_multiplier = multiplier
        return FinanceResult(ok=True, deal=deal)

    def clear(self) -> None:
        self.deals.clear()
        self.deals_by_farm.clear()
        self.statistics_by_farm.clear()
        self.next_deal_id = 1
        self.last_processed_tick = None
