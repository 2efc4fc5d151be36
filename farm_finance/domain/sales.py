"""Agent-based vehicle sales - listings, hourly offer generation and offer decisions"""

import logging
import math
import random
from typing import Dict, List, Optional

from farm_finance.config import Settings, settings as default_settings
from farm_finance.domain.exceptions import (
    DomainException,
    FarmNotFoundError,
    IneligibleError,
    InvalidListingStateError,
    InvalidRequestError,
    ListingNotFoundError,
    VehicleNotFoundError,
)
from farm_finance.domain.finance import FinanceManager, rejection_reason
from farm_finance.domain.models import (
    AGENT_TIERS,
    PRICE_TIERS,
    AgentTier,
    ListingStatus,
    MoneyType,
    PriceTier,
    SaleEvent,
    SaleEventKind,
    SaleResult,
    VehicleSaleListing,
)
from farm_finance.infrastructure.host import FarmHost

logger = logging.getLogger(__name__)

MIN_SUCCESS_PROBABILITY = 0.10
MAX_SUCCESS_PROBABILITY = 0.98
OFFER_ROUNDING = 100


def sale_probability(agent_tier: AgentTier, price_tier: PriceTier) -> float:
    """Chance that a listing receives at least one offer over its whole duration"""
    base = AGENT_TIERS[agent_tier].base_success_rate
    modifier = PRICE_TIERS[price_tier].success_modifier
    return max(MIN_SUCCESS_PROBABILITY, min(MAX_SUCCESS_PROBABILITY, base * (1 + modifier)))


def hourly_offer_chance(probability: float, duration_hours: int) -> float:
    """Spread an overall probability evenly across every hour of the listing"""
    if duration_hours <= 0:
        return probability
    return 1 - (1 - probability) ** (1 / duration_hours)


def generate_offer(min_price: float, max_price: float, rng: random.Random) -> float:
    """
    Uniform offer within [min_price, max_price].

    Offers are rounded down to a whole hundred when the rounded figure is
    still inside the range; a degenerate range always yields its exact value.
    """
    if max_price <= min_price:
        return min_price

    amount = rng.uniform(min_price, max_price)
    rounded = math.floor(amount / OFFER_ROUNDING) * OFFER_ROUNDING
    if rounded >= min_price:
        amount = rounded
    return max(min_price, min(max_price, amount))


def rejected(exc: DomainException) -> SaleResult:
    return SaleResult(ok=False, reason=rejection_reason(exc), message=str(exc))


class SaleManager:
    """
    Owns every vehicle listing.

    advance() is driven once per game hour. While a listing is searching,
    each hour consumes remaining time and may produce an offer; a pending
    offer pauses the search timer and counts down its own expiry instead.
    """

    def __init__(
        self,
        host: FarmHost,
        finance_manager: Optional[FinanceManager] = None,
        config: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.host = host
        self.finance_manager = finance_manager
        self.config = config or default_settings
        self.rng = rng or random.Random()

        self.listings: Dict[str, VehicleSaleListing] = {}
        self.next_listing_id = 1
        self.last_processed_hour: Optional[int] = None

    @property
    def current_hour(self) -> int:
        return self.last_processed_hour or 0

    def _increment(self, farm_id: int, name: str, amount: float = 1) -> None:
        if self.finance_manager is not None:
            self.finance_manager.increment_statistic(farm_id, name, amount)

    # Queries

    def get_listing(self, listing_id: str) -> Optional[VehicleSaleListing]:
        return self.listings.get(listing_id)

    def get_listings_for_farm(self, farm_id: int, include_closed: bool = True) -> List[VehicleSaleListing]:
        return [
            listing
            for listing in self.listings.values()
            if listing.farm_id == farm_id and (include_closed or listing.is_open)
        ]

    def get_pending_offers(self, farm_id: int) -> List[VehicleSaleListing]:
        return [listing for listing in self.listings.values() if listing.farm_id == farm_id and listing.has_pending_offer]

    def get_open_listing_for_vehicle(self, farm_id: int, vehicle_id: str) -> Optional[VehicleSaleListing]:
        for listing in self.listings.values():
            if listing.farm_id == farm_id and listing.vehicle_id == vehicle_id and listing.is_open:
                return listing
        return None

    # Listing creation

    def generate_listing_id(self) -> str:
        listing_id = f"SALE_{self.next_listing_id:08d}"
        self.next_listing_id += 1
        return listing_id

    def restore_listing(self, listing: VehicleSaleListing) -> None:
        self.listings[listing.id] = listing
        if listing.id.startswith("SALE_") and listing.id[5:].isdigit():
            self.next_listing_id = max(self.next_listing_id, int(listing.id[5:]) + 1)

    def create_listing(self, farm_id: int, vehicle_id: str, agent_tier: int, price_tier: int) -> SaleResult:
        try:
            return self._create_listing(farm_id, vehicle_id, agent_tier, price_tier)
        except DomainException as exc:
            logger.warning(
                "Listing rejected", extra={"farm_id": farm_id, "vehicle_id": vehicle_id, "reason": str(exc)}
            )
            return rejected(exc)

    def _create_listing(self, farm_id: int, vehicle_id: str, agent_tier: int, price_tier: int) -> SaleResult:
        try:
            agent = AgentTier(agent_tier)
            price = PriceTier(price_tier)
        except ValueError:
            raise InvalidRequestError(f"Unknown agent tier {agent_tier} or price tier {price_tier}")

        farm = self.host.get_farm_by_id(farm_id)
        if farm is None:
            raise FarmNotFoundError(farm_id)
        vehicle = farm.get_vehicle(vehicle_id)
        if vehicle is None:
            raise VehicleNotFoundError(vehicle_id)

        if self.get_open_listing_for_vehicle(farm_id, vehicle_id) is not None:
            raise InvalidListingStateError(f"{vehicle.name} is already listed for sale")
        if self.finance_manager is not None and self.finance_manager.has_active_deal_for_item(farm_id, vehicle_id):
            raise IneligibleError(f"{vehicle.name} is financed or leased and cannot be sold")

        open_listings = len(self.get_listings_for_farm(farm_id, include_closed=False))
        if open_listings >= self.config.max_listings_per_farm:
            raise IneligibleError(
                f"A farm can have at most {self.config.max_listings_per_farm} vehicles listed",
                required=self.config.max_listings_per_farm,
                current=open_listings,
            )

        agent_config = AGENT_TIERS[agent]
        price_config = PRICE_TIERS[price]
        if price == PriceTier.PREMIUM and not agent_config.allows_premium:
            raise IneligibleError(f"{agent_config.name} cannot ask a premium price")
        if vehicle.repair_percent < price_config.requires_condition:
            raise IneligibleError(
                f"{price_config.name} requires {price_config.requires_condition}% condition",
                required=price_config.requires_condition,
                current=vehicle.repair_percent,
            )
        if vehicle.paint_percent < price_config.requires_paint:
            raise IneligibleError(
                f"{price_config.name} requires {price_config.requires_paint}% paint",
                required=price_config.requires_paint,
                current=vehicle.paint_percent,
            )

        months = self.rng.randint(agent_config.min_months, agent_config.max_months)
        duration_hours = months * self.config.hours_per_month
        listing = VehicleSaleListing(
            id=self.generate_listing_id(),
            farm_id=farm_id,
            vehicle_id=vehicle_id,
            vehicle_name=vehicle.name,
            agent_tier=agent,
            price_tier=price,
            vanilla_sell_price=vehicle.sell_price,
            expected_min_price=math.floor(vehicle.sell_price * price_config.price_multiplier_min),
            expected_max_price=math.floor(vehicle.sell_price * price_config.price_multiplier_max),
            duration_hours=duration_hours,
            hours_remaining=duration_hours,
            offer_chance_per_hour=hourly_offer_chance(sale_probability(agent, price), duration_hours),
            created_hour=self.current_hour,
            last_processed_hour=self.last_processed_hour,
        )
        self.listings[listing.id] = listing
        self._increment(farm_id, "sales_listed")

        logger.info(
            "Vehicle listed",
            extra={
                "listing_id": listing.id,
                "farm_id": farm_id,
                "agent_tier": agent.name,
                "price_tier": price.name,
                "duration_hours": duration_hours,
            },
        )
        return SaleResult(ok=True, listing=listing)

    # Hourly processing

    def advance(self, hour: int) -> List[SaleEvent]:
        if self.last_processed_hour is not None and hour <= self.last_processed_hour:
            logger.info("Sales hour already processed", extra={"hour": hour, "last_hour": self.last_processed_hour})
            return []
        self.last_processed_hour = hour

        events: List[SaleEvent] = []
        for listing in list(self.listings.values()):
            if not listing.is_open:
                continue
            if listing.last_processed_hour is not None and hour <= listing.last_processed_hour:
                continue
            listing.last_processed_hour = hour
            events.extend(self._process_hour(listing, hour))
        return events

    def _process_hour(self, listing: VehicleSaleListing, hour: int) -> List[SaleEvent]:
        listing.hours_elapsed += 1

        if listing.status == ListingStatus.OFFER_PENDING:
            listing.offer_expires_in -= 1
            if listing.offer_expires_in > 0:
                return []
            amount = listing.current_offer or 0.0
            self._decline(listing)
            logger.info("Offer expired", extra={"listing_id": listing.id, "amount": amount})
            return [SaleEvent(listing.id, listing.farm_id, SaleEventKind.OFFER_EXPIRED, hour, amount)]

        if listing.hours_remaining <= 0:
            return [self._expire(listing, hour)]

        listing.hours_remaining -= 1
        if self.rng.random() < listing.offer_chance_per_hour:
            offer = generate_offer(listing.expected_min_price, listing.expected_max_price, self.rng)
            listing.current_offer = offer
            listing.offer_expires_in = self.config.offer_expiration_hours
            listing.offers_received += 1
            listing.status = ListingStatus.OFFER_PENDING
            logger.info("Offer received", extra={"listing_id": listing.id, "farm_id": listing.farm_id, "amount": offer})
            return [SaleEvent(listing.id, listing.farm_id, SaleEventKind.OFFER_RECEIVED, hour, offer)]

        if listing.hours_remaining <= 0:
            return [self._expire(listing, hour)]
        return []

    def _expire(self, listing: VehicleSaleListing, hour: int) -> SaleEvent:
        listing.status = ListingStatus.EXPIRED
        listing.hours_remaining = 0
        self._increment(listing.farm_id, "sales_expired")
        logger.info("Listing expired", extra={"listing_id": listing.id, "farm_id": listing.farm_id})
        return SaleEvent(listing.id, listing.farm_id, SaleEventKind.LISTING_EXPIRED, hour)

    def _decline(self, listing: VehicleSaleListing) -> None:
        listing.status = ListingStatus.ACTIVE
        listing.current_offer = None
        listing.offer_expires_in = 0
        listing.offers_declined += 1
        listing.hours_remaining = max(0, listing.hours_remaining - self.config.decline_penalty_hours)

    # Player decisions

    def _require_pending(self, listing_id: str) -> VehicleSaleListing:
        listing = self.listings.get(listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        if not listing.has_pending_offer:
            raise InvalidListingStateError(f"Listing {listing_id} has no pending offer")
        return listing

    def accept_offer(self, listing_id: str) -> SaleResult:
        """Sell at the pending offer; the agent fee comes out of the proceeds"""
        try:
            return self._accept_offer(listing_id)
        except DomainException as exc:
            return rejected(exc)

    def _accept_offer(self, listing_id: str) -> SaleResult:
        listing = self._require_pending(listing_id)
        farm = self.host.get_farm_by_id(listing.farm_id)
        if farm is None:
            raise FarmNotFoundError(listing.farm_id)
        if farm.get_vehicle(listing.vehicle_id) is None:
            raise VehicleNotFoundError(listing.vehicle_id)

        gross = listing.current_offer
        fee = round(gross * listing.agent_config.fee_percent, 2)
        net = gross - fee

        self.host.remove_vehicle(listing.farm_id, listing.vehicle_id)
        self.host.add_money(listing.farm_id, net, MoneyType.VEHICLE_SELL)

        listing.status = ListingStatus.SOLD
        listing.final_sale_price = gross
        listing.agent_fee_paid = fee
        listing.current_offer = None
        listing.offer_expires_in = 0

        self._increment(listing.farm_id, "sales_completed")
        self._increment(listing.farm_id, "total_sale_proceeds", net)
        self._increment(listing.farm_id, "total_agent_fees", fee)
        logger.info(
            "Vehicle sold",
            extra={"listing_id": listing.id, "farm_id": listing.farm_id, "gross": gross, "fee": fee, "net": net},
        )
        return SaleResult(ok=True, listing=listing, gross=gross, fee=fee, net=net)

    def decline_offer(self, listing_id: str) -> SaleResult:
        try:
            listing = self._require_pending(listing_id)
        except DomainException as exc:
            return rejected(exc)
        amount = listing.current_offer
        self._decline(listing)
        logger.info("Offer declined", extra={"listing_id": listing.id, "amount": amount})
        return SaleResult(ok=True, listing=listing)

    def cancel_listing(self, listing_id: str) -> SaleResult:
        listing = self.listings.get(listing_id)
        if listing is None:
            return rejected(ListingNotFoundError(listing_id))
        if not listing.is_open:
            return rejected(InvalidListingStateError(f"Listing {listing_id} is already {listing.status.value}"))

        listing.status = ListingStatus.CANCELLED
        listing.current_offer = None
        listing.offer_expires_in = 0
        self._increment(listing.farm_id, "sales_cancelled")
        logger.info("Listing cancelled", extra={"listing_id": listing.id})
        return SaleResult(ok=True, listing=listing)

    def clear(self) -> None:
        self.listings.clear()
        self.next_listing_id = 1
        self.last_processed_hour = None
