"""Unit tests for agent-based vehicle sales"""

import random

import pytest

from farm_finance.domain.context import EngineContext
from farm_finance.domain.models import (
    AgentTier,
    FinanceRequest,
    ListingStatus,
    MoneyType,
    OwnedVehicle,
    PriceTier,
    RejectionReason,
    SaleEventKind,
    VehicleSaleListing,
)
from farm_finance.domain.sales import generate_offer, hourly_offer_chance, sale_probability


def list_tractor(context: EngineContext, agent_tier=AgentTier.LOCAL, price_tier=PriceTier.MARKET) -> VehicleSaleListing:
    result = context.sale_manager.create_listing(1, "T1", agent_tier, price_tier)
    assert result.ok, result.message
    return result.listing


def force_offer(context: EngineContext, listing: VehicleSaleListing, hour: int = 1) -> float:
    listing.offer_chance_per_hour = 1.0
    events = context.sale_manager.advance(hour)
    listing.offer_chance_per_hour = 0.0
    assert events[0].kind == SaleEventKind.OFFER_RECEIVED
    return events[0].amount


def test_degenerate_range_yields_exact_offer():
    for seed in range(50):
        assert generate_offer(50_000, 50_000, random.Random(seed)) == 50_000


def test_offers_stay_in_range():
    rng = random.Random(7)
    for _ in range(1_000):
        assert 76_000 <= generate_offer(76_000, 84_000, rng) <= 84_000
        # Rounding would fall below the floor here, so the raw draw is kept
        assert 12_345 <= generate_offer(12_345, 12_355, rng) <= 12_355


def test_offers_round_to_hundreds():
    rng = random.Random(11)
    assert all(generate_offer(76_000, 84_000, rng) % 100 == 0 for _ in range(100))


def test_sale_probability_is_clamped():
    assert sale_probability(AgentTier.PRIVATE, PriceTier.QUICK) == pytest.approx(0.575)
    assert sale_probability(AgentTier.NATIONAL, PriceTier.QUICK) == pytest.approx(0.98)
    assert sale_probability(AgentTier.NATIONAL, PriceTier.PREMIUM) == pytest.approx(0.76)


def test_hourly_chance_compounds_to_listing_probability():
    hourly = hourly_offer_chance(0.7, 48)
    assert 1 - (1 - hourly) ** 48 == pytest.approx(0.7)


def test_create_listing(context: EngineContext):
    listing = list_tractor(context)

    assert listing.id == "SALE_00000001"
    assert listing.status == ListingStatus.ACTIVE
    assert listing.vehicle_name == "Fendt 724 Vario"
    assert listing.expected_min_price == 76_000
    assert listing.expected_max_price == 84_000
    assert listing.duration_hours in (24, 48)
    assert listing.hours_remaining == listing.duration_hours
    assert context.finance_manager.get_statistics(1).sales_listed == 1


def test_listing_gates(context: EngineContext):
    manager = context.sale_manager
    list_tractor(context)

    duplicate = manager.create_listing(1, "T1", AgentTier.LOCAL, PriceTier.QUICK)
    assert duplicate.reason == RejectionReason.INVALID_STATE

    worn = manager.create_listing(1, "T2", AgentTier.LOCAL, PriceTier.PREMIUM)
    assert worn.reason == RejectionReason.INELIGIBLE

    assert manager.create_listing(1, "missing", AgentTier.LOCAL, PriceTier.MARKET).reason == RejectionReason.NOT_FOUND
    assert manager.create_listing(404, "T1", AgentTier.LOCAL, PriceTier.MARKET).reason == RejectionReason.NOT_FOUND
    assert manager.create_listing(1, "T2", 7, PriceTier.MARKET).reason == RejectionReason.INVALID_REQUEST


def test_private_sellers_cannot_ask_premium(context: EngineContext):
    result = context.sale_manager.create_listing(1, "T1", AgentTier.PRIVATE, PriceTier.PREMIUM)
    assert result.ok is False
    assert result.reason == RejectionReason.INELIGIBLE


def test_financed_vehicle_cannot_be_listed(context: EngineContext):
    request = FinanceRequest(1, "vehicle", "T1", "Fendt 724 Vario", 50_000, 10_000, 60)
    assert context.finance_manager.create_finance_deal(request).ok
    result = context.sale_manager.create_listing(1, "T1", AgentTier.LOCAL, PriceTier.MARKET)
    assert result.ok is False
    assert result.reason == RejectionReason.INELIGIBLE


def test_listing_limit_per_farm(context: EngineContext):
    farm = context.host.farms[1]
    farm.vehicles += [OwnedVehicle("V3", "Baler", 20_000), OwnedVehicle("V4", "Trailer", 10_000)]
    manager = context.sale_manager

    first = manager.create_listing(1, "T1", AgentTier.LOCAL, PriceTier.MARKET).listing
    manager.create_listing(1, "T2", AgentTier.LOCAL, PriceTier.MARKET)
    manager.create_listing(1, "V3", AgentTier.LOCAL, PriceTier.MARKET)

    blocked = manager.create_listing(1, "V4", AgentTier.LOCAL, PriceTier.MARKET)
    assert blocked.reason == RejectionReason.INELIGIBLE

    manager.cancel_listing(first.id)
    assert manager.create_listing(1, "V4", AgentTier.LOCAL, PriceTier.MARKET).ok is True


def test_offer_generation(context: EngineContext):
    listing = list_tractor(context)
    offer = force_offer(context, listing)

    assert listing.status == ListingStatus.OFFER_PENDING
    assert listing.current_offer == offer
    assert 76_000 <= offer <= 84_000
    assert listing.offers_received == 1
    assert listing.offer_expires_in == 48
    assert context.sale_manager.get_pending_offers(1) == [listing]


def test_advance_is_idempotent_per_hour(context: EngineContext):
    listing = list_tractor(context)
    context.sale_manager.advance(1)
    remaining = listing.hours_remaining

    assert context.sale_manager.advance(1) == []
    assert listing.hours_remaining == remaining
    assert listing.hours_elapsed == 1


def test_accept_offer_charges_fee_on_sale(context: EngineContext):
    listing = list_tractor(context)
    offer = force_offer(context, listing)

    result = context.sale_manager.accept_offer(listing.id)

    fee = round(offer * 0.02, 2)
    assert result.ok is True
    assert (result.gross, result.fee, result.net) == (offer, fee, offer - fee)
    assert listing.status == ListingStatus.SOLD
    assert listing.agent_fee_paid == fee
    assert context.host.farms[1].money == pytest.approx(200_000 + offer - fee)
    assert context.host.money_log[-1] == (1, offer - fee, MoneyType.VEHICLE_SELL)
    assert context.host.farms[1].get_vehicle("T1") is None

    stats = context.finance_manager.get_statistics(1)
    assert stats.sales_completed == 1
    assert stats.total_agent_fees == fee

    # Sold listings take no further part in hourly processing
    assert context.sale_manager.advance(2) == []


def test_private_sale_has_no_fee(context: EngineContext):
    listing = list_tractor(context, agent_tier=AgentTier.PRIVATE)
    offer = force_offer(context, listing)
    result = context.sale_manager.accept_offer(listing.id)
    assert result.fee == 0
    assert result.net == offer


def test_decline_returns_listing_to_search(context: EngineContext):
    listing = list_tractor(context)
    force_offer(context, listing)
    remaining = listing.hours_remaining

    result = context.sale_manager.decline_offer(listing.id)

    assert result.ok is True
    assert listing.status == ListingStatus.ACTIVE
    assert listing.current_offer is None
    assert listing.offers_declined == 1
    assert listing.hours_remaining == max(0, remaining - 24)
    assert context.sale_manager.get_listing(listing.id) is listing
    assert context.host.farms[1].money == 200_000
    assert context.host.money_log == []


def test_decline_penalty_can_exhaust_listing(context: EngineContext):
    listing = list_tractor(context)
    listing.duration_hours = listing.hours_remaining = 10
    force_offer(context, listing)
    context.sale_manager.decline_offer(listing.id)

    assert listing.hours_remaining == 0
    events = context.sale_manager.advance(2)
    assert [e.kind for e in events] == [SaleEventKind.LISTING_EXPIRED]
    assert listing.status == ListingStatus.EXPIRED
    assert context.sale_manager.get_listing(listing.id) is listing


def test_pending_offer_expires(context: EngineContext):
    listing = list_tractor(context)
    force_offer(context, listing)

    for hour in range(2, 49):
        assert context.sale_manager.advance(hour) == []
    assert listing.offer_expires_in == 1

    events = context.sale_manager.advance(49)
    assert [e.kind for e in events] == [SaleEventKind.OFFER_EXPIRED]
    assert listing.status == ListingStatus.ACTIVE
    assert listing.offers_declined == 1


def test_listing_expires_without_offers(context: EngineContext):
    listing = list_tractor(context)
    listing.offer_chance_per_hour = 0.0
    listing.duration_hours = listing.hours_remaining = 24

    for hour in range(1, 24):
        assert context.sale_manager.advance(hour) == []

    events = context.sale_manager.advance(24)
    assert [e.kind for e in events] == [SaleEventKind.LISTING_EXPIRED]
    assert listing.status == ListingStatus.EXPIRED
    assert context.finance_manager.get_statistics(1).sales_expired == 1
    assert context.sale_manager.advance(25) == []


def test_decisions_require_pending_offer(context: EngineContext):
    listing = list_tractor(context)
    manager = context.sale_manager

    assert manager.accept_offer(listing.id).reason == RejectionReason.INVALID_STATE
    assert manager.decline_offer(listing.id).reason == RejectionReason.INVALID_STATE
    assert manager.accept_offer("SALE_99999999").reason == RejectionReason.NOT_FOUND


def test_accept_fails_when_vehicle_is_gone(context: EngineContext):
    listing = list_tractor(context)
    force_offer(context, listing)
    context.host.remove_vehicle(1, "T1")

    result = context.sale_manager.accept_offer(listing.id)
    assert result.reason == RejectionReason.NOT_FOUND
    assert listing.status == ListingStatus.OFFER_PENDING


def test_cancel_listing(context: EngineContext):
    listing = list_tractor(context)
    manager = context.sale_manager

    assert manager.cancel_listing(listing.id).ok is True
    assert listing.status == ListingStatus.CANCELLED
    assert manager.cancel_listing(listing.id).reason == RejectionReason.INVALID_STATE
    assert manager.get_listings_for_farm(1, include_closed=False) == []
    assert manager.get_listings_for_farm(1) == [listing]
