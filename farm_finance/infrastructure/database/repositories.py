"""Data access layer for saved engine state"""

from dataclasses import asdict, fields
from typing import Optional

from sqlalchemy.orm import Session

from farm_finance.domain.context import EngineContext
from farm_finance.domain.exceptions import CorruptSaveError
from farm_finance.domain.finance import FarmStatistics
from farm_finance.domain.models import (
    AgentTier,
    CreditEvent,
    CreditHistoryEntry,
    DealStatus,
    DealType,
    FinanceDeal,
    ListingStatus,
    PriceTier,
    VehicleSaleListing,
)
from farm_finance.infrastructure.database.models import (
    CreditHistoryRecord,
    EngineSave,
    FinanceDealRecord,
    SaleListingRecord,
)

DEAL_FIELDS = [f.name for f in fields(FinanceDeal)]
LISTING_FIELDS = [f.name for f in fields(VehicleSaleListing)]
STATISTIC_FIELDS = {f.name for f in fields(FarmStatistics)}


def deal_to_record(slot: str, deal: FinanceDeal) -> FinanceDealRecord:
    values = asdict(deal)
    values["deal_type"] = int(deal.deal_type)
    values["status"] = deal.status.value
    return FinanceDealRecord(slot=slot, **values)


def record_to_deal(record: FinanceDealRecord) -> FinanceDeal:
    deal = FinanceDeal(**{name: getattr(record, name) for name in DEAL_FIELDS})
    deal.deal_type = DealType(record.deal_type)
    deal.status = DealStatus(record.status)
    return deal


def listing_to_record(slot: str, listing: VehicleSaleListing) -> SaleListingRecord:
    values = asdict(listing)
    values["agent_tier"] = int(listing.agent_tier)
    values["price_tier"] = int(listing.price_tier)
    values["status"] = listing.status.value
    return SaleListingRecord(slot=slot, **values)


def record_to_listing(record: SaleListingRecord) -> VehicleSaleListing:
    listing = VehicleSaleListing(**{name: getattr(record, name) for name in LISTING_FIELDS})
    listing.agent_tier = AgentTier(record.agent_tier)
    listing.price_tier = PriceTier(record.price_tier)
    listing.status = ListingStatus(record.status)
    return listing


def record_to_entry(record: CreditHistoryRecord) -> CreditHistoryEntry:
    return CreditHistoryEntry(
        farm_id=record.farm_id,
        timestamp=record.timestamp,
        event=CreditEvent(record.event),
        score_delta=record.score_delta,
        deal_id=record.deal_id,
        details=record.details,
    )


class StateRepository:
    """Repository for whole-engine snapshots keyed by save slot"""

    def __init__(self, db: Session):
        self.db = db

    def get_save(self, slot: str) -> Optional[EngineSave]:
        return self.db.query(EngineSave).filter(EngineSave.slot == slot).first()

    def save_snapshot(self, context: EngineContext, slot: str = "default") -> EngineSave:
        """Replace the slot's contents with the context's current state"""
        existing = self.get_save(slot)
        if existing is not None:
            self.db.delete(existing)
            self.db.flush()

        finance = context.finance_manager
        sales = context.sale_manager
        db_save = EngineSave(
            slot=slot,
            finance_tick=finance.last_processed_tick,
            sales_hour=sales.last_processed_hour,
            statistics={str(farm_id): asdict(stats) for farm_id, stats in finance.statistics_by_farm.items()},
        )
        db_save.deals = [deal_to_record(slot, deal) for deal in finance.deals.values()]
        db_save.listings = [listing_to_record(slot, listing) for listing in sales.listings.values()]

        sequence = 0
        for farm_id in context.credit_history.farm_ids():
            # get_entries is newest first; store in append order
            for entry in reversed(context.credit_history.get_entries(farm_id)):
                db_save.credit_entries.append(
                    CreditHistoryRecord(
                        slot=slot,
                        sequence=sequence,
                        farm_id=entry.farm_id,
                        timestamp=entry.timestamp,
                        event=entry.event.value,
                        score_delta=entry.score_delta,
                        deal_id=entry.deal_id,
                        details=entry.details,
                    )
                )
                sequence += 1

        self.db.add(db_save)
        self.db.flush()
        return db_save

    def load_snapshot(self, context: EngineContext, slot: str = "default") -> bool:
        """Replace the context's state with the slot's; returns False when the slot is empty"""
        db_save = self.get_save(slot)
        if db_save is None:
            return False

        # Decode everything before touching live state
        try:
            deals = [record_to_deal(record) for record in sorted(db_save.deals, key=lambda r: r.id)]
            listings = [record_to_listing(record) for record in sorted(db_save.listings, key=lambda r: r.id)]
            entries = [record_to_entry(record) for record in db_save.credit_entries]
            statistics = {
                int(farm_id): FarmStatistics(**{name: value for name, value in values.items() if name in STATISTIC_FIELDS})
                for farm_id, values in (db_save.statistics or {}).items()
            }
        except (ValueError, TypeError, AttributeError) as e:
            raise CorruptSaveError(slot, str(e)) from e

        context.reset()
        finance = context.finance_manager
        sales = context.sale_manager
        for deal in deals:
            finance.restore_deal(deal)
        for listing in listings:
            sales.restore_listing(listing)
        for entry in entries:
            context.credit_history.restore(entry)
        finance.statistics_by_farm.update(statistics)

        finance.last_processed_tick = db_save.finance_tick
        sales.last_processed_hour = db_save.sales_hour
        return True
