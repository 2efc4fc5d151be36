"""SQLAlchemy ORM models for saved engine state"""

from sqlalchemy import Column, String, Float, DateTime, Integer, ForeignKey, Text, JSON
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class EngineSave(Base):
    """One saved game slot; child rows are replaced wholesale on every save"""

    __tablename__ = "engine_save"

    slot = Column(String(64), primary_key=True)
    finance_tick = Column(Integer, nullable=True)
    sales_hour = Column(Integer, nullable=True)
    statistics = Column(JSON, nullable=False, default=dict)  # farm_id -> counters
    saved_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    deals = relationship("FinanceDealRecord", back_populates="save", cascade="all, delete-orphan")
    listings = relationship("SaleListingRecord", back_populates="save", cascade="all, delete-orphan")
    credit_entries = relationship(
        "CreditHistoryRecord",
        back_populates="save",
        cascade="all, delete-orphan",
        order_by="CreditHistoryRecord.sequence",
    )


class FinanceDealRecord(Base):
    """Persisted finance deal"""

    __tablename__ = "finance_deal"

    slot = Column(String(64), ForeignKey("engine_save.slot", ondelete="CASCADE"), primary_key=True)
    id = Column(String(32), primary_key=True)
    farm_id = Column(Integer, nullable=False, index=True)
    deal_type = Column(Integer, nullable=False)
    item_type = Column(Text, nullable=False)
    item_id = Column(Text, nullable=False)
    item_name = Column(Text, nullable=False)
    price = Column(Float, nullable=False)
    down_payment = Column(Float, nullable=False)
    term_months = Column(Integer, nullable=False)
    annual_rate = Column(Float, nullable=False)
    cash_back = Column(Float, nullable=False)
    monthly_payment = Column(Float, nullable=False)
    current_balance = Column(Float, nullable=False)
    amount_financed = Column(Float, nullable=False)
    total_interest_paid = Column(Float, nullable=False, default=0.0)
    status = Column(Text, nullable=False, default="active")
    residual_value = Column(Float, nullable=False, default=0.0)
    security_deposit = Column(Float, nullable=False, default=0.0)
    months_paid = Column(Integer, nullable=False, default=0)
    missed_payments = Column(Integer, nullable=False, default=0)
    total_missed_payments = Column(Integer, nullable=False, default=0)
    accrued_interest = Column(Float, nullable=False, default=0.0)
    payment_multiplier = Column(Float, nullable=False, default=1.0)
    created_tick = Column(Integer, nullable=False, default=0)
    last_processed_tick = Column(Integer, nullable=True)

    save = relationship("EngineSave", back_populates="deals")


class SaleListingRecord(Base):
    """Persisted vehicle sale listing"""

    __tablename__ = "sale_listing"

    slot = Column(String(64), ForeignKey("engine_save.slot", ondelete="CASCADE"), primary_key=True)
    id = Column(String(32), primary_key=True)
    farm_id = Column(Integer, nullable=False, index=True)
    vehicle_id = Column(Text, nullable=False)
    vehicle_name = Column(Text, nullable=False)
    agent_tier = Column(Integer, nullable=False)
    price_tier = Column(Integer, nullable=False)
    vanilla_sell_price = Column(Float, nullable=False)
    expected_min_price = Column(Float, nullable=False)
    expected_max_price = Column(Float, nullable=False)
    duration_hours = Column(Integer, nullable=False)
    hours_remaining = Column(Integer, nullable=False)
    offer_chance_per_hour = Column(Float, nullable=False)
    status = Column(Text, nullable=False, default="active")
    current_offer = Column(Float, nullable=True)
    offer_expires_in = Column(Integer, nullable=False, default=0)
    hours_elapsed = Column(Integer, nullable=False, default=0)
    offers_received = Column(Integer, nullable=False, default=0)
    offers_declined = Column(Integer, nullable=False, default=0)
    final_sale_price = Column(Float, nullable=False, default=0.0)
    agent_fee_paid = Column(Float, nullable=False, default=0.0)
    created_hour = Column(Integer, nullable=False, default=0)
    last_processed_hour = Column(Integer, nullable=True)

    save = relationship("EngineSave", back_populates="listings")


class CreditHistoryRecord(Base):
    """Persisted credit ledger entry, kept in append order"""

    __tablename__ = "credit_history_entry"

    slot = Column(String(64), ForeignKey("engine_save.slot", ondelete="CASCADE"), primary_key=True)
    sequence = Column(Integer, primary_key=True)
    farm_id = Column(Integer, nullable=False, index=True)
    timestamp = Column(Integer, nullable=False)
    event = Column(Text, nullable=False)
    score_delta = Column(Integer, nullable=False)
    deal_id = Column(String(32), nullable=True)
    details = Column(Text, nullable=False, default="")

    save = relationship("EngineSave", back_populates="credit_entries")
