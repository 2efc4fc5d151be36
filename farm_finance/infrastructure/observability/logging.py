"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from farm_finance.domain.models import DealEvent, SaleEvent


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "farm-finance"


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_deal_event(event: DealEvent, request_id: Optional[str] = None) -> None:
    """Log a deal lifecycle event for analysis"""
    level = logging.WARNING if event.kind.value in ("payment_missed", "defaulted") else logging.INFO
    logging.log(
        level,
        "Deal event",
        extra={
            "request_id": request_id,
            "deal_id": event.deal_id,
            "farm_id": event.farm_id,
            "step": event.kind.value,
            "tick": event.tick,
            "amount": event.amount,
        },
    )


def log_sale_event(event: SaleEvent, request_id: Optional[str] = None) -> None:
    """Log a listing lifecycle event for analysis"""
    logging.info(
        "Sale event",
        extra={
            "request_id": request_id,
            "listing_id": event.listing_id,
            "farm_id": event.farm_id,
            "step": event.kind.value,
            "hour": event.hour,
            "amount": event.amount,
        },
    )
