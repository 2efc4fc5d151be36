"""Append-only credit ledger and its aggregations"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional

from farm_finance.domain.models import (
    CREDIT_EVENT_DELTAS,
    CreditEvent,
    CreditHistoryEntry,
    CreditHistorySummary,
    PaymentOutcome,
    PaymentStats,
)

logger = logging.getLogger(__name__)

MAX_SCORE_ADJUSTMENT = 200


class CreditHistory:
    """
    Per-farm payment ledger.

    Entries are appended by FinanceManager's payment collection only; every
    query here is a read-only aggregation over the ledger.
    """

    def __init__(self):
        self._entries: Dict[int, List[CreditHistoryEntry]] = defaultdict(list)

    def record_payment(
        self,
        farm_id: int,
        tick: int,
        outcome: PaymentOutcome,
        deal_id: Optional[str] = None,
        details: str = "",
    ) -> CreditHistoryEntry:
        event = CreditEvent.PAYMENT_ON_TIME if outcome == PaymentOutcome.ON_TIME else CreditEvent.PAYMENT_MISSED
        return self._append(farm_id, tick, event, deal_id, details)

    def record_payoff(
        self, farm_id: int, tick: int, deal_id: Optional[str] = None, details: str = ""
    ) -> CreditHistoryEntry:
        return self._append(farm_id, tick, CreditEvent.DEAL_PAID_OFF, deal_id, details)

    def restore(self, entry: CreditHistoryEntry) -> None:
        """Re-append a persisted entry without logging it as a new event"""
        self._entries[entry.farm_id].append(entry)

    def _append(
        self, farm_id: int, tick: int, event: CreditEvent, deal_id: Optional[str], details: str
    ) -> CreditHistoryEntry:
        entry = CreditHistoryEntry(
            farm_id=farm_id,
            timestamp=tick,
            event=event,
            score_delta=CREDIT_EVENT_DELTAS[event],
            deal_id=deal_id,
            details=details,
        )
        self._entries[farm_id].append(entry)
        logger.debug(
            "Credit event recorded",
            extra={"farm_id": farm_id, "event": event.value, "score_delta": entry.score_delta, "tick": tick},
        )
        return entry

    def farm_ids(self) -> List[int]:
        return [farm_id for farm_id, entries in self._entries.items() if entries]

    def get_entries(self, farm_id: int, limit: Optional[int] = None) -> List[CreditHistoryEntry]:
        """Entries for a farm, newest first"""
        entries = list(reversed(self._entries.get(farm_id, [])))
        if limit is not None and limit > 0:
            return entries[:limit]
        return entries

    def get_summary(self, farm_id: int) -> CreditHistorySummary:
        summary = CreditHistorySummary()
        for entry in self._entries.get(farm_id, []):
            summary.total_events += 1
            summary.net_change += entry.score_delta
            if entry.event == CreditEvent.PAYMENT_ON_TIME:
                summary.payments_on_time += 1
            elif entry.event == CreditEvent.PAYMENT_MISSED:
                summary.payments_missed += 1
            elif entry.event == CreditEvent.DEAL_PAID_OFF:
                summary.deals_completed += 1
        return summary

    def get_score_adjustment(self, farm_id: int) -> int:
        """Net ledger change, capped at +/- MAX_SCORE_ADJUSTMENT points"""
        net_change = self.get_summary(farm_id).net_change
        return max(-MAX_SCORE_ADJUSTMENT, min(MAX_SCORE_ADJUSTMENT, net_change))

    def get_payment_stats(self, farm_id: int) -> PaymentStats:
        stats = PaymentStats()
        last_miss_index = None

        for entry in self._entries.get(farm_id, []):
            outcome = entry.outcome
            if outcome is None:
                continue

            stats.total_payments += 1
            if outcome == PaymentOutcome.ON_TIME:
                stats.on_time_payments += 1
                stats.current_streak += 1
                stats.longest_streak = max(stats.longest_streak, stats.current_streak)
            else:
                stats.missed_payments += 1
                stats.current_streak = 0
                last_miss_index = stats.total_payments

        if last_miss_index is not None:
            stats.payments_since_last_miss = stats.total_payments - last_miss_index
        return stats

    def get_on_time_rate(self, farm_id: int) -> int:
        """On-time payments as a whole percentage of all payments"""
        stats = self.get_payment_stats(farm_id)
        if stats.total_payments == 0:
            return 0
        return int(stats.on_time_payments / stats.total_payments * 100)

    def clear(self) -> None:
        self._entries.clear()
