"""Host event webhook client with exponential backoff retry logic"""

import asyncio
import logging
from typing import Any, Dict, Iterable, Optional

import httpx

from farm_finance.config import settings
from farm_finance.domain.models import DealEvent, SaleEvent
from farm_finance.infrastructure.observability.metrics import webhook_failure_counter, webhook_latency_histogram

logger = logging.getLogger(__name__)


def deal_event_payload(event: DealEvent) -> Dict[str, Any]:
    return {
        "event": f"DEAL_{event.kind.name}",
        "deal_id": event.deal_id,
        "farm_id": event.farm_id,
        "tick": event.tick,
        "amount": event.amount,
    }


def sale_event_payload(event: SaleEvent) -> Dict[str, Any]:
    return {
        "event": f"SALE_{event.kind.name}",
        "listing_id": event.listing_id,
        "farm_id": event.farm_id,
        "hour": event.hour,
        "amount": event.amount,
    }


class HostEventClient:
    """Client for notifying the host game of deal and listing events"""

    def __init__(self, webhook_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.webhook_url = webhook_url or settings.host_webhook_url
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.timeout = settings.http_timeout_seconds
        self.transport = transport

    async def send_event(self, payload: Dict[str, Any]) -> bool:
        """
        Deliver one event to the host webhook.

        Retry strategy:
        - Exponential backoff: base * 2^(attempt-1)
        - Retries on 5xx errors and network failures; a 4xx gives up at once
        - Tracks latency histogram and failure counter

        Returns False once retries are exhausted; delivery failures never
        reach engine state.
        """
        attempt = 0
        async with httpx.AsyncClient(transport=self.transport) as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload, timeout=self.timeout)
                        response.raise_for_status()
                        return True

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    webhook_failure_counter.inc()

                    # 4xx: the host rejected the payload
                    client_error = isinstance(e, httpx.HTTPStatusError) and e.response.status_code < 500
                    if client_error or attempt >= self.max_retries:
                        logger.error(
                            "Host event delivery failed",
                            extra={"event": payload.get("event"), "attempts": attempt, "error": str(e)},
                        )
                        return False

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
        return False

    async def send_events(self, payloads: Iterable[Dict[str, Any]]) -> int:
        """Deliver events in order; returns how many were accepted"""
        delivered = 0
        for payload in payloads:
            if await self.send_event(payload):
                delivered += 1
        return delivered
