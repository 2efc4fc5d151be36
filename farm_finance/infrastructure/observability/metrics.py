"""Prometheus metrics for deal volume, payment outcomes, vehicle sales and webhook performance"""

from prometheus_client import Counter, Histogram

from farm_finance.domain.models import DealEvent, DealEventKind, DealType, SaleEvent

# Financing metrics
deal_counter = Counter(
    "farm_finance_deals_total",
    "Finance deals requested",
    ["deal_type", "outcome"],  # outcome: created | <rejection reason>
)

amount_financed_histogram = Histogram(
    "farm_finance_amount_financed",
    "Amount financed per created deal",
    buckets=[1_000, 5_000, 25_000, 100_000, 250_000, 500_000, 1_000_000],
)

payment_counter = Counter(
    "farm_finance_payments_total",
    "Scheduled payments processed",
    ["outcome"],  # collected | missed
)

deal_closed_counter = Counter(
    "farm_finance_deals_closed_total",
    "Deals reaching a terminal status",
    ["status"],  # paid_off | defaulted
)

# Sales metrics
listing_counter = Counter(
    "farm_finance_listings_total",
    "Vehicle listings requested",
    ["agent_tier", "outcome"],
)

sale_event_counter = Counter(
    "farm_finance_sale_events_total",
    "Listing events produced by hourly processing and player decisions",
    ["kind"],  # offer_received | offer_expired | listing_expired | accepted | declined | cancelled
)

sale_proceeds_histogram = Histogram(
    "farm_finance_sale_proceeds",
    "Net proceeds per completed sale",
    buckets=[1_000, 10_000, 50_000, 100_000, 250_000, 500_000],
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Host webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "webhook_failures_total",
    "Failed webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_deal_request(deal_type: DealType, ok: bool, reason: str = "", amount_financed: float = 0.0) -> None:
    """Record the outcome of a deal request"""
    deal_counter.labels(deal_type=deal_type.name.lower(), outcome="created" if ok else reason).inc()
    if ok:
        amount_financed_histogram.observe(amount_financed)


def record_deal_events(events: list[DealEvent]) -> None:
    for event in events:
        if event.kind == DealEventKind.PAYMENT_COLLECTED:
            payment_counter.labels(outcome="collected").inc()
        elif event.kind == DealEventKind.PAYMENT_MISSED:
            payment_counter.labels(outcome="missed").inc()
        else:
            deal_closed_counter.labels(status=event.kind.value).inc()


def record_sale_events(events: list[SaleEvent]) -> None:
    for event in events:
        sale_event_counter.labels(kind=event.kind.value).inc()


def record_sale(net: float) -> None:
    sale_event_counter.labels(kind="accepted").inc()
    sale_proceeds_histogram.observe(net)
