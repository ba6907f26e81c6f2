"""Prometheus metrics for cycle runs, ledger postings and webhook delivery"""

from prometheus_client import Counter, Histogram

# Cycle run metrics
cycle_run_counter = Counter(
    "finance_cycle_runs_total",
    "Monthly cycle runs by outcome",
    ["source", "outcome"],  # outcome: completed | failed | replayed
)

liabilities_advanced_counter = Counter(
    "finance_cycle_liabilities_advanced_total",
    "Liabilities advanced by at least one cycle",
    ["kind"],  # card | loan
)

cycle_run_duration_histogram = Histogram(
    "finance_cycle_run_duration_seconds",
    "Wall time of fresh cycle runs",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

# Ledger metrics
ledger_entry_counter = Counter(
    "finance_cycle_ledger_entries_total",
    "Ledger entries appended",
    ["entry_type"],
)

ledger_rejection_counter = Counter(
    "finance_cycle_ledger_rejections_total",
    "Ledger entries rejected by the balance rules",
    ["reason"],  # imbalanced | invalid_amount
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Cycle event webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "webhook_failures_total",
    "Failed webhook deliveries",
    ["reason"],  # network | http_4xx | http_5xx
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_cycle_run(source: str, outcome: str, updated_cards: int = 0, updated_loans: int = 0) -> None:
    """Record run outcome and how many liabilities moved"""
    cycle_run_counter.labels(source=source, outcome=outcome).inc()
    if updated_cards:
        liabilities_advanced_counter.labels(kind="card").inc(updated_cards)
    if updated_loans:
        liabilities_advanced_counter.labels(kind="loan").inc(updated_loans)
