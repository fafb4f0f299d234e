"""
Prometheus metrics: order transitions applied/rejected/conflicting, rate-limited requests.
"""
from prometheus_client import Counter, generate_latest

order_transitions_total = Counter(
    "order_transitions_total",
    "Total order status transitions applied",
    ["from_status", "to_status", "role"],
)
order_transitions_rejected_total = Counter(
    "order_transitions_rejected_total",
    "Total order status transitions rejected before reaching the store",
    ["reason", "role"],
)
order_transition_conflicts_total = Counter(
    "order_transition_conflicts_total",
    "Total transitions lost to a concurrent status change (conditional write matched no row)",
)
order_events_publish_failed_total = Counter(
    "order_events_publish_failed_total",
    "Total status-change notifications that could not be published to subscribers",
)
requests_rate_limited_total = Counter(
    "requests_rate_limited_total",
    "Total requests rejected with 429",
    ["path"],
)


def get_metrics_content_type():
    return "text/plain; charset=utf-8; version=0.0.4"


def get_metrics_bytes():
    return generate_latest()
