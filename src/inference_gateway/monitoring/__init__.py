"""
Prometheus metrics for monitoring the inference gateway.

Exports counters and histograms for routing, caching, retries and
generation performance.
"""

from inference_gateway.monitoring.metrics import (
    cache_lookups_total,
    failovers_total,
    generation_latency_seconds,
    routing_decisions_total,
    tokens_total,
    transport_retries_total,
)

__all__ = [
    "cache_lookups_total",
    "failovers_total",
    "generation_latency_seconds",
    "routing_decisions_total",
    "tokens_total",
    "transport_retries_total",
]
