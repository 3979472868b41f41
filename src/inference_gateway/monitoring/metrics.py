"""Custom Prometheus metrics for the Streaming Inference Gateway.

These metrics are exposed at /metrics endpoint and should be scraped by Prometheus.
Alert rules should be configured for:
- gateway_failovers_total (remote mesh nodes going dark)
- gateway_transport_retries_total (flaky local inference server)
- gateway_cache_lookups_total (hit ratio collapse after config changes)
"""

from prometheus_client import Counter, Histogram

# === Routing Metrics ===

routing_decisions_total = Counter(
    "gateway_routing_decisions_total",
    "Total routing decisions by target kind",
    ["target"],
)
"""
Routing decisions counter.

Labels:
- target: local (default endpoint), remote (random offload), explicit (node prefix)
"""

failovers_total = Counter(
    "gateway_failovers_total",
    "Total remote-to-local failovers on the streaming path",
)

# === Cache Metrics ===

cache_lookups_total = Counter(
    "gateway_cache_lookups_total",
    "Total response cache lookups by result",
    ["result"],
)
"""
Cache lookups counter.

Labels:
- result: hit, miss
"""

# === Transport Metrics ===

transport_retries_total = Counter(
    "gateway_transport_retries_total",
    "Total retries issued by the retrying transport",
)

# === LLM Performance Metrics ===

generation_latency_seconds = Histogram(
    "gateway_generation_latency_seconds",
    "End-to-end streaming generation latency in seconds",
    ["model"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
)

tokens_total = Counter(
    "gateway_tokens_total",
    "Total tokens processed by model and type",
    ["model", "token_type"],
)
"""
Token counter.

Labels:
- model: Model name
- token_type: prompt (input tokens), completion (output tokens)
"""
