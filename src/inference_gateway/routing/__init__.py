"""
Mesh routing.

- resolver.py: Per-request endpoint resolution (prefix, random offload, local)
- discovery.py: Parallel probing of well-known addresses for live peers
"""

from inference_gateway.routing.discovery import (
    WELL_KNOWN_CANDIDATES,
    NodeDiscovery,
    merge_discovered,
)
from inference_gateway.routing.resolver import EndpointResolver

__all__ = [
    "EndpointResolver",
    "NodeDiscovery",
    "WELL_KNOWN_CANDIDATES",
    "merge_discovered",
]
