"""
Mesh node discovery.

Probes a fixed list of well-known local/LAN addresses concurrently, each
probe with its own timeout, so total scan latency is bounded by the slowest
single probe rather than the sum. Unreachable candidates are silently
dropped; nothing here ever raises to the caller.
"""

import asyncio
from typing import Iterable, Optional

import httpx
import structlog

from inference_gateway.models.chat_models import NodeDescriptor, normalize_address


logger = structlog.get_logger(__name__)

DEFAULT_PROBE_TIMEOUT = 2.5
VERIFY_TIMEOUT = 3.0

WELL_KNOWN_CANDIDATES: tuple[NodeDescriptor, ...] = (
    NodeDescriptor(id="local-11434", name="Localhost Std", url="http://localhost:11434"),
    NodeDescriptor(id="local-ip", name="Local IP", url="http://127.0.0.1:11434"),
    NodeDescriptor(id="local-11435", name="Local Alt 1", url="http://localhost:11435"),
    NodeDescriptor(id="host-docker", name="Docker Host", url="http://host.docker.internal:11434"),
    NodeDescriptor(id="local-8080", name="Local Proxy", url="http://localhost:8080"),
    # mDNS
    NodeDescriptor(id="lan-mac", name="Mac Studio (mDNS)", url="http://mac-studio.local:11434"),
    NodeDescriptor(id="lan-pi", name="Raspberry Pi (mDNS)", url="http://raspberrypi.local:11434"),
    NodeDescriptor(id="lan-ubuntu", name="Ubuntu (mDNS)", url="http://ubuntu.local:11434"),
    NodeDescriptor(id="lan-gemini", name="Gemini Server (mDNS)", url="http://gemini.local:11434"),
    NodeDescriptor(id="lan-gemini-svr", name="Gemini Server Alt", url="http://gemini-server.local:11434"),
    NodeDescriptor(id="lan-win", name="Windows PC (mDNS)", url="http://desktop.local:11434"),
    NodeDescriptor(id="lan-generic", name="Generic Server (mDNS)", url="http://server.local:11434"),
    # Common LAN addresses
    NodeDescriptor(id="lan-ip-100", name="LAN Node (.100)", url="http://192.168.1.100:11434"),
    NodeDescriptor(id="lan-ip-200", name="LAN Node (.200)", url="http://192.168.1.200:11434"),
    NodeDescriptor(id="lan-ip-10", name="LAN Node (10.0.0.2)", url="http://10.0.0.2:11434"),
)


def is_self(candidate: NodeDescriptor, self_endpoint: str) -> bool:
    """True if the candidate's host:port is the gateway's own endpoint."""
    own = normalize_address(self_endpoint)
    return candidate.normalized_address == own


def merge_discovered(
    existing: Iterable[NodeDescriptor], discovered: Iterable[NodeDescriptor]
) -> list[NodeDescriptor]:
    """
    Append discovered nodes not already configured (by normalized address).

    Existing entries keep their position and credentials.
    """
    merged = list(existing)
    seen = {n.normalized_address for n in merged}
    for node in discovered:
        if node.normalized_address not in seen:
            merged.append(node)
            seen.add(node.normalized_address)
    return merged


class NodeDiscovery:
    """
    Parallel, timeout-bounded prober for mesh peers.

    Attributes:
        candidates: Addresses to probe
        timeout: Per-probe timeout in seconds
    """

    def __init__(
        self,
        candidates: Optional[Iterable[NodeDescriptor]] = None,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.candidates = list(candidates) if candidates is not None else list(WELL_KNOWN_CANDIDATES)
        self.timeout = timeout
        self._transport = transport

    async def _probe(
        self, client: httpx.AsyncClient, candidate: NodeDescriptor, timeout: float
    ) -> Optional[NodeDescriptor]:
        headers = {"Authorization": candidate.auth_header} if candidate.auth_header else None
        try:
            # wait_for bounds the whole probe, including DNS on hung mDNS names
            response = await asyncio.wait_for(
                client.get(f"{candidate.url.rstrip('/')}/api/version", headers=headers),
                timeout=timeout,
            )
        except (httpx.HTTPError, asyncio.TimeoutError, OSError) as e:
            logger.debug("Candidate unreachable", source="Discovery", url=candidate.url, error=type(e).__name__)
            return None
        if not response.is_success:
            return None
        logger.info(f"Discovered active node: {candidate.name} at {candidate.url}", source="Discovery")
        return candidate

    async def scan(self, self_endpoint: str) -> list[NodeDescriptor]:
        """
        Probe every candidate concurrently and return the live ones.

        Args:
            self_endpoint: The gateway's own endpoint, never returned

        Returns:
            Reachable nodes, in no particular order
        """
        logger.info("Initiating Network Mesh Scan...", source="Discovery", candidates=len(self.candidates))
        targets = [c for c in self.candidates if not is_self(c, self_endpoint)]

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout), transport=self._transport
        ) as client:
            results = await asyncio.gather(*(self._probe(client, c, self.timeout) for c in targets))

        active = [node for node in results if node is not None]
        logger.info(f"Network Scan complete. Found {len(active)} neighbors.", source="Discovery")
        return active

    async def verify_node(self, node: NodeDescriptor) -> bool:
        """Single authenticated probe of a configured node."""
        logger.info(f"Verifying connection to remote node: {node.name}", source="Network")
        async with httpx.AsyncClient(timeout=httpx.Timeout(VERIFY_TIMEOUT), transport=self._transport) as client:
            result = await self._probe(client, node, VERIFY_TIMEOUT)
        if result is None:
            logger.warning(f"Connection verification failed for {node.name}", source="Network")
        return result is not None
