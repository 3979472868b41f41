"""
Endpoint resolution for mesh routing.

Decides, per request, which node serves a model:

1. Explicit addressing: ``"<nodeName>/<model>"`` always targets that node,
   whatever the load balancing mode; the prefix is stripped downstream.
2. Random offload: in RANDOM mode with at least one remote node, a coin
   flip sends OFFLOAD_PROBABILITY of requests to a random remote node.
3. Otherwise the local endpoint, without credentials.

Stateless: no sticky sessions, no health-aware weighting. The failover in
the orchestrator is the correctness backstop, not the router.
"""

import random
from typing import Optional

import structlog

from inference_gateway.config import Settings
from inference_gateway.models.chat_models import NodeDescriptor, RoutingDecision
from inference_gateway.models.enums import LoadBalancingMode
from inference_gateway.monitoring.metrics import routing_decisions_total


logger = structlog.get_logger(__name__)


def find_prefixed_node(model_identifier: str, nodes: list[NodeDescriptor]) -> Optional[NodeDescriptor]:
    """Return the first configured node whose ``name/`` prefixes the identifier."""
    for node in nodes:
        if model_identifier.startswith(f"{node.name}/"):
            return node
    return None


class EndpointResolver:
    """
    Per-request router.

    Attributes:
        rng: Random source for load balancing (injectable for tests)
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def resolve(self, model_identifier: str, settings: Settings) -> RoutingDecision:
        """
        Compute a fresh routing decision.

        Args:
            model_identifier: Model name, optionally prefixed with ``node/``
            settings: Current configuration (nodes, mode, local endpoint)

        Returns:
            RoutingDecision with the downstream model name
        """
        nodes = settings.REMOTE_NODES

        node = find_prefixed_node(model_identifier, nodes)
        if node is not None:
            model = model_identifier[len(node.name) + 1:]
            logger.info(
                f"Routing to Remote Mesh Node: {node.name}",
                source="Router",
                node=node.name,
                model=model,
                target=node.url,
            )
            routing_decisions_total.labels(target="explicit").inc()
            return RoutingDecision(
                target_url=node.url,
                auth_header=node.auth_header,
                is_remote=True,
                model=model,
                node_name=node.name,
            )

        if settings.LOAD_BALANCING == LoadBalancingMode.RANDOM and nodes:
            if self.rng.random() > 1.0 - settings.OFFLOAD_PROBABILITY:
                chosen = self.rng.choice(nodes)
                logger.info(
                    f"Load Balancing: Offloading to {chosen.name}",
                    source="Router",
                    node=chosen.name,
                    model=model_identifier,
                    target=chosen.url,
                )
                routing_decisions_total.labels(target="remote").inc()
                return RoutingDecision(
                    target_url=chosen.url,
                    auth_header=chosen.auth_header,
                    is_remote=True,
                    model=model_identifier,
                    node_name=chosen.name,
                )

        logger.debug(
            "Routing to local endpoint",
            source="Router",
            model=model_identifier,
            target=settings.OLLAMA_BASE_URL,
        )
        routing_decisions_total.labels(target="local").inc()
        return RoutingDecision(
            target_url=settings.OLLAMA_BASE_URL,
            auth_header=None,
            is_remote=False,
            model=model_identifier,
        )
