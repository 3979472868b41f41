"""
Mesh inventory: what models the local node serves and which remote nodes
are alive.

Capabilities and roles are guessed from model names with substring
heuristics, with CODER_MODEL / CREATIVE_MODEL taking precedence for roles.
They are display hints for the caller, never used for routing.
"""

import asyncio
from typing import TYPE_CHECKING, Iterable, Optional

import httpx
import structlog
from pydantic import BaseModel, Field

from inference_gateway.models.chat_models import MeshNodeStatus, ModelInfo, NodeDescriptor
from inference_gateway.models.enums import MeshRole, ModelCapability

if TYPE_CHECKING:
    from inference_gateway.config import Settings
    from inference_gateway.llm.ollama_client import OllamaClient


logger = structlog.get_logger(__name__)

_VISION_HINTS = ("llava", "vision", "moondream", "bakllava")
_CODER_HINTS = ("code", "deepseek", "starcoder", "sql", "qwen-coder")
_MATH_HINTS = ("math", "wizard-math", "phi", "reason", "deepseek-r1")
_EMBEDDING_HINTS = ("embed", "nomic", "bert")

_MODEL_CODER_HINTS = ("code", "sql", "qwen")
_MODEL_CREATIVE_HINTS = ("vision", "mistral", "gemma", "hermes")
_NODE_CODER_HINTS = ("deepseek", "code", "starcoder", "qwen-coder", "sql")
_NODE_CREATIVE_HINTS = ("llava", "mistral", "dolphin", "hermes", "gemma")

REMOTE_VERIFY_TIMEOUT = 3.0
REMOTE_INVENTORY_TIMEOUT = 4.0


def determine_capabilities(name: str) -> list[ModelCapability]:
    """
    Tag a model with capabilities inferred from its name.

    Every model is GENERAL; other tags are added on substring match.

    Examples:
        >>> determine_capabilities("llava:13b")
        [<ModelCapability.GENERAL: 'GENERAL'>, <ModelCapability.VISION: 'VISION'>]
    """
    lower = name.lower()
    caps = [ModelCapability.GENERAL]
    if any(h in lower for h in _VISION_HINTS):
        caps.append(ModelCapability.VISION)
    if any(h in lower for h in _CODER_HINTS):
        caps.append(ModelCapability.CODER)
    if any(h in lower for h in _MATH_HINTS):
        caps.append(ModelCapability.MATH)
    if any(h in lower for h in _EMBEDDING_HINTS):
        caps.append(ModelCapability.EMBEDDING)
    return caps


def merge_capabilities(names: list[str]) -> list[ModelCapability]:
    """Union of capabilities across a node's whole inventory, GENERAL first."""
    merged = [ModelCapability.GENERAL]
    for name in names:
        for cap in determine_capabilities(name):
            if cap not in merged:
                merged.append(cap)
    return merged


def determine_model_role(
    name: str, coder_model: Optional[str] = None, creative_model: Optional[str] = None
) -> MeshRole:
    """
    Role of a local model.

    An exact match on the configured coder/creative model wins; otherwise
    the name is matched against coder hints before creative hints.

    Examples:
        >>> determine_model_role("sqlcoder:7b")
        <MeshRole.CODER: 'CODER'>
        >>> determine_model_role("llama3.1:8b", creative_model="llama3.1:8b")
        <MeshRole.CREATIVE: 'CREATIVE'>
    """
    lower = name.lower()
    if name == coder_model or any(h in lower for h in _MODEL_CODER_HINTS):
        return MeshRole.CODER
    if name == creative_model or any(h in lower for h in _MODEL_CREATIVE_HINTS):
        return MeshRole.CREATIVE
    return MeshRole.GENERAL


def determine_node_role(
    node_name: str,
    model_names: Iterable[str] = (),
    coder_model: Optional[str] = None,
    creative_model: Optional[str] = None,
) -> MeshRole:
    """
    Role of a remote node from its inventory.

    A configured ``<node name>/model`` target overrides the inventory guess,
    so an offline node still keeps the role it was assigned.
    """
    inventory = " ".join(n.lower() for n in model_names)
    role = MeshRole.GENERAL
    if any(h in inventory for h in _NODE_CODER_HINTS):
        role = MeshRole.CODER
    elif any(h in inventory for h in _NODE_CREATIVE_HINTS):
        role = MeshRole.CREATIVE

    prefix = f"{node_name}/"
    if coder_model and coder_model.startswith(prefix):
        return MeshRole.CODER
    if creative_model and creative_model.startswith(prefix):
        return MeshRole.CREATIVE
    return role


def assign_model_roles(models: list[ModelInfo], settings: "Settings") -> list[ModelInfo]:
    return [
        model.model_copy(
            update={"role": determine_model_role(model.name, settings.CODER_MODEL, settings.CREATIVE_MODEL)}
        )
        for model in models
    ]


class MeshSnapshot(BaseModel):
    """Point-in-time view of the mesh."""

    connected: bool
    models: list[ModelInfo] = Field(default_factory=list)
    nodes: list[MeshNodeStatus] = Field(default_factory=list)


class MeshInventory:
    """Collects local models and remote node liveness concurrently."""

    def __init__(self, client: "OllamaClient"):
        self.client = client

    async def node_status(
        self,
        node: NodeDescriptor,
        coder_model: Optional[str] = None,
        creative_model: Optional[str] = None,
    ) -> MeshNodeStatus:
        online = await self.client.health_check(
            base_url=node.url,
            auth_header=node.auth_header,
            timeout=REMOTE_VERIFY_TIMEOUT,
        )
        if not online:
            logger.warning(f"Connection verification failed for {node.name}", source="Network")
            return MeshNodeStatus(
                id=node.id,
                name=node.name,
                url=node.url,
                online=False,
                role=determine_node_role(node.name, (), coder_model, creative_model),
            )

        try:
            names = await self.client.list_model_names(
                base_url=node.url,
                auth_header=node.auth_header,
                timeout=REMOTE_INVENTORY_TIMEOUT,
            )
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning(f"Detailed scan failed for {node.name}", source="Discovery", error=str(e))
            return MeshNodeStatus(
                id=node.id,
                name=node.name,
                url=node.url,
                online=True,
                role=determine_node_role(node.name, (), coder_model, creative_model),
            )

        return MeshNodeStatus(
            id=node.id,
            name=node.name,
            url=node.url,
            online=True,
            model_count=len(names),
            capabilities=merge_capabilities(names),
            role=determine_node_role(node.name, names, coder_model, creative_model),
        )

    async def snapshot(self, settings: "Settings") -> MeshSnapshot:
        """
        Local model list plus status of every configured remote node.

        If the local endpoint is down, the snapshot is empty and
        ``connected`` is False; remote nodes are not probed.
        """
        try:
            models = await self.client.list_models(base_url=settings.OLLAMA_BASE_URL)
        except Exception as e:
            logger.error("Ollama connection failed", source="Ollama", error=str(e))
            return MeshSnapshot(connected=False)

        nodes = await asyncio.gather(
            *(
                self.node_status(node, settings.CODER_MODEL, settings.CREATIVE_MODEL)
                for node in settings.REMOTE_NODES
            )
        )
        return MeshSnapshot(
            connected=True,
            models=assign_model_roles(models, settings),
            nodes=list(nodes),
        )
