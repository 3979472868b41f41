"""
HTTP routes for the gateway.

POST /chat streams NDJSON fragments as they are produced; every other route
is a plain JSON request/response around the mesh and short-task helpers.
"""

import asyncio
import contextlib
import json
from typing import AsyncIterator, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse

from inference_gateway.api.dependencies import GatewayServices, get_services
from inference_gateway.api.models import (
    ChatRequest,
    HealthResponse,
    ModelActionRequest,
    ModelActionResponse,
    PlanRequest,
    PlanResponse,
    ScanResponse,
    SummaryRequest,
    SummaryResponse,
    TitleRequest,
    TitleResponse,
)
from inference_gateway.mesh import MeshSnapshot, assign_model_roles
from inference_gateway.models.chat_models import LogEvent, ModelInfo
from inference_gateway.routing.discovery import merge_discovered

logger = structlog.get_logger(__name__)

router = APIRouter()

_END_OF_STREAM = object()


async def _stream_generation(
    body: ChatRequest, services: GatewayServices
) -> AsyncIterator[str]:
    """
    Bridge the orchestrator's fragment callback to an NDJSON line stream.

    The generation runs in its own task and pushes fragments into a queue.
    If the consumer goes away (client disconnect closes this generator), the
    cancel event is set and the task is cancelled.
    """
    queue: asyncio.Queue = asyncio.Queue()
    cancel_event = asyncio.Event()

    def on_fragment(answer: Optional[str], thought: Optional[str], is_thinking: bool) -> None:
        queue.put_nowait({"answer": answer, "thought": thought, "is_thinking": is_thinking})

    async def run():
        try:
            return await services.orchestrator.generate(
                message=body.message,
                history=body.history,
                long_term_memory=body.long_term_memory,
                persona_override=body.persona,
                settings=services.settings,
                images=body.images,
                cancel_event=cancel_event,
                on_fragment=on_fragment,
                model_override=body.model,
                options_override=(
                    {"temperature": body.temperature} if body.temperature is not None else None
                ),
            )
        finally:
            queue.put_nowait(_END_OF_STREAM)

    task = asyncio.create_task(run())
    try:
        while True:
            item = await queue.get()
            if item is _END_OF_STREAM:
                break
            yield json.dumps(item) + "\n"

        stats = await task
        yield json.dumps({"stats": stats.model_dump() if stats else None}) + "\n"
    finally:
        if not task.done():
            logger.info("Client disconnected, cancelling generation", source="InferenceEngine")
            cancel_event.set()
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


@router.post(
    "/chat",
    summary="Stream a chat completion",
    description="""
    Stream the reply to one user message as NDJSON.

    Each line is `{"answer": ..., "thought": ..., "is_thinking": ...}`;
    the last line is `{"stats": {...}}` (`null` if the generation failed or
    was cancelled). Failures are reported in-band as answer fragments.
    """,
    response_class=StreamingResponse,
)
async def chat(
    body: ChatRequest,
    services: GatewayServices = Depends(get_services),
) -> StreamingResponse:
    return StreamingResponse(
        _stream_generation(body, services),
        media_type="application/x-ndjson",
    )


@router.get(
    "/models",
    response_model=list[ModelInfo],
    summary="List local models",
)
async def list_models(
    services: GatewayServices = Depends(get_services),
) -> list[ModelInfo]:
    models = await services.client.list_models(base_url=services.settings.OLLAMA_BASE_URL)
    return assign_model_roles(models, services.settings)


@router.post(
    "/models/pull",
    response_model=ModelActionResponse,
    summary="Provision a model",
    description="Pull a model onto the local node (or `node_url`). Progress is logged, not streamed.",
)
async def pull_model(
    body: ModelActionRequest,
    services: GatewayServices = Depends(get_services),
) -> ModelActionResponse:
    success = await services.client.provision_model(
        body.name, base_url=body.node_url or services.settings.OLLAMA_BASE_URL
    )
    return ModelActionResponse(name=body.name, success=success)


@router.post(
    "/models/unload",
    response_model=ModelActionResponse,
    summary="Evict a model from memory",
)
async def unload_model(
    body: ModelActionRequest,
    services: GatewayServices = Depends(get_services),
) -> ModelActionResponse:
    success = await services.client.unload_model(
        body.name, base_url=body.node_url or services.settings.OLLAMA_BASE_URL
    )
    return ModelActionResponse(name=body.name, success=success)


@router.get(
    "/mesh",
    response_model=MeshSnapshot,
    summary="Mesh inventory",
    description="Local models plus liveness and model count of every configured remote node.",
)
async def mesh_snapshot(
    services: GatewayServices = Depends(get_services),
) -> MeshSnapshot:
    return await services.inventory.snapshot(services.settings)


@router.post(
    "/mesh/scan",
    response_model=ScanResponse,
    summary="Discover mesh peers",
)
async def scan_mesh(
    services: GatewayServices = Depends(get_services),
) -> ScanResponse:
    """
    Probe well-known addresses and merge live nodes into the configured set.

    The merged list is returned to the caller; persisting it (e.g. into
    REMOTE_NODES) is the caller's decision.
    """
    settings = services.settings
    active = await services.discovery.scan(settings.OLLAMA_BASE_URL)
    nodes = merge_discovered(settings.REMOTE_NODES, active)
    discovered = nodes[len(settings.REMOTE_NODES):]
    return ScanResponse(discovered=discovered, nodes=nodes)


@router.post("/title", response_model=TitleResponse, summary="Generate a chat title")
async def smart_title(
    body: TitleRequest,
    services: GatewayServices = Depends(get_services),
) -> TitleResponse:
    return TitleResponse(title=await services.short_tasks.generate_smart_title(body.message))


@router.post("/summary", response_model=SummaryResponse, summary="Summarize context")
async def context_summary(
    body: SummaryRequest,
    services: GatewayServices = Depends(get_services),
) -> SummaryResponse:
    return SummaryResponse(
        summary=await services.short_tasks.generate_context_summary(body.text)
    )


@router.post("/plan", response_model=PlanResponse, summary="Generate an agent plan")
async def agent_plan(
    body: PlanRequest,
    services: GatewayServices = Depends(get_services),
) -> PlanResponse:
    return PlanResponse(steps=await services.short_tasks.generate_agent_plan(body.goal))


@router.get(
    "/logs",
    response_model=list[LogEvent],
    summary="Recent gateway events",
    description="Most recent structured log events, newest first.",
)
async def recent_logs(
    limit: int = Query(default=100, ge=1, le=1000),
    services: GatewayServices = Depends(get_services),
) -> list[LogEvent]:
    return services.log_sink.history()[:limit]


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
)
async def health_check(
    services: GatewayServices = Depends(get_services),
) -> HealthResponse:
    """
    Report whether the local inference endpoint answers.

    Always 200; ``status`` is "degraded" when Ollama is unreachable.
    """
    settings = services.settings
    reachable = await services.client.health_check(base_url=settings.OLLAMA_BASE_URL)
    if not reachable:
        logger.warning("Health check: Ollama unreachable", source="Ollama", url=settings.OLLAMA_BASE_URL)
    return HealthResponse(
        status="ok" if reachable else "degraded",
        version=settings.APP_VERSION,
        ollama_reachable=reachable,
        remote_nodes=len(settings.REMOTE_NODES),
    )
