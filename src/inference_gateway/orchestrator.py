"""
Generation orchestrator: one user message in, a live token stream out.

Pipeline per call:
    1. Resolve node and model (EndpointResolver)
    2. Serve from cache when eligible (no images, caching enabled)
    3. Compose system prompt and budget history (PromptBuilder)
    4. Open the streaming chat; if a remote node fails, warn inline and
       retry exactly once against the local endpoint
    5. Feed every content chunk through StreamTagParser and forward both
       channels to ``on_fragment`` as they arrive
    6. On the terminal chunk, write the cache and return GenerationStats

Cancellation (``cancel_event``) is raced against the whole stream, so it
interrupts a pending connect or a stalled read; a cancelled generation
returns None with no error fragment, even if the connection failed while
the cancel was in flight. Any other failure is reported as an inline error
fragment and also returns None, so nothing escapes past the caller's UI
boundary.
"""

import asyncio
import contextlib
import time
from contextlib import AsyncExitStack
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, Sequence, TypeVar

import structlog

from inference_gateway.config import Settings
from inference_gateway.llm.base_client import BaseLLMClient
from inference_gateway.llm.exceptions import GatewayError, GenerationCancelled
from inference_gateway.llm.prompt_builder import PromptBuilder
from inference_gateway.llm.stream_parser import Fragment, StreamTagParser
from inference_gateway.llm.text_utils import estimate_tokens
from inference_gateway.models.chat_models import (
    ChatChunk,
    GenerationStats,
    HistoryMessage,
    InferenceOptions,
    InferenceRequest,
    RoutingDecision,
)
from inference_gateway.models.enums import Channel
from inference_gateway.monitoring.metrics import (
    cache_lookups_total,
    failovers_total,
    generation_latency_seconds,
    tokens_total,
)
from inference_gateway.persistence.cache_store import CacheStore
from inference_gateway.routing.resolver import EndpointResolver


logger = structlog.get_logger(__name__)

T = TypeVar("T")

FragmentCallback = Callable[[Optional[str], Optional[str], bool], Any]

FAILOVER_NOTICE = (
    "\n\n> ⚠️ **System Alert**: Mesh node `{endpoint}` is unresponsive. "
    "Rerouting request to local inference engine...\n\n"
)
ERROR_NOTICE = "\n\n**Error:** Connection to LLM lost. {message}"


class GenerationOrchestrator:
    """
    Compose routing, caching, budgeting, failover and tag parsing.

    Holds no per-generation state: concurrent generate() calls share only
    the cache store.

    Attributes:
        client: Protocol adapter used to open chat streams
        cache: Response cache (None disables caching entirely)
        prompt_builder: System prompt and request assembly
        resolver: Per-request endpoint resolver
    """

    def __init__(
        self,
        client: BaseLLMClient,
        prompt_builder: PromptBuilder,
        cache: Optional[CacheStore] = None,
        resolver: Optional[EndpointResolver] = None,
    ):
        self.client = client
        self.prompt_builder = prompt_builder
        self.cache = cache
        self.resolver = resolver or EndpointResolver()

    async def generate(
        self,
        message: str,
        history: Sequence[HistoryMessage],
        long_term_memory: Optional[str],
        persona_override: Optional[str],
        settings: Settings,
        images: Optional[Sequence[str]],
        cancel_event: Optional[asyncio.Event],
        on_fragment: FragmentCallback,
        model_override: Optional[str] = None,
        options_override: Optional[Dict[str, float]] = None,
    ) -> Optional[GenerationStats]:
        """
        Stream a reply to ``message``.

        Args:
            message: Current user message
            history: Prior turns, oldest first
            long_term_memory: Project summary carried across sessions
            persona_override: Replaces settings.SYSTEM_PROMPT when set
            settings: Gateway configuration
            images: Base64 images attached to the message
            cancel_event: Set by the caller to stop the generation
            on_fragment: Called as on_fragment(answer, thought, is_thinking)
            model_override: Model (optionally ``node/model``) instead of MODEL_NAME
            options_override: Per-call ``temperature`` / ``repeat_penalty``

        Returns:
            GenerationStats, or None if cancelled or failed
        """
        cancel_event = cancel_event or asyncio.Event()
        images = list(images or [])

        decision = self.resolver.resolve(model_override or settings.MODEL_NAME, settings)
        options = _effective_options(settings, options_override)

        cache_key: Optional[str] = None
        if settings.CACHE_ENABLED and self.cache is not None and not images:
            cache_key = self.cache.make_key(
                decision.model,
                message,
                {
                    "history_len": len(history),
                    "temperature": options.temperature,
                    "repeat_penalty": options.repeat_penalty,
                },
            )
            cached = await self.cache.get(cache_key)
            if cached:
                logger.info("Cache Hit! Serving locally.", source="Cache", model=decision.model)
                cache_lookups_total.labels(result="hit").inc()
                on_fragment(cached, None, False)
                return GenerationStats.instant(estimate_tokens(cached))
            logger.debug("Cache miss", source="Cache", model=decision.model)
            cache_lookups_total.labels(result="miss").inc()

        logger.info(
            "Starting generation",
            source="InferenceEngine",
            model=decision.model,
            endpoint=decision.target_url,
            remote=decision.is_remote,
            context_size=len(history),
        )

        start = time.perf_counter()
        try:
            request = self._build_request(
                decision, message, history, long_term_memory, persona_override,
                settings, images, options,
            )
            outcome = await until_cancelled(
                self._run_stream(request, decision, settings, cancel_event, on_fragment),
                cancel_event,
            )

        except GenerationCancelled:
            logger.info("Generation aborted by user", source="InferenceEngine")
            return None
        except asyncio.CancelledError:
            logger.info("Generation task cancelled", source="InferenceEngine")
            raise
        except Exception as e:
            if cancel_event.is_set():
                logger.info("Generation aborted by user", source="InferenceEngine", error_type=type(e).__name__)
                return None
            error_message = e.message if isinstance(e, GatewayError) else str(e)
            logger.error(
                "Generation failed",
                source="InferenceEngine",
                error=error_message,
                error_type=type(e).__name__,
            )
            on_fragment(ERROR_NOTICE.format(message=error_message), None, False)
            return None

        if outcome is None:
            logger.warning("Stream ended without completion marker", source="InferenceEngine")
            return None

        full_text, stats = outcome
        if cache_key is not None and full_text:
            await self.cache.put(cache_key, full_text)

        generation_latency_seconds.labels(model=decision.model).observe(time.perf_counter() - start)
        tokens_total.labels(model=decision.model, token_type="prompt").inc(stats.prompt_tokens)
        tokens_total.labels(model=decision.model, token_type="completion").inc(stats.completion_tokens)
        logger.info(
            "Generation complete",
            source="InferenceEngine",
            model=decision.model,
            completion_tokens=stats.completion_tokens,
            tokens_per_second=round(stats.tokens_per_second, 2),
        )
        return stats

    def _build_request(
        self,
        decision: RoutingDecision,
        message: str,
        history: Sequence[HistoryMessage],
        long_term_memory: Optional[str],
        persona_override: Optional[str],
        settings: Settings,
        images: list[str],
        options: InferenceOptions,
    ) -> InferenceRequest:
        system_content = self.prompt_builder.build_system_content(
            persona_override or settings.SYSTEM_PROMPT, long_term_memory
        )
        return self.prompt_builder.build_chat_request(
            model=decision.model,
            system_content=system_content,
            history=history,
            current_message=message,
            options=options,
            images=images,
        )

    async def _run_stream(
        self,
        request: InferenceRequest,
        decision: RoutingDecision,
        settings: Settings,
        cancel_event: asyncio.Event,
        on_fragment: FragmentCallback,
    ) -> Optional[tuple[str, GenerationStats]]:
        async with AsyncExitStack() as stack:
            chunks = await self._open_stream(stack, request, decision, settings, cancel_event, on_fragment)
            return await self._consume(chunks, cancel_event, on_fragment)

    async def _open_stream(
        self,
        stack: AsyncExitStack,
        request: InferenceRequest,
        decision: RoutingDecision,
        settings: Settings,
        cancel_event: asyncio.Event,
        on_fragment: FragmentCallback,
    ) -> AsyncIterator[ChatChunk]:
        try:
            return await stack.enter_async_context(
                self.client.open_chat_stream(
                    request, base_url=decision.target_url, auth_header=decision.auth_header
                )
            )
        except GatewayError as e:
            if not decision.is_remote or cancel_event.is_set():
                raise
            logger.error(
                f"Connection to Remote Mesh Node ({decision.target_url}) failed.",
                source="Network",
                error=e.message,
            )
            logger.warning(
                f"Initiating Failover to Local Host ({settings.OLLAMA_BASE_URL}).",
                source="Network",
            )
            failovers_total.inc()
            on_fragment(FAILOVER_NOTICE.format(endpoint=decision.target_url), None, False)

        # Exactly one retry, local endpoint, no credentials
        return await stack.enter_async_context(
            self.client.open_chat_stream(request, base_url=settings.OLLAMA_BASE_URL)
        )

    async def _consume(
        self,
        chunks: AsyncIterator[ChatChunk],
        cancel_event: asyncio.Event,
        on_fragment: FragmentCallback,
    ) -> Optional[tuple[str, GenerationStats]]:
        """
        Drive the tag parser until the terminal chunk.

        Returns (full raw response text, stats), or None if the stream ended
        without a terminal chunk.
        """
        parser = StreamTagParser()
        raw_parts: list[str] = []

        async for chunk in chunks:
            if cancel_event.is_set():
                raise GenerationCancelled("Generation cancelled by caller")

            if chunk.content:
                raw_parts.append(chunk.content)
                _dispatch(parser.feed(chunk.content), on_fragment)

            if chunk.done:
                _dispatch(parser.flush(), on_fragment)
                stats = chunk.stats or GenerationStats.from_done_message({})
                return "".join(raw_parts), stats

        if cancel_event.is_set():
            raise GenerationCancelled("Generation cancelled by caller")
        _dispatch(parser.flush(), on_fragment)
        return None


def _effective_options(
    settings: Settings, options_override: Optional[Dict[str, float]]
) -> InferenceOptions:
    overrides = options_override or {}
    temperature = overrides.get("temperature")
    repeat_penalty = overrides.get("repeat_penalty")
    return InferenceOptions(
        context_window=settings.CONTEXT_WINDOW,
        temperature=settings.TEMPERATURE if temperature is None else temperature,
        repeat_penalty=settings.REPEAT_PENALTY if repeat_penalty is None else repeat_penalty,
    )


async def until_cancelled(work: Awaitable[T], cancel_event: asyncio.Event) -> T:
    """
    Await ``work`` unless ``cancel_event`` fires first.

    The work runs in its own task, so a stalled connect or read is
    interrupted as soon as the event is set rather than at the next chunk.

    Raises:
        GenerationCancelled: The event was set before the work finished
    """
    task = asyncio.ensure_future(work)
    if cancel_event.is_set():
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        raise GenerationCancelled("Generation cancelled by caller")

    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task in done:
        return task.result()

    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
    raise GenerationCancelled("Generation cancelled by caller")


def _dispatch(fragments: list[Fragment], on_fragment: FragmentCallback) -> None:
    for fragment in fragments:
        if fragment.channel is Channel.ANSWER:
            on_fragment(fragment.text, None, False)
        else:
            on_fragment(None, fragment.text, True)
