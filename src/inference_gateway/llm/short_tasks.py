"""
Short, non-streaming generations used around a chat session.

Titles, context summaries and agent plans all go through the retrying
transport (via BaseLLMClient.generate) and degrade to a fixed fallback
instead of raising: they decorate the session, they never block it.
"""

import json
import uuid

import structlog
from jsonschema import ValidationError as SchemaValidationError
from jsonschema import validate

from inference_gateway.config import Settings
from inference_gateway.llm.base_client import BaseLLMClient
from inference_gateway.llm.exceptions import GatewayError
from inference_gateway.llm.prompt_builder import PromptBuilder
from inference_gateway.llm.text_utils import extract_json_array, strip_wrapping_quotes
from inference_gateway.models.chat_models import TaskStep


logger = structlog.get_logger(__name__)

SUMMARY_UNAVAILABLE = "Context summarization unavailable."
PLAN_FAILED_PREFIX = "Auto-Plan failed. Proceed with: "

PLAN_SCHEMA = {
    "type": "array",
    "minItems": 1,
    "items": {"type": ["string", "object", "number"]},
}


class ShortTaskRunner:
    """Title, summary and plan generation against the local endpoint."""

    def __init__(self, client: BaseLLMClient, prompt_builder: PromptBuilder, settings: Settings):
        self.client = client
        self.prompt_builder = prompt_builder
        self.settings = settings

    async def generate_context_summary(self, text_to_summarize: str) -> str:
        """Compress text into long-term memory. Returns a fixed notice on failure."""
        if not text_to_summarize.strip():
            return ""
        try:
            return await self.client.generate(
                model=self.settings.MODEL_NAME,
                prompt=self.prompt_builder.build_summary_prompt(text_to_summarize),
                options={"num_ctx": 8192, "temperature": 0.3},
                base_url=self.settings.OLLAMA_BASE_URL,
            )
        except GatewayError as e:
            logger.warning("Context summarization failed", source="InferenceEngine", error=e.message)
            return SUMMARY_UNAVAILABLE

    async def generate_smart_title(self, first_message: str) -> str:
        """3-5 word title for a chat. Returns "" on failure."""
        try:
            raw = await self.client.generate(
                model=self.settings.MODEL_NAME,
                prompt=self.prompt_builder.build_title_prompt(first_message),
                options={"temperature": 0.7},
                base_url=self.settings.OLLAMA_BASE_URL,
            )
        except GatewayError as e:
            logger.debug("Title generation failed", source="InferenceEngine", error=e.message)
            return ""
        return strip_wrapping_quotes(raw)

    async def generate_agent_plan(self, goal: str) -> list[TaskStep]:
        """
        Break a goal into executable steps.

        Asks for a JSON array in JSON mode at temperature 0, strips code
        fences and validates the array. Any failure yields a single step that
        carries the goal itself.
        """
        logger.info("Generating agent execution plan...", source="Planner")
        try:
            raw = await self.client.generate(
                model=self.settings.MODEL_NAME,
                prompt=self.prompt_builder.build_plan_prompt(goal),
                options={"temperature": 0.0},
                format="json",
                base_url=self.settings.OLLAMA_BASE_URL,
            )
            steps = json.loads(extract_json_array(raw))
            validate(instance=steps, schema=PLAN_SCHEMA)
        except (GatewayError, json.JSONDecodeError, SchemaValidationError) as e:
            logger.warning("Agent plan generation failed", source="Planner", error=str(e))
            return [TaskStep(id="1", description=PLAN_FAILED_PREFIX + goal)]

        return [
            TaskStep(
                id=uuid.uuid4().hex[:9],
                description=step if isinstance(step, str) else json.dumps(step),
            )
            for step in steps
        ]
