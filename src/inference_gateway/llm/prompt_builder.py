"""
Prompt builder for gateway requests.

Responsible for:
- Loading and rendering Jinja2 templates (system persona, summary, title, plan)
- Composing persona text with the long-term memory block
- Assembling the complete InferenceRequest with budgeted history
"""

from pathlib import Path
from typing import Optional, Sequence

import structlog
from jinja2 import Environment, FileSystemLoader

from inference_gateway.llm.context_budget import DEFAULT_SAFETY_MARGIN, budget_history
from inference_gateway.models.chat_models import (
    ChatMessage,
    HistoryMessage,
    InferenceOptions,
    InferenceRequest,
)
from inference_gateway.models.enums import Role


logger = structlog.get_logger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "prompts"
TITLE_SOURCE_CHARS = 150


class PromptBuilder:
    """
    Build prompts and chat requests from Jinja2 templates.

    Templates are loaded once at construction; rendering is pure.
    """

    def __init__(
        self,
        templates_dir: Optional[Path] = None,
        safety_margin: int = DEFAULT_SAFETY_MARGIN,
    ):
        """
        Initialize prompt builder.

        Args:
            templates_dir: Directory containing prompt templates
            safety_margin: Tokens reserved for the answer when budgeting
        """
        self.templates_dir = Path(templates_dir or DEFAULT_TEMPLATES_DIR)
        self.safety_margin = safety_margin

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
            autoescape=False,  # We're generating prompts, not HTML
        )

        try:
            self.system_template = self.jinja_env.get_template("system_prompt.j2")
            self.summary_template = self.jinja_env.get_template("summary_prompt.j2")
            self.title_template = self.jinja_env.get_template("title_prompt.j2")
            self.plan_template = self.jinja_env.get_template("plan_prompt.j2")
            logger.info("Loaded prompt templates", templates_dir=str(self.templates_dir))
        except Exception as e:
            logger.error("Failed to load prompt templates", error=str(e))
            raise

    def build_system_content(self, persona: str, long_term_memory: Optional[str] = None) -> str:
        """
        Compose the system prompt.

        The long-term memory block (and its continuity instruction) is only
        added when memory text is present.
        """
        return self.system_template.render(
            persona=persona,
            long_term_memory=(long_term_memory or "").strip() or None,
        ).strip()

    def build_chat_request(
        self,
        model: str,
        system_content: str,
        history: Sequence[HistoryMessage],
        current_message: str,
        options: InferenceOptions,
        images: Optional[list[str]] = None,
    ) -> InferenceRequest:
        """
        Assemble system prompt, budgeted history and the current user turn.

        Args:
            model: Downstream model name (node prefix already stripped)
            system_content: Output of build_system_content
            history: Prior turns, oldest first
            current_message: The user message being answered
            options: Sampling/context options
            images: Base64 images attached to the current message

        Returns:
            Immutable InferenceRequest
        """
        limited = budget_history(
            history,
            system_content,
            current_message,
            options.context_window,
            safety_margin=self.safety_margin,
        )
        messages = [
            ChatMessage(role=Role.SYSTEM, content=system_content),
            *limited,
            ChatMessage(role=Role.USER, content=current_message, images=list(images) if images else None),
        ]
        return InferenceRequest(model=model, messages=messages, options=options)

    def build_summary_prompt(self, text: str) -> str:
        return self.summary_template.render(text=text).strip()

    def build_title_prompt(self, first_message: str) -> str:
        return self.title_template.render(first_message=first_message[:TITLE_SOURCE_CHARS]).strip()

    def build_plan_prompt(self, goal: str) -> str:
        return self.plan_template.render(goal=goal).strip()
