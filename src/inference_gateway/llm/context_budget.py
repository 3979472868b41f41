"""
Context window budgeting.

Selects the most recent contiguous slice of conversation history that fits
the model's context window next to the system prompt, the current message
and a safety margin reserved for the answer.
"""

from typing import Sequence

import structlog

from inference_gateway.llm.text_utils import estimate_tokens
from inference_gateway.models.chat_models import ChatMessage, HistoryMessage
from inference_gateway.models.enums import Role, Sender


logger = structlog.get_logger(__name__)

DEFAULT_SAFETY_MARGIN = 400


def budget_history(
    history: Sequence[HistoryMessage],
    system_content: str,
    current_message: str,
    context_window: int,
    safety_margin: int = DEFAULT_SAFETY_MARGIN,
) -> list[ChatMessage]:
    """
    Return the newest history turns that fit the budget, oldest first.

    Walks history newest to oldest. SYSTEM turns are skipped entirely (they
    are UI notices, not model-visible). The walk stops at the first message
    that would overflow; messages are never partially included. Images are
    kept only on user turns.

    Args:
        history: Conversation turns, oldest first
        system_content: Fully composed system prompt
        current_message: The message being answered (sent separately)
        context_window: Model context window in tokens
        safety_margin: Tokens reserved for the answer

    Returns:
        Wire-format messages in chronological order
    """
    reserved = estimate_tokens(system_content) + estimate_tokens(current_message) + safety_margin
    available = context_window - reserved
    used = 0
    kept: list[ChatMessage] = []

    for msg in reversed(history):
        if msg.sender is Sender.SYSTEM:
            continue
        cost = estimate_tokens(msg.text)
        if used + cost >= available:
            break
        is_user = msg.sender is Sender.USER
        kept.append(
            ChatMessage(
                role=Role.USER if is_user else Role.ASSISTANT,
                content=msg.text,
                images=list(msg.images) if is_user and msg.images else None,
            )
        )
        used += cost

    kept.reverse()
    logger.debug(
        "History budgeted",
        source="InferenceEngine",
        history_len=len(history),
        kept=len(kept),
        used_tokens=used,
        available_tokens=available,
    )
    return kept
