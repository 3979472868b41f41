"""
Text processing utilities for the LLM layer.

Provides the token cost heuristic used for context budgeting and small
helpers for cleaning up short, non-streaming generations (titles, plans).
"""

import math
import re
from typing import Optional


CHARS_PER_TOKEN = 3.5


def estimate_tokens(text: Optional[str]) -> int:
    """
    Estimate token count from character length.

    Crude proxy, not real tokenization: ``ceil(len(text) / 3.5)``.
    Deterministic and non-decreasing in ``len(text)``, which is all the
    context budgeter relies on.

    Examples:
        >>> estimate_tokens("")
        0
        >>> estimate_tokens("abcdefg")
        2
    """
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def strip_wrapping_quotes(text: str) -> str:
    """Remove one leading and one trailing double quote, then whitespace."""
    return re.sub(r'^"|"$', "", text.strip()).strip()


def extract_json_array(text: str) -> str:
    """
    Pull a JSON array out of a chatty model response.

    Strips markdown code fences, then returns the outermost ``[...]`` span
    if one exists, otherwise the cleaned text unchanged.
    """
    cleaned = text.strip().replace("```json", "").replace("```", "").strip()
    match = re.search(r"\[[\s\S]*\]", cleaned)
    return match.group(0) if match else cleaned
