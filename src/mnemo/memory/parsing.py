"""Parsing of the JSON fact lists returned by the LLM."""

import json
import logging

from .models import UserFact

logger = logging.getLogger(__name__)


def _strip_code_fence(content: str) -> str:
    """Remove a markdown code block wrapped around the payload."""
    text = content.strip()
    if not text.startswith("```"):
        return text

    lines = [line for line in text.split("\n") if not line.startswith("```")]
    return "\n".join(lines).strip()


def parse_fact_list(content: str) -> list[UserFact] | None:
    """Parse an LLM response that should be a JSON array of strings.

    Non-string and blank items are dropped.

    Args:
        content: The raw LLM response.

    Returns:
        The facts, or None if the response is not a JSON array.
    """
    try:
        data = json.loads(_strip_code_fence(content))
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse fact list: {e}")
        return None

    if not isinstance(data, list):
        logger.warning(f"Expected a JSON array of facts, got {type(data).__name__}")
        return None

    facts = []
    for item in data:
        if isinstance(item, str) and item.strip():
            facts.append(item.strip())
        else:
            logger.warning(f"Skipping invalid fact item: {item!r}")

    return facts
