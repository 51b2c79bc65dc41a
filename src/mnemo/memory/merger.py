"""Consolidation of existing and newly extracted facts."""

import json
import logging

from groq import AsyncGroq

from .models import UserFact
from .parsing import parse_fact_list

logger = logging.getLogger(__name__)

MAX_FACTS = 50

MERGE_SYSTEM_PROMPT = (
    "You are a memory consolidation system. Always respond with valid JSON arrays only."
)

MERGE_PROMPT = """You are a memory consolidation system. You will be given:
1. An existing list of facts about a user
2. A new list of facts about the same user

Your task:
- Merge the lists intelligently
- Remove exact duplicates
- Consolidate similar or overlapping facts into single, comprehensive facts
- Keep all unique information
- Prioritize newer, more specific information over older, vague information
- Keep the list concise (no more than {max_facts} facts total)
- Maintain chronological relevance (newer facts may update older ones)

Existing facts:
{existing}

New facts:
{incoming}

Return ONLY a valid JSON array of the merged facts. No explanation, just the array."""


def dedupe_facts(
    existing: list[UserFact],
    incoming: list[UserFact],
    max_facts: int = MAX_FACTS,
) -> list[UserFact]:
    """Concatenate two fact lists, dropping exact duplicates.

    The first occurrence of each fact wins and the result is truncated
    to `max_facts`.
    """
    seen: set[str] = set()
    merged = []
    for fact in [*existing, *incoming]:
        if fact not in seen:
            seen.add(fact)
            merged.append(fact)
    return merged[:max_facts]


class FactMerger:
    """Merges new facts into existing ones with an LLM consolidation pass.

    Falls back to exact-match deduplication when the LLM call fails or
    returns something that is not a JSON array of strings.
    """

    def __init__(
        self,
        llm_client: AsyncGroq,
        model: str = "llama-3.3-70b-versatile",
        temperature: float = 0.2,
        max_facts: int = MAX_FACTS,
    ) -> None:
        self.client = llm_client
        self.model = model
        self.temperature = temperature
        self.max_facts = max_facts

    async def merge(
        self, existing: list[UserFact], incoming: list[UserFact]
    ) -> list[UserFact]:
        """Merge `incoming` facts into `existing` ones.

        Args:
            existing: Facts already stored for the user.
            incoming: Newly extracted facts.

        Returns:
            At most `max_facts` consolidated facts.
        """
        if not incoming:
            return existing

        if not existing:
            return incoming

        prompt = MERGE_PROMPT.format(
            max_facts=self.max_facts,
            existing=json.dumps(existing, indent=2, ensure_ascii=False),
            incoming=json.dumps(incoming, indent=2, ensure_ascii=False),
        )

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": MERGE_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
            )
            content = response.choices[0].message.content or ""
        except Exception as e:
            logger.warning(f"Fact merge failed, falling back to dedupe: {e}")
            return dedupe_facts(existing, incoming, self.max_facts)

        # Both inputs are non-empty here, so an empty merge is a bad answer.
        merged = parse_fact_list(content)
        if not merged:
            logger.warning("Unusable merge response, falling back to dedupe")
            return dedupe_facts(existing, incoming, self.max_facts)

        return merged[: self.max_facts]
