"""Fact extraction from user messages using LLM."""

import logging

from groq import AsyncGroq

from .models import UserFact
from .parsing import parse_fact_list

logger = logging.getLogger(__name__)

# Separates messages when several are extracted in one call.
MESSAGE_SEPARATOR = "\n---\n"

EXTRACTION_SYSTEM_PROMPT = (
    "You are a fact extraction system. Always respond with valid JSON arrays only."
)

EXTRACTION_PROMPT = """You are a fact extraction system. Analyze the user's message and extract ONLY factual or consistent personality-relevant information about the user.

Extract information about:
- Personal preferences (likes/dislikes)
- Hobbies and interests
- Professional background or skills
- Personal background (location, family, etc.)
- Communication style or personality traits
- Goals or aspirations
- Values or beliefs
- Emotional tendencies
- Specific facts they mention about themselves

CRITICAL RULES:
1. Extract ONLY facts that are clearly stated or strongly implied
2. Do NOT make assumptions or inferences beyond what's stated
3. Do NOT extract opinions about topics (extract that they HAVE those opinions)
4. Keep facts concise (one sentence each)
5. Return a JSON array of strings
6. If nothing relevant is found, return an empty array []
7. Several messages may be separated by lines containing only ---

User message: "{message}"

Return ONLY a valid JSON array of fact strings, nothing else."""


class FactExtractor:
    """Extracts facts about the user from message text using LLM."""

    def __init__(
        self,
        llm_client: AsyncGroq,
        model: str = "llama-3.3-70b-versatile",
        temperature: float = 0.3,
    ) -> None:
        """Initialize the extractor.

        Args:
            llm_client: The Groq client for LLM calls.
            model: The model to use for extraction.
            temperature: Sampling temperature, kept low for consistent output.
        """
        self.client = llm_client
        self.model = model
        self.temperature = temperature

    async def extract(self, text: str) -> list[UserFact]:
        """Extract facts from one or more user messages.

        Args:
            text: A single message, or several joined with MESSAGE_SEPARATOR.

        Returns:
            List of extracted facts, empty if none found or on error.
        """
        if not text.strip():
            return []

        prompt = EXTRACTION_PROMPT.format(message=text.replace('"', '\\"'))

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
            )
            content = response.choices[0].message.content or ""
        except Exception as e:
            logger.warning(f"Fact extraction failed: {e}")
            return []

        return parse_fact_list(content) or []

    async def extract_batch(self, messages: list[str]) -> list[UserFact]:
        """Extract facts from several messages in a single call."""
        return await self.extract(MESSAGE_SEPARATOR.join(messages))
