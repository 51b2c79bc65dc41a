"""Prompt builder for chat turns personalized with user memory."""

import re
from typing import Any

from ..memory.models import UserMemoryProfile

NO_MEMORY_TEXT = "No prior information about the user is available yet."

# Questions where the user asks the assistant to describe them.
SELF_INQUIRY_PATTERNS = [
    re.compile(r"^who am i\??$"),
    re.compile(r"^what do you know about me\??$"),
    re.compile(r"^tell me about myself\??$"),
    re.compile(r"^describe me\??$"),
    re.compile(r"^what can you tell me about me\??$"),
    re.compile(r"^how would you describe me\??$"),
    re.compile(r"^what have you learned about me\??$"),
    re.compile(r"^what do you remember about me\??$"),
    re.compile(r"\bwho am i\?"),
    re.compile(r"\bwhat do you know about me\b"),
    re.compile(r"\btell me about myself\b"),
    re.compile(r"\bdescribe me\b"),
]

CONVERSATION_PROMPT = """You are a helpful, friendly AI assistant engaged in a conversation with a user.

{memory_context}

IMPORTANT INSTRUCTIONS:
1. Use the user profile above to personalize your responses and show that you understand who they are
2. Reference relevant facts from their profile naturally when appropriate
3. Continue learning about the user through your conversation
4. Be conversational, warm, and engaging
5. If asked about what you know about the user (e.g., "Who am I?"), provide a thoughtful summary based ONLY on the profile above
6. Do NOT invent or assume information that is not in the user profile
7. If the profile is empty, let the user know you're still learning about them

Remember: You are having an ongoing relationship with this user. Use the profile to make the conversation more personal and meaningful."""

STILL_LEARNING_PROMPT = """The user is asking about themselves, but you haven't learned anything about them yet.

Respond warmly and let them know:
- You're just getting to know them
- You'll learn more about them as you chat
- Encourage them to share more about themselves

Be friendly and inviting, not apologetic."""

PROFILE_PROMPT = """The user is asking you to describe them or tell them what you know about them.

{memory_context}

CRITICAL INSTRUCTIONS:
1. Create a thoughtful, warm personality profile based ONLY on the facts listed above
2. Do NOT invent, assume, or add any information that is not explicitly in the profile
3. Organize the information into a coherent narrative (e.g., interests, background, preferences, personality)
4. Use a warm, conversational tone
5. Show that you genuinely know and appreciate them as an individual
6. If certain areas are sparse, acknowledge that you're still learning about those aspects

Your goal: Make the user feel understood and recognized, using ONLY the verified facts you have learned."""


def is_asking_about_self(message: str) -> bool:
    """Check whether a message asks the assistant to describe the user."""
    text = message.lower().strip()
    return any(pattern.search(text) for pattern in SELF_INQUIRY_PATTERNS)


def format_memory_for_prompt(memory: UserMemoryProfile | None) -> str:
    """Format a memory profile as a numbered list for a system prompt.

    Args:
        memory: The user's profile, if any.

    Returns:
        The formatted profile, or a placeholder when nothing is known.
    """
    if memory is None or not memory.facts:
        return NO_MEMORY_TEXT

    facts = "\n".join(f"{i}. {fact}" for i, fact in enumerate(memory.facts, start=1))
    return (
        f"User Profile (learned from {memory.message_count} previous messages):\n"
        f"{facts}"
    )


def build_conversation_system_prompt(memory: UserMemoryProfile | None) -> str:
    """Build the system prompt for an ordinary chat turn."""
    return CONVERSATION_PROMPT.format(memory_context=format_memory_for_prompt(memory))


def build_profile_response_prompt(memory: UserMemoryProfile | None) -> str:
    """Build the system prompt for a "who am I?" question.

    With no facts the assistant is told it is still getting to know the
    user; otherwise it must answer from the stored facts only.
    """
    if memory is None or not memory.facts:
        return STILL_LEARNING_PROMPT

    return PROFILE_PROMPT.format(memory_context=format_memory_for_prompt(memory))


def build_messages(
    history: list[dict[str, Any]],
    memory: UserMemoryProfile | None,
    user_message: str,
) -> list[dict[str, str]]:
    """Build the message list for a chat completion.

    The current user message is expected to be the last history entry
    already; it is only used to choose the system prompt.

    Args:
        history: The conversation so far, oldest first.
        memory: The user's memory profile, if any.
        user_message: The message being answered.

    Returns:
        System prompt followed by the user and assistant history entries.
    """
    if is_asking_about_self(user_message):
        system_prompt = build_profile_response_prompt(memory)
    else:
        system_prompt = build_conversation_system_prompt(memory)

    messages = [{"role": "system", "content": system_prompt}]
    messages.extend(
        {"role": msg["role"], "content": msg["content"]}
        for msg in history
        if msg.get("role") in ("user", "assistant")
    )
    return messages
