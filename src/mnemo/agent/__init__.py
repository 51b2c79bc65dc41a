"""Prompt construction for chat turns."""

from .prompt import (
    build_conversation_system_prompt,
    build_messages,
    build_profile_response_prompt,
    format_memory_for_prompt,
    is_asking_about_self,
)

__all__ = [
    "build_conversation_system_prompt",
    "build_messages",
    "build_profile_response_prompt",
    "format_memory_for_prompt",
    "is_asking_about_self",
]
