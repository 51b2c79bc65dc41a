"""Data models for conversations and messages."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class Conversation:
    """A conversation owned by one user."""

    id: str
    user_id: str
    created_at: datetime
    title: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class Message:
    """A single message in a conversation.

    Attributes:
        id: Database ID.
        conversation_id: The conversation the message belongs to.
        role: 'user' or 'assistant'.
        content: The message text.
        created_at: When the message was stored. Strictly increasing
            across the database.
    """

    id: str
    conversation_id: str
    role: str
    content: str
    created_at: datetime

    def to_llm(self) -> dict[str, str]:
        """Convert to a chat completion message."""
        return {"role": self.role, "content": self.content}

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "conversationId": self.conversation_id,
            "role": self.role,
            "content": self.content,
            "createdAt": self.created_at.isoformat(),
        }
