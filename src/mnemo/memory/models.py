"""Data models for the memory system."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# A fact is a short sentence about the user, e.g. "Works as a software engineer".
UserFact = str


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class UserMemoryProfile:
    """Everything learned about one user.

    Attributes:
        id: Database ID.
        user_id: Owner of the profile, unique across profiles.
        facts: Learned facts, at most `max_facts` after any merge.
        message_count: Number of user messages folded into the facts.
        last_processed_at: Watermark of the newest processed message,
            None if nothing has been processed yet.
        created_at: When the profile was created.
        updated_at: When the profile was last written.
    """

    id: str
    user_id: str
    facts: list[UserFact] = field(default_factory=list)
    message_count: int = 0
    last_processed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON shape returned by the profile endpoints."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "facts": list(self.facts),
            "messageCount": self.message_count,
            "lastProcessedAt": _iso(self.last_processed_at),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass(frozen=True)
class UnprocessedMessage:
    """A user-authored message not yet folded into memory."""

    id: str
    content: str
    created_at: datetime


@dataclass(frozen=True)
class RefreshResult:
    """Outcome of a full memory rebuild."""

    profile: UserMemoryProfile
    facts_added: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"profile": self.profile.to_dict(), "factsAdded": self.facts_added}
