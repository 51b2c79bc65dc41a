"""Memory module: learns facts about each user from their messages."""

from .extractor import MESSAGE_SEPARATOR, FactExtractor
from .manager import MemoryManager
from .merger import MAX_FACTS, FactMerger, dedupe_facts
from .models import RefreshResult, UnprocessedMessage, UserFact, UserMemoryProfile
from .store import MemoryNotFoundError, MemoryStore

__all__ = [
    "FactExtractor",
    "FactMerger",
    "MAX_FACTS",
    "MESSAGE_SEPARATOR",
    "MemoryManager",
    "MemoryNotFoundError",
    "MemoryStore",
    "RefreshResult",
    "UnprocessedMessage",
    "UserFact",
    "UserMemoryProfile",
    "dedupe_facts",
]
