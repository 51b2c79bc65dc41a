"""Conversations, messages and the chat service."""

from .models import Conversation, Message
from .service import (
    ChatService,
    ConversationNotFoundError,
    EmptyReplyError,
    InvalidRequestError,
    create_chat_service,
)
from .store import ChatStore

__all__ = [
    "ChatService",
    "ChatStore",
    "Conversation",
    "ConversationNotFoundError",
    "EmptyReplyError",
    "InvalidRequestError",
    "Message",
    "create_chat_service",
]
