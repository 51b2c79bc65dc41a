"""Chat service: conversations, message sending and profile access."""

import logging
import time

from groq import AsyncGroq

from ..agent.prompt import build_messages, is_asking_about_self
from ..config import Settings
from ..db import Database
from ..logging import get_logger
from ..memory import FactExtractor, FactMerger, MemoryManager, MemoryStore
from ..memory.models import RefreshResult, UserMemoryProfile
from .models import Conversation, Message
from .store import ChatStore

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 10000
MAX_TITLE_LENGTH = 255
AUTO_TITLE_LENGTH = 50


class InvalidRequestError(ValueError):
    """Raised when a request carries invalid data."""


class ConversationNotFoundError(LookupError):
    """Raised when a conversation is missing or belongs to another user."""


class EmptyReplyError(RuntimeError):
    """Raised when the LLM returns no reply text."""


class ChatService:
    """Handles chat requests for authenticated users.

    Each reply is personalized with the user's memory profile, and every
    user message is folded into that profile in the background.
    """

    def __init__(
        self,
        store: ChatStore,
        memory: MemoryManager,
        llm_client: AsyncGroq,
        model: str = "llama-3.3-70b-versatile",
    ) -> None:
        self.store = store
        self.memory = memory
        self.client = llm_client
        self.model = model

    def start_conversation(self, user_id: str) -> Conversation:
        """Start a new conversation, creating the user's profile if needed."""
        self.memory.get_or_create(user_id)
        return self.store.create_conversation(user_id)

    def list_conversations(self, user_id: str) -> list[Conversation]:
        return self.store.list_conversations(user_id)

    def rename_conversation(
        self, user_id: str, conversation_id: str, title: str
    ) -> Conversation:
        """Set a conversation's title.

        Raises:
            InvalidRequestError: If the title is empty or too long.
            ConversationNotFoundError: If the user doesn't own the conversation.
        """
        if not title or len(title) > MAX_TITLE_LENGTH:
            raise InvalidRequestError(
                f"Title must be between 1 and {MAX_TITLE_LENGTH} characters"
            )

        self._get_owned(user_id, conversation_id)
        self.store.set_title(conversation_id, title)
        return self._get_owned(user_id, conversation_id)

    def list_messages(self, user_id: str, conversation_id: str) -> list[Message]:
        """List the messages of a conversation the user owns."""
        self._get_owned(user_id, conversation_id)
        return self.store.list_messages(conversation_id)

    async def send_message(self, user_id: str, conversation_id: str, content: str) -> str:
        """Store a user message and reply to it.

        The memory update for the message is scheduled in the background
        and never affects the reply.

        Args:
            user_id: The sender.
            conversation_id: The conversation to post to.
            content: The message text.

        Returns:
            The assistant's reply.

        Raises:
            InvalidRequestError: If the content is empty or too long.
            ConversationNotFoundError: If the user doesn't own the conversation.
            EmptyReplyError: If the LLM returned no text.
        """
        if not content or len(content) > MAX_CONTENT_LENGTH:
            raise InvalidRequestError(
                f"Message must be between 1 and {MAX_CONTENT_LENGTH} characters"
            )

        start = time.monotonic()
        conversation = self._get_owned(user_id, conversation_id)
        user_message = self.store.add_message(conversation_id, "user", content)
        history = self.store.list_messages(conversation_id)

        memory = self.memory.get_or_create(user_id)
        messages = build_messages([m.to_llm() for m in history], memory, content)

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
        )
        reply = response.choices[0].message.content or ""
        if not reply:
            logger.warning(f"Empty reply for conversation {conversation_id}")
            raise EmptyReplyError("Failed to generate response")

        self.store.add_message(conversation_id, "assistant", reply)

        if len(history) == 1 and not conversation.title:
            self.store.set_title(conversation_id, content[:AUTO_TITLE_LENGTH].strip())

        self.memory.schedule_update(user_id, content, user_message.created_at)

        get_logger().log_chat_turn(
            user_id,
            conversation_id,
            self_inquiry=is_asking_about_self(content),
            duration_ms=round((time.monotonic() - start) * 1000, 1),
        )
        return reply

    def get_profile(self, user_id: str) -> UserMemoryProfile | None:
        """Get the user's memory profile, if any."""
        return self.memory.store.get_memory(user_id)

    async def refresh_profile(self, user_id: str) -> RefreshResult:
        """Rebuild the user's profile from all unprocessed messages."""
        return await self.memory.rebuild(user_id)

    def _get_owned(self, user_id: str, conversation_id: str) -> Conversation:
        conversation = self.store.get_conversation(conversation_id, user_id)
        if conversation is None:
            raise ConversationNotFoundError(
                "Conversation not found or access denied"
            )
        return conversation


def create_chat_service(
    settings: Settings, llm_client: AsyncGroq | None = None
) -> ChatService:
    """Wire a ChatService and its memory engine from settings.

    Args:
        settings: Loaded settings; the API key must be present unless a
            client is given.
        llm_client: Optional client to use instead of a new AsyncGroq.

    Returns:
        A ready service with an initialized database.
    """
    assert settings.db_path is not None
    database = Database(settings.db_path)
    database.init_db()

    client = llm_client or AsyncGroq(api_key=settings.require_api_key())
    memory = MemoryManager(
        MemoryStore(database),
        FactExtractor(client, model=settings.model),
        FactMerger(client, model=settings.model, max_facts=settings.max_facts),
        batch_size=settings.rebuild_batch_size,
        batch_delay=settings.rebuild_batch_delay,
    )
    return ChatService(ChatStore(database), memory, client, model=settings.model)
