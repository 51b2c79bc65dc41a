"""Tests for ChatService."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from mnemo.chat import (
    ChatService,
    ChatStore,
    ConversationNotFoundError,
    EmptyReplyError,
    InvalidRequestError,
    create_chat_service,
)
from mnemo.config import Settings
from mnemo.memory import FactExtractor, FactMerger, MemoryManager, MemoryStore


class FakeGroq:
    """Routes completion calls by their system prompt."""

    def __init__(self, make_response, reply="Nice to meet you!", facts='[]'):
        self.reply = reply
        self.facts = facts
        self.make_response = make_response
        self.chat = AsyncMock()
        self.chat.completions.create = AsyncMock(side_effect=self._create)
        self.reply_calls: list[list[dict]] = []

    async def _create(self, *, model, messages, temperature=None):
        system = messages[0]["content"]
        if "fact extraction system" in system:
            return self.make_response(self.facts)
        if "memory consolidation system" in system:
            return self.make_response("not json")
        self.reply_calls.append(messages)
        return self.make_response(self.reply)


@pytest.fixture
def fake_groq(make_response) -> FakeGroq:
    return FakeGroq(make_response)


@pytest.fixture
def service(
    chat_store: ChatStore, memory_store: MemoryStore, fake_groq: FakeGroq
) -> ChatService:
    memory = MemoryManager(
        memory_store,
        FactExtractor(fake_groq),
        FactMerger(fake_groq),
        batch_delay=0,
    )
    return ChatService(chat_store, memory, fake_groq)


class TestConversations:
    def test_start_creates_profile(self, service: ChatService, memory_store: MemoryStore):
        conversation = service.start_conversation("user-1")

        assert conversation.user_id == "user-1"
        assert memory_store.get_memory("user-1") is not None

    def test_list_conversations(self, service: ChatService):
        service.start_conversation("user-1")
        service.start_conversation("user-1")
        service.start_conversation("user-2")

        assert len(service.list_conversations("user-1")) == 2

    def test_rename(self, service: ChatService):
        conversation = service.start_conversation("user-1")

        renamed = service.rename_conversation("user-1", conversation.id, "Cooking")

        assert renamed.title == "Cooking"

    @pytest.mark.parametrize("title", ["", "x" * 256])
    def test_rename_invalid_title(self, service: ChatService, title: str):
        conversation = service.start_conversation("user-1")
        with pytest.raises(InvalidRequestError):
            service.rename_conversation("user-1", conversation.id, title)

    def test_rename_other_users_conversation(self, service: ChatService):
        conversation = service.start_conversation("user-1")
        with pytest.raises(ConversationNotFoundError):
            service.rename_conversation("user-2", conversation.id, "Mine now")

    def test_list_messages_requires_owner(self, service: ChatService):
        conversation = service.start_conversation("user-1")
        with pytest.raises(ConversationNotFoundError):
            service.list_messages("user-2", conversation.id)


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_reply_and_history_stored(self, service: ChatService):
        conversation = service.start_conversation("user-1")

        reply = await service.send_message("user-1", conversation.id, "Hi there")

        assert reply == "Nice to meet you!"
        messages = service.list_messages("user-1", conversation.id)
        assert [(m.role, m.content) for m in messages] == [
            ("user", "Hi there"),
            ("assistant", "Nice to meet you!"),
        ]
        await service.memory.drain()

    @pytest.mark.asyncio
    async def test_first_message_sets_title(self, service: ChatService):
        conversation = service.start_conversation("user-1")
        content = "  Planning a two-week trip across Japan next spring with my family  "

        await service.send_message("user-1", conversation.id, content)
        await service.send_message("user-1", conversation.id, "Another question")

        title = service.list_conversations("user-1")[0].title
        assert title == content[:50].strip()
        await service.memory.drain()

    @pytest.mark.asyncio
    async def test_existing_title_kept(self, service: ChatService):
        conversation = service.start_conversation("user-1")
        service.rename_conversation("user-1", conversation.id, "Custom")

        await service.send_message("user-1", conversation.id, "Hello")

        assert service.list_conversations("user-1")[0].title == "Custom"
        await service.memory.drain()

    @pytest.mark.asyncio
    async def test_prompt_includes_history_and_memory(
        self, service: ChatService, memory_store: MemoryStore, fake_groq: FakeGroq
    ):
        conversation = service.start_conversation("user-1")
        memory_store.update_memory("user-1", facts=["Enjoys hiking"], message_count=1)

        await service.send_message("user-1", conversation.id, "Suggest a weekend plan")

        sent = fake_groq.reply_calls[0]
        assert sent[0]["role"] == "system"
        assert "1. Enjoys hiking" in sent[0]["content"]
        assert sent[1:] == [{"role": "user", "content": "Suggest a weekend plan"}]
        await service.memory.drain()

    @pytest.mark.asyncio
    async def test_who_am_i_with_no_facts(
        self, service: ChatService, fake_groq: FakeGroq
    ):
        conversation = service.start_conversation("user-1")

        await service.send_message("user-1", conversation.id, "Who am I?")

        system = fake_groq.reply_calls[0][0]["content"]
        assert "CRITICAL INSTRUCTIONS" not in system
        assert "getting to know them" in system
        await service.memory.drain()

    @pytest.mark.asyncio
    async def test_memory_updated_in_background(
        self, service: ChatService, fake_groq: FakeGroq
    ):
        fake_groq.facts = '["Enjoys hiking", "Works as a software engineer", "Lives in Seattle"]'
        conversation = service.start_conversation("user-1")

        await service.send_message(
            "user-1",
            conversation.id,
            "I love hiking and I'm a software engineer in Seattle.",
        )
        await service.memory.drain()

        profile = service.get_profile("user-1")
        user_message = service.list_messages("user-1", conversation.id)[0]
        assert len(profile.facts) == 3
        assert profile.message_count == 1
        assert profile.last_processed_at == user_message.created_at

    @pytest.mark.asyncio
    async def test_memory_failure_does_not_affect_reply(
        self, service: ChatService, fake_groq: FakeGroq, monkeypatch
    ):
        conversation = service.start_conversation("user-1")

        def broken_update(*args, **kwargs):
            raise RuntimeError("db locked")

        monkeypatch.setattr(service.memory.store, "update_memory", broken_update)

        reply = await service.send_message("user-1", conversation.id, "Hello")
        await service.memory.drain()

        assert reply == "Nice to meet you!"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "x" * 10001])
    async def test_invalid_content(self, service: ChatService, content: str):
        conversation = service.start_conversation("user-1")
        with pytest.raises(InvalidRequestError):
            await service.send_message("user-1", conversation.id, content)

    @pytest.mark.asyncio
    async def test_unknown_conversation(self, service: ChatService):
        with pytest.raises(ConversationNotFoundError):
            await service.send_message("user-1", "missing", "Hello")

    @pytest.mark.asyncio
    async def test_other_users_conversation(self, service: ChatService, chat_store: ChatStore):
        conversation = service.start_conversation("user-1")

        with pytest.raises(ConversationNotFoundError):
            await service.send_message("user-2", conversation.id, "Hello")

        assert chat_store.list_messages(conversation.id) == []

    @pytest.mark.asyncio
    async def test_empty_reply(self, service: ChatService, fake_groq: FakeGroq):
        fake_groq.reply = ""
        conversation = service.start_conversation("user-1")

        with pytest.raises(EmptyReplyError):
            await service.send_message("user-1", conversation.id, "Hello")

        roles = [m.role for m in service.list_messages("user-1", conversation.id)]
        assert roles == ["user"]


class TestProfile:
    def test_get_profile_missing(self, service: ChatService):
        assert service.get_profile("nobody") is None

    @pytest.mark.asyncio
    async def test_refresh_folds_in_unprocessed_messages(
        self, service: ChatService, chat_store: ChatStore, fake_groq: FakeGroq
    ):
        conversation = service.start_conversation("user-1")
        chat_store.add_message(conversation.id, "user", "I play chess")
        chat_store.add_message(conversation.id, "user", "I speak Spanish")
        fake_groq.facts = '["Plays chess", "Speaks Spanish"]'

        result = await service.refresh_profile("user-1")

        assert result.facts_added == 2
        assert result.profile.message_count == 2
        assert result.to_dict()["factsAdded"] == 2

    @pytest.mark.asyncio
    async def test_refresh_without_messages(self, service: ChatService):
        result = await service.refresh_profile("user-1")

        assert result.facts_added == 0
        assert result.profile.facts == []


class TestCreateChatService:
    def test_requires_api_key(self, tmp_path: Path):
        settings = Settings(db_path=tmp_path / "mnemo.db")
        with pytest.raises(ValueError, match="GROQ_API_KEY"):
            create_chat_service(settings)

    def test_wires_components(self, tmp_path: Path, mock_client: AsyncMock):
        settings = Settings(
            db_path=tmp_path / "mnemo.db",
            model="test-model",
            max_facts=20,
            rebuild_batch_size=5,
            rebuild_batch_delay=0,
        )

        service = create_chat_service(settings, llm_client=mock_client)

        assert (tmp_path / "mnemo.db").exists()
        assert service.model == "test-model"
        assert service.memory.merger.max_facts == 20
        assert service.memory.batch_size == 5
        assert service.memory.extractor.model == "test-model"
        service.store.database.close()
