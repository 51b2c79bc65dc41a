"""Telegram bot integration for Mnemo."""

import logging

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from ..chat import ChatService, create_chat_service
from ..config import Settings, settings_from_env
from ..logging import get_logger
from ..memory import UserMemoryProfile

logger = logging.getLogger(__name__)


WELCOME_MESSAGE = """
🧠 *Mnemo*

I'm an assistant that gets to know you as we talk.

*Commands:*
/start - Show this message
/new - Start a new conversation
/profile - Show what I've learned about you
/refresh - Rebuild your profile from all your messages

Tell me anything. Ask "who am I?" whenever you're curious.
"""

MAX_MESSAGE_LENGTH = 4096


def truncate_message(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """Truncate message to fit Telegram limits."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 20] + "\n... [truncated]"


def format_profile(profile: UserMemoryProfile | None) -> str:
    """Format a memory profile as a Telegram message."""
    if profile is None or not profile.facts:
        return "I haven't learned anything about you yet. Tell me about yourself!"

    lines = [f"📝 What I know about you ({profile.message_count} messages):"]
    lines.extend(f"{i}. {fact}" for i, fact in enumerate(profile.facts, start=1))
    return truncate_message("\n".join(lines))


class TelegramBot:
    """Telegram bot for Mnemo.

    Each Telegram user has one memory profile; each chat has one active
    conversation until /new is sent.
    """

    def __init__(
        self,
        token: str | None = None,
        settings: Settings | None = None,
        service: ChatService | None = None,
    ) -> None:
        self.settings = settings or settings_from_env()
        self.token = token or self.settings.telegram_token
        if not self.token:
            raise ValueError("TELEGRAM_TOKEN not set")

        self.service = service or create_chat_service(self.settings)
        self.json_logger = get_logger()
        self._conversations: dict[str, str] = {}
        self._app: Application | None = None

    def _get_chat_id(self, update: Update) -> str:
        """Get chat_id as string from update."""
        assert update.effective_chat is not None
        return str(update.effective_chat.id)

    def _get_user_id(self, update: Update) -> str:
        """Get the sender's Telegram user id as string."""
        assert update.effective_user is not None
        return str(update.effective_user.id)

    def _conversation_for(self, chat_id: str, user_id: str) -> str:
        """Get the chat's active conversation, starting one if needed."""
        if chat_id not in self._conversations:
            conversation = self.service.start_conversation(user_id)
            self._conversations[chat_id] = conversation.id
        return self._conversations[chat_id]

    async def _handle_start(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /start command."""
        assert update.message is not None
        chat_id = self._get_chat_id(update)

        self.json_logger.log("telegram_start", user_id=self._get_user_id(update))

        self._conversation_for(chat_id, self._get_user_id(update))
        await update.message.reply_text(
            WELCOME_MESSAGE,
            parse_mode=ParseMode.MARKDOWN,
        )

    async def _handle_new(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /new command."""
        assert update.message is not None
        chat_id = self._get_chat_id(update)
        user_id = self._get_user_id(update)

        self._conversations.pop(chat_id, None)
        conversation_id = self._conversation_for(chat_id, user_id)

        self.json_logger.log(
            "telegram_new", user_id=user_id, conversation_id=conversation_id
        )
        await update.message.reply_text("✨ New conversation started.")

    async def _handle_profile(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /profile command."""
        assert update.message is not None
        profile = self.service.get_profile(self._get_user_id(update))
        await update.message.reply_text(format_profile(profile))

    async def _handle_refresh(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /refresh command."""
        assert update.message is not None
        user_id = self._get_user_id(update)

        try:
            result = await self.service.refresh_profile(user_id)
        except Exception as e:
            logger.exception("Error refreshing profile")
            self.json_logger.log("telegram_error", user_id=user_id, error=str(e))
            await update.message.reply_text(f"❌ Error: {e}")
            return

        await update.message.reply_text(
            f"Added {result.facts_added} fact(s).\n\n" + format_profile(result.profile)
        )

    async def _handle_message(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle incoming messages."""
        assert update.message is not None
        assert update.message.text is not None

        chat_id = self._get_chat_id(update)
        user_id = self._get_user_id(update)

        try:
            conversation_id = self._conversation_for(chat_id, user_id)

            await update.message.chat.send_action("typing")

            reply = await self.service.send_message(
                user_id, conversation_id, update.message.text
            )
            await update.message.reply_text(truncate_message(reply))

        except Exception as e:
            logger.exception("Error processing message")
            self.json_logger.log("telegram_error", user_id=user_id, error=str(e))
            await update.message.reply_text(f"❌ Error: {e}")

    async def _post_shutdown(self, application: Application) -> None:
        """Called after Application.shutdown()."""
        await self.service.memory.drain()
        self.service.store.database.close()

    def build_app(self) -> Application:
        """Build the Telegram application."""
        self._app = (
            Application.builder()
            .token(self.token)
            .post_shutdown(self._post_shutdown)
            .build()
        )

        self._app.add_handler(CommandHandler("start", self._handle_start))
        self._app.add_handler(CommandHandler("new", self._handle_new))
        self._app.add_handler(CommandHandler("profile", self._handle_profile))
        self._app.add_handler(CommandHandler("refresh", self._handle_refresh))
        self._app.add_handler(
            MessageHandler(filters.TEXT & ~filters.COMMAND, self._handle_message)
        )

        return self._app

    def run(self) -> None:
        """Run the bot (blocking)."""
        app = self.build_app()

        logger.info("Starting Telegram bot...")
        app.run_polling()
