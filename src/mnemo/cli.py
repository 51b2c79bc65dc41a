"""CLI interface for Mnemo."""

from .chat import ChatService, create_chat_service
from .config import Settings, settings_from_env
from .logging import configure_logger, get_logger
from .memory import UserMemoryProfile

BANNER = """
╔══════════════════════════════════════════╗
║              🧠 Mnemo v0.1.0             ║
║     A chat assistant that remembers      ║
╚══════════════════════════════════════════╝

Commands:
  /new          - Start a new conversation
  /profile      - Show what I've learned about you
  /refresh      - Rebuild your profile from all your messages
  /exit, /quit  - Exit the CLI
  /help         - Show this help

Type your message and press Enter.
"""


def format_profile(profile: UserMemoryProfile | None) -> str:
    """Format a memory profile for display."""
    if profile is None or not profile.facts:
        return "I haven't learned anything about you yet."

    lines = [f"What I know about you ({profile.message_count} messages analyzed):"]
    lines.extend(f"  {i}. {fact}" for i, fact in enumerate(profile.facts, start=1))
    return "\n".join(lines)


class CLI:
    """Interactive command-line interface for Mnemo."""

    def __init__(
        self,
        service: ChatService | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or settings_from_env()
        self.service = service or create_chat_service(self.settings)
        self.user_id = self.settings.user_id
        self.conversation_id: str | None = None
        self.logger = get_logger()

    def _new_conversation(self) -> None:
        """Start a fresh conversation."""
        conversation = self.service.start_conversation(self.user_id)
        self.conversation_id = conversation.id
        self.logger.log(
            "cli_new_conversation",
            user_id=self.user_id,
            conversation_id=conversation.id,
        )

    def _format_response(self, response: str) -> str:
        """Format the assistant's reply for display."""
        return "\n".join(["\n" + "─" * 40, response, "─" * 40])

    async def _process_message(self, message: str) -> None:
        """Send a user message and print the reply."""
        if self.conversation_id is None:
            self._new_conversation()

        assert self.conversation_id is not None

        try:
            reply = await self.service.send_message(
                self.user_id, self.conversation_id, message
            )
            print(self._format_response(reply))
        except Exception as e:
            print(f"\n❌ Error: {e}")
            self.logger.log(
                "chat_error",
                user_id=self.user_id,
                conversation_id=self.conversation_id,
                error=str(e),
            )

    async def _refresh(self) -> None:
        """Rebuild the profile and report what changed."""
        print("\n📝 Rebuilding your profile...")
        try:
            result = await self.service.refresh_profile(self.user_id)
        except Exception as e:
            print(f"❌ Refresh failed: {e}")
            self.logger.log("chat_error", user_id=self.user_id, error=str(e))
            return

        print(f"   Added {result.facts_added} fact(s)")
        print(format_profile(result.profile))

    async def _handle_command(self, command: str) -> bool:
        """Handle a special command. Returns True if should continue, False to exit."""
        cmd = command.lower().strip()

        if cmd in ("/exit", "/quit", "exit", "quit"):
            print("\n👋 Goodbye!")
            return False

        if cmd == "/new":
            self._new_conversation()
            print("\n✓ New conversation started.")
            return True

        if cmd == "/profile":
            # Let in-flight updates land before showing the profile
            await self.service.memory.drain()
            print("\n" + format_profile(self.service.get_profile(self.user_id)))
            return True

        if cmd == "/refresh":
            await self._refresh()
            return True

        if cmd == "/help":
            print(BANNER)
            return True

        return True  # Unknown command, continue

    async def run(self) -> None:
        """Run the interactive CLI."""
        print(BANNER)
        self.logger.log("cli_session_start", user_id=self.user_id)

        try:
            while True:
                try:
                    user_input = input("you> ").strip()

                    if not user_input:
                        continue

                    if user_input.startswith("/") or user_input.lower() in ("exit", "quit"):
                        if not await self._handle_command(user_input):
                            break
                        continue

                    await self._process_message(user_input)

                except (KeyboardInterrupt, EOFError):
                    print("\n👋 Goodbye!")
                    break
        finally:
            await self.service.memory.drain()
            self.service.store.database.close()


async def run_cli() -> None:
    """Run the CLI with configuration from the environment."""
    settings = settings_from_env()
    configure_logger(settings.log_dir)

    if not settings.groq_api_key:
        print("❌ Error: GROQ_API_KEY environment variable not set")
        print("Please set it in your .env file or environment")
        return

    cli = CLI(settings=settings)
    await cli.run()
