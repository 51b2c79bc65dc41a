"""Mnemo entry point."""

import asyncio
import logging
import sys

from dotenv import find_dotenv, load_dotenv

from .cli import run_cli


def main() -> None:
    """Main entry point."""
    load_dotenv(find_dotenv(usecwd=True))
    run_bot = len(sys.argv) > 1 and sys.argv[1] == "bot"

    # The interactive CLI only surfaces warnings on stderr
    logging.basicConfig(
        level=logging.INFO if run_bot else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if run_bot:
        from .config import settings_from_env
        from .logging import configure_logger
        from .telegram import TelegramBot

        settings = settings_from_env()
        configure_logger(settings.log_dir)

        if not settings.groq_api_key:
            print("❌ Error: GROQ_API_KEY environment variable not set")
            sys.exit(1)

        bot = TelegramBot(settings=settings)
        bot.run()
        return

    asyncio.run(run_cli())


if __name__ == "__main__":
    main()
