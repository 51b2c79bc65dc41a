"""Runtime configuration loaded from environment variables."""

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_MODEL = "llama-3.3-70b-versatile"
DEFAULT_HOME = Path.home() / ".mnemo"


@dataclass
class Settings:
    """Configuration for the chat service and memory engine.

    Attributes:
        groq_api_key: API key for the Groq completion endpoint.
        model: Model used for replies, extraction and merging.
        db_path: SQLite database holding conversations and memory.
        log_dir: Directory for the JSONL event log.
        telegram_token: Bot token, only needed for `mnemo bot`.
        user_id: Identity used by the local CLI.
        max_facts: Upper bound on stored facts per user.
        rebuild_batch_size: Messages per extraction call during a rebuild.
        rebuild_batch_delay: Seconds to wait between rebuild batches.
    """

    groq_api_key: str | None = None
    model: str = DEFAULT_MODEL
    db_path: Path | None = None
    log_dir: Path | None = None
    telegram_token: str | None = None
    user_id: str = "local"
    max_facts: int = 50
    rebuild_batch_size: int = 10
    rebuild_batch_delay: float = 0.5

    def __post_init__(self) -> None:
        """Validate config and set defaults."""
        if self.db_path is None:
            self.db_path = DEFAULT_HOME / "mnemo.db"

        if self.log_dir is None:
            self.log_dir = DEFAULT_HOME / "logs"

        if self.max_facts < 1:
            raise ValueError("max_facts must be at least 1")

        if self.rebuild_batch_size < 1:
            raise ValueError("rebuild_batch_size must be at least 1")

        if self.rebuild_batch_delay < 0:
            raise ValueError("rebuild_batch_delay cannot be negative")

    def require_api_key(self) -> str:
        """Return the Groq API key or fail if it is missing."""
        if not self.groq_api_key:
            raise ValueError("GROQ_API_KEY not set")
        return self.groq_api_key


def _path_from_env(name: str) -> Path | None:
    value = os.getenv(name)
    return Path(value).expanduser() if value else None


def settings_from_env() -> Settings:
    """Load settings from environment variables."""
    return Settings(
        groq_api_key=os.getenv("GROQ_API_KEY") or None,
        model=os.getenv("GROQ_MODEL", DEFAULT_MODEL),
        db_path=_path_from_env("MNEMO_DB_PATH"),
        log_dir=_path_from_env("MNEMO_LOG_DIR"),
        telegram_token=os.getenv("TELEGRAM_TOKEN") or None,
        user_id=os.getenv("MNEMO_USER_ID", "local"),
        max_facts=int(os.getenv("MNEMO_MAX_FACTS", "50")),
        rebuild_batch_size=int(os.getenv("MNEMO_REBUILD_BATCH_SIZE", "10")),
        rebuild_batch_delay=float(os.getenv("MNEMO_REBUILD_BATCH_DELAY", "0.5")),
    )
