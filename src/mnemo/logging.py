"""JSONL event logging for observability."""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass
class LogEntry:
    """A single log entry."""

    timestamp: str
    event: str
    user_id: str | None = None
    conversation_id: str | None = None
    duration_ms: float | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None and v != {} and v != []}


class JSONLLogger:
    """Logger that writes structured events in JSONL format."""

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "events.jsonl",
        max_size_mb: float = 10.0,
    ) -> None:
        if log_dir is None:
            log_dir = Path.home() / ".mnemo" / "logs"
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename = filename
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)

    @property
    def log_path(self) -> Path:
        """Current log file path."""
        return self.log_dir / self.filename

    def _rotate_if_needed(self) -> None:
        """Rotate log file if it exceeds max size."""
        if not self.log_path.exists():
            return

        if self.log_path.stat().st_size >= self.max_size_bytes:
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
            rotated_name = f"{self.log_path.stem}_{timestamp}.jsonl"
            self.log_path.rename(self.log_dir / rotated_name)

    def _write(self, entry: LogEntry) -> None:
        """Write a log entry to the file."""
        self._rotate_if_needed()

        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry.to_dict(), ensure_ascii=False, default=str) + "\n")

    def log(
        self,
        event: str,
        *,
        user_id: str | None = None,
        conversation_id: str | None = None,
        duration_ms: float | None = None,
        error: str | None = None,
        **extra: Any,
    ) -> None:
        """Log an event."""
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            user_id=user_id,
            conversation_id=conversation_id,
            duration_ms=duration_ms,
            error=error,
            extra=extra if extra else {},
        )
        self._write(entry)

    def log_memory_update(
        self,
        user_id: str,
        *,
        facts_before: int,
        facts_after: int,
        message_count: int,
        duration_ms: float | None = None,
    ) -> None:
        """Log a completed incremental memory update."""
        self.log(
            "memory_update",
            user_id=user_id,
            duration_ms=duration_ms,
            facts_before=facts_before,
            facts_after=facts_after,
            message_count=message_count,
        )

    def log_rebuild(
        self,
        user_id: str,
        *,
        messages: int,
        batches: int,
        facts_added: int,
        duration_ms: float | None = None,
    ) -> None:
        """Log a full memory rebuild."""
        self.log(
            "memory_rebuild",
            user_id=user_id,
            duration_ms=duration_ms,
            messages=messages,
            batches=batches,
            facts_added=facts_added,
        )

    def log_chat_turn(
        self,
        user_id: str,
        conversation_id: str,
        *,
        self_inquiry: bool,
        duration_ms: float | None = None,
    ) -> None:
        """Log a completed chat turn."""
        self.log(
            "chat_turn",
            user_id=user_id,
            conversation_id=conversation_id,
            duration_ms=duration_ms,
            self_inquiry=self_inquiry,
        )


# Global logger instance
_logger: JSONLLogger | None = None


def get_logger() -> JSONLLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        _logger = JSONLLogger()
    return _logger


def configure_logger(log_dir: str | Path | None = None, max_size_mb: float = 10.0) -> JSONLLogger:
    """Configure and return the global logger."""
    global _logger
    _logger = JSONLLogger(log_dir=log_dir, max_size_mb=max_size_mb)
    return _logger
