"""Memory manager orchestrating extraction, merging and storage."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING

from ..db import as_utc, utcnow
from ..logging import get_logger
from .models import RefreshResult, UserMemoryProfile
from .store import MemoryStore

if TYPE_CHECKING:
    from .extractor import FactExtractor
    from .merger import FactMerger

logger = logging.getLogger(__name__)


def _advance(watermark: datetime | None, candidate: datetime) -> datetime:
    """Move a watermark forward, never backward."""
    if watermark is None or candidate > watermark:
        return candidate
    return watermark


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 1)


class MemoryManager:
    """Keeps each user's memory profile in sync with their messages.

    This is the main interface for the memory system: incremental updates
    after each message, full rebuilds on demand, and background scheduling
    of updates so they never block a reply.
    """

    def __init__(
        self,
        store: MemoryStore,
        extractor: FactExtractor,
        merger: FactMerger,
        batch_size: int = 10,
        batch_delay: float = 0.5,
    ) -> None:
        """Initialize the manager.

        Args:
            store: The MemoryStore for persistence.
            extractor: Extracts facts from message text.
            merger: Consolidates new facts into existing ones.
            batch_size: Messages per extraction call during a rebuild.
            batch_delay: Seconds to sleep between rebuild batches.
        """
        self.store = store
        self.extractor = extractor
        self.merger = merger
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self._pending: set[asyncio.Task] = set()
        self._locks: dict[str, asyncio.Lock] = {}

    def get_or_create(self, user_id: str) -> UserMemoryProfile:
        """Get the user's profile, creating an empty one if needed."""
        return self.store.get_or_create(user_id)

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        """Per-user lock serializing read-modify-write cycles on a profile."""
        return self._locks.setdefault(user_id, asyncio.Lock())

    async def update_from_message(
        self,
        user_id: str,
        content: str,
        message_timestamp: datetime | None = None,
    ) -> UserMemoryProfile:
        """Fold one new user message into the user's memory.

        Updates for the same user run one at a time, so concurrent
        messages never overwrite each other's facts.

        Args:
            user_id: The author of the message.
            content: The message text.
            message_timestamp: When the message was saved. Messages at or
                before the profile's watermark are skipped. Naive values
                are taken to be UTC.

        Returns:
            The profile after the update, or unchanged if skipped.
        """
        if message_timestamp is not None:
            message_timestamp = as_utc(message_timestamp)

        async with self._lock_for(user_id):
            return await self._update_from_message(user_id, content, message_timestamp)

    async def _update_from_message(
        self,
        user_id: str,
        content: str,
        message_timestamp: datetime | None,
    ) -> UserMemoryProfile:
        start = time.monotonic()
        memory = self.store.get_or_create(user_id)

        if (
            message_timestamp is not None
            and memory.last_processed_at is not None
            and message_timestamp <= memory.last_processed_at
        ):
            logger.info(f"Skipping already processed message for user {user_id}")
            get_logger().log("memory_skip", user_id=user_id)
            return memory

        new_facts = await self.extractor.extract(content)
        watermark = _advance(memory.last_processed_at, message_timestamp or utcnow())

        if new_facts:
            merged = await self.merger.merge(memory.facts, new_facts)
            updated = self.store.update_memory(
                user_id,
                facts=merged[: self.merger.max_facts],
                message_count=memory.message_count + 1,
                last_processed_at=watermark,
            )
        else:
            updated = self.store.update_memory(
                user_id,
                message_count=memory.message_count + 1,
                last_processed_at=watermark,
            )

        get_logger().log_memory_update(
            user_id,
            facts_before=len(memory.facts),
            facts_after=len(updated.facts),
            message_count=updated.message_count,
            duration_ms=_elapsed_ms(start),
        )
        return updated

    async def rebuild(self, user_id: str) -> RefreshResult:
        """Process every message memory has not seen yet.

        Messages are extracted in batches and merged into the existing
        facts once at the end. The watermark moves to the newest
        processed message.

        Args:
            user_id: The user whose memory to rebuild.

        Returns:
            The stored profile and how many facts were added.
        """
        async with self._lock_for(user_id):
            return await self._rebuild(user_id)

    async def _rebuild(self, user_id: str) -> RefreshResult:
        start = time.monotonic()
        memory = self.store.get_or_create(user_id)
        messages = self.store.get_unprocessed_messages(user_id)

        if not messages:
            logger.info(f"No unprocessed messages for user {user_id}")
            return RefreshResult(profile=memory, facts_added=0)

        logger.info(f"Rebuilding memory for user {user_id} from {len(messages)} message(s)")

        all_facts: list[str] = []
        batches = 0
        for i in range(0, len(messages), self.batch_size):
            batch = messages[i : i + self.batch_size]
            all_facts.extend(
                await self.extractor.extract_batch([m.content for m in batch])
            )
            batches += 1

            # Stay under the provider's rate limit
            if i + self.batch_size < len(messages):
                await asyncio.sleep(self.batch_delay)

        merged = await self.merger.merge(memory.facts, all_facts)
        updated = self.store.update_memory(
            user_id,
            facts=merged[: self.merger.max_facts],
            message_count=memory.message_count + len(messages),
            last_processed_at=_advance(memory.last_processed_at, messages[-1].created_at),
        )

        facts_added = max(0, len(updated.facts) - len(memory.facts))
        get_logger().log_rebuild(
            user_id,
            messages=len(messages),
            batches=batches,
            facts_added=facts_added,
            duration_ms=_elapsed_ms(start),
        )
        return RefreshResult(profile=updated, facts_added=facts_added)

    def schedule_update(
        self,
        user_id: str,
        content: str,
        message_timestamp: datetime | None = None,
    ) -> asyncio.Task:
        """Run update_from_message in the background.

        The caller does not await the task. Failures are logged and
        never propagate.

        Returns:
            The scheduled task.
        """
        task = asyncio.create_task(
            self.update_from_message(user_id, content, message_timestamp)
        )
        self._pending.add(task)
        task.add_done_callback(lambda t: self._on_update_done(t, user_id))
        return task

    def _on_update_done(self, task: asyncio.Task, user_id: str) -> None:
        """Log the outcome of a background update."""
        self._pending.discard(task)

        if task.cancelled():
            return

        error = task.exception()
        if error is not None:
            logger.exception(
                f"Background memory update failed for user {user_id}", exc_info=error
            )
            get_logger().log("memory_update_failed", user_id=user_id, error=str(error))

    async def drain(self) -> None:
        """Wait for all background updates to finish."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
