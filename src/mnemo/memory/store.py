"""SQLite storage for user memory profiles."""

import json
import sqlite3
from datetime import datetime

from ..db import Database, from_db_time, new_id, to_db_time, utcnow
from .models import UnprocessedMessage, UserFact, UserMemoryProfile

_UNSET = object()


class MemoryNotFoundError(LookupError):
    """Raised when updating a profile that does not exist."""


def _decode_facts(raw: str | None) -> list[UserFact]:
    try:
        facts = json.loads(raw) if raw else []
    except json.JSONDecodeError:
        return []
    if not isinstance(facts, list):
        return []
    return [f for f in facts if isinstance(f, str)]


class MemoryStore:
    """Persistent storage for per-user memory profiles.

    There is at most one profile per user, enforced by a unique
    constraint on user_id.
    """

    def __init__(self, database: Database) -> None:
        """Initialize the store.

        Args:
            database: The shared database holding the user_memory table.
        """
        self.database = database

    def get_memory(self, user_id: str) -> UserMemoryProfile | None:
        """Get the profile for a user.

        Args:
            user_id: The owner of the profile.

        Returns:
            The profile, or None if the user has none yet.
        """
        conn = self.database.connection()
        cursor = conn.execute(
            """
            SELECT id, user_id, facts, message_count, last_processed_at,
                   created_at, updated_at
            FROM user_memory WHERE user_id = ?
            """,
            (user_id,),
        )
        row = cursor.fetchone()
        return self._row_to_profile(row) if row else None

    def create_memory(self, user_id: str) -> UserMemoryProfile:
        """Create an empty profile.

        Args:
            user_id: The owner of the new profile.

        Returns:
            The created profile.

        Raises:
            sqlite3.IntegrityError: If the user already has a profile.
        """
        conn = self.database.connection()
        now = to_db_time(utcnow())
        try:
            conn.execute(
                """
                INSERT INTO user_memory
                    (id, user_id, facts, message_count, last_processed_at,
                     created_at, updated_at)
                VALUES (?, ?, '[]', 0, NULL, ?, ?)
                """,
                (new_id(), user_id, now, now),
            )
            conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            raise

        profile = self.get_memory(user_id)
        assert profile is not None
        return profile

    def get_or_create(self, user_id: str) -> UserMemoryProfile:
        """Get the profile for a user, creating it if needed.

        A concurrent creation for the same user is resolved by rereading
        the row that won.
        """
        profile = self.get_memory(user_id)
        if profile is not None:
            return profile

        try:
            return self.create_memory(user_id)
        except sqlite3.IntegrityError:
            profile = self.get_memory(user_id)
            if profile is None:
                raise
            return profile

    def update_memory(
        self,
        user_id: str,
        *,
        facts: list[UserFact] | None = None,
        message_count: int | None = None,
        last_processed_at: datetime | None | object = _UNSET,
        updated_at: datetime | None = None,
    ) -> UserMemoryProfile:
        """Apply a partial update to a profile.

        Only the given fields are written; updated_at always advances
        (to now unless given).

        Returns:
            The profile as stored after the update.

        Raises:
            MemoryNotFoundError: If the user has no profile.
        """
        assignments = ["updated_at = ?"]
        params: list[object] = [to_db_time(updated_at or utcnow())]

        if facts is not None:
            assignments.append("facts = ?")
            params.append(json.dumps(facts, ensure_ascii=False))
        if message_count is not None:
            assignments.append("message_count = ?")
            params.append(message_count)
        if last_processed_at is not _UNSET:
            assignments.append("last_processed_at = ?")
            params.append(
                to_db_time(last_processed_at) if last_processed_at is not None else None  # type: ignore[arg-type]
            )

        conn = self.database.connection()
        cursor = conn.execute(
            f"UPDATE user_memory SET {', '.join(assignments)} WHERE user_id = ?",
            (*params, user_id),
        )
        conn.commit()

        if cursor.rowcount == 0:
            raise MemoryNotFoundError(f"No memory profile for user {user_id}")

        profile = self.get_memory(user_id)
        assert profile is not None
        return profile

    def get_unprocessed_messages(
        self, user_id: str, limit: int | None = None
    ) -> list[UnprocessedMessage]:
        """Get the user's messages that memory has not seen yet.

        Only user-authored messages count, across all of the user's
        conversations, oldest first. When the profile has a watermark,
        only messages strictly newer than it are returned.

        Args:
            user_id: The user whose messages to select.
            limit: Optional maximum number of messages.

        Returns:
            Unprocessed messages in ascending creation order.
        """
        memory = self.get_memory(user_id)

        query = """
            SELECT m.id, m.content, m.created_at
            FROM messages m
            JOIN conversations c ON m.conversation_id = c.id
            WHERE c.user_id = ? AND m.role = 'user'
        """
        params: list[object] = [user_id]

        if memory is not None and memory.last_processed_at is not None:
            query += " AND m.created_at > ?"
            params.append(to_db_time(memory.last_processed_at))

        query += " ORDER BY m.created_at, m.rowid"

        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        conn = self.database.connection()
        cursor = conn.execute(query, params)
        return [
            UnprocessedMessage(
                id=row["id"],
                content=row["content"],
                created_at=from_db_time(row["created_at"]),  # type: ignore[arg-type]
            )
            for row in cursor.fetchall()
        ]

    def _row_to_profile(self, row: sqlite3.Row) -> UserMemoryProfile:
        """Convert a database row to a UserMemoryProfile."""
        return UserMemoryProfile(
            id=row["id"],
            user_id=row["user_id"],
            facts=_decode_facts(row["facts"]),
            message_count=row["message_count"],
            last_processed_at=from_db_time(row["last_processed_at"]),
            created_at=from_db_time(row["created_at"]),
            updated_at=from_db_time(row["updated_at"]),
        )
