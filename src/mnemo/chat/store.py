"""SQLite storage for conversations and messages."""

import sqlite3
from datetime import timedelta

from ..db import Database, from_db_time, new_id, to_db_time, utcnow
from .models import Conversation, Message


class ChatStore:
    """Persistent storage for conversations and their messages.

    Message timestamps are strictly increasing across the database, so
    ordering by created_at matches insertion order.
    """

    def __init__(self, database: Database) -> None:
        """Initialize the store.

        Args:
            database: The shared database.
        """
        self.database = database

    def create_conversation(self, user_id: str) -> Conversation:
        """Create an untitled conversation for a user."""
        conversation = Conversation(id=new_id(), user_id=user_id, created_at=utcnow())
        conn = self.database.connection()
        conn.execute(
            "INSERT INTO conversations (id, user_id, title, created_at) VALUES (?, ?, NULL, ?)",
            (conversation.id, user_id, to_db_time(conversation.created_at)),
        )
        conn.commit()
        return conversation

    def get_conversation(self, conversation_id: str, user_id: str) -> Conversation | None:
        """Get a conversation if it exists and belongs to the user."""
        conn = self.database.connection()
        cursor = conn.execute(
            "SELECT id, user_id, title, created_at FROM conversations WHERE id = ? AND user_id = ?",
            (conversation_id, user_id),
        )
        row = cursor.fetchone()
        return self._row_to_conversation(row) if row else None

    def list_conversations(self, user_id: str) -> list[Conversation]:
        """List a user's conversations, newest first."""
        conn = self.database.connection()
        cursor = conn.execute(
            """
            SELECT id, user_id, title, created_at FROM conversations
            WHERE user_id = ? ORDER BY created_at DESC, rowid DESC
            """,
            (user_id,),
        )
        return [self._row_to_conversation(row) for row in cursor.fetchall()]

    def set_title(self, conversation_id: str, title: str) -> None:
        """Set the title of a conversation."""
        conn = self.database.connection()
        conn.execute(
            "UPDATE conversations SET title = ? WHERE id = ?", (title, conversation_id)
        )
        conn.commit()

    def add_message(self, conversation_id: str, role: str, content: str) -> Message:
        """Append a message to a conversation.

        The timestamp is the current time, bumped past the newest stored
        message if the clock has not moved forward.

        Returns:
            The stored message.
        """
        conn = self.database.connection()
        latest = from_db_time(
            conn.execute("SELECT MAX(created_at) FROM messages").fetchone()[0]
        )
        created_at = utcnow()
        if latest is not None and created_at <= latest:
            created_at = latest + timedelta(microseconds=1)

        message = Message(
            id=new_id(),
            conversation_id=conversation_id,
            role=role,
            content=content,
            created_at=created_at,
        )
        conn.execute(
            """
            INSERT INTO messages (id, conversation_id, role, content, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (message.id, conversation_id, role, content, to_db_time(created_at)),
        )
        conn.commit()
        return message

    def list_messages(self, conversation_id: str) -> list[Message]:
        """List a conversation's messages, oldest first."""
        conn = self.database.connection()
        cursor = conn.execute(
            """
            SELECT id, conversation_id, role, content, created_at FROM messages
            WHERE conversation_id = ? ORDER BY created_at, rowid
            """,
            (conversation_id,),
        )
        return [
            Message(
                id=row["id"],
                conversation_id=row["conversation_id"],
                role=row["role"],
                content=row["content"],
                created_at=from_db_time(row["created_at"]),  # type: ignore[arg-type]
            )
            for row in cursor.fetchall()
        ]

    def _row_to_conversation(self, row: sqlite3.Row) -> Conversation:
        return Conversation(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            created_at=from_db_time(row["created_at"]),  # type: ignore[arg-type]
        )
