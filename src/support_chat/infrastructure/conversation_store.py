"""Conversation persistence service.

Stores conversations and their messages in SQLite.  Message order comes
from an autoincrement sequence column, so bursts of messages written within
the same millisecond still read back in insertion order.
"""

from __future__ import annotations

import sqlite3
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

from loguru import logger

from support_chat.domain.exceptions import ConversationNotFoundError, StorageError
from support_chat.domain.models import Conversation, Message, Sender

MEMORY_PATH = ":memory:"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS conversations (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS messages (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    conversation_id TEXT NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
    sender TEXT NOT NULL CHECK(sender IN ('user', 'assistant')),
    text TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_messages_conversation ON messages(conversation_id, seq);
CREATE INDEX IF NOT EXISTS idx_conversations_created_at ON conversations(created_at);
"""


def _utcnow() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ConversationStore:
    """CRUD operations for conversations stored in a dedicated SQLite file.

    Pass ``":memory:"`` as *db_path* for a throwaway in-memory database.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = db_path
        self.conn: sqlite3.Connection | None = None
        # One connection is shared across request threads
        self._lock = threading.RLock()

    @property
    def is_memory(self) -> bool:
        return str(self.db_path) == MEMORY_PATH

    def connect(self) -> None:
        """Open (or create) the database and ensure the schema exists."""
        try:
            if not self.is_memory:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            if not self.is_memory:
                self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA foreign_keys=ON")
            self.conn.executescript(_SCHEMA_SQL)
            self.conn.commit()
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(f"Failed to open conversation database at {self.db_path}: {exc}") from exc
        logger.info("Conversation DB ready at {}", self.db_path)

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    @contextmanager
    def _transaction(self, action: str) -> Iterator[sqlite3.Connection]:
        """Yield the connection; commit on success, roll back and wrap on failure."""
        if self.conn is None:
            raise StorageError(f"Cannot {action}: conversation database is not connected")
        with self._lock:
            try:
                yield self.conn
                self.conn.commit()
            except sqlite3.Error as exc:
                self.conn.rollback()
                raise StorageError(f"Failed to {action}: {exc}") from exc
            except Exception:
                self.conn.rollback()
                raise

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def create_conversation(self) -> Conversation:
        """Create a new, empty conversation and return it."""
        conversation = Conversation(id=str(uuid.uuid4()), created_at=_utcnow())
        with self._transaction("create conversation") as conn:
            conn.execute(
                "INSERT INTO conversations (id, created_at) VALUES (?, ?)",
                (conversation.id, conversation.created_at),
            )
        logger.info("Created new conversation {}", conversation.id)
        return conversation

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        """Return a conversation by ID, or None if not found."""
        with self._transaction("read conversation") as conn:
            row = conn.execute(
                "SELECT id, created_at FROM conversations WHERE id = ?", (conversation_id,)
            ).fetchone()
        if not row:
            return None
        return Conversation(id=row["id"], created_at=row["created_at"])

    def list_conversations(self) -> list[Conversation]:
        """Return all conversations, newest first."""
        with self._transaction("list conversations") as conn:
            rows = conn.execute(
                "SELECT id, created_at FROM conversations ORDER BY created_at DESC, rowid DESC"
            ).fetchall()
        return [Conversation(id=row["id"], created_at=row["created_at"]) for row in rows]

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation and its messages. Returns True if anything was removed."""
        with self._transaction("delete conversation") as conn:
            cursor = conn.execute("DELETE FROM conversations WHERE id = ?", (conversation_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted conversation {}", conversation_id)
        return deleted

    def clear(self) -> None:
        """Remove every conversation and message. Intended for tests."""
        with self._transaction("clear database") as conn:
            conn.execute("DELETE FROM messages")
            conn.execute("DELETE FROM conversations")

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def append_message(self, conversation_id: str, sender: Sender, text: str) -> Message:
        """Persist a message at the end of a conversation and return it.

        Raises:
            ConversationNotFoundError: If the conversation does not exist.
            StorageError: On any database failure.
        """
        message = Message(
            id=str(uuid.uuid4()),
            conversation_id=conversation_id,
            sender=sender,
            text=text,
            created_at=_utcnow(),
        )
        with self._transaction("save message") as conn:
            self._require_conversation(conn, conversation_id)
            conn.execute(
                "INSERT INTO messages (id, conversation_id, sender, text, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (message.id, conversation_id, sender, text, message.created_at),
            )
        return message

    def list_messages(self, conversation_id: str) -> list[Message]:
        """Return all messages in a conversation, in insertion order.

        Raises:
            ConversationNotFoundError: If the conversation does not exist.
            StorageError: On any database failure.
        """
        with self._transaction("read messages") as conn:
            self._require_conversation(conn, conversation_id)
            rows = conn.execute(
                "SELECT id, conversation_id, sender, text, created_at FROM messages "
                "WHERE conversation_id = ? ORDER BY seq ASC",
                (conversation_id,),
            ).fetchall()
        return [self._row_to_message(row) for row in rows]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_conversation(conn: sqlite3.Connection, conversation_id: str) -> None:
        row = conn.execute(
            "SELECT 1 FROM conversations WHERE id = ?", (conversation_id,)
        ).fetchone()
        if not row:
            raise ConversationNotFoundError(conversation_id)

    @staticmethod
    def _row_to_message(row: sqlite3.Row) -> Message:
        return Message(
            id=row["id"],
            conversation_id=row["conversation_id"],
            sender=row["sender"],
            text=row["text"],
            created_at=row["created_at"],
        )
