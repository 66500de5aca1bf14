from __future__ import annotations

import sqlite3
from typing import Any, Dict, List, Optional

from models.content import MessageObservation
from utils.time_utils import utc_now_iso


class MessagesRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def upsert(
        self,
        message: MessageObservation,
        profile_id: Optional[str] = None,
        contact_public_identifier: Optional[str] = None,
    ) -> None:
        """Insert a message or refresh its content/read flag by id."""
        self.conn.execute(
            (
                "INSERT INTO messages ("
                "  id, conversation_id, profile_id, contact_public_identifier, direction,"
                "  content, sent_at, is_read, scraped_at"
                ") VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET "
                "  profile_id = COALESCE(excluded.profile_id, messages.profile_id),"
                "  content = excluded.content,"
                "  is_read = excluded.is_read,"
                "  scraped_at = excluded.scraped_at"
            ),
            (
                message.id,
                message.conversation_id,
                profile_id,
                contact_public_identifier,
                message.direction,
                message.content,
                message.sent_at,
                1 if message.is_read else 0,
                message.scraped_at or utc_now_iso(),
            ),
        )

    def get(self, message_id: str) -> Optional[Dict[str, Any]]:
        row = self.conn.execute("SELECT * FROM messages WHERE id = ?", (message_id,)).fetchone()
        return dict(row) if row else None

    def list_for_conversation(self, conversation_id: str) -> List[Dict[str, Any]]:
        rows = self.conn.execute(
            "SELECT * FROM messages WHERE conversation_id = ? ORDER BY sent_at ASC, id",
            (conversation_id,),
        ).fetchall()
        return [dict(r) for r in rows]

    def count(self) -> int:
        return int(self.conn.execute("SELECT COUNT(*) FROM messages").fetchone()[0])
