from __future__ import annotations

import sqlite3
from typing import Any, Dict, Optional

from utils.time_utils import utc_now_iso


class SyncLogRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def record(self, kind: str, count: int, synced_at: Optional[str] = None) -> int:
        cur = self.conn.execute(
            "INSERT INTO sync_log (type, count, synced_at) VALUES (?, ?, ?)",
            (kind, int(count), synced_at or utc_now_iso()),
        )
        return int(cur.lastrowid)

    def last(self, kind: Optional[str] = None) -> Optional[Dict[str, Any]]:
        if kind:
            row = self.conn.execute(
                "SELECT id, type, count, synced_at FROM sync_log WHERE type = ? ORDER BY synced_at DESC, id DESC LIMIT 1",
                (kind,),
            ).fetchone()
        else:
            row = self.conn.execute(
                "SELECT id, type, count, synced_at FROM sync_log ORDER BY synced_at DESC, id DESC LIMIT 1"
            ).fetchone()
        return dict(row) if row else None

    def sync_status(self) -> Dict[str, Any]:
        total = self.conn.execute("SELECT COUNT(*) FROM profiles").fetchone()[0]
        return {"last_sync": self.last(), "total_profiles": int(total)}
