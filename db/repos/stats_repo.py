from __future__ import annotations

import sqlite3
from typing import Any, Dict


class StatsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def network_stats(self, top_n: int = 10) -> Dict[str, Any]:
        """Aggregate counts over the stored network (read-only)."""
        cur = self.conn.cursor()
        total = int(cur.execute("SELECT COUNT(*) FROM profiles").fetchone()[0])
        partial = int(cur.execute("SELECT COUNT(*) FROM profiles WHERE is_partial = 1").fetchone()[0])

        top_companies = [
            {"company": r["company"], "count": int(r["n"])}
            for r in cur.execute(
                "SELECT current_company AS company, COUNT(*) AS n FROM profiles "
                "WHERE current_company IS NOT NULL AND current_company != '' "
                "GROUP BY current_company ORDER BY n DESC, current_company ASC LIMIT ?",
                (top_n,),
            ).fetchall()
        ]
        by_degree = [
            {"degree": int(r["degree"]), "count": int(r["n"])}
            for r in cur.execute(
                "SELECT connection_degree AS degree, COUNT(*) AS n FROM profiles "
                "WHERE connection_degree IS NOT NULL GROUP BY connection_degree ORDER BY connection_degree"
            ).fetchall()
        ]
        last_sync = cur.execute("SELECT synced_at FROM sync_log ORDER BY synced_at DESC LIMIT 1").fetchone()
        last_profile = cur.execute("SELECT scraped_at FROM profiles ORDER BY scraped_at DESC LIMIT 1").fetchone()
        return {
            "profiles": {"total": total, "partial": partial, "complete": total - partial},
            "posts": int(cur.execute("SELECT COUNT(*) FROM posts").fetchone()[0]),
            "messages": int(cur.execute("SELECT COUNT(*) FROM messages").fetchone()[0]),
            "top_companies": top_companies,
            "by_connection_degree": by_degree,
            "last_sync_at": last_sync[0] if last_sync else None,
            "last_profile_at": last_profile[0] if last_profile else None,
        }
