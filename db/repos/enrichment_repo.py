from __future__ import annotations

import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from db.connection import transaction
from db.repos.profiles_repo import ProfilesRepo
from models.enrichment import EnrichmentTask, QueueStatus
from services.domain_utils import normalize_public_identifier, profile_url_for
from services.profile_cache import ProfileCache
from utils.time_utils import utc_iso_seconds_ago, utc_now_iso


MAX_ATTEMPTS = 3

_TASK_COLUMNS = (
    "id, public_identifier, url, status, attempts, queued_at, started_at, completed_at, last_error"
)


def _row_to_task(row: sqlite3.Row) -> EnrichmentTask:
    return EnrichmentTask.model_validate({key: row[key] for key in row.keys()})


class EnrichmentQueueRepo:
    """Durable work queue: at most one task per profile, bounded retries.

    pending -> processing -> completed
                          -> pending   (failure, attempts < MAX_ATTEMPTS)
                          -> failed    (failure, attempts >= MAX_ATTEMPTS)
    completed/failed -> pending only through an explicit enqueue().
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        max_attempts: int = MAX_ATTEMPTS,
        stale_after_seconds: Optional[int] = None,
        cache: Optional[ProfileCache] = None,
    ):
        self.conn = conn
        self.max_attempts = max_attempts
        self.stale_after_seconds = stale_after_seconds
        self.cache = cache

    # --- Writes ---
    def enqueue(self, public_identifier: str, url: Optional[str] = None) -> bool:
        """Queue a profile for enrichment. Returns True when a task was created or re-armed.

        Active (pending/processing) tasks are left untouched.
        """
        key = normalize_public_identifier(public_identifier)
        if not key:
            raise ValueError("public_identifier is required")
        now = utc_now_iso()
        cur = self.conn.execute(
            (
                "INSERT INTO enrichment_queue (public_identifier, url, status, attempts, queued_at) "
                "VALUES (?, ?, 'pending', 0, ?) "
                "ON CONFLICT(public_identifier) DO UPDATE SET "
                "  status = 'pending', attempts = 0, queued_at = excluded.queued_at, url = excluded.url, "
                "  started_at = NULL, completed_at = NULL, last_error = NULL "
                "WHERE enrichment_queue.status IN ('completed', 'failed')"
            ),
            (key, url or profile_url_for(key), now),
        )
        return cur.rowcount > 0

    def enqueue_many(self, public_identifiers: Iterable[str]) -> int:
        """Bulk enqueue in one transaction; blank keys are skipped. Returns accepted count."""
        accepted = 0
        with transaction(self.conn):
            for raw in public_identifiers:
                if not normalize_public_identifier(raw):
                    continue
                if self.enqueue(raw):
                    accepted += 1
        return accepted

    def claim_next(self) -> Optional[EnrichmentTask]:
        """Atomically move the oldest eligible task to processing and return it.

        Selection and transition are one statement, so two consumers can never
        claim the same task. Returns None when nothing is eligible.
        """
        now = utc_now_iso()
        eligible = "(status = 'pending' AND attempts < ?)"
        params: List[Any] = [now, self.max_attempts]
        if self.stale_after_seconds:
            eligible = (
                "((status = 'pending' AND attempts < ?) "
                "OR (status = 'processing' AND attempts < ? AND started_at < ?))"
            )
            params.extend([self.max_attempts, utc_iso_seconds_ago(self.stale_after_seconds, now)])
        sql = (
            "UPDATE enrichment_queue "
            "SET status = 'processing', started_at = ?, attempts = attempts + 1 "
            f"WHERE id = (SELECT id FROM enrichment_queue WHERE {eligible} ORDER BY queued_at ASC, id ASC LIMIT 1) "
            f"  AND {eligible} "
            f"RETURNING {_TASK_COLUMNS}"
        )
        # Eligibility is re-checked in the outer WHERE
        params = params + params[1:]
        rows = self.conn.execute(sql, params).fetchall()
        return _row_to_task(rows[0]) if rows else None

    def complete(self, public_identifier: str, success: bool, error: Optional[str] = None) -> bool:
        """Report the outcome of a claimed task. Returns False when no task matched.

        Success also flips the profile to full, in the same transaction.
        """
        key = normalize_public_identifier(public_identifier)
        if not key:
            return False
        now = utc_now_iso()
        if success:
            with transaction(self.conn):
                cur = self.conn.execute(
                    "UPDATE enrichment_queue SET status = 'completed', completed_at = ?, last_error = NULL "
                    "WHERE public_identifier = ?",
                    (now, key),
                )
                if cur.rowcount == 0:
                    return False
                ProfilesRepo(self.conn).mark_full(key, now)
            if self.cache is not None:
                self.cache.invalidate(key)
            return True
        cur = self.conn.execute(
            (
                "UPDATE enrichment_queue SET "
                "  status = CASE WHEN attempts >= ? THEN 'failed' ELSE 'pending' END, "
                "  last_error = ? "
                "WHERE public_identifier = ? AND status IN ('pending', 'processing')"
            ),
            (self.max_attempts, error or "Unknown error", key),
        )
        return cur.rowcount > 0

    def retire(self, public_identifier: str) -> bool:
        """Mark an active task completed because a full observation arrived by other means."""
        cur = self.conn.execute(
            "UPDATE enrichment_queue SET status = 'completed', completed_at = ?, last_error = NULL "
            "WHERE public_identifier = ? AND status IN ('pending', 'processing')",
            (utc_now_iso(), public_identifier),
        )
        return cur.rowcount > 0

    def clear_terminal(self) -> int:
        cur = self.conn.execute("DELETE FROM enrichment_queue WHERE status IN ('completed', 'failed')")
        return cur.rowcount

    # --- Reads ---
    def get(self, public_identifier: str) -> Optional[EnrichmentTask]:
        key = normalize_public_identifier(public_identifier)
        row = self.conn.execute(
            f"SELECT {_TASK_COLUMNS} FROM enrichment_queue WHERE public_identifier = ?", (key,)
        ).fetchone()
        return _row_to_task(row) if row else None

    def status_summary(self) -> QueueStatus:
        rows = self.conn.execute(
            "SELECT status, COUNT(*) AS n FROM enrichment_queue GROUP BY status"
        ).fetchall()
        counts: Dict[str, int] = {r["status"]: int(r["n"]) for r in rows}
        return QueueStatus(
            pending=counts.get("pending", 0),
            processing=counts.get("processing", 0),
            completed=counts.get("completed", 0),
            failed=counts.get("failed", 0),
            total=sum(counts.values()),
        )

    def list_items(self, status: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
        """Newest-first queue listing with the profile's display fields when known."""
        sql = (
            "SELECT eq.id, eq.public_identifier, eq.url, eq.status, eq.attempts, eq.queued_at, "
            "       eq.started_at, eq.completed_at, eq.last_error, "
            "       p.full_name, p.headline, p.profile_picture_url "
            "FROM enrichment_queue eq "
            "LEFT JOIN profiles p ON p.public_identifier = eq.public_identifier"
        )
        params: List[Any] = []
        if status:
            sql += " WHERE eq.status = ?"
            params.append(status)
        sql += " ORDER BY eq.queued_at DESC, eq.id DESC LIMIT ?"
        params.append(limit)
        items: List[Dict[str, Any]] = []
        for row in self.conn.execute(sql, params).fetchall():
            task = _row_to_task(row)
            item = task.model_dump()
            item["profile"] = (
                {
                    "full_name": row["full_name"],
                    "headline": row["headline"],
                    "profile_picture_url": row["profile_picture_url"],
                }
                if row["full_name"]
                else None
            )
            items.append(item)
        return items
