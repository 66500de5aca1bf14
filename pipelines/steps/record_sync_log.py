from __future__ import annotations

import sqlite3

from db.repos.sync_log_repo import SyncLogRepo
from pipelines.runner import RunContext


class RecordSyncLog:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.repo = SyncLogRepo(conn)

    def run(self, ctx: RunContext) -> RunContext:
        ctx.meta["sync_log_id"] = self.repo.record(ctx.kind, ctx.result.saved)
        return ctx
