from __future__ import annotations

import logging
import sqlite3
import time
from typing import Any, Callable, Dict, List, Optional

from models.enrichment import DispatchOutcome
from models.sync_result import SyncResult
from pipelines.runner import RunContext
from ports.fetcher import ProfileFetcherPort
from ports.repos import EnrichmentQueuePort


logger = logging.getLogger(__name__)

Resync = Callable[[sqlite3.Connection, str, List[Dict[str, Any]]], SyncResult]


class ClaimNextTask:
    def __init__(self, queue: EnrichmentQueuePort) -> None:
        self.queue = queue

    def run(self, ctx: RunContext) -> RunContext:
        ctx.task = self.queue.claim_next()
        ctx.meta["claimed"] = ctx.task is not None
        return ctx


class FetchAndResyncProfile:
    """Fetch the claimed profile, merge it as a full observation, report the outcome.

    Every claimed task ends in exactly one complete() call, whatever the
    fetcher or the sync does.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        fetcher: ProfileFetcherPort,
        queue: EnrichmentQueuePort,
        resync: Resync,
    ) -> None:
        self.conn = conn
        self.fetcher = fetcher
        self.queue = queue
        self.resync = resync

    def _fetch_and_sync(self, task) -> Optional[str]:
        """Return None on success, else the error message to record."""
        try:
            payload = dict(self.fetcher.fetch(task))
        except Exception as exc:  # any fetcher failure counts against the task
            return str(exc) or exc.__class__.__name__
        payload["publicIdentifier"] = task.public_identifier
        payload["isPartial"] = False
        payload.pop("is_partial", None)
        payload.pop("public_identifier", None)
        try:
            result = self.resync(self.conn, "profiles", [payload])
        except Exception as exc:  # a batch that cannot commit still ends the attempt
            logger.error(
                "Enrichment resync failed",
                extra={"step": "enrich", "status": "error", "key": task.public_identifier, "error": str(exc)},
            )
            return str(exc) or exc.__class__.__name__
        if result.failed:
            first = result.failed[0]
            return f"{first.error}: {first.message}" if first.message else first.error
        return None

    def run(self, ctx: RunContext) -> RunContext:
        task = ctx.task
        if task is None:
            return ctx
        t0 = time.time()
        error = self._fetch_and_sync(task)
        success = error is None
        self.queue.complete(task.public_identifier, success, error)
        after = self.queue.get(task.public_identifier)
        outcome = DispatchOutcome(
            public_identifier=task.public_identifier,
            success=success,
            status=after.status if after else ("completed" if success else "failed"),
            attempts=after.attempts if after else task.attempts,
            error=error,
        )
        ctx.meta["outcome"] = outcome
        logger.info(
            "Enrichment task finished",
            extra={
                "step": "enrich",
                "status": outcome.status,
                "key": task.public_identifier,
                "duration_ms": int((time.time() - t0) * 1000),
                "error": error or "-",
            },
        )
        return ctx
