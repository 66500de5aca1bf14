from __future__ import annotations

import logging
import sqlite3
import threading
from typing import Optional

from db.repos.enrichment_repo import EnrichmentQueueRepo
from models.enrichment import DispatchOutcome
from pipelines.runner import Pipeline, RunContext
from pipelines.steps import ClaimNextTask, FetchAndResyncProfile
from pipelines.sync_batch import sync_batch
from ports.fetcher import ProfileFetcherPort
from ports.repos import EnrichmentQueuePort
from services.profile_cache import ProfileCache


logger = logging.getLogger(__name__)


class EnrichmentDispatcher:
    """Single consumer of the enrichment queue.

    run_once() claims at most one task per call; a call made while another is
    still in flight returns None immediately instead of waiting.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        fetcher: ProfileFetcherPort,
        queue: Optional[EnrichmentQueuePort] = None,
        cache: Optional[ProfileCache] = None,
    ) -> None:
        self.conn = conn
        self.fetcher = fetcher
        self.queue = queue or EnrichmentQueueRepo(conn, cache=cache)
        self.cache = cache
        self._busy = threading.Lock()

    def _resync(self, conn: sqlite3.Connection, kind: str, items):
        return sync_batch(conn, kind, items, cache=self.cache)

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def run_once(self) -> Optional[DispatchOutcome]:
        if not self._busy.acquire(blocking=False):
            logger.debug("Dispatcher busy; skipping tick", extra={"step": "dispatch", "status": "skipped"})
            return None
        try:
            pipeline = Pipeline([
                ClaimNextTask(self.queue),
                FetchAndResyncProfile(self.conn, self.fetcher, self.queue, self._resync),
            ])
            ctx = pipeline.run(RunContext(kind="profiles"))
            return ctx.meta.get("outcome")
        finally:
            self._busy.release()

    def drain(self, max_tasks: Optional[int] = None) -> list[DispatchOutcome]:
        """Run ticks back to back until the queue has nothing eligible."""
        outcomes: list[DispatchOutcome] = []
        while max_tasks is None or len(outcomes) < max_tasks:
            outcome = self.run_once()
            if outcome is None:
                break
            outcomes.append(outcome)
        return outcomes

    def serve(self, stop_event: threading.Event, poll_interval: float = 60.0) -> int:
        """Tick every poll_interval seconds until stop_event is set. Returns ticks that did work."""
        worked = 0
        logger.info("Enrichment dispatcher started", extra={"step": "dispatch", "status": "running"})
        while not stop_event.is_set():
            try:
                if self.run_once() is not None:
                    worked += 1
            except sqlite3.Error as exc:
                # Store hiccups (e.g. a locked database) are retried on the next tick
                logger.error(
                    "Dispatcher tick failed",
                    extra={"step": "dispatch", "status": "error", "error": str(exc)},
                )
            stop_event.wait(poll_interval)
        logger.info("Enrichment dispatcher stopped", extra={"step": "dispatch", "status": "stopped"})
        return worked
