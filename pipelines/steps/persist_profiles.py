from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from db.connection import savepoint
from db.repos.enrichment_repo import EnrichmentQueueRepo
from db.repos.profiles_repo import ProfilesRepo
from models.profile import ProfileObservation
from pipelines.runner import RunContext
from services.errors import PersistenceError, SyncError
from services.merge import merge_profile


logger = logging.getLogger(__name__)


def _touch(ctx: RunContext, key: str) -> None:
    ctx.meta.setdefault("touched_keys", []).append(key)


class PerItemStep:
    """Runs each parsed item in its own savepoint; a failing item is rolled back alone."""

    savepoint_name = "sync_item"

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self.profiles = ProfilesRepo(conn)

    def run(self, ctx: RunContext) -> RunContext:
        created_total = 0
        for key, obs in ctx.parsed:
            try:
                with savepoint(self.conn, self.savepoint_name):
                    created = self.apply(ctx, key, obs)
            except SyncError as exc:
                ctx.result.record_failure(exc.key or key, exc.kind, str(exc))
                logger.warning(
                    "Sync item rejected",
                    extra={"step": ctx.kind, "status": "failed", "key": key, "error": exc.kind},
                )
            except sqlite3.Error as exc:
                err = PersistenceError(str(exc), key=key)
                ctx.result.record_failure(key, err.kind, str(err))
                logger.warning(
                    "Sync item could not be stored",
                    extra={"step": ctx.kind, "status": "failed", "key": key, "error": err.kind},
                )
            else:
                ctx.result.record_success(key)
                created_total += created
        ctx.result.profiles_created += created_total
        return ctx

    def apply(self, ctx: RunContext, key: str, obs) -> int:
        raise NotImplementedError

    def ensure_stub(self, ctx: RunContext, key: Optional[str], **fields) -> tuple[Optional[str], int]:
        """Return (profile id, created) for `key`, creating a partial stub when unknown.

        A stub that cannot be stored is logged and skipped; the owning item
        is still saved without a profile link.
        """
        if not key:
            return None, 0
        existing_id = self.profiles.get_id_for_key(key)
        if existing_id:
            return existing_id, 0
        observation = ProfileObservation(public_identifier=key, is_partial=True, **fields)
        try:
            with savepoint(self.conn, "stub_profile"):
                stub = merge_profile(None, observation)
                self.profiles.save(stub)
        except (SyncError, sqlite3.Error) as exc:
            logger.warning(
                "Stub profile not created",
                extra={"step": ctx.kind, "status": "skipped", "key": key, "error": str(exc)},
            )
            return None, 0
        _touch(ctx, key)
        return stub.id, 1


class MergeProfiles(PerItemStep):
    """Merge each profile observation into the store (insert or reconcile)."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        super().__init__(conn)
        self.queue = EnrichmentQueueRepo(conn)

    def apply(self, ctx: RunContext, key: str, obs: ProfileObservation) -> int:
        existing = self.profiles.get_by_key(key)
        merged = merge_profile(existing, obs)
        self.profiles.save(merged)
        if not obs.is_partial:
            # A full observation resolves any outstanding enrichment request
            self.queue.retire(key)
        _touch(ctx, key)
        return 0 if existing else 1

