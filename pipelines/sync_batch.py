from __future__ import annotations

import logging
import sqlite3
from typing import Any, Iterable, List, Optional

from db.connection import transaction
from models.sync_result import SyncResult
from pipelines.runner import Pipeline, RunContext
from pipelines.steps import (
    CleanObservationText,
    MergeProfiles,
    ParseObservations,
    PersistMessages,
    PersistPosts,
    RecordSyncLog,
)
from services.profile_cache import ProfileCache


logger = logging.getLogger(__name__)

SYNC_KINDS = ("profiles", "posts", "messages")

_PERSIST_STEPS = {
    "profiles": MergeProfiles,
    "posts": PersistPosts,
    "messages": PersistMessages,
}


def sync_batch(
    conn: sqlite3.Connection,
    kind: str,
    items: Iterable[Any],
    *,
    cache: Optional[ProfileCache] = None,
) -> SyncResult:
    """Apply a batch of observations in one transaction with per-item isolation.

    Per-item problems (missing key, invalid payload, merge conflict, storage
    error) are collected in the result and never abort the batch. Anything
    that fails outside the item loop rolls the whole batch back and raises.
    """
    if kind not in SYNC_KINDS:
        raise ValueError(f"Unknown sync kind: {kind}")
    payloads: List[Any] = list(items)
    ctx = RunContext(kind=kind, items=payloads, result=SyncResult(kind=kind, total=len(payloads)))
    pipeline = Pipeline([
        ParseObservations(),
        CleanObservationText(),
        _PERSIST_STEPS[kind](conn),
        RecordSyncLog(conn),
    ])
    with transaction(conn):
        ctx = pipeline.run(ctx)

    # Drop cached copies only once the batch is committed
    if cache is not None:
        for key in ctx.meta.get("touched_keys", []):
            cache.invalidate(key)

    result = ctx.result
    logger.info(
        "Sync batch applied: saved=%s failed=%s total=%s",
        result.saved,
        len(result.failed),
        result.total,
        extra={"step": "sync", "kind": kind, "status": "ok" if not result.failed else "partial"},
    )
    return result


def sync_profiles(conn: sqlite3.Connection, items: Iterable[Any], *, cache: Optional[ProfileCache] = None) -> SyncResult:
    return sync_batch(conn, "profiles", items, cache=cache)


def sync_posts(conn: sqlite3.Connection, items: Iterable[Any], *, cache: Optional[ProfileCache] = None) -> SyncResult:
    return sync_batch(conn, "posts", items, cache=cache)


def sync_messages(conn: sqlite3.Connection, items: Iterable[Any], *, cache: Optional[ProfileCache] = None) -> SyncResult:
    return sync_batch(conn, "messages", items, cache=cache)
