from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional

from models.enrichment import QueueStatus
from models.sync_result import SyncResult


def _fetch_usage_for_run(run_id: str) -> Dict[str, Dict[str, int]]:
    """Aggregate traced fetch calls from the fetch log for the given run_id.

    Returns dict like { 'http': {'calls': N, 'errors': E} }
    """
    result: Dict[str, Dict[str, int]] = {}
    from config.settings import get_settings
    settings = get_settings()
    log_path = Path(settings.fetch_log_path)
    if not log_path.exists():
        return result
    with log_path.open("r", encoding="utf-8") as f:
        for line in f:
            try:
                rec = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(rec, dict) or rec.get("run_id") != run_id:
                continue
            bucket = result.setdefault(rec.get("fetcher") or "unknown", {"calls": 0, "errors": 0})
            bucket["calls"] += 1
            if rec.get("status") != "ok":
                bucket["errors"] += 1
    return result


def print_sync_summary(result: SyncResult, source: Optional[Path] = None) -> None:
    """Print summary of one sync batch."""
    print("\n" + "="*60)
    print(f"SYNC SUMMARY - {result.kind.upper()}")
    print("="*60)
    if source:
        print(f"Input File: {source}")
    print(f"Total Items: {result.total}")
    print(f"Saved: {result.saved}")
    print(f"Failed: {len(result.failed)}")
    if result.profiles_created:
        print(f"Profiles Created: {result.profiles_created}")
    for failure in result.failed:
        detail = f" ({failure.message})" if failure.message else ""
        print(f"  - {failure.key}: {failure.error}{detail}")
    print("="*60)


def print_queue_status(status: QueueStatus, run_id: Optional[str] = None) -> None:
    """Print enrichment queue counters, plus traced fetch usage for run_id."""
    print("\n" + "="*60)
    print("ENRICHMENT QUEUE")
    print("="*60)
    print(f"Pending: {status.pending}")
    print(f"Processing: {status.processing}")
    print(f"Completed: {status.completed}")
    print(f"Failed: {status.failed}")
    print(f"Total: {status.total}")
    from config.settings import get_settings
    if run_id and get_settings().fetch_trace:
        usage = _fetch_usage_for_run(run_id)
        if usage:
            print("Fetch Usage:")
            for fetcher, stats in usage.items():
                print(f"  {fetcher}: calls={stats['calls']}, errors={stats['errors']}")
    print("="*60)
