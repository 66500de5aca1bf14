import argparse
import json
import os
import threading
import uuid as _uuid
from pathlib import Path

from config.settings import get_settings
from db import schema
from db.connection import get_connection
from db.repos.enrichment_repo import EnrichmentQueueRepo
from db.repos.profiles_repo import ProfilesRepo
from db.repos.stats_repo import StatsRepo
from db.repos.sync_log_repo import SyncLogRepo
from fetchers import get_fetcher
from pipelines.sync_batch import SYNC_KINDS, sync_batch
from services.backfill import backfill_doubled_text
from services.domain_utils import normalize_public_identifier
from services.enrichment_dispatcher import EnrichmentDispatcher
from services.profile_cache import ProfileCache
from services.reporting import print_queue_status, print_sync_summary
from utils.logging_setup import init_logging


def _open(args, backfill: bool = True):
    conn = get_connection(args.db)
    schema.bootstrap(conn)
    if backfill:
        # No-op once the marker is recorded
        backfill_doubled_text(conn)
    return conn


def _queue(conn, cache=None):
    return EnrichmentQueueRepo(conn, stale_after_seconds=get_settings().enrich_stale_after_seconds, cache=cache)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def cmd_bootstrap(args):
    conn = _open(args, backfill=False)
    print("Schema ready")
    fixed = backfill_doubled_text(conn, force=args.force_backfill)
    print(f"Backfilled {fixed} rows with doubled text")


def cmd_sync(args):
    conn = _open(args)
    data = json.loads(Path(args.input).read_text(encoding="utf-8"))
    # Accept a bare array or an envelope like {"profiles": [...]}
    items = data.get(args.kind) if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise SystemExit(f"{args.kind} must be an array")
    result = sync_batch(conn, args.kind, items)
    if args.json:
        _print_json(result.model_dump())
    else:
        print_sync_summary(result, Path(args.input))


def cmd_enqueue(args):
    conn = _open(args)
    queued = _queue(conn).enqueue_many(args.key)
    print(f"Queued {queued} of {len(args.key)} profiles")


def cmd_enqueue_partial(args):
    conn = _open(args)
    keys = ProfilesRepo(conn).partial_keys(limit=args.limit)
    queued = _queue(conn).enqueue_many(keys)
    print(f"Queued {queued} of {len(keys)} partial profiles")


def cmd_queue_status(args):
    conn = _open(args)
    status = _queue(conn).status_summary()
    if args.json:
        _print_json(status.model_dump())
    else:
        print_queue_status(status, os.getenv("RUN_ID"))


def cmd_queue_list(args):
    conn = _open(args)
    _print_json(_queue(conn).list_items(status=args.status, limit=args.limit))


def cmd_queue_clear(args):
    conn = _open(args)
    removed = _queue(conn).clear_terminal()
    print(f"Cleared {removed} finished tasks")


def cmd_dispatch(args):
    settings = get_settings()
    if not os.getenv("RUN_ID"):
        os.environ["RUN_ID"] = _uuid.uuid4().hex
    conn = _open(args)
    fetcher = get_fetcher(args.fetcher or settings.enrich_fetcher)
    cache = ProfileCache(ProfilesRepo(conn))
    cache.warm()
    dispatcher = EnrichmentDispatcher(conn, fetcher, queue=_queue(conn, cache), cache=cache)
    if args.once:
        outcomes = dispatcher.drain(max_tasks=args.max_tasks)
        for outcome in outcomes:
            label = "ok" if outcome.success else f"error={outcome.error}"
            profile = cache.get(outcome.public_identifier)
            completeness = profile.completeness if profile else "missing"
            print(
                f"{outcome.public_identifier}: {outcome.status} (attempts={outcome.attempts}) "
                f"profile={completeness} {label}"
            )
        print(f"Dispatched {len(outcomes)} tasks")
        return
    stop = threading.Event()
    interval = args.interval if args.interval is not None else settings.enrich_poll_interval_seconds
    try:
        dispatcher.serve(stop, poll_interval=interval)
    except KeyboardInterrupt:
        stop.set()
        print("Dispatcher stopped")


def cmd_report_profile(args):
    conn = _open(args)
    repo = ProfilesRepo(conn)
    profile = repo.get_by_key(normalize_public_identifier(args.key) or "") if args.key else repo.get_by_url(args.url)
    if not profile:
        print("No record found for profile")
        return
    data = profile.model_dump()
    data["completeness"] = profile.completeness
    task = _queue(conn).get(profile.public_identifier)
    data["enrichment"] = task.model_dump() if task else None
    _print_json(data)


def cmd_search(args):
    conn = _open(args)
    filters = {
        "company": args.company,
        "title": args.title,
        "location": args.location,
        "connection_degree": args.degree or [],
        "is_partial": args.partial,
    }
    limit = args.limit if args.limit is not None else get_settings().default_search_limit
    profiles, total = ProfilesRepo(conn).search(args.query, filters, limit=limit, offset=args.offset)
    _print_json({
        "total": total,
        "count": len(profiles),
        "profiles": [
            {
                "public_identifier": p.public_identifier,
                "full_name": p.full_name,
                "headline": p.headline,
                "current_company": p.current_company,
                "current_title": p.current_title,
                "location": p.location,
                "connection_degree": p.connection_degree,
                "completeness": p.completeness,
            }
            for p in profiles
        ],
    })


def cmd_stats(args):
    conn = _open(args)
    _print_json(StatsRepo(conn).network_stats(top_n=args.top))


def cmd_sync_status(args):
    conn = _open(args)
    _print_json(SyncLogRepo(conn).sync_status())


def main():
    settings = get_settings()
    init_logging(settings.log_level)
    parser = argparse.ArgumentParser(description="Profile store CLI")
    parser.add_argument("--db", default=settings.db_path, help="Path to SQLite DB (default from settings)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_boot = sub.add_parser("bootstrap", help="Create tables and indexes, repair doubled text once")
    p_boot.add_argument("--force-backfill", action="store_true", help="Re-run the doubled-text repair")
    p_boot.set_defaults(func=cmd_bootstrap)

    p_sync = sub.add_parser("sync", help="Apply a batch of observations from a JSON file")
    p_sync.add_argument("--kind", choices=list(SYNC_KINDS), default="profiles")
    p_sync.add_argument("--input", required=True, help="Path to JSON file (array or {kind: [...]})")
    p_sync.add_argument("--json", action="store_true", help="Print the raw result as JSON")
    p_sync.set_defaults(func=cmd_sync)

    p_enq = sub.add_parser("enqueue", help="Queue profiles for enrichment")
    p_enq.add_argument("--key", nargs="+", required=True, help="Public identifier(s)")
    p_enq.set_defaults(func=cmd_enqueue)

    p_enp = sub.add_parser("enqueue-partial", help="Queue every partial profile for enrichment")
    p_enp.add_argument("--limit", type=int, default=None)
    p_enp.set_defaults(func=cmd_enqueue_partial)

    p_qs = sub.add_parser("queue-status", help="Show enrichment queue counters")
    p_qs.add_argument("--json", action="store_true")
    p_qs.set_defaults(func=cmd_queue_status)

    p_ql = sub.add_parser("queue-list", help="List queued tasks, newest first")
    p_ql.add_argument("--status", choices=["pending", "processing", "completed", "failed"], default=None)
    p_ql.add_argument("--limit", type=int, default=50)
    p_ql.set_defaults(func=cmd_queue_list)

    p_qc = sub.add_parser("queue-clear", help="Delete completed and failed tasks")
    p_qc.set_defaults(func=cmd_queue_clear)

    p_dis = sub.add_parser("dispatch", help="Work the enrichment queue")
    p_dis.add_argument("--once", action="store_true", help="Drain eligible tasks and exit")
    p_dis.add_argument("--max-tasks", type=int, default=None, help="With --once: stop after N tasks")
    p_dis.add_argument("--interval", type=float, default=None, help="Polling interval in seconds")
    p_dis.add_argument("--fetcher", default=None, help="Fetcher name (default from settings)")
    p_dis.set_defaults(func=cmd_dispatch)

    p_rp = sub.add_parser("report-profile", help="Show a stored profile")
    g_rp = p_rp.add_mutually_exclusive_group(required=True)
    g_rp.add_argument("--key", help="Public identifier")
    g_rp.add_argument("--url", help="LinkedIn profile URL")
    p_rp.set_defaults(func=cmd_report_profile)

    p_se = sub.add_parser("search", help="Search stored profiles")
    p_se.add_argument("--query", "-q", default=None)
    p_se.add_argument("--company", default=None)
    p_se.add_argument("--title", default=None)
    p_se.add_argument("--location", default=None)
    p_se.add_argument("--degree", type=int, action="append", choices=[1, 2, 3], help="Connection degree (repeatable)")
    g_se = p_se.add_mutually_exclusive_group()
    g_se.add_argument("--partial", dest="partial", action="store_true", default=None, help="Only partial profiles")
    g_se.add_argument("--full", dest="partial", action="store_false", help="Only full profiles")
    p_se.add_argument("--limit", type=int, default=None)
    p_se.add_argument("--offset", type=int, default=0)
    p_se.set_defaults(func=cmd_search, partial=None)

    p_st = sub.add_parser("stats", help="Network statistics")
    p_st.add_argument("--top", type=int, default=10, help="Number of top companies")
    p_st.set_defaults(func=cmd_stats)

    p_ss = sub.add_parser("sync-status", help="Last sync batch and profile count")
    p_ss.set_defaults(func=cmd_sync_status)

    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
