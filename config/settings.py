from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


def _load_env() -> None:
    # Centralized dotenv loading; safe if .env missing
    load_dotenv()


def _as_bool(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def _optional_int(value: str | None) -> int | None:
    if value is None or not value.strip():
        return None
    return int(value)


@dataclass(frozen=True)
class Settings:
    # Core/runtime
    db_path: str
    run_env: str
    log_level: str

    # Enrichment dispatch
    enrich_poll_interval_seconds: int
    enrich_stale_after_seconds: int | None
    enrich_fetcher: str  # http | stub

    # External extractor (browser automation service)
    extractor_url: str
    http_timeout_seconds: int

    # Reads
    default_search_limit: int = 50

    # Logging/tracing
    fetch_trace: bool = False
    fetch_log_path: str = "logs/fetch_calls.jsonl"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    _load_env()
    stale_after = _optional_int(os.getenv("ENRICH_STALE_AFTER_SECONDS"))
    if stale_after is not None and stale_after <= 0:
        raise RuntimeError("ENRICH_STALE_AFTER_SECONDS must be a positive number of seconds")
    return Settings(
        db_path=os.getenv("DB_PATH", "profiles.db"),
        run_env=os.getenv("RUN_ENV", "local"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        enrich_poll_interval_seconds=int(os.getenv("ENRICH_POLL_INTERVAL_SECONDS", "60")),
        enrich_stale_after_seconds=stale_after,
        enrich_fetcher=os.getenv("ENRICH_FETCHER", "http"),
        extractor_url=os.getenv("EXTRACTOR_URL", "http://localhost:3847/api/extract"),
        http_timeout_seconds=int(os.getenv("HTTP_TIMEOUT_SECONDS", "30")),
        default_search_limit=int(os.getenv("DEFAULT_SEARCH_LIMIT", "50")),
        fetch_trace=_as_bool(os.getenv("FETCH_TRACE", "false")),
        fetch_log_path=os.getenv("FETCH_LOG_PATH", "logs/fetch_calls.jsonl"),
    )
