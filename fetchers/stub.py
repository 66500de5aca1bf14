from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from config.settings import get_settings
from fetchers.base import ProfileFetcher
from fetchers.registry import register
from models.enrichment import EnrichmentTask
from services.errors import FetchError
from utils.time_utils import utc_now_iso


class StubFetcher(ProfileFetcher):
    """Deterministic offline fetcher, allowed only when RUN_ENV=test."""

    fetcher_name = "stub"

    def __init__(self, fail_keys: Optional[Iterable[str]] = None):
        if (get_settings().run_env or "").lower() != "test":
            raise RuntimeError("Stub fetcher is only allowed when RUN_ENV=test")
        self.fail_keys = set(fail_keys or ())
        self.calls = 0

    def fetch(self, task: EnrichmentTask) -> Dict[str, Any]:
        self.calls += 1
        if task.public_identifier in self.fail_keys:
            raise FetchError(f"Stub fetch failed for {task.public_identifier}")
        name = task.public_identifier.replace("-", " ").title()
        return {
            "publicIdentifier": task.public_identifier,
            "linkedinUrl": task.url,
            "fullName": name,
            "headline": f"{name} (stub)",
            "experience": [],
            "education": [],
            "skills": [],
            "scrapedAt": utc_now_iso(),
            "isPartial": False,
        }


def _register():
    register(StubFetcher.fetcher_name, StubFetcher)


_register()
