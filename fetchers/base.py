from __future__ import annotations

from typing import Any, Dict

from models.enrichment import EnrichmentTask


class ProfileFetcher:
    """Base for enrichment fetchers: resolve one task into a full profile payload."""

    fetcher_name: str = "base"

    def fetch(self, task: EnrichmentTask) -> Dict[str, Any]:
        raise NotImplementedError
