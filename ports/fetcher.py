from __future__ import annotations

from typing import Any, Dict, Protocol

from models.enrichment import EnrichmentTask


class ProfileFetcherPort(Protocol):
    fetcher_name: str

    def fetch(self, task: EnrichmentTask) -> Dict[str, Any]:
        """Return a full profile observation (camelCase payload) or raise FetchError."""
        ...
