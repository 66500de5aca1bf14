from __future__ import annotations

import time
from typing import Any, Dict, Optional

import requests

from config.settings import get_settings
from fetchers.base import ProfileFetcher
from fetchers.registry import register
from models.enrichment import EnrichmentTask
from services.errors import FetchError
from utils.fetch_logger import log_fetch


class HttpExtractorFetcher(ProfileFetcher):
    """Delegates page loading and extraction to the browser-automation service.

    POSTs {"url", "publicIdentifier"} to EXTRACTOR_URL and expects either the
    profile payload itself or {"profile": {...}} back.
    """

    fetcher_name = "http"

    def __init__(self, url: Optional[str] = None, timeout: Optional[int] = None, session: Optional[requests.Session] = None):
        settings = get_settings()
        self.url = url or settings.extractor_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.session = session or requests.Session()

    def fetch(self, task: EnrichmentTask) -> Dict[str, Any]:
        t0 = time.time()
        status = "ok"
        error: Optional[str] = None
        try:
            response = self.session.post(
                self.url,
                json={"url": task.url, "publicIdentifier": task.public_identifier},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as exc:
            status, error = "error", str(exc)
            raise FetchError(f"Extractor request failed: {exc}") from exc
        except ValueError as exc:
            status, error = "error", "invalid JSON"
            raise FetchError("Extractor returned invalid JSON") from exc
        finally:
            log_fetch(
                caller="http_extractor.fetch",
                fetcher=self.fetcher_name,
                operation="extract_profile",
                key=task.public_identifier,
                url=task.url,
                duration_ms=int((time.time() - t0) * 1000),
                status=status,
                error=error,
            )

        if isinstance(data, dict) and isinstance(data.get("profile"), dict):
            data = data["profile"]
        if not isinstance(data, dict):
            raise FetchError("Extractor response is not a profile object")
        if data.get("error") and not data.get("publicIdentifier"):
            raise FetchError(str(data["error"]))
        return data


def _register():
    register(HttpExtractorFetcher.fetcher_name, HttpExtractorFetcher)


_register()
