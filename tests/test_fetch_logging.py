from __future__ import annotations

import json

import pytest
import requests

from fetchers.http_extractor import HttpExtractorFetcher
from models.enrichment import EnrichmentTask
from services.errors import FetchError
from utils.fetch_logger import log_fetch


def _task(key="alice"):
    return EnrichmentTask(
        id=1,
        public_identifier=key,
        url=f"https://www.linkedin.com/in/{key}/",
        status="processing",
        attempts=1,
        queued_at="2024-01-01T00:00:00+00:00",
    )


class _FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        return self._payload


class _FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if self.exc:
            raise self.exc
        return self.response


def test_fetch_trace_writes_jsonl(tmp_path, monkeypatch):
    log_file = tmp_path / "fetch_calls.jsonl"
    monkeypatch.setenv("FETCH_TRACE", "true")
    monkeypatch.setenv("FETCH_LOG_PATH", str(log_file))
    monkeypatch.setenv("RUN_ID", "test-run-123")

    log_fetch(
        caller="unit.test",
        fetcher="http",
        operation="extract_profile",
        key="alice",
        url="https://www.linkedin.com/in/alice/",
        duration_ms=42,
        extras={"attempt": 1},
    )

    assert log_file.exists()
    rec = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
    assert rec["caller"] == "unit.test"
    assert rec["fetcher"] == "http"
    assert rec["key"] == "alice"
    assert rec["run_id"] == "test-run-123"
    assert rec["extras"] == {"attempt": 1}


def test_fetch_trace_disabled_writes_nothing(tmp_path, monkeypatch):
    log_file = tmp_path / "fetch_calls.jsonl"
    monkeypatch.setenv("FETCH_TRACE", "false")
    monkeypatch.setenv("FETCH_LOG_PATH", str(log_file))
    log_fetch(caller="unit.test", fetcher="http", operation="extract_profile")
    assert not log_file.exists()


def test_http_fetcher_posts_task_and_unwraps_profile(tmp_path, monkeypatch):
    log_file = tmp_path / "fetch_calls.jsonl"
    monkeypatch.setenv("FETCH_TRACE", "true")
    monkeypatch.setenv("FETCH_LOG_PATH", str(log_file))
    session = _FakeSession(_FakeResponse({"profile": {"publicIdentifier": "alice", "fullName": "Alice"}}))
    fetcher = HttpExtractorFetcher(url="http://extractor.local/api/extract", timeout=5, session=session)

    data = fetcher.fetch(_task())
    assert data == {"publicIdentifier": "alice", "fullName": "Alice"}
    assert session.calls == [{
        "url": "http://extractor.local/api/extract",
        "json": {"url": "https://www.linkedin.com/in/alice/", "publicIdentifier": "alice"},
        "timeout": 5,
    }]
    rec = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
    assert rec["status"] == "ok"
    assert rec["operation"] == "extract_profile"


def test_http_fetcher_wraps_transport_errors(tmp_path, monkeypatch):
    log_file = tmp_path / "fetch_calls.jsonl"
    monkeypatch.setenv("FETCH_TRACE", "true")
    monkeypatch.setenv("FETCH_LOG_PATH", str(log_file))
    session = _FakeSession(exc=requests.exceptions.ConnectionError("refused"))
    fetcher = HttpExtractorFetcher(url="http://extractor.local/api/extract", session=session)

    with pytest.raises(FetchError):
        fetcher.fetch(_task())
    rec = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
    assert rec["status"] == "error"
    assert "refused" in rec["error"]


def test_http_fetcher_rejects_error_payload():
    session = _FakeSession(_FakeResponse({"error": "login required"}))
    fetcher = HttpExtractorFetcher(url="http://extractor.local/api/extract", session=session)
    with pytest.raises(FetchError, match="login required"):
        fetcher.fetch(_task())


def test_http_fetcher_rejects_http_errors():
    session = _FakeSession(_FakeResponse({}, status_code=503))
    fetcher = HttpExtractorFetcher(url="http://extractor.local/api/extract", session=session)
    with pytest.raises(FetchError):
        fetcher.fetch(_task())
