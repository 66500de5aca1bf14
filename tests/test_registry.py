from __future__ import annotations

import pytest


def test_builtin_fetchers_registered():
    # Import package to trigger registration
    import fetchers  # noqa: F401
    from fetchers.registry import available_fetchers, get_fetcher

    names = available_fetchers().keys()
    assert "http" in names
    assert "stub" in names

    fetcher = get_fetcher("http", url="http://extractor.local/api/extract")
    assert fetcher.fetcher_name == "http"
    assert fetcher.url == "http://extractor.local/api/extract"


def test_unknown_fetcher_raises():
    from fetchers.registry import get_fetcher
    with pytest.raises(KeyError):
        get_fetcher("does_not_exist")


def test_stub_fetcher_only_in_test_env(monkeypatch):
    from config.settings import get_settings
    from fetchers.stub import StubFetcher

    monkeypatch.setenv("RUN_ENV", "local")
    get_settings.cache_clear()
    with pytest.raises(RuntimeError):
        StubFetcher()
