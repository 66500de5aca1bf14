from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest


def pytest_configure():
    # Ensure project root is on sys.path for absolute imports like 'pipelines.sync_batch'
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    # Set test environment knobs
    os.environ.setdefault("RUN_ENV", "test")


@pytest.fixture(autouse=True)
def _fresh_settings():
    # Settings are cached per process; tests monkeypatch env between cases
    from config.settings import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def conn(tmp_path):
    from db import schema
    from db.connection import get_connection

    db = get_connection(str(tmp_path / "profiles.db"))
    schema.bootstrap(db)
    try:
        yield db
    finally:
        db.close()
