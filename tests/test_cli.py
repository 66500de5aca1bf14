from __future__ import annotations

import json
import sys
from typing import List

from db.connection import get_connection
from db.repos.enrichment_repo import EnrichmentQueueRepo
from db.repos.profiles_repo import ProfilesRepo


def _run_cli_with_args(args_list: List[str]) -> None:
    argv_backup = sys.argv[:]
    try:
        sys.argv = ["cli.py"] + args_list
        if "cli" in sys.modules:
            del sys.modules["cli"]
        import cli  # type: ignore
        try:
            cli.main()  # type: ignore[attr-defined]
        except SystemExit as e:
            code = int(getattr(e, "code", 0) or 0)
            if code not in (0, None):
                raise
    finally:
        sys.argv = argv_backup


def _write(tmp_path, name, data):
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_cli_bootstrap_sync_and_report(tmp_path, capsys):
    db_path = tmp_path / "cli.db"
    _run_cli_with_args(["--db", str(db_path), "bootstrap"])
    out = capsys.readouterr().out
    assert "Schema ready" in out

    batch = _write(tmp_path, "profiles.json", {"profiles": [
        {"publicIdentifier": "alice", "fullName": "AliceAlice", "headline": "Engineer"},
        {"headline": "missing key"},
    ]})
    _run_cli_with_args(["--db", str(db_path), "sync", "--kind", "profiles", "--input", str(batch)])
    out = capsys.readouterr().out
    assert "Saved: 1" in out
    assert "unknown: MissingKey" in out

    _run_cli_with_args(["--db", str(db_path), "report-profile", "--url", "https://www.linkedin.com/in/alice/"])
    out = capsys.readouterr().out
    assert '"full_name": "Alice"' in out
    assert '"completeness": "full"' in out

    _run_cli_with_args(["--db", str(db_path), "report-profile", "--key", "nobody"])
    assert "No record found" in capsys.readouterr().out


def test_cli_enqueue_and_dispatch_with_stub(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("RUN_ENV", "test")
    db_path = tmp_path / "cli_dispatch.db"
    posts = _write(tmp_path, "posts.json", [
        {"id": "p1", "authorPublicIdentifier": "bob", "authorName": "Bob Ray"},
        {"id": "p2", "authorPublicIdentifier": "cy", "authorName": "Cy"},
    ])
    _run_cli_with_args(["--db", str(db_path), "sync", "--kind", "posts", "--input", str(posts)])

    _run_cli_with_args(["--db", str(db_path), "enqueue-partial"])
    assert "Queued 2 of 2 partial profiles" in capsys.readouterr().out

    _run_cli_with_args(["--db", str(db_path), "enqueue", "--key", "bob"])
    assert "Queued 0 of 1 profiles" in capsys.readouterr().out

    _run_cli_with_args(["--db", str(db_path), "dispatch", "--once", "--fetcher", "stub", "--max-tasks", "1"])
    assert "Dispatched 1 tasks" in capsys.readouterr().out

    conn = get_connection(str(db_path))
    try:
        queue = EnrichmentQueueRepo(conn)
        summary = queue.status_summary()
        assert summary.completed == 1
        assert summary.pending == 1
        assert ProfilesRepo(conn).get_by_key("bob").is_partial is False
    finally:
        conn.close()

    _run_cli_with_args(["--db", str(db_path), "queue-clear"])
    assert "Cleared 1 finished tasks" in capsys.readouterr().out


def test_cli_read_commands_run(tmp_path, capsys):
    db_path = tmp_path / "cli_read.db"
    batch = _write(tmp_path, "profiles.json", [
        {"publicIdentifier": "dee", "fullName": "Dee Park", "currentCompany": "Acme", "connectionDegree": 1},
    ])
    _run_cli_with_args(["--db", str(db_path), "sync", "--input", str(batch), "--json"])
    assert '"saved": 1' in capsys.readouterr().out

    _run_cli_with_args(["--db", str(db_path), "search", "--company", "acme", "--degree", "1"])
    out = capsys.readouterr().out
    assert '"public_identifier": "dee"' in out

    _run_cli_with_args(["--db", str(db_path), "stats"])
    assert '"company": "Acme"' in capsys.readouterr().out

    _run_cli_with_args(["--db", str(db_path), "sync-status"])
    assert '"total_profiles": 1' in capsys.readouterr().out

    _run_cli_with_args(["--db", str(db_path), "queue-status", "--json"])
    assert '"total": 0' in capsys.readouterr().out

    _run_cli_with_args(["--db", str(db_path), "queue-list"])
    assert capsys.readouterr().out.strip().endswith("[]")


def test_cli_commands_repair_doubled_text_on_startup(tmp_path, capsys):
    from db import schema
    from models.profile import ProfileObservation
    from services.merge import merge_profile

    db_path = tmp_path / "cli_backfill.db"
    conn = get_connection(str(db_path))
    try:
        schema.bootstrap(conn)
        ProfilesRepo(conn).save(merge_profile(None, ProfileObservation(public_identifier="ann", full_name="Ann BoAnn Bo")))
    finally:
        conn.close()

    _run_cli_with_args(["--db", str(db_path), "sync-status"])
    assert '"total_profiles": 1' in capsys.readouterr().out

    conn = get_connection(str(db_path))
    try:
        assert ProfilesRepo(conn).get_by_key("ann").full_name == "Ann Bo"
    finally:
        conn.close()

    _run_cli_with_args(["--db", str(db_path), "bootstrap"])
    out = capsys.readouterr().out
    assert "Backfilled 0 rows with doubled text" in out
