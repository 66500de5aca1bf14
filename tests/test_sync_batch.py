from __future__ import annotations

import sqlite3

import pytest

from db.repos.enrichment_repo import EnrichmentQueueRepo
from db.repos.profiles_repo import ProfilesRepo
from db.repos.sync_log_repo import SyncLogRepo
from pipelines.sync_batch import sync_batch, sync_profiles
from services.profile_cache import ProfileCache


def _content(profile):
    data = profile.model_dump()
    data.pop("updated_at")
    return data


def test_one_bad_item_does_not_stop_the_batch(conn):
    items = [
        {"publicIdentifier": "alice", "fullName": "Alice"},
        {"headline": "No key here"},
        {"publicIdentifier": "bob", "fullName": "Bob"},
    ]
    result = sync_batch(conn, "profiles", items)
    assert result.total == 3
    assert result.saved == 2
    assert result.synced_keys == ["alice", "bob"]
    assert len(result.failed) == 1
    assert result.failed[0].key == "unknown"
    assert result.failed[0].error == "MissingKey"
    assert ProfilesRepo(conn).count() == 2

    last = SyncLogRepo(conn).last()
    assert last["type"] == "profiles"
    assert last["count"] == 2


def test_partial_after_full_keeps_experience(conn):
    sync_profiles(conn, [{
        "publicIdentifier": "alice",
        "fullName": "Alice Smith",
        "headline": "Engineer",
        "experience": [{"title": "Engineer", "company": "Acme"}],
        "isPartial": False,
    }])
    sync_profiles(conn, [{"publicIdentifier": "alice", "headline": "CTO", "isPartial": True}])

    alice = ProfilesRepo(conn).get_by_key("alice")
    assert alice.headline == "CTO"
    assert alice.full_name == "Alice Smith"
    assert [(e.title, e.company) for e in alice.experience] == [("Engineer", "Acme")]
    assert alice.is_partial is False


def test_reapplying_a_batch_is_idempotent(conn):
    items = [
        {
            "publicIdentifier": "carol",
            "fullName": "Carol",
            "skills": ["sql", "python"],
            "education": [{"school": "TU Berlin", "startYear": 2010}],
            "scrapedAt": "2024-05-01T10:00:00+00:00",
        },
        {"publicIdentifier": "dave", "headline": "PM", "isPartial": True, "scrapedAt": "2024-05-01T10:00:00+00:00"},
    ]
    sync_batch(conn, "profiles", items)
    repo = ProfilesRepo(conn)
    first = {p.public_identifier: _content(p) for p in repo.all_profiles()}
    sync_batch(conn, "profiles", items)
    second = {p.public_identifier: _content(p) for p in repo.all_profiles()}
    assert first == second
    assert repo.count() == 2


def test_doubled_names_are_cleaned_before_merge(conn):
    sync_profiles(conn, [{"publicIdentifier": "jane", "fullName": "Jane DoeJane Doe", "headline": "CEOCEO"}])
    jane = ProfilesRepo(conn).get_by_key("jane")
    assert jane.full_name == "Jane Doe"
    assert jane.headline == "CEO"


def test_key_is_derived_from_profile_url(conn):
    result = sync_profiles(conn, [{"linkedinUrl": "https://www.linkedin.com/in/Kim-Lo/", "fullName": "Kim"}])
    assert result.synced_keys == ["kim-lo"]
    assert ProfilesRepo(conn).get_by_key("kim-lo").full_name == "Kim"


def test_invalid_payload_is_reported_with_its_key(conn):
    result = sync_profiles(conn, [
        {"publicIdentifier": "lee", "experience": "not a list"},
        "garbage",
        {"publicIdentifier": "mia"},
    ])
    assert result.saved == 1
    errors = {(f.key, f.error) for f in result.failed}
    assert errors == {("lee", "InvalidRecord"), ("unknown", "InvalidRecord")}


def test_storage_error_is_isolated_to_its_item(conn):
    result = sync_profiles(conn, [
        {"publicIdentifier": "ned", "linkedinUrl": "https://www.linkedin.com/in/shared/"},
        {"publicIdentifier": "ola", "linkedinUrl": "https://www.linkedin.com/in/shared/"},
        {"publicIdentifier": "pam"},
    ])
    assert result.synced_keys == ["ned", "pam"]
    assert [(f.key, f.error) for f in result.failed] == [("ola", "PersistenceError")]
    repo = ProfilesRepo(conn)
    assert repo.get_by_key("ola") is None
    assert repo.count() == 2


def test_new_profiles_are_counted(conn):
    sync_profiles(conn, [{"publicIdentifier": "quinn"}])
    result = sync_profiles(conn, [{"publicIdentifier": "quinn"}, {"publicIdentifier": "rae"}])
    assert result.profiles_created == 1


def test_full_observation_retires_open_enrichment_task(conn):
    queue = EnrichmentQueueRepo(conn)
    sync_profiles(conn, [{"publicIdentifier": "sam", "isPartial": True}])
    queue.enqueue("sam")

    sync_profiles(conn, [{"publicIdentifier": "sam", "headline": "Still partial", "isPartial": True}])
    assert queue.get("sam").status == "pending"

    sync_profiles(conn, [{"publicIdentifier": "sam", "fullName": "Sam Fox", "isPartial": False}])
    assert queue.get("sam").status == "completed"


def test_partial_observation_never_enqueues(conn):
    sync_profiles(conn, [{"publicIdentifier": "tia", "isPartial": True}])
    assert EnrichmentQueueRepo(conn).status_summary().total == 0


def test_unknown_kind_raises(conn):
    with pytest.raises(ValueError):
        sync_batch(conn, "comments", [])


def test_batch_level_failure_propagates(tmp_path):
    from db import schema
    from db.connection import get_connection

    db = get_connection(str(tmp_path / "closed.db"))
    schema.bootstrap(db)
    db.close()
    with pytest.raises(sqlite3.ProgrammingError):
        sync_profiles(db, [{"publicIdentifier": "uma"}])


def test_empty_batch_still_logs(conn):
    result = sync_profiles(conn, [])
    assert result.saved == 0 and result.total == 0
    assert SyncLogRepo(conn).last()["count"] == 0


def test_cache_is_invalidated_for_written_keys(conn):
    cache = ProfileCache(ProfilesRepo(conn))
    sync_profiles(conn, [{"publicIdentifier": "vic", "headline": "Old"}], cache=cache)
    assert cache.get("vic").headline == "Old"
    sync_profiles(conn, [{"publicIdentifier": "vic", "headline": "New"}], cache=cache)
    assert cache.get("vic").headline == "New"


def test_full_observation_fills_details_and_keeps_known_scalars(conn):
    sync_profiles(conn, [{"publicIdentifier": "alice", "headline": "Engineer", "isPartial": True}])
    assert ProfilesRepo(conn).get_by_key("alice").completeness == "partial"

    result = sync_profiles(conn, [{
        "publicIdentifier": "alice",
        "experience": [{"title": "Engineer", "company": "Acme"}],
        "skills": [],
        "isPartial": False,
    }])
    assert result.saved == 1
    assert result.profiles_created == 0

    alice = ProfilesRepo(conn).get_by_key("alice")
    assert alice.completeness == "full"
    assert alice.headline == "Engineer"
    assert alice.skills == []
    assert [(e.title, e.company) for e in alice.experience] == [("Engineer", "Acme")]
