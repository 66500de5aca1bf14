from __future__ import annotations

import sqlite3

import pytest

from db.repos.profiles_repo import ProfilesRepo
from models.profile import ProfileObservation
from services.merge import merge_profile


def _profile(key, **payload):
    payload.setdefault("publicIdentifier", key)
    return merge_profile(None, ProfileObservation.model_validate(payload))


def test_save_and_get_round_trip_keeps_empty_vs_absent(conn):
    repo = ProfilesRepo(conn)
    profile = _profile("alice", fullName="Alice", experience=[], skills=["sql"], isPartial=False)
    repo.save(profile)

    row = conn.execute("SELECT experience, education, skills FROM profiles WHERE public_identifier = 'alice'").fetchone()
    assert row["experience"] == "[]"
    assert row["education"] is None
    assert row["skills"] == '["sql"]'

    loaded = repo.get_by_key("alice")
    assert loaded is not None
    assert loaded.id == profile.id
    assert loaded.experience == []
    assert loaded.education is None
    assert loaded.skills == ["sql"]
    assert loaded.is_partial is False
    assert repo.get_by_id(profile.id).public_identifier == "alice"
    assert repo.get_by_url("https://www.linkedin.com/in/alice/").id == profile.id
    assert repo.exists("alice") and not repo.exists("nobody")


def test_save_never_changes_id_or_created_at(conn):
    repo = ProfilesRepo(conn)
    original = _profile("bob", headline="Dev")
    repo.save(original)
    repo.save(original.model_copy(update={"id": "profile_other", "created_at": "1999-01-01", "headline": "Lead"}))
    loaded = repo.get_by_key("bob")
    assert loaded.id == original.id
    assert loaded.created_at == original.created_at
    assert loaded.headline == "Lead"
    assert repo.count() == 1


def test_linkedin_url_is_unique(conn):
    repo = ProfilesRepo(conn)
    repo.save(_profile("carol", linkedinUrl="https://www.linkedin.com/in/shared/"))
    with pytest.raises(sqlite3.IntegrityError):
        repo.save(_profile("dave", linkedinUrl="https://www.linkedin.com/in/shared/"))


def test_mark_full_and_partial_counts(conn):
    repo = ProfilesRepo(conn)
    repo.save(_profile("p1", isPartial=True, scrapedAt="2024-01-01T00:00:00+00:00"))
    repo.save(_profile("p2", isPartial=True, scrapedAt="2024-01-02T00:00:00+00:00"))
    repo.save(_profile("f1", isPartial=False))
    assert repo.count_partial() == 2
    assert repo.partial_keys() == ["p1", "p2"]
    assert repo.partial_keys(limit=1) == ["p1"]

    assert repo.mark_full("p1", "2024-03-01T00:00:00+00:00") is True
    assert repo.mark_full("p1", "2024-03-01T00:00:00+00:00") is False
    assert repo.get_by_key("p1").is_partial is False
    assert repo.count_partial() == 1


def test_search_filters_and_total(conn):
    repo = ProfilesRepo(conn)
    repo.save(_profile("ann", fullName="Ann Lee", currentCompany="Acme", currentTitle="CTO", location="Berlin", connectionDegree=1))
    repo.save(_profile("ben", fullName="Ben Kay", currentCompany="Acme Labs", currentTitle="Engineer", location="Munich", connectionDegree=2))
    repo.save(_profile("cat", fullName="Cat Ong", currentCompany="Globex", headline="Engineer at Globex", connectionDegree=2, isPartial=True))

    profiles, total = repo.search(filters={"company": "acme"})
    assert total == 2
    assert {p.public_identifier for p in profiles} == {"ann", "ben"}

    profiles, total = repo.search(filters={"title": "engineer"})
    assert {p.public_identifier for p in profiles} == {"ben", "cat"}

    profiles, total = repo.search(filters={"connection_degree": [2], "is_partial": False})
    assert [p.public_identifier for p in profiles] == ["ben"]

    profiles, total = repo.search(query="Ann")
    assert total == 1 and profiles[0].full_name == "Ann Lee"

    page, total = repo.search(limit=1, offset=1)
    assert total == 3
    assert len(page) == 1


def test_text_field_iteration_and_update(conn):
    repo = ProfilesRepo(conn)
    profile = _profile("eve", fullName="EveEve")
    repo.save(profile)
    fields = dict(repo.iter_text_fields())
    assert fields[profile.id]["full_name"] == "EveEve"
    repo.update_text_fields(profile.id, {"full_name": "Eve", "about": "ignored"})
    assert repo.get_by_key("eve").full_name == "Eve"
