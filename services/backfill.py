from __future__ import annotations

import logging
import sqlite3

from db import schema
from db.connection import transaction
from db.repos.posts_repo import PostsRepo
from db.repos.profiles_repo import ProfilesRepo
from services.text_cleaning import clean_optional, is_doubled
from utils.time_utils import utc_now_iso


logger = logging.getLogger(__name__)

BACKFILL_MARKER = "backfill_doubled_text"


def backfill_doubled_text(conn: sqlite3.Connection, force: bool = False) -> int:
    """Repair doubled names/headlines already stored before the filter existed.

    Runs once per database (tracked in schema_meta) unless force=True.
    Returns the number of rows rewritten.
    """
    if not force and schema.get_meta(conn, BACKFILL_MARKER):
        return 0

    profiles = ProfilesRepo(conn)
    posts = PostsRepo(conn)
    fixed = 0
    with transaction(conn):
        for profile_id, fields in list(profiles.iter_text_fields()):
            changes = {col: clean_optional(value) for col, value in fields.items() if is_doubled(value)}
            if changes:
                profiles.update_text_fields(profile_id, changes)
                fixed += 1
        for post_id, fields in list(posts.iter_author_text()):
            changes = {col: clean_optional(value) for col, value in fields.items() if is_doubled(value)}
            if changes:
                posts.update_author_text(post_id, changes)
                fixed += 1
        schema.set_meta(conn, BACKFILL_MARKER, utc_now_iso())

    logger.info("Doubled-text backfill finished", extra={"step": "backfill", "status": "ok", "kind": "text"})
    return fixed
