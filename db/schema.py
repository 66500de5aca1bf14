from __future__ import annotations

import sqlite3
from typing import Optional


def bootstrap(conn: sqlite3.Connection) -> None:
    """Create profile, queue, content and bookkeeping tables plus indexes (idempotent)."""
    cur = conn.cursor()

    # Profiles table (one row per public identifier)
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS profiles (\n"
            "  id TEXT PRIMARY KEY,\n"
            "  public_identifier TEXT NOT NULL UNIQUE,\n"
            "  linkedin_url TEXT NOT NULL UNIQUE,\n"
            "  first_name TEXT,\n"
            "  last_name TEXT,\n"
            "  full_name TEXT,\n"
            "  headline TEXT,\n"
            "  location TEXT,\n"
            "  about TEXT,\n"
            "  profile_picture_url TEXT,\n"
            "  current_company TEXT,\n"
            "  current_title TEXT,\n"
            "  connection_degree INTEGER,\n"
            "  connected_at TEXT,\n"
            "  experience TEXT,\n"
            "  education TEXT,\n"
            "  skills TEXT,\n"
            "  scraped_at TEXT NOT NULL,\n"
            "  last_interaction TEXT,\n"
            "  is_partial INTEGER NOT NULL DEFAULT 0,\n"
            "  created_at TEXT NOT NULL,\n"
            "  updated_at TEXT NOT NULL\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_profiles_company ON profiles(current_company);")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_profiles_title ON profiles(current_title);")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_profiles_scraped ON profiles(scraped_at);")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_profiles_name ON profiles(full_name);")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_profiles_partial ON profiles(is_partial);")

    # Enrichment queue (at most one task per profile)
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS enrichment_queue (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  public_identifier TEXT NOT NULL UNIQUE,\n"
            "  url TEXT NOT NULL,\n"
            "  status TEXT NOT NULL DEFAULT 'pending'\n"
            "    CHECK(status IN ('pending', 'processing', 'completed', 'failed')),\n"
            "  attempts INTEGER NOT NULL DEFAULT 0,\n"
            "  queued_at TEXT NOT NULL,\n"
            "  started_at TEXT,\n"
            "  completed_at TEXT,\n"
            "  last_error TEXT\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_enrichment_status_queued ON enrichment_queue(status, queued_at);")

    # Feed posts
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS posts (\n"
            "  id TEXT PRIMARY KEY,\n"
            "  author_profile_id TEXT REFERENCES profiles(id) ON DELETE SET NULL,\n"
            "  author_public_identifier TEXT,\n"
            "  author_name TEXT,\n"
            "  author_headline TEXT,\n"
            "  author_profile_picture_url TEXT,\n"
            "  content TEXT,\n"
            "  post_url TEXT,\n"
            "  post_type TEXT NOT NULL DEFAULT 'text',\n"
            "  likes_count INTEGER NOT NULL DEFAULT 0,\n"
            "  comments_count INTEGER NOT NULL DEFAULT 0,\n"
            "  reposts_count INTEGER NOT NULL DEFAULT 0,\n"
            "  has_image INTEGER NOT NULL DEFAULT 0,\n"
            "  has_video INTEGER NOT NULL DEFAULT 0,\n"
            "  has_document INTEGER NOT NULL DEFAULT 0,\n"
            "  image_urls TEXT,\n"
            "  hashtags TEXT,\n"
            "  posted_at TEXT,\n"
            "  scraped_at TEXT NOT NULL\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_posts_author ON posts(author_public_identifier);")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_posts_posted ON posts(posted_at);")

    # Inbox messages
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS messages (\n"
            "  id TEXT PRIMARY KEY,\n"
            "  conversation_id TEXT NOT NULL,\n"
            "  profile_id TEXT REFERENCES profiles(id) ON DELETE SET NULL,\n"
            "  contact_public_identifier TEXT,\n"
            "  direction TEXT CHECK(direction IN ('sent', 'received')),\n"
            "  content TEXT,\n"
            "  sent_at TEXT,\n"
            "  is_read INTEGER NOT NULL DEFAULT 0,\n"
            "  scraped_at TEXT NOT NULL\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_messages_profile ON messages(profile_id);")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_messages_sent ON messages(sent_at);")

    # Append-only batch audit
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS sync_log (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  type TEXT NOT NULL,\n"
            "  count INTEGER NOT NULL,\n"
            "  synced_at TEXT NOT NULL\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_sync_log_synced ON sync_log(synced_at);")

    # One-time maintenance markers
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS schema_meta (\n"
            "  key TEXT PRIMARY KEY,\n"
            "  value TEXT NOT NULL,\n"
            "  updated_at TEXT NOT NULL DEFAULT (datetime('now'))\n"
            ")"
        )
    )


def get_meta(conn: sqlite3.Connection, key: str) -> Optional[str]:
    row = conn.execute("SELECT value FROM schema_meta WHERE key = ?", (key,)).fetchone()
    return row[0] if row else None


def set_meta(conn: sqlite3.Connection, key: str, value: str) -> None:
    conn.execute(
        "INSERT INTO schema_meta (key, value, updated_at) VALUES (?, ?, datetime('now')) "
        "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
        (key, value),
    )
