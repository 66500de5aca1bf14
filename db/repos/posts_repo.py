from __future__ import annotations

import json
import sqlite3
from typing import Any, Dict, Iterator, List, Optional, Tuple

from models.content import PostObservation
from utils.time_utils import utc_now_iso


class PostsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def upsert(self, post: PostObservation, author_profile_id: Optional[str] = None) -> None:
        """Insert or refresh a feed post by id.

        Engagement counts and content follow the latest observation; the
        author link is only ever filled in, never cleared.
        """
        self.conn.execute(
            (
                "INSERT INTO posts ("
                "  id, author_profile_id, author_public_identifier, author_name, author_headline,"
                "  author_profile_picture_url, content, post_url, post_type,"
                "  likes_count, comments_count, reposts_count,"
                "  has_image, has_video, has_document, image_urls, hashtags, posted_at, scraped_at"
                ") VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET "
                "  author_profile_id = COALESCE(excluded.author_profile_id, posts.author_profile_id),"
                "  author_name = excluded.author_name,"
                "  author_headline = excluded.author_headline,"
                "  content = excluded.content,"
                "  post_type = excluded.post_type,"
                "  likes_count = excluded.likes_count,"
                "  comments_count = excluded.comments_count,"
                "  reposts_count = excluded.reposts_count,"
                "  hashtags = excluded.hashtags,"
                "  scraped_at = excluded.scraped_at"
            ),
            (
                post.id,
                author_profile_id,
                post.author_public_identifier,
                post.author_name,
                post.author_headline,
                post.author_profile_picture_url,
                post.content,
                post.post_url,
                post.post_type or "text",
                post.likes_count,
                post.comments_count,
                post.reposts_count,
                1 if post.has_image else 0,
                1 if post.has_video else 0,
                1 if post.has_document else 0,
                json.dumps(post.image_urls, ensure_ascii=False),
                json.dumps(post.hashtags, ensure_ascii=False),
                post.posted_at,
                post.scraped_at or utc_now_iso(),
            ),
        )

    def get(self, post_id: str) -> Optional[Dict[str, Any]]:
        row = self.conn.execute("SELECT * FROM posts WHERE id = ?", (post_id,)).fetchone()
        if not row:
            return None
        data = dict(row)
        for key in ("image_urls", "hashtags"):
            data[key] = json.loads(data[key]) if data.get(key) else []
        return data

    def count(self) -> int:
        return int(self.conn.execute("SELECT COUNT(*) FROM posts").fetchone()[0])

    def iter_author_text(self) -> Iterator[Tuple[str, Dict[str, Optional[str]]]]:
        rows = self.conn.execute("SELECT id, author_name, author_headline FROM posts").fetchall()
        for row in rows:
            yield row["id"], {"author_name": row["author_name"], "author_headline": row["author_headline"]}

    def update_author_text(self, post_id: str, fields: Dict[str, Optional[str]]) -> None:
        columns: List[str] = [c for c in fields if c in ("author_name", "author_headline")]
        if not columns:
            return
        assignments = ", ".join(f"{c} = ?" for c in columns)
        self.conn.execute(
            f"UPDATE posts SET {assignments} WHERE id = ?",
            (*[fields[c] for c in columns], post_id),
        )
