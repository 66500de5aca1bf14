from __future__ import annotations

import sqlite3
from typing import Optional

from db.repos.messages_repo import MessagesRepo
from db.repos.posts_repo import PostsRepo
from models.content import MessageObservation, PostObservation
from pipelines.runner import RunContext
from pipelines.steps.persist_profiles import PerItemStep
from services.domain_utils import normalize_public_identifier


def _split_name(full_name: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    parts = [p for p in (full_name or "").split() if p]
    if not parts:
        return None, None
    if len(parts) == 1:
        return parts[0], None
    return parts[0], " ".join(parts[1:])


class PersistPosts(PerItemStep):
    def __init__(self, conn: sqlite3.Connection) -> None:
        super().__init__(conn)
        self.posts = PostsRepo(conn)

    def apply(self, ctx: RunContext, key: str, post: PostObservation) -> int:
        author_key = normalize_public_identifier(post.author_public_identifier)
        first, last = _split_name(post.author_name)
        author_id, created = self.ensure_stub(
            ctx,
            author_key,
            first_name=first,
            last_name=last,
            full_name=post.author_name or author_key,
            headline=post.author_headline,
            profile_picture_url=post.author_profile_picture_url,
            scraped_at=post.scraped_at,
        )
        self.posts.upsert(post.model_copy(update={"author_public_identifier": author_key}), author_id)
        return created


class PersistMessages(PerItemStep):
    def __init__(self, conn: sqlite3.Connection) -> None:
        super().__init__(conn)
        self.messages = MessagesRepo(conn)

    def apply(self, ctx: RunContext, key: str, message: MessageObservation) -> int:
        contact_key = normalize_public_identifier(message.profile_id)
        profile_id, created = self.ensure_stub(
            ctx,
            contact_key,
            full_name=contact_key,
            scraped_at=message.scraped_at,
        )
        self.messages.upsert(message, profile_id=profile_id, contact_public_identifier=contact_key)
        return created

