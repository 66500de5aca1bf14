from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PostObservation(BaseModel):
    """A feed post as delivered by the extraction layer."""

    id: str = Field(min_length=1)
    author_public_identifier: Optional[str] = None
    author_name: Optional[str] = None
    author_headline: Optional[str] = None
    author_profile_picture_url: Optional[str] = None

    content: Optional[str] = None
    post_url: Optional[str] = None
    post_type: str = "text"

    likes_count: int = 0
    comments_count: int = 0
    reposts_count: int = 0

    has_image: bool = False
    has_video: bool = False
    has_document: bool = False
    image_urls: list[str] = Field(default_factory=list)
    hashtags: list[str] = Field(default_factory=list)

    posted_at: Optional[str] = None
    scraped_at: Optional[str] = None

    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)


class MessageObservation(BaseModel):
    """An inbox message; profile_id carries the contact's public identifier."""

    id: str = Field(min_length=1)
    conversation_id: str = Field(min_length=1)
    profile_id: Optional[str] = None
    direction: Optional[Literal["sent", "received"]] = None
    content: Optional[str] = None
    sent_at: Optional[str] = None
    is_read: bool = False
    scraped_at: Optional[str] = None

    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)
