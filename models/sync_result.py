from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


SyncKind = Literal["profiles", "posts", "messages"]


class SyncFailure(BaseModel):
    key: str
    error: str  # error kind, e.g. "MissingKey"
    message: str = ""

    model_config = ConfigDict(extra="forbid")


class SyncResult(BaseModel):
    """Per-item outcome of one bulk sync batch."""

    kind: SyncKind
    total: int = 0
    saved: int = 0
    failed: list[SyncFailure] = Field(default_factory=list)
    synced_keys: list[str] = Field(default_factory=list)
    profiles_created: int = 0

    model_config = ConfigDict(extra="forbid")

    def record_success(self, key: str) -> None:
        self.saved += 1
        self.synced_keys.append(key)

    def record_failure(self, key: str, error: str, message: str = "") -> None:
        self.failed.append(SyncFailure(key=key, error=error, message=message))
