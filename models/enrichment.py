from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


TaskStatus = Literal["pending", "processing", "completed", "failed"]


class EnrichmentTask(BaseModel):
    id: int
    public_identifier: str
    url: str
    status: TaskStatus
    attempts: int = 0
    queued_at: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    last_error: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class QueueStatus(BaseModel):
    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    total: int = 0


class DispatchOutcome(BaseModel):
    """What one dispatcher tick did with the task it claimed."""

    public_identifier: str
    success: bool
    status: TaskStatus
    attempts: int
    error: Optional[str] = None
