from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, List, Optional

from models.sync_result import SyncResult
from utils.logging_setup import init_logging


@dataclass
class RunContext:
    kind: str = "profiles"
    # Raw payloads in, then parsed observations as (key, model) pairs
    items: list = field(default_factory=list)
    parsed: list = field(default_factory=list)
    result: Optional[SyncResult] = None
    meta: dict = field(default_factory=dict)
    task: Optional[Any] = None


class Step(Protocol):
    def run(self, ctx: RunContext) -> RunContext:
        ...


class Pipeline:
    def __init__(self, steps: List[Step]):
        self.steps = steps

    def run(self, ctx: RunContext) -> RunContext:
        # Make logging idempotent for any direct runner use
        init_logging()
        for step in self.steps:
            ctx = step.run(ctx)
        return ctx
