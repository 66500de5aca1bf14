from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Protocol

from models.enrichment import EnrichmentTask, QueueStatus
from models.profile import Profile


class ProfilesRepoPort(Protocol):
    def get_by_key(self, public_identifier: str) -> Optional[Profile]:
        ...

    def all_profiles(self) -> List[Profile]:
        ...

    def save(self, profile: Profile) -> None:
        ...

    def mark_full(self, public_identifier: str, updated_at: str) -> bool:
        ...

    def search(
        self,
        query: Optional[str] = None,
        filters: Optional[Dict[str, Any]] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Profile], int]:
        ...


class EnrichmentQueuePort(Protocol):
    def enqueue(self, public_identifier: str, url: Optional[str] = None) -> bool:
        ...

    def claim_next(self) -> Optional[EnrichmentTask]:
        ...

    def complete(self, public_identifier: str, success: bool, error: Optional[str] = None) -> bool:
        ...

    def get(self, public_identifier: str) -> Optional[EnrichmentTask]:
        ...

    def status_summary(self) -> QueueStatus:
        ...
