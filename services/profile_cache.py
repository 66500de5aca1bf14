from __future__ import annotations

import threading
from typing import Dict, Optional

from models.profile import Profile
from ports.repos import ProfilesRepoPort
from services.domain_utils import normalize_public_identifier


class ProfileCache:
    """Read-through mirror of the profiles table.

    The store stays the source of truth: entries are only filled from reads
    and dropped on every write to the same key.
    """

    def __init__(self, repo: ProfilesRepoPort):
        self.repo = repo
        self._entries: Dict[str, Profile] = {}
        self._lock = threading.Lock()

    def get(self, public_identifier: str) -> Optional[Profile]:
        key = normalize_public_identifier(public_identifier)
        if not key:
            return None
        with self._lock:
            cached = self._entries.get(key)
        if cached is not None:
            return cached
        profile = self.repo.get_by_key(key)
        if profile is not None:
            with self._lock:
                self._entries[key] = profile
        return profile

    def warm(self) -> int:
        profiles = self.repo.all_profiles()
        with self._lock:
            self._entries = {p.public_identifier: p for p in profiles}
            return len(self._entries)

    def invalidate(self, public_identifier: str) -> None:
        key = normalize_public_identifier(public_identifier)
        with self._lock:
            self._entries.pop(key or "", None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, public_identifier: object) -> bool:
        key = normalize_public_identifier(str(public_identifier))
        with self._lock:
            return (key or "") in self._entries
