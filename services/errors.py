from __future__ import annotations


class SyncError(Exception):
    """Per-item failure during reconciliation; `kind` is what callers see."""

    kind: str = "SyncError"

    def __init__(self, message: str = "", *, key: str | None = None) -> None:
        super().__init__(message or self.kind)
        self.key = key


class MissingKeyError(SyncError):
    kind = "MissingKey"


class InvalidRecordError(SyncError):
    kind = "InvalidRecord"


class MergeConflictError(SyncError):
    kind = "MergeConflict"


class PersistenceError(SyncError):
    kind = "PersistenceError"


class FetchError(Exception):
    """External fetch-and-extract collaborator could not deliver a profile."""
