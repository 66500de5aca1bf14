from .profile import Education, Experience, Profile, ProfileObservation
from .content import MessageObservation, PostObservation
from .sync_result import SyncFailure, SyncResult
from .enrichment import DispatchOutcome, EnrichmentTask, QueueStatus

__all__ = [
    "Education",
    "Experience",
    "Profile",
    "ProfileObservation",
    "MessageObservation",
    "PostObservation",
    "SyncFailure",
    "SyncResult",
    "DispatchOutcome",
    "EnrichmentTask",
    "QueueStatus",
]
