# Namespace for pipeline steps
from .parse_observations import ParseObservations  # noqa: F401
from .clean_text import CleanObservationText  # noqa: F401
from .persist_profiles import MergeProfiles  # noqa: F401
from .persist_content import PersistPosts, PersistMessages  # noqa: F401
from .record_sync_log import RecordSyncLog  # noqa: F401
from .enrich_profiles import ClaimNextTask, FetchAndResyncProfile  # noqa: F401
