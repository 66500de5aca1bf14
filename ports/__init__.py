from .fetcher import ProfileFetcherPort
from .repos import ProfilesRepoPort, EnrichmentQueuePort

__all__ = [
    "ProfileFetcherPort",
    "ProfilesRepoPort",
    "EnrichmentQueuePort",
]
