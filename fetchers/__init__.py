# Importing the built-in fetchers registers them
from . import http_extractor  # noqa: F401
from . import stub  # noqa: F401
from .registry import get_fetcher, available_fetchers  # noqa: F401
