"""Utility modules for the lab explorer."""

from lab_explorer.utils.cache import FetchCache, make_cache_key
from lab_explorer.utils.config import ExplorerSettings, load_config, clear_config_cache
from lab_explorer.utils.retry import retry_with_backoff
from lab_explorer.utils.observability import new_click_id, get_click_id, timed

__all__ = [
    "FetchCache",
    "make_cache_key",
    "ExplorerSettings",
    "load_config",
    "clear_config_cache",
    "retry_with_backoff",
    "new_click_id",
    "get_click_id",
    "timed",
]
