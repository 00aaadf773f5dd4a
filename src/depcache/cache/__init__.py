"""Cache utilities exposed under the :mod:`depcache.cache` namespace."""

from .context import BuildCache
from .index import CacheIndex, CacheRecord
from .store import ContentStore

__all__ = [
    "BuildCache",
    "CacheIndex",
    "CacheRecord",
    "ContentStore",
]
