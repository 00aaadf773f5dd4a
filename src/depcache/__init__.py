"""Dependency-aware cache for compiled build artifacts."""

from __future__ import annotations

from .cache import BuildCache, CacheRecord
from .config import CacheSettings, load_settings
from .errors import DepCacheError
from .naming import get_cache_name, sanitize
from .timestamps import order_by_recency

__version__ = "0.1.0"

__all__ = [
    "BuildCache",
    "CacheRecord",
    "CacheSettings",
    "DepCacheError",
    "get_cache_name",
    "load_settings",
    "order_by_recency",
    "sanitize",
]
