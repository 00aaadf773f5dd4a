"""Configuration helpers exposed under :mod:`depcache.config`."""

from .paths import expand_env_path
from .settings import (
    DEFAULT_CACHE_DIR,
    DEFAULT_INDEX_FILENAME,
    CacheSettings,
    load_settings,
)

__all__ = [
    "CacheSettings",
    "DEFAULT_CACHE_DIR",
    "DEFAULT_INDEX_FILENAME",
    "expand_env_path",
    "load_settings",
]
