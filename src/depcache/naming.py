"""Mapping of source paths to content file names inside the cache directory.

The mapping is lossy: every character outside ``[A-Za-z0-9_.]`` becomes an
underscore, so ``styles/main.less`` and ``styles_main.less`` share the file
``styles_main.less``. Two such sources overwrite each other's cached content.
The names are part of the on-disk format and must stay stable across
releases.
"""

from __future__ import annotations

import os
import re

_UNSAFE_CHARS = re.compile(r"[^\w.]", re.ASCII)


def sanitize(path: str | os.PathLike[str]) -> str:
    """Return the cache file name used to store content for ``path``."""

    return _UNSAFE_CHARS.sub("_", os.fspath(path))


def get_cache_name(path: str | os.PathLike[str]) -> str:
    return sanitize(path)


__all__ = ["get_cache_name", "sanitize"]
