"""Dependency-aware build cache.

A :class:`BuildCache` keeps compiled output keyed by source path and decides
whether that output is still usable by comparing the record's timestamp with
the modification times of every dependency (the source itself included).

Typical use within one build run::

    cache = BuildCache("build/.cache")
    cache.load()
    css = cache.check("styles/main.less")
    if css is None:
        css, deps = compile_less("styles/main.less")
        cache.set("styles/main.less", deps, css)
    ...
    cache.save()

Lookups read one of two tiers. ``get`` and ``check`` only see the persisted
tier (files written by ``save``); content passed to ``set`` stays in the
staged tier, visible through ``get_staged``, until the next ``save``.

Limitations:

* ``save`` writes each file atomically when ``atomic_writes`` is enabled, but
  the content files and the metadata file are not written as one
  transaction. A crash part-way leaves content files newer than the index.
* No locking. Two processes saving into one directory can overwrite each
  other's index.
* Modification times are memoized per cache context (see
  :mod:`depcache.timestamps`); call :meth:`BuildCache.refresh_timestamps` to
  observe files changed since they were first looked up.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

from depcache.config import CacheSettings, load_settings
from depcache.errors import CacheDirectoryError, IndexCorruptError, wrap_error
from depcache.logging import get_logger, log_event, log_exception
from depcache.naming import sanitize
from depcache.timestamps import TimestampResolver, order_by_recency

from .index import CacheIndex, CacheRecord
from .store import TMP_SUFFIX, ContentStore


logger = get_logger(__name__, component="build_cache")


class BuildCache:
    """Cache context owning the record index and the timestamp memo."""

    def __init__(
        self,
        directory: str | os.PathLike[str] | None = None,
        *,
        settings: Optional[CacheSettings] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self._directory = Path(directory) if directory is not None else self.settings.cache_dir
        self._index = CacheIndex()
        self._timestamps = TimestampResolver()

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def index_path(self) -> Path:
        return self._directory / self.settings.index_filename

    @property
    def store(self) -> ContentStore:
        return ContentStore(
            self._directory,
            encoding=self.settings.encoding,
            atomic_writes=self.settings.atomic_writes,
        )

    def __contains__(self, source: object) -> bool:
        return source in self._index

    def __len__(self) -> int:
        return len(self._index)

    def _use_directory(self, directory: str | os.PathLike[str] | None) -> None:
        if directory is not None:
            self._directory = Path(directory)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            error = wrap_error(
                exc,
                CacheDirectoryError,
                message="Failed to create cache directory",
                context={"directory": str(self._directory)},
            )
            log_exception(logger, error, event="cache_directory_failed")
            raise error

    def get_cache_name(self, source: str | os.PathLike[str]) -> str:
        """Name of the content file for ``source`` inside the cache directory."""

        return sanitize(source)

    def load(self, directory: str | os.PathLike[str] | None = None) -> "BuildCache":
        """Read the persisted index from the cache directory.

        The directory is created when missing. Records already held in memory
        are replaced, and the timestamp memo is cleared.
        """

        self._use_directory(directory)
        self._timestamps.clear()
        path = self.index_path
        try:
            self._index = CacheIndex.read(path, encoding=self.settings.encoding)
        except IndexCorruptError as error:
            if self.settings.on_corrupt_index != "reset":
                log_exception(logger, error, event="index_load_failed")
                raise
            log_event(
                logger,
                "index_reset",
                level=logging.WARNING,
                context={"path": str(path)},
                error=error.to_dict(),
            )
            self._index = CacheIndex()
        log_event(
            logger,
            "cache_loaded",
            context={"directory": str(self._directory)},
            records=len(self._index),
        )
        return self

    def save(self, directory: str | os.PathLike[str] | None = None) -> List[str]:
        """Persist staged content and the index; return the content files written.

        Dependency lists are re-ordered newest first. Staged content is
        dropped from memory once written. Write failures propagate as
        :class:`~depcache.errors.CacheWriteError`.
        """

        self._use_directory(directory)
        store = self.store
        written: List[str] = []
        for source, record in self._index.items():
            record.dependencies = order_by_recency(record.dependencies, self._timestamps)
            if record.content is None:
                continue
            name = self.get_cache_name(source)
            store.write(name, record.content)
            record.content = None
            written.append(name)
        self._index.write(
            self.index_path,
            encoding=self.settings.encoding,
            atomic=self.settings.atomic_writes,
        )
        log_event(
            logger,
            "cache_saved",
            context={"directory": str(self._directory)},
            records=len(self._index),
            written=len(written),
        )
        return written

    def set(
        self,
        source: str | os.PathLike[str],
        dependencies: Optional[Iterable[str | os.PathLike[str]]],
        content: str | bytes,
    ) -> None:
        """Stage ``content`` for ``source``; nothing is written until :meth:`save`."""

        self._index.set(source, dependencies, content)

    def get(self, source: str | os.PathLike[str]) -> Optional[str]:
        """Persisted content for ``source``, or ``None`` when no file exists."""

        return self.store.read(self.get_cache_name(source))

    def get_bytes(self, source: str | os.PathLike[str]) -> Optional[bytes]:
        return self.store.read_bytes(self.get_cache_name(source))

    def get_staged(self, source: str | os.PathLike[str]) -> str | bytes | None:
        """Content passed to :meth:`set` and not yet saved."""

        record = self._index.get(source)
        return None if record is None else record.content

    def is_fresh(self, source: str | os.PathLike[str]) -> bool:
        """True when a saved record exists and no dependency is newer than it.

        A record holding staged content is never fresh: the file on disk, if
        any, predates the body passed to :meth:`set`.
        """

        record = self._index.get(source)
        if record is None or record.staged:
            return False
        for dep in record.dependencies:
            if self._timestamps.resolve(dep) > record.last_modified:
                return False
        return True

    def check(self, source: str | os.PathLike[str]) -> Optional[str]:
        """Persisted content for ``source`` if it is still fresh, else ``None``."""

        if not self.is_fresh(source):
            return None
        return self.get(source)

    def record(self, source: str | os.PathLike[str]) -> Optional[CacheRecord]:
        record = self._index.get(source)
        return None if record is None else record.copy()

    def records(self) -> dict[str, CacheRecord]:
        return {source: record.copy() for source, record in self._index.items()}

    def discard(self, source: str | os.PathLike[str]) -> bool:
        """Forget ``source`` and delete its content file.

        Sources whose names sanitize to the same file share it, so discarding
        one also removes the cached body of the others. Their records stay.
        The index file itself is only rewritten by the next :meth:`save`.
        """

        removed = self._index.discard(source)
        file_removed = self.store.remove(self.get_cache_name(source))
        return removed or file_removed

    def purge_orphans(self) -> List[str]:
        """Delete content files that no record maps to; return their names."""

        keep = {self.get_cache_name(source) for source in self._index}
        keep.add(self.settings.index_filename)
        store = self.store
        removed: List[str] = []
        for name in store.names():
            if name in keep or name.endswith(TMP_SUFFIX):
                continue
            if store.remove(name):
                removed.append(name)
        if removed:
            log_event(
                logger,
                "orphans_purged",
                context={"directory": str(self._directory)},
                count=len(removed),
            )
        return removed

    def refresh_timestamps(self) -> None:
        """Forget memoized modification times."""

        self._timestamps.clear()


__all__ = ["BuildCache"]
