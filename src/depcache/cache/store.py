"""Content bodies stored one file per source under the cache directory."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator, Optional

from depcache.errors import CacheError, CacheWriteError, wrap_error
from depcache.logging import get_logger, log_exception


logger = get_logger(__name__, component="content_store")

TMP_SUFFIX = ".tmp"


def write_file(path: Path, data: bytes, *, atomic: bool = True) -> None:
    """Write ``data`` to ``path``, via a sibling temp file when ``atomic``."""

    tmp = path.with_name(path.name + TMP_SUFFIX) if atomic else None
    try:
        if tmp is None:
            path.write_bytes(data)
            return
        tmp.write_bytes(data)
        tmp.replace(path)
    except OSError as exc:
        if tmp is not None:
            tmp.unlink(missing_ok=True)
        error = wrap_error(
            exc,
            CacheWriteError,
            message="Failed to write cache file",
            context={"path": str(path)},
        )
        log_exception(logger, error, event="cache_write_failed")
        raise error


class ContentStore:
    """Read/write access to content files keyed by their sanitized name."""

    def __init__(
        self,
        directory: str | os.PathLike[str],
        *,
        encoding: str = "utf-8",
        atomic_writes: bool = True,
    ) -> None:
        self.directory = Path(directory)
        self.encoding = encoding
        self.atomic_writes = atomic_writes

    def path_for(self, name: str) -> Path:
        return self.directory / name

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def read_bytes(self, name: str) -> Optional[bytes]:
        """Return the stored bytes for ``name`` or ``None`` when absent."""

        path = self.path_for(name)
        try:
            return path.read_bytes()
        except (FileNotFoundError, IsADirectoryError):
            return None
        except OSError as exc:
            error = wrap_error(
                exc,
                CacheError,
                message="Failed to read cached content",
                context={"path": str(path)},
            )
            log_exception(logger, error, event="cache_read_failed")
            raise error

    def read(self, name: str) -> Optional[str]:
        """Return the stored text for ``name`` or ``None`` when absent."""

        data = self.read_bytes(name)
        if data is None:
            return None
        try:
            return data.decode(self.encoding)
        except UnicodeDecodeError as exc:
            error = wrap_error(
                exc,
                CacheError,
                message="Cached content is not valid text",
                context={"path": str(self.path_for(name)), "encoding": self.encoding},
            )
            log_exception(logger, error, event="cache_decode_failed")
            raise error

    def write(self, name: str, content: str | bytes) -> Path:
        """Store ``content`` under ``name``, replacing any previous file."""

        data = content.encode(self.encoding) if isinstance(content, str) else bytes(content)
        path = self.path_for(name)
        write_file(path, data, atomic=self.atomic_writes)
        return path

    def remove(self, name: str) -> bool:
        """Delete the file for ``name``; return whether one existed."""

        path = self.path_for(name)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            error = wrap_error(
                exc,
                CacheWriteError,
                message="Failed to remove cached content",
                context={"path": str(path)},
            )
            log_exception(logger, error, event="cache_remove_failed")
            raise error
        return True

    def names(self) -> Iterator[str]:
        """Yield the names of regular files in the store directory."""

        if not self.directory.is_dir():
            return
        for entry in sorted(self.directory.iterdir()):
            if entry.is_file():
                yield entry.name


__all__ = ["ContentStore", "TMP_SUFFIX", "write_file"]
