"""Cache records and the JSON metadata file that persists them.

The metadata file maps each source path to ``{"lastModified": <ms>, "deps":
[...]}``. Content bodies are never written here; they live in separate files
managed by :class:`~depcache.cache.store.ContentStore`.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from depcache.errors import IndexCorruptError, wrap_error
from depcache.timestamps import now_ms

from .store import write_file


@dataclass
class CacheRecord:
    last_modified: int
    dependencies: List[str] = field(default_factory=list)
    content: str | bytes | None = None

    @property
    def staged(self) -> bool:
        """True while the record holds content that has not been saved yet."""

        return self.content is not None

    def to_json_dict(self) -> Dict[str, Any]:
        return {"lastModified": self.last_modified, "deps": list(self.dependencies)}

    @classmethod
    def from_json_dict(cls, data: Any) -> "CacheRecord":
        if not isinstance(data, Mapping):
            raise TypeError("record must be an object")
        last_modified = data["lastModified"]
        deps = data.get("deps", [])
        if isinstance(last_modified, bool) or not isinstance(last_modified, (int, float)):
            raise TypeError("lastModified must be a number")
        if not isinstance(deps, list) or not all(isinstance(d, str) for d in deps):
            raise TypeError("deps must be a list of strings")
        return cls(last_modified=int(last_modified), dependencies=list(deps))

    def copy(self) -> "CacheRecord":
        return CacheRecord(
            last_modified=self.last_modified,
            dependencies=list(self.dependencies),
            content=self.content,
        )


class CacheIndex:
    """In-memory mapping from source path to :class:`CacheRecord`."""

    def __init__(self, records: Optional[Mapping[str, CacheRecord]] = None) -> None:
        self._records: Dict[str, CacheRecord] = dict(records or {})

    def __contains__(self, source: object) -> bool:
        return isinstance(source, (str, os.PathLike)) and os.fspath(source) in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._records))

    def get(self, source: str | os.PathLike[str]) -> Optional[CacheRecord]:
        return self._records.get(os.fspath(source))

    def items(self) -> List[tuple[str, CacheRecord]]:
        return list(self._records.items())

    def set(
        self,
        source: str | os.PathLike[str],
        dependencies: Optional[Iterable[str | os.PathLike[str]]],
        content: str | bytes,
        *,
        timestamp: Optional[int] = None,
    ) -> CacheRecord:
        """Create or replace the record for ``source``.

        The source path is appended to its own dependency list when missing,
        so editing the source invalidates the entry.
        """

        key = os.fspath(source)
        deps = [os.fspath(dep) for dep in (dependencies or [])]
        if key not in deps:
            deps.append(key)
        record = CacheRecord(
            last_modified=now_ms() if timestamp is None else timestamp,
            dependencies=deps,
            content=content,
        )
        self._records[key] = record
        return record

    def discard(self, source: str | os.PathLike[str]) -> bool:
        return self._records.pop(os.fspath(source), None) is not None

    def clear(self) -> None:
        self._records.clear()

    def to_json_dict(self) -> Dict[str, Dict[str, Any]]:
        return {source: record.to_json_dict() for source, record in self._records.items()}

    def dumps(self) -> str:
        return json.dumps(self.to_json_dict(), indent=2, sort_keys=True) + "\n"

    @classmethod
    def loads(cls, text: str) -> "CacheIndex":
        """Parse metadata text; raises ``ValueError``/``TypeError``/``KeyError`` on bad input."""

        data = json.loads(text)
        if not isinstance(data, dict):
            raise TypeError("cache index must be a JSON object")
        return cls({str(k): CacheRecord.from_json_dict(v) for k, v in data.items()})

    @classmethod
    def read(cls, path: Path, *, encoding: str = "utf-8") -> "CacheIndex":
        """Load the index stored at ``path``; a missing file yields an empty index."""

        try:
            text = path.read_text(encoding=encoding)
        except FileNotFoundError:
            return cls()
        except (OSError, UnicodeDecodeError) as exc:
            error = wrap_error(
                exc,
                IndexCorruptError,
                message="Failed to read cache index",
                context={"path": str(path)},
            )
            raise error
        try:
            return cls.loads(text)
        except (ValueError, TypeError, KeyError) as exc:
            error = wrap_error(
                exc,
                IndexCorruptError,
                message="Cache index is malformed",
                context={"path": str(path)},
            )
            raise error

    def write(self, path: Path, *, encoding: str = "utf-8", atomic: bool = True) -> None:
        write_file(path, self.dumps().encode(encoding), atomic=atomic)


__all__ = ["CacheIndex", "CacheRecord"]
