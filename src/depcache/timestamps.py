"""Modification-time lookups for cache validity checks.

Timestamps are integer milliseconds since the epoch. A path that cannot be
stat'ed resolves to the current time, so a vanished dependency always looks
newer than any cached record.

Resolved times are memoized per :class:`TimestampResolver`. A file touched
after its first lookup keeps its old time until :meth:`TimestampResolver.clear`
is called; the owning cache context clears the memo on ``load`` and on
``refresh_timestamps``.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Iterable, Optional

from .logging import get_logger, log_event


logger = get_logger(__name__, component="timestamps")


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""

    return time.time_ns() // 1_000_000


class TimestampResolver:
    """Memoizing ``path -> mtime`` lookup."""

    def __init__(self) -> None:
        self._memo: dict[str, int] = {}

    def __contains__(self, path: object) -> bool:
        return isinstance(path, (str, os.PathLike)) and os.fspath(path) in self._memo

    def __len__(self) -> int:
        return len(self._memo)

    def resolve(self, path: str | os.PathLike[str], *, now: Optional[int] = None) -> int:
        """Return the modification time of ``path`` in milliseconds.

        Missing or unreadable paths resolve to ``now`` (the current time when
        not supplied) and are not memoized.
        """

        key = os.fspath(path)
        cached = self._memo.get(key)
        if cached is not None:
            return cached
        try:
            mtime = os.stat(key).st_mtime_ns // 1_000_000
        except FileNotFoundError:
            return now if now is not None else now_ms()
        except OSError as exc:
            log_event(
                logger,
                "stat_failed",
                level=logging.WARNING,
                context={"path": key},
                error=str(exc),
            )
            return now if now is not None else now_ms()
        self._memo[key] = mtime
        return mtime

    def clear(self) -> None:
        self._memo.clear()


def order_by_recency(
    paths: Iterable[str | os.PathLike[str]],
    resolver: Optional[TimestampResolver] = None,
) -> list[str]:
    """Return ``paths`` ordered newest first.

    Ties keep their input order. Missing paths share a single "now" for the
    whole call so repeated orderings of the same list are identical.
    """

    if resolver is None:
        resolver = TimestampResolver()
    now = now_ms()
    keyed = [(os.fspath(p), resolver.resolve(p, now=now)) for p in paths]
    keyed.sort(key=lambda item: item[1], reverse=True)
    return [path for path, _ in keyed]


__all__ = ["TimestampResolver", "now_ms", "order_by_recency"]
